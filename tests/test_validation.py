import pytest

from fbc_builder.exceptions import FBCValidationError
from fbc_builder.models import Bundle, Channel, ChannelEntry, DeclarativeConfig, Package, Property
from fbc_builder.validation import convert_to_model, run_model_checks, validate_fbc


def _bundle(name="op.v1", package="op", image="quay.io/org/op:1", declared=None):
    return Bundle(
        name=name,
        package=package,
        image=image,
        properties=[
            Property(
                type="olm.package",
                value={"packageName": declared or package, "version": name.split(".v")[-1]},
            )
        ],
    )


def _config(**overrides) -> DeclarativeConfig:
    data = {
        "packages": [Package(name="op", default_channel="foo")],
        "channels": [Channel(name="foo", package="op", entries=[ChannelEntry(name="op.v1")])],
        "bundles": [_bundle()],
    }
    data.update(overrides)
    return DeclarativeConfig(**data)


def test_minimal_catalog_is_valid():
    model = validate_fbc(_config())
    assert list(model.packages) == ["op"]
    assert model.packages["op"].channels["foo"].heads() == ["op.v1"]


def test_default_channel_missing():
    issues = run_model_checks(_config(packages=[Package(name="op", default_channel="bar")]))
    assert issues == ["package 'op': default channel 'bar' not found in channels"]


def test_entry_without_bundle_and_bundle_without_entry():
    cfg = _config(bundles=[_bundle(name="op.v2")])
    _, issues = convert_to_model(cfg)
    assert "package 'op', channel 'foo': entry 'op.v1' not found in bundles" in issues
    assert "package 'op': bundle 'op.v2' not found in any channel entries" in issues


def test_unknown_package_references():
    cfg = _config(
        channels=[
            Channel(name="foo", package="op", entries=[ChannelEntry(name="op.v1")]),
            Channel(name="foo", package="ghost"),
        ],
        bundles=[_bundle(), _bundle(name="ghost.v1", package="ghost")],
    )
    _, issues = convert_to_model(cfg)
    assert "channel 'foo': unknown package 'ghost'" in issues
    assert "bundle 'ghost.v1': unknown package 'ghost'" in issues


def test_duplicates():
    cfg = _config(
        packages=[Package(name="op", default_channel="foo"), Package(name="op")],
        channels=[
            Channel(
                name="foo",
                package="op",
                entries=[ChannelEntry(name="op.v1"), ChannelEntry(name="op.v1")],
            ),
            Channel(name="foo", package="op"),
        ],
        bundles=[_bundle(), _bundle()],
    )
    _, issues = convert_to_model(cfg)
    assert issues == [
        "duplicate package 'op'",
        "package 'op', channel 'foo': duplicate entry 'op.v1'",
        "package 'op': duplicate channel 'foo'",
        "package 'op': duplicate bundle 'op.v1'",
    ]


def test_multiple_heads():
    cfg = _config(
        channels=[
            Channel(
                name="foo",
                package="op",
                entries=[ChannelEntry(name="op.v1"), ChannelEntry(name="op.v2")],
            )
        ],
        bundles=[_bundle(), _bundle(name="op.v2")],
    )
    issues = run_model_checks(cfg)
    assert issues == ["package 'op', channel 'foo': multiple channel heads found: ['op.v1', 'op.v2']"]


def test_replaces_chain_has_single_head():
    cfg = _config(
        channels=[
            Channel(
                name="foo",
                package="op",
                entries=[ChannelEntry(name="op.v1"), ChannelEntry(name="op.v2", replaces="op.v1")],
            )
        ],
        bundles=[_bundle(), _bundle(name="op.v2")],
    )
    model = validate_fbc(cfg)
    assert model.packages["op"].channels["foo"].heads() == ["op.v2"]


def test_replaces_cycle_has_no_head():
    cfg = _config(
        channels=[
            Channel(
                name="foo",
                package="op",
                entries=[
                    ChannelEntry(name="op.v1", replaces="op.v2"),
                    ChannelEntry(name="op.v2", replaces="op.v1"),
                ],
            )
        ],
        bundles=[_bundle(), _bundle(name="op.v2")],
    )
    assert run_model_checks(cfg) == [
        "package 'op', channel 'foo': no channel head found (replaces/skips cycle)"
    ]


def test_empty_channel():
    cfg = _config(channels=[Channel(name="foo", package="op")], bundles=[])
    assert run_model_checks(cfg) == ["package 'op', channel 'foo': channel must contain at least one bundle"]


def test_bundle_property_rules():
    cfg = _config(bundles=[_bundle(image="", declared="other")])
    issues = run_model_checks(cfg)
    assert issues == [
        "package 'op', bundle 'op.v1': bundle image must be set",
        "package 'op', bundle 'op.v1': property 'olm.package' names package 'other'",
    ]


def test_validate_fbc_raises_with_issues():
    with pytest.raises(FBCValidationError) as excinfo:
        validate_fbc(_config(packages=[Package(name="op")]))
    assert excinfo.value.issues == ["package 'op': default channel must be set"]
    assert "1 issue(s)" in str(excinfo.value)
