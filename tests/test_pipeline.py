import json

import pytest

from fbc_builder.context import DEFAULT_BUNDLE_IMAGE
from fbc_builder.exceptions import CatalogAssemblyError, FBCValidationError, RenderError
from fbc_builder.models import DeclarativeConfig
from fbc_builder.pipeline import build_channel, check_one_of_each, create_minimal_fbc, run
from fbc_builder.render import DirectoryBundleRenderer
from fbc_builder.storage import load_fbc


@pytest.fixture
def renderer(bundle_dir):
    return DirectoryBundleRenderer({DEFAULT_BUNDLE_IMAGE: bundle_dir})


def test_create_minimal_fbc(ctx, renderer):
    cfg = create_minimal_fbc(ctx, renderer)
    assert [b.name for b in cfg.bundles] == ["api-operator.v1.0.1"]
    (pkg,) = cfg.packages
    assert (pkg.name, pkg.default_channel, pkg.description) == ("api-operator", "foo", "foo")
    (channel,) = cfg.channels
    assert channel.schema_ == "olm.channel"
    assert channel.package == "api-operator"
    assert [e.name for e in channel.entries] == ["api-operator.v1.0.1"]


def test_run_writes_and_validates(ctx, renderer):
    path = run(ctx, renderer)
    assert path == ctx.output_file
    first = path.read_text().split("\n}\n")[0] + "\n}"
    assert json.loads(first)["schema"] == "olm.package"
    loaded = load_fbc(path)
    assert [p.name for p in loaded.packages] == ["api-operator"]
    assert loaded.bundles[0].image == DEFAULT_BUNDLE_IMAGE


def test_run_yaml_output(ctx, renderer):
    path = run(ctx.replace(output_format="yaml", fbc_filename="catalog.yaml"), renderer)
    assert path.read_text().startswith("---")
    assert len(load_fbc(path).channels) == 1


def test_run_reports_invalid_catalog_after_writing(ctx, renderer):
    bad = ctx.replace(default_channel="stable")
    with pytest.raises(FBCValidationError, match="default channel 'stable' not found"):
        run(bad, renderer)
    assert bad.output_file.is_file()


def test_run_without_validation(ctx, renderer):
    path = run(ctx.replace(default_channel="stable"), renderer, validate=False)
    assert path.is_file()


def test_render_failure_propagates(ctx, caplog):
    with pytest.raises(RenderError):
        create_minimal_fbc(ctx, DirectoryBundleRenderer())
    assert "error in rendering the bundle image" in caplog.text


def test_channel_defaults_to_recorded_upgrade_edge(ctx, renderer):
    cfg = create_minimal_fbc(ctx.replace(channel_entries=[]), renderer)
    (entry,) = cfg.channels[0].entries
    assert entry.name == "api-operator.v1.0.1"
    assert entry.replaces == "api-operator.v1.0.0"


def test_build_channel_uses_context_entries(ctx):
    channel = build_channel(ctx)
    assert channel.name == "foo"
    assert [e.name for e in channel.entries] == ["api-operator.v1.0.1"]


class TwoBundleRenderer:
    def __init__(self, inner):
        self.inner = inner

    def render(self, refs):
        cfg = self.inner.render(refs)
        return cfg.merge(cfg)


def test_more_than_one_bundle_is_an_error(ctx, renderer):
    with pytest.raises(CatalogAssemblyError, match="produced 2 bundles"):
        create_minimal_fbc(ctx, TwoBundleRenderer(renderer))


def test_check_one_of_each():
    with pytest.raises(CatalogAssemblyError, match="0 bundle"):
        check_one_of_each(DeclarativeConfig())
