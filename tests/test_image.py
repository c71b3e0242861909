import pytest

from fbc_builder.image import ImageReference


@pytest.mark.parametrize(
    "ref,registry,repository,tag,digest",
    [
        (
            "quay.io/rashmigottipati/api-operator:1.0.1",
            "quay.io",
            "rashmigottipati/api-operator",
            "1.0.1",
            None,
        ),
        ("busybox", "docker.io", "library/busybox", "latest", None),
        ("org/op", "docker.io", "org/op", "latest", None),
        ("localhost:5000/op", "localhost:5000", "op", "latest", None),
        (
            "registry.example.com/a/b@sha256:" + "a" * 64,
            "registry.example.com",
            "a/b",
            None,
            "sha256:" + "a" * 64,
        ),
    ],
)
def test_parse(ref, registry, repository, tag, digest):
    parsed = ImageReference.parse(ref)
    assert parsed.registry == registry
    assert parsed.repository == repository
    assert parsed.tag == tag
    assert parsed.digest == digest


def test_reference_prefers_digest():
    digest = "sha256:" + "b" * 64
    parsed = ImageReference.parse(f"quay.io/org/op:1.0@{digest}")
    assert parsed.reference == digest
    assert str(parsed) == f"quay.io/org/op:1.0@{digest}"


def test_docker_hub_api_host():
    assert ImageReference.parse("busybox").api_host == "registry-1.docker.io"
    assert ImageReference.parse("quay.io/org/op").api_host == "quay.io"


@pytest.mark.parametrize("ref", ["", "quay.io/Org/op", "quay.io/org/op:bad tag", "op@sha256:xyz"])
def test_parse_rejects(ref):
    with pytest.raises(ValueError):
        ImageReference.parse(ref)
