"""Shared pytest fixtures for fbc-builder tests."""

import io
import os
import tarfile
from pathlib import Path

import pytest

from fbc_builder.context import ENV_OVERRIDES, default_context
from fbc_builder.log import LOG_LEVEL_ENV

CSV_YAML = """\
apiVersion: operators.coreos.com/v1alpha1
kind: ClusterServiceVersion
metadata:
  name: {name}
  annotations:
    olm.skipRange: "<1.0.1"
spec:
  version: "{version}"
  replaces: api-operator.v1.0.0
  customresourcedefinitions:
    owned:
      - name: apis.example.com
        kind: Api
        version: v1
    required:
      - name: databases.example.org
        kind: Database
        version: v1beta1
  relatedImages:
    - name: controller
      image: quay.io/example/api-operator-controller:1.0.1
"""

CRD_YAML = """\
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: apis.example.com
spec:
  group: example.com
  names:
    kind: Api
    plural: apis
  versions:
    - name: v1
      served: true
      storage: true
"""

ANNOTATIONS_YAML = """\
annotations:
  operators.operatorframework.io.bundle.package.v1: {package}
  operators.operatorframework.io.bundle.channels.v1: foo
  operators.operatorframework.io.bundle.channel.default.v1: foo
"""


def write_bundle_dir(
    root: Path,
    name: str = "api-operator.v1.0.1",
    version: str = "1.0.1",
    package: str = "api-operator",
) -> Path:
    """Create an unpacked bundle (manifests + metadata) under ``root``."""
    (root / "manifests").mkdir(parents=True, exist_ok=True)
    (root / "metadata").mkdir(parents=True, exist_ok=True)
    (root / "manifests" / "api-operator.clusterserviceversion.yaml").write_text(
        CSV_YAML.format(name=name, version=version), encoding="utf-8"
    )
    (root / "manifests" / "example.com_apis.yaml").write_text(CRD_YAML, encoding="utf-8")
    (root / "metadata" / "annotations.yaml").write_text(
        ANNOTATIONS_YAML.format(package=package), encoding="utf-8"
    )
    return root


def tar_bundle_dir(root: Path) -> bytes:
    """Pack a bundle directory as a gzipped image layer."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        tar.add(root / "manifests", arcname="manifests")
        tar.add(root / "metadata", arcname="metadata")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host FBC_* variables out of every test.

    Variables a test sets behind monkeypatch's back (``load_dotenv`` writes
    straight into ``os.environ``) are dropped on teardown; monkeypatch then
    restores the host values.
    """
    for var in [*ENV_OVERRIDES, LOG_LEVEL_ENV]:
        monkeypatch.delenv(var, raising=False)
    yield
    for var in [*ENV_OVERRIDES, LOG_LEVEL_ENV]:
        os.environ.pop(var, None)


@pytest.fixture
def bundle_dir(tmp_path):
    return write_bundle_dir(tmp_path / "bundle")


@pytest.fixture
def ctx(tmp_path):
    """Literal context writing under the test's temporary directory."""
    return default_context(tmp_path)


@pytest.fixture
def make_bundle_dir(tmp_path):
    """Factory fixture: ``make_bundle_dir(subdir, **fields)`` -> bundle path."""

    def _make(subdir: str = "bundle", **fields) -> Path:
        return write_bundle_dir(tmp_path / subdir, **fields)

    return _make


@pytest.fixture
def bundle_layer(bundle_dir):
    """The fixture bundle packed as a gzipped image layer."""
    return tar_bundle_dir(bundle_dir)
