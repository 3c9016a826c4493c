import pytest

from kuberender.core.config import RenderSettings
from kuberender.core.models import MissingValue, RenderedDocument, ValueKind, is_truthy, value_kind
from kuberender.validator.validator import ManifestValidator


@pytest.mark.parametrize("value, kind", [
    (True, ValueKind.BOOLEAN),
    (0, ValueKind.INTEGER),
    (1.5, ValueKind.FLOAT),
    ("x", ValueKind.STRING),
    ({}, ValueKind.MAPPING),
    ([], ValueKind.SEQUENCE),
    (None, ValueKind.NULL),
    (MissingValue(".Values.x"), ValueKind.MISSING),
])
def test_value_kind(value, kind):
    assert value_kind(value) is kind


@pytest.mark.parametrize("value, truthy", [
    ({}, False), ([], False), ("", False), (0, False), (0.0, False), (False, False),
    (None, False), (MissingValue(".Values.x"), False),
    ({"a": 1}, True), ([0], True), ("0", True), (-1, True), (True, True),
])
def test_is_truthy(value, truthy):
    assert is_truthy(value) is truthy


def test_rendered_document_accessors():
    doc = RenderedDocument(0, {"apiVersion": "v1", "kind": "Service", "metadata": {"name": "db", "namespace": "data"}})
    assert (doc.api_version, doc.kind, doc.name, doc.namespace) == ("v1", "Service", "db", "data")
    assert RenderedDocument(1, {"kind": "List"}).metadata == {}


@pytest.mark.parametrize("content, message", [
    ({"kind": "Service", "metadata": {"name": "a"}}, "apiVersion"),
    ({"apiVersion": "v1", "kind": "", "metadata": {"name": "a"}}, "kind"),
    ({"apiVersion": "v1", "kind": "Service", "metadata": "a"}, "mapping"),
    ({"apiVersion": "v1", "kind": "Service", "metadata": {}}, "metadata.name"),
])
def test_validator_rejects(content, message):
    valid, reason = ManifestValidator().validate(content)
    assert valid is False
    assert message in reason


def test_validator_strict_namespace():
    validator = ManifestValidator()
    service = {"apiVersion": "v1", "kind": "Service", "metadata": {"name": "db"}}
    namespace = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": "data"}}
    assert validator.validate(service)[0] is True
    assert validator.validate(service, strict=True)[0] is False
    assert validator.validate(namespace, strict=True)[0] is True


def test_settings_context_objects():
    settings = RenderSettings(release_name="prod", namespace="data", kube_version="1.29.4", is_upgrade=True)
    release = settings.release_object()
    assert release["Name"] == "prod"
    assert release["IsUpgrade"] is True and release["IsInstall"] is False
    assert settings.capabilities_object()["KubeVersion"] == {"Version": "v1.29.4", "Major": "1", "Minor": "29"}
