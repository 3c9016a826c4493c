import pytest

from kuberender.core.errors import TypeMismatchError, ValuesFileError
from kuberender.core.models import MissingValue
from kuberender.values.store import ValuesStore, load_values_file, lookup, merge, parse_set_values

DEFAULTS = {
    "image": {"repository": "bitnami/mysql", "tag": "8.0.20", "pullPolicy": "IfNotPresent"},
    "service": {"type": "ClusterIP", "port": 3306},
    "replication": {"enabled": True},
    "args": ["--verbose"],
}


def test_later_layer_wins_for_scalars():
    merged = merge([DEFAULTS, {"image": {"tag": "8.0.21"}}])
    assert merged["image"]["tag"] == "8.0.21"
    # Siblings of an overridden key survive
    assert merged["image"]["repository"] == "bitnami/mysql"
    assert merged["image"]["pullPolicy"] == "IfNotPresent"


def test_sequences_are_replaced_not_concatenated():
    merged = merge([DEFAULTS, {"args": ["--quiet"]}])
    assert merged["args"] == ["--quiet"]


def test_merge_with_empty_mapping_is_identity():
    assert merge([DEFAULTS, {}]) == DEFAULTS
    assert merge([{}, DEFAULTS]) == DEFAULTS


def test_merge_is_associative():
    a = {"service": {"type": "NodePort"}}
    b = {"service": {"port": 3307}, "extra": [1, 2]}
    left = merge([merge([DEFAULTS, a]), b])
    right = merge([DEFAULTS, merge([a, b])])
    assert left == right


def test_merge_does_not_mutate_inputs():
    base = {"service": {"port": 3306}}
    override = {"service": {"port": 3307}}
    merged = merge([base, override])
    merged["service"]["port"] = 1
    assert base == {"service": {"port": 3306}}
    assert override == {"service": {"port": 3307}}


def test_mapping_over_scalar_names_the_path():
    """
    MISMATCH TEST: a mapping merged onto a scalar fails and the error
    carries the dotted path of the conflict.
    """
    with pytest.raises(TypeMismatchError) as excinfo:
        merge([DEFAULTS, {"service": {"port": {"number": 3306}}}])
    assert excinfo.value.path == "service.port"
    assert "service.port" in str(excinfo.value)


def test_scalar_over_mapping_fails():
    with pytest.raises(TypeMismatchError) as excinfo:
        merge([DEFAULTS, {"image": "mysql:8"}])
    assert excinfo.value.path == "image"


def test_explicit_null_removes_earlier_key():
    merged = merge([DEFAULTS, {"service": {"port": None}}])
    assert "port" not in merged["service"]
    assert merged["service"]["type"] == "ClusterIP"


def test_null_for_new_key_is_kept():
    merged = merge([{"a": 1}, {"b": None}])
    assert merged == {"a": 1, "b": None}


def test_lookup_returns_missing_for_absent_path():
    assert lookup(DEFAULTS, "service.port") == 3306
    missing = lookup(DEFAULTS, "service.nodePort.master")
    assert isinstance(missing, MissingValue)
    assert missing.path == "service.nodePort.master"


@pytest.mark.parametrize("expression, expected", [
    ("a=b", {"a": "b"}),
    ("a.b=1", {"a": {"b": 1}}),
    ("a=true,b=false", {"a": True, "b": False}),
    ("a=null", {"a": None}),
    ("a=007", {"a": "007"}),
    ("a=-3", {"a": -3}),
    ("a=", {"a": ""}),
    (r"nodeSelector.kubernetes\.io/os=linux", {"nodeSelector": {"kubernetes.io/os": "linux"}}),
    (r"list=a\,b", {"list": "a,b"}),
])
def test_set_expressions(expression, expected):
    assert parse_set_values([expression]) == expected


def test_set_string_keeps_literals():
    assert parse_set_values(["replicas=3,enabled=true"], force_string=True) == {
        "replicas": "3",
        "enabled": "true",
    }


@pytest.mark.parametrize("expression", ["novalue", "=x", "a..b=1"])
def test_invalid_set_expressions(expression):
    with pytest.raises(ValueError):
        parse_set_values([expression])


def test_conflicting_set_paths():
    with pytest.raises(TypeMismatchError):
        parse_set_values(["a=1", "a.b=2"])


def test_load_values_file(tmp_path):
    values_file = tmp_path / "prod.yaml"
    values_file.write_text("service:\n  type: LoadBalancer\n  annotations: {}\n")
    assert load_values_file(values_file) == {"service": {"type": "LoadBalancer", "annotations": {}}}


def test_load_empty_values_file(tmp_path):
    values_file = tmp_path / "empty.yaml"
    values_file.write_text("# nothing here\n")
    assert load_values_file(values_file) == {}


def test_load_values_file_errors(tmp_path):
    with pytest.raises(ValuesFileError):
        load_values_file(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("service: [unclosed\n")
    with pytest.raises(ValuesFileError):
        load_values_file(broken)

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n")
    with pytest.raises(TypeMismatchError):
        load_values_file(listing)


def test_store_layers_in_order(tmp_path):
    override = tmp_path / "override.yaml"
    override.write_text("service:\n  port: 3307\n")

    store = ValuesStore(DEFAULTS)
    store.add_file(override).add_set(["service.port=3308"]).add_set(["image.tag=latest"], force_string=True)

    assert store.layer_names == ["defaults", str(override), "--set", "--set-string"]
    merged = store.merged()
    assert merged["service"]["port"] == 3308
    assert merged["image"]["tag"] == "latest"
    # The store can be merged again with the same result
    assert store.merged() == merged
