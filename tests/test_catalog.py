import json

import pytest

from filterprobe.core.catalog import (build_catalog, count_tests, iter_tests,
                                      load_catalog, select_layers,
                                      validate_catalog)
from filterprobe.core.types import CatalogError, Layer, ProbeMethod


def _write(tmp_path, payload) -> str:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_builtin_catalog_shape():
    """The built-in catalog has eleven categories and fifty tests."""
    catalog = build_catalog()
    assert len(catalog) == 11
    assert count_tests(catalog) == 50


def test_builtin_ids_are_unique():
    """No test id and no category id appears twice."""
    catalog = build_catalog()
    test_ids = [t.id for _, t in iter_tests(catalog)]
    assert len(test_ids) == len(set(test_ids))
    cat_ids = [c.id for c in catalog]
    assert len(cat_ids) == len(set(cat_ids))


def test_builtin_covers_every_layer_with_positive_weights():
    """Each layer has at least one category and every weight is positive."""
    catalog = build_catalog()
    assert {c.layer for c in catalog} == set(Layer)
    assert all(c.weight > 0 for c in catalog)


def test_builtin_methods_are_known():
    """Every built-in test names a known probe method."""
    for _, test in iter_tests(build_catalog()):
        assert isinstance(test.method, ProbeMethod)


def test_duplicate_test_id_rejected(make_category):
    """Validation fails when two categories share a test id."""
    catalog = (
        make_category("a", Layer.DNS, 1.0, ("t1", ProbeMethod.DNS)),
        make_category("b", Layer.CNAME, 1.0, ("t1", ProbeMethod.CNAME)),
    )
    with pytest.raises(CatalogError, match="duplicate test id 't1'"):
        validate_catalog(catalog)


def test_duplicate_category_id_rejected(make_category):
    """Validation fails when a category id repeats."""
    catalog = (
        make_category("a", Layer.DNS, 1.0, ("t1", ProbeMethod.DNS)),
        make_category("a", Layer.DNS, 1.0, ("t2", ProbeMethod.DNS)),
    )
    with pytest.raises(CatalogError, match="duplicate category id"):
        validate_catalog(catalog)


@pytest.mark.parametrize("weight", [0, -1.5])
def test_non_positive_weight_rejected(make_category, weight):
    """A category weight must be strictly positive."""
    catalog = (make_category("a", Layer.DNS, weight, ("t1", ProbeMethod.DNS)),)
    with pytest.raises(CatalogError, match="positive weight"):
        validate_catalog(catalog)


@pytest.mark.parametrize("weight", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_weight_rejected(make_category, weight):
    """Infinite or NaN weights would poison the layer scores."""
    catalog = (make_category("a", Layer.DNS, weight, ("t1", ProbeMethod.DNS)),)
    with pytest.raises(CatalogError, match="finite positive weight"):
        validate_catalog(catalog)


@pytest.mark.parametrize("literal", ["Infinity", "NaN"])
def test_load_catalog_rejects_non_finite_weight(tmp_path, literal):
    """JSON's Infinity/NaN extensions are refused before any run starts."""
    path = tmp_path / "catalog.json"
    path.write_text(
        '[{"category": {"id": "x", "layer": "dns", "weight": %s},'
        ' "tests": [{"id": "t1", "target": "ads.example", "method": "DNS"}]}]'
        % literal, encoding="utf-8")
    with pytest.raises(CatalogError, match="finite positive weight"):
        load_catalog(path)


def test_load_catalog_non_numeric_weight(tmp_path):
    """A weight that is not a number is a catalog error, not a crash."""
    path = _write(tmp_path, [
        {"category": {"id": "x", "layer": "dns", "weight": "heavy"}, "tests": []},
    ])
    with pytest.raises(CatalogError, match="malformed"):
        load_catalog(path)


def test_unknown_layer_rejected(make_category):
    """A category whose layer is not a Layer member is rejected."""
    catalog = (make_category("a", "network", 1.0, ("t1", ProbeMethod.DNS)),)
    with pytest.raises(CatalogError, match="unknown layer"):
        validate_catalog(catalog)


def test_catalog_error_is_a_value_error():
    """Callers that only know ValueError still catch catalog errors."""
    assert issubclass(CatalogError, ValueError)


def test_load_catalog_from_json(tmp_path):
    """A JSON catalog loads, accepting "domain" as the target key."""
    path = _write(tmp_path, [
        {"category": {"id": "ads", "title": "Ads", "icon": "🎯",
                      "layer": "dns", "weight": 1.5},
         "tests": [
             {"id": "t1", "name": "Tracker", "domain": "tracker.example",
              "method": "DNS", "critical": True},
             {"id": "t2", "name": "Pixel", "target": "pixel.example",
              "method": "Pixel"},
         ]},
    ])
    catalog = load_catalog(path)
    assert len(catalog) == 1
    cat = catalog[0]
    assert cat.layer is Layer.DNS
    assert cat.weight == 1.5
    assert cat.tests[0].target == "tracker.example"
    assert cat.tests[0].critical is True
    assert cat.tests[1].method is ProbeMethod.PIXEL
    assert cat.tests[1].critical is False


def test_load_catalog_keeps_unknown_method(tmp_path):
    """An unknown method is kept as a raw string rather than rejected."""
    path = _write(tmp_path, [
        {"category": {"id": "x", "layer": "advanced", "weight": 1},
         "tests": [{"id": "t1", "target": "local", "method": "Telepathy API"}]},
    ])
    (cat,) = load_catalog(path)
    assert cat.tests[0].method == "Telepathy API"
    assert not isinstance(cat.tests[0].method, ProbeMethod)


def test_load_catalog_unknown_layer(tmp_path):
    """An unknown layer name in JSON is a catalog error."""
    path = _write(tmp_path, [
        {"category": {"id": "x", "layer": "firewall", "weight": 1}, "tests": []},
    ])
    with pytest.raises(CatalogError, match="unknown layer 'firewall'"):
        load_catalog(path)


def test_load_catalog_missing_field(tmp_path):
    """A category without a weight is malformed."""
    path = _write(tmp_path, [{"category": {"id": "x", "layer": "dns"}}])
    with pytest.raises(CatalogError, match="malformed"):
        load_catalog(path)


def test_load_catalog_not_a_list(tmp_path):
    """The top level of a catalog file must be a list."""
    path = _write(tmp_path, {"category": {}})
    with pytest.raises(CatalogError, match="expected a list"):
        load_catalog(path)


def test_load_catalog_invalid_json(tmp_path):
    """Garbage in the file is reported as a catalog error."""
    path = tmp_path / "broken.json"
    path.write_text("[{", encoding="utf-8")
    with pytest.raises(CatalogError, match="invalid JSON"):
        load_catalog(path)


def test_select_layers(small_catalog):
    """Only categories of the requested layers survive, in order."""
    picked = select_layers(small_catalog, [Layer.CNAME, Layer.DNS])
    assert [c.id for c in picked] == ["ads", "cloak"]
    assert select_layers(small_catalog, []) == ()


def test_iter_tests_follows_catalog_order(small_catalog):
    """Tests are yielded category by category, in declaration order."""
    assert [t.id for _, t in iter_tests(small_catalog)] == [
        "d1", "d2", "b1", "b2", "c1", "c2", "f1", "f2"]
