import pytest

from bomtrack.utils import combination_count, expand_attributes

ATTRS = {"size": ["S", "M"], "color": ["red", "blue", "green"]}


def test_last_attribute_varies_fastest():
    combos = list(expand_attributes(ATTRS))

    assert len(combos) == combination_count(ATTRS) == 6
    assert combos[0] == {"size": "S", "color": "red"}
    assert combos[1] == {"size": "S", "color": "blue"}
    assert combos[3] == {"size": "M", "color": "red"}


def test_resume_from_index_with_limit():
    assert list(expand_attributes(ATTRS, start=4)) == [
        {"size": "M", "color": "blue"},
        {"size": "M", "color": "green"},
    ]
    assert list(expand_attributes(ATTRS, start=2, limit=2)) == [
        {"size": "S", "color": "green"},
        {"size": "M", "color": "red"},
    ]
    assert list(expand_attributes(ATTRS, start=6)) == []


def test_large_products_are_walked_lazily():
    attrs = {f"axis{i}": list(range(10)) for i in range(12)}
    walk = expand_attributes(attrs, start=10**12 - 1)

    assert combination_count(attrs) == 10**12
    assert next(walk) == {f"axis{i}": 9 for i in range(12)}
    assert next(walk, None) is None


def test_empty_inputs():
    assert combination_count({}) == 0
    assert list(expand_attributes({})) == []
    assert list(expand_attributes({"size": []})) == []


@pytest.mark.parametrize("kwargs", [{"start": -1}, {"limit": -5}])
def test_negative_bounds_fail_before_iteration(kwargs):
    with pytest.raises(ValueError):
        expand_attributes(ATTRS, **kwargs)
