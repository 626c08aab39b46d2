import pytest

from steveres.datapath import get_value, put_value, remove_value


def test_put_then_get_round_trip():
    obj = {}
    put_value(obj, "v", "a", "b", "c")
    assert get_value(obj, "a", "b", "c") == "v"
    assert obj == {"a": {"b": {"c": "v"}}}


def test_put_keeps_siblings():
    obj = {"a": {"x": 1}}
    put_value(obj, 2, "a", "y")
    assert obj == {"a": {"x": 1, "y": 2}}


def test_put_through_non_dict_is_ignored():
    obj = {"a": "text"}
    put_value(obj, 1, "a", "b")
    assert obj == {"a": "text"}


def test_put_without_keys_leaves_object():
    obj = {"a": 1}
    put_value(obj, 5)
    assert obj == {"a": 1}


def test_get_missing_raises():
    with pytest.raises(KeyError):
        get_value({"a": {}}, "a", "b")


def test_get_through_non_dict_raises():
    with pytest.raises(KeyError):
        get_value({"a": [1, 2]}, "a", "b")


def test_get_returns_none_value_when_present():
    assert get_value({"a": None}, "a") is None


def test_remove_returns_value():
    obj = {"a": {"b": 1, "c": 2}}
    assert remove_value(obj, "a", "b") == 1
    assert obj == {"a": {"c": 2}}


def test_remove_missing_is_none():
    obj = {"a": {"c": 2}}
    assert remove_value(obj, "x", "y") is None
    assert obj == {"a": {"c": 2}}