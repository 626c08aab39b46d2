import json
from dataclasses import dataclass

import pytest

from steveres.apitypes import APIObject, APIRequest, APISchemas
from steveres.userprefs import LocalPreferenceStore, UserPreference, register


@dataclass
class FakeUser:
    name: str


def test_missing_file_gives_empty_preferences(tmp_path):
    store = LocalPreferenceStore(tmp_path / "conf")
    obj = store.by_id(APIRequest(), None, "")
    assert obj.type == "userpreference"
    assert obj.id == "local"
    assert obj.object == UserPreference(data={})


def test_user_name_is_used_as_id(tmp_path):
    store = LocalPreferenceStore(tmp_path)
    obj = store.by_id(APIRequest(user=FakeUser("alice")), None, "")
    assert obj.id == "alice"


def test_update_round_trip(tmp_path):
    store = LocalPreferenceStore(tmp_path / "nested" / "conf")
    prefs = {"data": {"theme": "dark", "locale": "en-us"}}
    result = store.update(APIRequest(), None, APIObject(object=prefs), "")
    assert result.object.data == prefs["data"]
    again = store.by_id(APIRequest(), None, "")
    assert again.object.data == prefs["data"]


def test_update_writes_prefs_json(tmp_path):
    store = LocalPreferenceStore(tmp_path)
    prefs = {"data": {"theme": "dark"}}
    store.update(APIRequest(), None, APIObject(object=prefs), "")
    written = json.loads((tmp_path / "prefs.json").read_text(encoding="utf-8"))
    assert written == prefs


def test_update_accepts_preference_object(tmp_path):
    store = LocalPreferenceStore(tmp_path)
    pref = UserPreference(data={"theme": "light"})
    result = store.update(APIRequest(), None, APIObject(object=pref), "")
    assert result.object == pref


def test_delete_clears_preferences(tmp_path):
    store = LocalPreferenceStore(tmp_path)
    store.update(APIRequest(), None, APIObject(object={"data": {"theme": "dark"}}), "")
    result = store.delete(APIRequest(), None, "")
    assert result.object.data == {}
    assert json.loads((tmp_path / "prefs.json").read_text(encoding="utf-8")) == {}


def test_list_returns_single_object(tmp_path):
    store = LocalPreferenceStore(tmp_path)
    store.update(APIRequest(), None, APIObject(object={"data": {"theme": "dark"}}), "")
    listed = store.list(APIRequest(), None)
    assert len(listed.objects) == 1
    assert listed.objects[0] == store.by_id(APIRequest(), None, "")


def test_non_string_values_are_rejected(tmp_path):
    (tmp_path / "prefs.json").write_text('{"data": {"count": 3}}', encoding="utf-8")
    store = LocalPreferenceStore(tmp_path)
    with pytest.raises(ValueError):
        store.by_id(APIRequest(), None, "")


def test_corrupt_file_is_an_error(tmp_path):
    (tmp_path / "prefs.json").write_text("{not json", encoding="utf-8")
    store = LocalPreferenceStore(tmp_path)
    with pytest.raises(ValueError):
        store.list(APIRequest(), None)


def test_register_adds_schema(tmp_path):
    schemas = APISchemas()
    register(schemas, tmp_path)
    schema = schemas.lookup_schema("userpreference")
    assert schema.collection_methods == ["GET"]
    assert schema.resource_methods == ["GET", "PUT", "DELETE"]
    assert schema.store.config_dir == tmp_path