import json

import pytest

from jamf_api_kit.exceptions import InvalidDataError, UnsupportedError
from jamf_api_kit.oapi_object import Immutable, OAPIObject


class Part(OAPIObject):
    OAPI_PROPERTIES = {
        "label": {"class": "string", "nil_ok": True},
    }


class Gadget(OAPIObject):
    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "name": {"class": "string", "required": True, "min_length": 1},
        "size": {"class": "integer", "minimum": 1, "maximum": 10, "nil_ok": True},
        "tags": {"class": "string", "multi": True, "unique_items": True},
        "secret": {"class": "string", "writeonly": True, "nil_ok": True},
        "color": {"class": "string", "enum": ("RED", "BLUE"), "nil_ok": True},
        "part": {"class": Part, "nil_ok": True},
    }


class FrozenGadget(Gadget, Immutable):
    pass


class Labelled(OAPIObject):
    OBJECT_NAME_ATTR = "displayName"
    OAPI_PROPERTIES = {
        "displayName": {"class": "string"},
    }


def make_gadget(**overrides):
    data = {"id": 5, "name": "widget", "size": 3, "tags": ["a", "b"], "part": {"label": "left"}}
    data.update(overrides)
    return Gadget(data)


def test_init_parses_values():
    gadget = make_gadget()
    assert gadget.id == "5"
    assert gadget.name == "widget"
    assert gadget.tags == ("a", "b")
    assert isinstance(gadget.part, Part)
    assert gadget.part.label == "left"
    assert gadget.color is None
    assert not gadget.has_unsaved_changes()


def test_init_requires_required_keys():
    with pytest.raises(InvalidDataError, match="name"):
        Gadget({"id": 1})


def test_init_checks_enums():
    with pytest.raises(InvalidDataError):
        make_gadget(color="GREEN")


def test_readonly_and_writeonly_attributes():
    gadget = make_gadget()
    with pytest.raises(AttributeError):
        gadget.id = "6"
    gadget.secret = "hunter2"
    with pytest.raises(AttributeError):
        gadget.secret


def test_setters_validate_and_coerce():
    gadget = make_gadget()
    gadget.size = "7"
    assert gadget.size == 7
    with pytest.raises(InvalidDataError):
        gadget.size = 11
    with pytest.raises(InvalidDataError):
        gadget.name = ""
    with pytest.raises(InvalidDataError):
        gadget.name = None


def test_unsaved_changes_keep_the_original_value():
    gadget = make_gadget()
    gadget.size = 3
    assert not gadget.has_unsaved_changes()

    gadget.size = 4
    gadget.size = 6
    assert gadget.unsaved_changes == {"size": {"old": 3, "new": 6}}

    gadget.clear_unsaved_changes()
    assert gadget.unsaved_changes == {}


def test_nested_changes_show_up_on_the_parent():
    gadget = make_gadget()
    gadget.part.label = "right"
    assert gadget.unsaved_changes == {"part": {"label": {"old": "left", "new": "right"}}}
    gadget.clear_unsaved_changes()
    assert not gadget.part.has_unsaved_changes()


def test_assigning_a_dict_builds_the_nested_object():
    gadget = make_gadget()
    gadget.part = {"label": "top"}
    assert isinstance(gadget.part, Part)
    assert gadget.part.label == "top"


def test_list_mutators():
    gadget = make_gadget()
    gadget.tags_append("c")
    gadget.tags_prepend("z")
    gadget.tags_insert(1, "y")
    assert gadget.tags == ("z", "y", "a", "b", "c")

    gadget.tags_delete("y")
    gadget.tags_delete_at(0)
    gadget.tags_delete_if(lambda tag: tag == "c")
    assert gadget.tags == ("a", "b")
    # Back where it started, but the history is kept
    assert gadget.unsaved_changes["tags"]["old"] == ["a", "b"]

    with pytest.raises(InvalidDataError):
        gadget.tags_append("a")
    with pytest.raises(InvalidDataError):
        gadget.tags_append(3)


def test_list_assignment_must_be_a_list():
    gadget = make_gadget()
    with pytest.raises(InvalidDataError):
        gadget.tags = "a"
    gadget.tags = ["x"]
    assert gadget.tags == ("x",)


def test_immutable_classes():
    frozen = FrozenGadget({"id": 1, "name": "cold"})
    assert not FrozenGadget.mutable()
    with pytest.raises(AttributeError):
        frozen.name = "warm"
    assert frozen.unsaved_changes == {}


def test_two_primary_identifiers_are_rejected():
    with pytest.raises(UnsupportedError):

        class Broken(OAPIObject):
            OAPI_PROPERTIES = {
                "id": {"class": "j_id", "identifier": "primary"},
                "uuid": {"class": "string", "identifier": "primary"},
            }


def test_name_alias():
    obj = Labelled({"displayName": "Main"})
    assert obj.name == "Main"
    obj.name = "Other"
    assert obj.displayName == "Other"


def test_to_jamf_and_json():
    gadget = make_gadget()
    data = gadget.to_jamf()
    assert data["id"] == "5"
    assert data["tags"] == ["a", "b"]
    assert data["part"] == {"label": "left"}
    assert json.loads(gadget.to_json()) == data
    assert "\n" in gadget.pretty_jamf_json()


def test_equality_and_hashing():
    assert make_gadget() == make_gadget()
    assert make_gadget() != make_gadget(size=4)
    with pytest.raises(TypeError):
        hash(make_gadget())
    assert len(make_gadget().sha1_hash) == 40


def test_validate_attr_rejects_unknown_attributes():
    with pytest.raises(InvalidDataError):
        Gadget.validate_attr("nope", 1)
    assert Gadget.required_attributes() == ["name"]
