"""
Schema-driven objects for the Jamf Pro API.

Subclasses of OAPIObject declare their attributes in ``OAPI_PROPERTIES``::

    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "name": {"class": "string", "required": True, "min_length": 1},
        "tags": {"class": "string", "multi": True, "unique_items": True},
    }

When the class is created, every attribute gets a property. Mutable classes
also get a validating setter for each non-readonly attribute, and multi-valued
attributes get list mutators (``tags_append``, ``tags_delete`` and so on).
Every change is recorded in ``unsaved_changes`` until it is cleared.

Attribute classes are "string", "integer", "number", "boolean", "hash",
"j_id", or another OAPIObject subclass for nested objects.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Callable, Dict, List, Optional

from . import validate
from .exceptions import InvalidDataError, UnsupportedError


class Immutable:
    """Mixin marking an OAPIObject class as read-only."""


class OAPIObject:
    OAPI_PROPERTIES: Dict[str, Dict[str, Any]] = {}
    OBJECT_NAME_ATTR: Optional[str] = None

    __hash__ = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        own_props = "OAPI_PROPERTIES" in cls.__dict__
        newly_immutable = Immutable in cls.__bases__
        if own_props or newly_immutable:
            cls._parse_oapi_properties()
        else:
            cls._alias_name_attr()

    # -------- Class creation --------
    @classmethod
    def mutable(cls) -> bool:
        return not issubclass(cls, Immutable)

    @classmethod
    def required_attributes(cls) -> List[str]:
        return [name for name, attr_def in cls.OAPI_PROPERTIES.items() if attr_def.get("required")]

    @classmethod
    def _parse_oapi_properties(cls) -> None:
        got_primary = False
        for attr_name, attr_def in cls.OAPI_PROPERTIES.items():
            if attr_def.get("identifier") == "primary":
                if got_primary:
                    raise UnsupportedError(f"{cls.__name__}: two identifiers marked as primary")
                got_primary = True

            # Hand-written accessors on the class win
            if attr_name in cls.__dict__ and not isinstance(cls.__dict__[attr_name], _OAPIProperty):
                continue

            settable = cls.mutable() and not attr_def.get("readonly")
            setattr(cls, attr_name, _OAPIProperty(attr_name, attr_def, settable))
            if attr_def.get("multi") and settable:
                cls._create_list_mutators(attr_name, attr_def)
        cls._alias_name_attr()

    @classmethod
    def _alias_name_attr(cls) -> None:
        name_attr = cls.OBJECT_NAME_ATTR
        if not name_attr or name_attr == "name" or name_attr not in cls.OAPI_PROPERTIES:
            return
        existing = cls.__dict__.get("name")
        if existing is None or isinstance(existing, _OAPIProperty):
            setattr(cls, "name", getattr(cls, name_attr))

    @classmethod
    def _create_list_mutators(cls, attr_name: str, attr_def: Dict[str, Any]) -> None:
        def append(self, value):
            self._mutate_list(attr_name, lambda items: items.append(self.validate_attr(attr_name, value)))

        def prepend(self, value):
            self._mutate_list(attr_name, lambda items: items.insert(0, self.validate_attr(attr_name, value)))

        def insert(self, index: int, value):
            self._mutate_list(attr_name, lambda items: items.insert(index, self.validate_attr(attr_name, value)))

        def delete(self, value):
            def remove(items):
                while value in items:
                    items.remove(value)
            self._mutate_list(attr_name, remove)

        def delete_at(self, index: int):
            def remove_at(items):
                if -len(items) <= index < len(items):
                    del items[index]
            self._mutate_list(attr_name, remove_at)

        def delete_if(self, predicate: Callable[[Any], bool]):
            def remove_matching(items):
                items[:] = [item for item in items if not predicate(item)]
            self._mutate_list(attr_name, remove_matching)

        for suffix, func in (
            ("append", append),
            ("prepend", prepend),
            ("insert", insert),
            ("delete", delete),
            ("delete_at", delete_at),
            ("delete_if", delete_if),
        ):
            func.__name__ = f"{attr_name}_{suffix}"
            setattr(cls, func.__name__, func)

    @classmethod
    def validate_attr(cls, attr_name: str, value: Any) -> Any:
        attr_def = cls.OAPI_PROPERTIES.get(attr_name)
        if attr_def is None:
            raise InvalidDataError(f"Unknown attribute: {attr_name} for {cls.__name__} objects")
        return validate.oapi_attr(value, attr_def, attr_name=attr_name)

    # -------- Instances --------
    def __init__(self, data: Optional[Dict[str, Any]] = None, *, creating_from_create: bool = False):
        data = {} if data is None else data
        if not isinstance(data, dict):
            raise InvalidDataError(f"{type(self).__name__} must be initialized with a dict")
        self.init_data = data
        self._values: Dict[str, Any] = {}
        self._unsaved_changes: Dict[str, Dict[str, Any]] = {}

        if creating_from_create:
            for attr_name in self.OAPI_PROPERTIES:
                if attr_name in data:
                    self._assign(attr_name, data[attr_name])
            return
        self._parse_init_data(data)

    def _parse_init_data(self, data: Dict[str, Any]) -> None:
        for attr_name, attr_def in self.OAPI_PROPERTIES.items():
            if attr_name not in data:
                if attr_def.get("required"):
                    raise InvalidDataError(f"Initialization must include the key '{attr_name}'")
                continue
            if attr_def.get("multi"):
                raw_list = data[attr_name] or []
                value = [self._parse_single_init_value(item, attr_name, attr_def) for item in raw_list]
            else:
                value = self._parse_single_init_value(data[attr_name], attr_name, attr_def)
            self._values[attr_name] = value

    def _parse_single_init_value(self, api_value: Any, attr_name: str, attr_def: Dict[str, Any]) -> Any:
        if api_value is None:
            return None
        if attr_def.get("enum"):
            return validate.in_enum(
                api_value,
                attr_def["enum"],
                msg=f"{api_value} is not an allowed value for {attr_name}. "
                f"Must be one of: {', '.join(map(str, attr_def['enum']))}",
            )
        klass = attr_def.get("class")
        if isinstance(klass, type):
            return api_value if isinstance(api_value, klass) else klass(api_value)
        if klass == "j_id":
            return str(api_value)
        return api_value

    def _assign(self, attr_name: str, new_value: Any) -> None:
        """Validate and store a value, noting the change."""
        attr_def = self.OAPI_PROPERTIES[attr_name]
        if attr_def.get("multi"):
            if not isinstance(new_value, (list, tuple)):
                raise InvalidDataError(f"Value for '{attr_name}' must be a list")
            new_value = [self.validate_attr(attr_name, item) for item in new_value]
            validate.array_constraints(new_value, attr_def, attr_name)
            old_value = list(self._values.get(attr_name) or [])
        else:
            new_value = self.validate_attr(attr_name, new_value)
            old_value = self._values.get(attr_name)
        if new_value == old_value:
            return
        self._values[attr_name] = new_value
        self._note_unsaved_change(attr_name, old_value)

    def _mutate_list(self, attr_name: str, mutation: Callable[[List[Any]], None]) -> None:
        self._check_mutable()
        items = self._values.get(attr_name)
        if not isinstance(items, list):
            items = []
        old_items = list(items)
        new_items = list(items)
        mutation(new_items)
        if new_items == old_items:
            return
        validate.array_constraints(new_items, self.OAPI_PROPERTIES[attr_name], attr_name)
        self._values[attr_name] = new_items
        self._note_unsaved_change(attr_name, old_items)

    def _check_mutable(self) -> None:
        if not self.mutable():
            raise UnsupportedError(f"{type(self).__name__} objects cannot be changed")

    def _note_unsaved_change(self, attr_name: str, old_value: Any) -> None:
        if not self.mutable():
            return
        new_value = self._values.get(attr_name)
        if attr_name in self._unsaved_changes:
            self._unsaved_changes[attr_name]["new"] = new_value
        else:
            self._unsaved_changes[attr_name] = {"old": old_value, "new": new_value}

    # -------- Changes --------
    @property
    def unsaved_changes(self) -> Dict[str, Any]:
        """Changes since fetching or saving, including those in nested objects."""
        if not self.mutable():
            return {}
        changes: Dict[str, Any] = dict(self._unsaved_changes)
        for attr_name, attr_def in self.OAPI_PROPERTIES.items():
            if not isinstance(attr_def.get("class"), type) or attr_def.get("multi"):
                continue
            value = self._values.get(attr_name)
            if isinstance(value, OAPIObject):
                nested = value.unsaved_changes
                if nested:
                    changes[attr_name] = nested
        return changes

    def has_unsaved_changes(self) -> bool:
        return bool(self.unsaved_changes)

    def clear_unsaved_changes(self) -> None:
        if not self.mutable():
            return
        for attr_name, attr_def in self.OAPI_PROPERTIES.items():
            value = self._values.get(attr_name)
            items = value if (attr_def.get("multi") and isinstance(value, list)) else [value]
            for item in items:
                if isinstance(item, OAPIObject):
                    item.clear_unsaved_changes()
        self._unsaved_changes = {}

    # -------- Output --------
    def to_jamf(self) -> Dict[str, Any]:
        """The object as a dict ready to send to the API."""
        jamf_data: Dict[str, Any] = {}
        for attr_name, attr_def in self.OAPI_PROPERTIES.items():
            raw_value = self._values.get(attr_name)
            if attr_def.get("multi"):
                jamf_data[attr_name] = [
                    _single_to_jamf(item) for item in (raw_value or []) if item is not None
                ]
            else:
                jamf_data[attr_name] = _single_to_jamf(raw_value)
        return jamf_data

    def to_json(self) -> str:
        return json.dumps(self.to_jamf())

    def pretty_jamf_json(self) -> str:
        return json.dumps(self.to_jamf(), indent=2)

    @property
    def sha1_hash(self) -> str:
        return hashlib.sha1(json.dumps(self.to_jamf(), sort_keys=True, default=str).encode("utf-8")).hexdigest()

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, OAPIObject):
            return NotImplemented
        return self.sha1_hash == other.sha1_hash

    def __lt__(self, other: "OAPIObject") -> bool:
        return self.sha1_hash < other.sha1_hash

    def __repr__(self) -> str:
        shown = ", ".join(f"{key}={val!r}" for key, val in self._values.items() if val is not None)
        return f"<{type(self).__name__} {shown}>"


def _single_to_jamf(value: Any) -> Any:
    return value.to_jamf() if isinstance(value, OAPIObject) else value


class _OAPIProperty:
    """The generated accessor for one OAPI_PROPERTIES attribute."""

    def __init__(self, attr_name: str, attr_def: Dict[str, Any], settable: bool):
        self.attr_name = attr_name
        self.attr_def = attr_def
        self.settable = settable
        self.__doc__ = attr_def.get("description")

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        if self.attr_def.get("writeonly"):
            raise AttributeError(f"'{self.attr_name}' of {owner.__name__} is write-only")
        value = instance._values.get(self.attr_name)
        if self.attr_def.get("multi"):
            return tuple(value or ())
        return value

    def __set__(self, instance, value):
        if not self.settable:
            raise AttributeError(f"'{self.attr_name}' of {type(instance).__name__} is read-only")
        instance._check_mutable()
        instance._assign(self.attr_name, value)
