"""
Objects from the Jamf Classic API (``/JSSResource``).

Lists come back as JSON and are cached per connection under the class's
RSRC_LIST_KEY. Objects are read as JSON and written as XML.

Examples:
    >>> cat = Category.make(name="Utilities")
    >>> cat.priority = 3
    >>> cat.save()
    >>> Computer.fetch(serial_number="C02ABC123")
"""

from __future__ import annotations

import logging
import random
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from .connection import Connection, resolve_cnx
from .exceptions import (
    AlreadyExistsError,
    AmbiguousError,
    InvalidDataError,
    MissingDataError,
    NoSuchItemError,
    UnsupportedError,
)
from .utils import is_integer_like

logger = logging.getLogger(__name__)

NEW_OBJECT_ID = 0
POST_ID_RE = re.compile(r"<id>(\d+)</id>")


class APIObject:
    """
    Base class for Classic API objects.

    Subclasses set RSRC_BASE, RSRC_LIST_KEY and RSRC_OBJECT_KEY, and may add
    OTHER_LOOKUP_KEYS::

        OTHER_LOOKUP_KEYS = {
            "serial_number": {"aliases": ("sn",), "fetch_rsrc_key": "serialnumber"},
        }

    Use ``fetch`` to read an existing object and ``make`` to build a new one.
    """

    RSRC_BASE: Optional[str] = None
    LIST_RSRC: Optional[str] = None
    RSRC_LIST_KEY: Optional[str] = None
    RSRC_OBJECT_KEY: Optional[str] = None

    DEFAULT_LOOKUP_KEYS: Dict[str, Dict[str, Any]] = {
        "id": {"fetch_rsrc_key": "id"},
        "name": {"fetch_rsrc_key": "name"},
    }
    OTHER_LOOKUP_KEYS: Dict[str, Dict[str, Any]] = {}

    CREATABLE = False
    UPDATABLE = False
    DELETABLE = False
    NON_UNIQUE_NAMES = False

    # -------- Lookup keys --------
    @classmethod
    def _validate_not_metaclass(cls) -> None:
        if cls is APIObject or not cls.RSRC_BASE:
            raise UnsupportedError("APIObject is a base class. Do not use it directly")

    @classmethod
    def lookup_keys(cls, no_aliases: bool = False) -> Union[Dict[str, str], List[str]]:
        """Map of every lookup key and alias to its real key, or just the real keys."""
        keys: Dict[str, str] = {}
        for key, info in {**cls.DEFAULT_LOOKUP_KEYS, **cls.OTHER_LOOKUP_KEYS}.items():
            keys[key] = key
            for alias in info.get("aliases", ()):
                keys[alias] = key
        if no_aliases:
            return list(dict.fromkeys(keys.values()))
        return keys

    @classmethod
    def fetch_rsrc_key(cls, lookup_key: str) -> Optional[str]:
        real_key = cls.lookup_keys().get(lookup_key)
        if real_key is None:
            return None
        return {**cls.DEFAULT_LOOKUP_KEYS, **cls.OTHER_LOOKUP_KEYS}[real_key].get("fetch_rsrc_key")

    @classmethod
    def real_lookup_key(cls, key: str) -> str:
        real_key = cls.lookup_keys().get(key)
        if real_key is None:
            raise ValueError(f"Unknown lookup key '{key}' for {cls.__name__}")
        return real_key

    # -------- Lists --------
    @classmethod
    def all(cls, refresh: bool = False, cnx: Optional[Connection] = None) -> List[Dict[str, Any]]:
        """Summary dicts of every object, as listed by the server."""
        cls._validate_not_metaclass()
        cnx = resolve_cnx(cnx)
        cache = cnx.c_object_list_cache
        if refresh:
            cnx.flushcache(cls.RSRC_LIST_KEY)
        cached = cache.get(cls.RSRC_LIST_KEY)
        if cached is not None:
            return list(cached)
        data = cnx.c_get(cls.LIST_RSRC or cls.RSRC_BASE) or {}
        listed = cache.set(cls.RSRC_LIST_KEY, data.get(cls.RSRC_LIST_KEY) or [])
        return list(listed)

    @classmethod
    def all_ids(cls, refresh: bool = False, cnx: Optional[Connection] = None) -> List[int]:
        return [item["id"] for item in cls.all(refresh, cnx=cnx)]

    @classmethod
    def all_names(cls, refresh: bool = False, cnx: Optional[Connection] = None) -> List[str]:
        return [item["name"] for item in cls.all(refresh, cnx=cnx)]

    @classmethod
    def duplicate_names(cls, refresh: bool = False, cnx: Optional[Connection] = None) -> Dict[str, int]:
        """Names used more than once, with their counts."""
        if not cls.NON_UNIQUE_NAMES:
            return {}
        counts: Dict[str, int] = {}
        for name in cls.all_names(refresh, cnx=cnx):
            counts[name] = counts.get(name, 0) + 1
        return {name: count for name, count in counts.items() if count > 1}

    @classmethod
    def map_all_ids_to(cls, other_key: str, refresh: bool = False, cnx: Optional[Connection] = None) -> Dict[int, Any]:
        cnx = resolve_cnx(cnx)
        other_key = cls.lookup_keys().get(other_key, other_key)
        cache_key = f"{cls.RSRC_LIST_KEY}_map_{other_key}"
        cache = cnx.c_object_list_cache
        if refresh:
            cache.delete(cache_key)
        cached = cache.get(cache_key)
        if cached is not None:
            return dict(cached)
        mapped = {item["id"]: item.get(other_key) for item in cls.all(refresh, cnx=cnx)}
        cache.set(cache_key, mapped)
        return dict(mapped)

    @classmethod
    def all_objects(cls, refresh: bool = False, cnx: Optional[Connection] = None) -> List["APIObject"]:
        """Every object, fully fetched. Slow for large collections."""
        cnx = resolve_cnx(cnx)
        cache_key = f"{cls.RSRC_LIST_KEY}_objects"
        cache = cnx.c_object_list_cache
        if refresh:
            cache.delete(cache_key)
        cached = cache.get(cache_key)
        if cached is not None:
            return list(cached)
        objects = [cls.fetch(id=obj_id, cnx=cnx) for obj_id in cls.all_ids(refresh, cnx=cnx)]
        cache.set(cache_key, objects)
        return list(objects)

    # -------- Identifiers --------
    @classmethod
    def valid_id(cls, identifier: Any, refresh: bool = False, cnx: Optional[Connection] = None) -> Optional[int]:
        """
        The id of the object matching any lookup key, or None.

        Integer ids are checked first, then every other lookup key,
        case-insensitively. A value matching more than one object on a key
        is skipped for that key.
        """
        cnx = resolve_cnx(cnx)
        ids = cls.all_ids(refresh, cnx=cnx)
        if identifier in ids:
            return identifier
        if is_integer_like(identifier) and int(identifier) in ids:
            return int(identifier)

        wanted = str(identifier).casefold()
        for key in cls.lookup_keys(no_aliases=True):
            if key == "id":
                continue
            matches = [
                obj_id
                for obj_id, value in cls.map_all_ids_to(key, cnx=cnx).items()
                if value is not None and str(value).casefold() == wanted
            ]
            if len(matches) == 1:
                return matches[0]
        return None

    @classmethod
    def id_for_identifier(cls, key: str, value: Any, refresh: bool = False, cnx: Optional[Connection] = None) -> Optional[int]:
        """
        The id of the object whose ``key`` matches ``value``, or None.

        Raises:
            AmbiguousError: More than one object has that value.
        """
        cnx = resolve_cnx(cnx)
        key = cls.real_lookup_key(key)
        if key == "id":
            obj_id = int(value) if is_integer_like(value) else value
            return obj_id if obj_id in cls.all_ids(refresh, cnx=cnx) else None

        wanted = str(value).casefold()
        matches = [
            obj_id
            for obj_id, mapped in cls.map_all_ids_to(key, refresh, cnx=cnx).items()
            if mapped is not None and str(mapped).casefold() == wanted
        ]
        if len(matches) > 1:
            raise AmbiguousError(f"Key {key}: value '{value}' is not unique for {cls.__name__}")
        return matches[0] if matches else None

    @classmethod
    def exists(cls, identifier: Any, refresh: bool = False, cnx: Optional[Connection] = None) -> bool:
        return cls.valid_id(identifier, refresh, cnx=cnx) is not None

    # -------- Instantiation --------
    @classmethod
    def fetch(
        cls,
        searchterm: Any = None,
        *,
        random_obj: bool = False,
        refresh: bool = False,
        cnx: Optional[Connection] = None,
        **lookup: Any,
    ) -> "APIObject":
        """
        Read one object from the server.

        Give a searchterm matching any lookup key, exactly one ``key=value``
        lookup, or ``random_obj=True``.

        Raises:
            NoSuchItemError: Nothing matches.
        """
        cls._validate_not_metaclass()
        cnx = resolve_cnx(cnx)
        if refresh or random_obj:
            cls.all(refresh=True, cnx=cnx)

        if random_obj:
            listed = cls.all(cnx=cnx)
            if not listed:
                raise NoSuchItemError(f"No {cls.RSRC_LIST_KEY} found")
            return cls._from_rsrc(f"{cls.RSRC_BASE}/id/{random.choice(listed)['id']}", cnx)

        if len(lookup) > 1:
            raise ValueError("Only one lookup key may be given")

        if lookup:
            key, value = next(iter(lookup.items()))
            rsrc_key = cls.fetch_rsrc_key(key)
            detail = f"where {key} = {value}"
            if rsrc_key is None:
                raise ValueError(f"Unknown lookup key '{key}' for {cls.__name__}")
            if rsrc_key == "id":
                obj_id = cls.id_for_identifier("id", value, cnx=cnx)
                rsrc = f"{cls.RSRC_BASE}/id/{obj_id}" if obj_id is not None else None
            elif rsrc_key == "name":
                obj_id = cls.id_for_identifier(key, value, cnx=cnx)
                rsrc = f"{cls.RSRC_BASE}/name/{quote(str(value), safe='')}" if obj_id is not None else None
            else:
                rsrc = f"{cls.RSRC_BASE}/{rsrc_key}/{quote(str(value), safe='')}"
        elif searchterm is not None:
            obj_id = cls.valid_id(searchterm, cnx=cnx)
            rsrc = f"{cls.RSRC_BASE}/id/{obj_id}" if obj_id is not None else None
            detail = f"matching {searchterm}"
        else:
            raise ValueError("Missing searchterm or lookup key")

        if rsrc is None:
            raise NoSuchItemError(f"No {cls.RSRC_OBJECT_KEY} found {detail}")
        try:
            return cls._from_rsrc(rsrc, cnx)
        except NoSuchItemError as exc:
            raise NoSuchItemError(f"No {cls.RSRC_OBJECT_KEY} found {detail}") from exc

    @classmethod
    def _from_rsrc(cls, rsrc: str, cnx: Connection) -> "APIObject":
        data = cnx.c_get(rsrc) or {}
        return cls(data.get(cls.RSRC_OBJECT_KEY) or {}, cnx=cnx, _factory=True)

    @classmethod
    def make(cls, name: Optional[str] = None, cnx: Optional[Connection] = None, **attrs: Any) -> "APIObject":
        """
        Build a new, unsaved object. Call ``save()`` to create it.

        Raises:
            UnsupportedError: The class can't be created through the API.
            MissingDataError: No name was given.
            AlreadyExistsError: The name is taken, and names must be unique.
        """
        cls._validate_not_metaclass()
        if not cls.CREATABLE:
            raise UnsupportedError(f"Creating {cls.RSRC_LIST_KEY} isn't supported")
        if "id" in attrs:
            raise ValueError(f"Use {cls.__name__}.fetch(id=...) to retrieve existing objects")
        if not name:
            raise MissingDataError(f"You must provide a name to create a {cls.RSRC_OBJECT_KEY}")
        cnx = resolve_cnx(cnx)
        if not cls.NON_UNIQUE_NAMES:
            wanted = name.casefold()
            if any(str(existing).casefold() == wanted for existing in cls.all_names(True, cnx=cnx)):
                raise AlreadyExistsError(f"A {cls.RSRC_OBJECT_KEY} already exists with the name '{name}'")
        data = dict(attrs)
        data["name"] = name
        obj = cls(data, cnx=cnx, _factory=True, new=True)
        return obj

    @classmethod
    def delete(cls, victims: Union[int, List[int]], refresh: bool = True, cnx: Optional[Connection] = None) -> List[int]:
        """
        Delete objects by id.

        Returns:
            The ids that were skipped because they don't exist
        """
        cls._validate_not_metaclass()
        if not cls.DELETABLE:
            raise UnsupportedError(f"Deleting {cls.RSRC_LIST_KEY} isn't supported")
        if isinstance(victims, bool) or not isinstance(victims, (int, list, tuple)):
            raise InvalidDataError("Parameter must be an integer id or a list of them")
        if isinstance(victims, int):
            victims = [victims]
        cnx = resolve_cnx(cnx)
        current_ids = cls.all_ids(refresh, cnx=cnx)

        skipped: List[int] = []
        for victim in dict.fromkeys(victims):
            if victim in current_ids:
                cnx.c_delete(f"{cls.RSRC_BASE}/id/{victim}")
                logger.info("Deleted %s %s", cls.RSRC_OBJECT_KEY, victim)
            else:
                skipped.append(victim)
        cnx.flushcache(cls.RSRC_LIST_KEY)
        return skipped

    # -------- Raw access --------
    @classmethod
    def get_raw(cls, obj_id: int, fmt: str = "json", cnx: Optional[Connection] = None) -> Any:
        """
        The object as the server sends it.

        With ``fmt="xml"`` the result is an ElementTree root element.
        """
        cls._validate_not_metaclass()
        data = resolve_cnx(cnx).c_get(f"{cls.RSRC_BASE}/id/{obj_id}", fmt)
        if fmt == "json":
            return data
        return ET.fromstring(data)

    @classmethod
    def put_raw(cls, obj_id: int, xml: Union[str, ET.Element], cnx: Optional[Connection] = None) -> ET.Element:
        cls._validate_not_metaclass()
        return ET.fromstring(resolve_cnx(cnx).c_put(f"{cls.RSRC_BASE}/id/{obj_id}", _xml_text(xml)))

    @classmethod
    def post_raw(cls, xml: Union[str, ET.Element], cnx: Optional[Connection] = None) -> ET.Element:
        cls._validate_not_metaclass()
        return ET.fromstring(resolve_cnx(cnx).c_post(f"{cls.RSRC_BASE}/id/-1", _xml_text(xml)))

    # -------- Instances --------
    def __init__(self, data: Dict[str, Any], *, cnx: Connection, _factory: bool = False, new: bool = False):
        if not _factory:
            raise UnsupportedError(f"Use {type(self).__name__}.fetch or .make to get {type(self).__name__} objects")
        self.cnx = cnx
        self.init_data = data
        main = _main_subset(data)
        self._name = main.get("name")
        if new:
            self.id = NEW_OBJECT_ID
            self.in_jss = False
            self._need_to_update = True
        else:
            self.id = int(main["id"])
            self.in_jss = True
            self._need_to_update = False

    @property
    def name(self) -> Optional[str]:
        return self._name

    @name.setter
    def name(self, new_name: str) -> None:
        if not self.UPDATABLE and self.in_jss:
            raise UnsupportedError(f"{type(self).__name__} objects can't be changed through the API")
        if new_name == self._name:
            return
        if not new_name:
            raise MissingDataError("name can't be empty")
        self._name = new_name
        self._need_to_update = True

    @property
    def rest_rsrc(self) -> str:
        return f"{self.RSRC_BASE}/id/{self.id}"

    @property
    def need_to_update(self) -> bool:
        return self._need_to_update

    def save(self) -> int:
        """Create or update the object on the server, returning its id."""
        if self.in_jss:
            if not self.UPDATABLE:
                raise UnsupportedError(f"Updating {self.RSRC_LIST_KEY} isn't supported")
            return self._update_in_jamf()
        if not self.CREATABLE:
            raise UnsupportedError(f"Creating {self.RSRC_LIST_KEY} isn't supported")
        return self._create_in_jamf()

    def _create_in_jamf(self) -> int:
        response = self.cnx.c_post(f"{self.RSRC_BASE}/id/{NEW_OBJECT_ID}", self.rest_xml())
        match = POST_ID_RE.search(response or "")
        if not match:
            raise InvalidDataError(f"No id in the response to creating a {self.RSRC_OBJECT_KEY}")
        self.id = int(match.group(1))
        self.in_jss = True
        self._need_to_update = False
        self.cnx.flushcache(self.RSRC_LIST_KEY)
        logger.info("Created %s %s '%s'", self.RSRC_OBJECT_KEY, self.id, self._name)
        return self.id

    def _update_in_jamf(self) -> int:
        if not self._need_to_update:
            return self.id
        self.cnx.c_put(self.rest_rsrc, self.rest_xml())
        self._need_to_update = False
        self.cnx.flushcache(self.RSRC_LIST_KEY)
        return self.id

    def delete_self(self) -> None:
        """Delete this object from the server."""
        if not self.in_jss:
            return
        type(self).delete(self.id, cnx=self.cnx)
        self.id = NEW_OBJECT_ID
        self.in_jss = False

    def _xml_root(self) -> ET.Element:
        root = ET.Element(self.RSRC_OBJECT_KEY)
        ET.SubElement(root, "name").text = self._name
        return root

    def rest_xml(self) -> str:
        """The XML body sent when saving."""
        return _xml_text(self._xml_root())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} name={self._name!r}>"


def _main_subset(data: Dict[str, Any]) -> Dict[str, Any]:
    if "name" in data or "id" in data:
        return data
    general = data.get("general")
    if isinstance(general, dict) and "id" in general:
        return general
    for value in data.values():
        if isinstance(value, dict) and "id" in value and "name" in value:
            return value
    return data


def _xml_text(xml: Union[str, ET.Element]) -> str:
    if isinstance(xml, ET.Element):
        return ET.tostring(xml, encoding="unicode")
    return str(xml)


class Category(APIObject):
    RSRC_BASE = "categories"
    RSRC_LIST_KEY = "categories"
    RSRC_OBJECT_KEY = "category"
    CREATABLE = True
    UPDATABLE = True
    DELETABLE = True

    NO_CATEGORY_ID = -1
    NO_CATEGORY_NAME = "No category assigned"
    POSSIBLE_PRIORITIES = range(1, 21)
    DEFAULT_PRIORITY = 5

    def __init__(self, data: Dict[str, Any], **kwargs: Any):
        super().__init__(data, **kwargs)
        priority = data.get("priority")
        self._priority = int(priority) if priority is not None else self.DEFAULT_PRIORITY

    @property
    def priority(self) -> int:
        return self._priority

    @priority.setter
    def priority(self, new_val: int) -> None:
        if new_val == self._priority:
            return
        if isinstance(new_val, bool) or not isinstance(new_val, int) or new_val not in self.POSSIBLE_PRIORITIES:
            raise InvalidDataError(
                f"priority must be an integer between {self.POSSIBLE_PRIORITIES[0]} "
                f"and {self.POSSIBLE_PRIORITIES[-1]} (inclusive)"
            )
        self._priority = new_val
        self._need_to_update = True

    @classmethod
    def category_id_from_name(cls, name: str, cnx: Optional[Connection] = None) -> Optional[int]:
        if name == cls.NO_CATEGORY_NAME:
            return cls.NO_CATEGORY_ID
        return {cat_name: cat_id for cat_id, cat_name in cls.map_all_ids_to("name", cnx=cnx).items()}.get(name)

    def _xml_root(self) -> ET.Element:
        root = super()._xml_root()
        ET.SubElement(root, "priority").text = str(self._priority)
        return root


class Department(APIObject):
    RSRC_BASE = "departments"
    RSRC_LIST_KEY = "departments"
    RSRC_OBJECT_KEY = "department"
    CREATABLE = True
    UPDATABLE = True
    DELETABLE = True


class Site(APIObject):
    RSRC_BASE = "sites"
    RSRC_LIST_KEY = "sites"
    RSRC_OBJECT_KEY = "site"
    CREATABLE = True
    UPDATABLE = True
    DELETABLE = True


class Computer(APIObject):
    """
    Computers, read-only. Look them up by serial number, UDID or MAC
    address as well as id and name.
    """

    RSRC_BASE = "computers"
    LIST_RSRC = "computers/subset/basic"
    RSRC_LIST_KEY = "computers"
    RSRC_OBJECT_KEY = "computer"
    NON_UNIQUE_NAMES = True

    OTHER_LOOKUP_KEYS = {
        "udid": {"aliases": ("uuid", "guid"), "fetch_rsrc_key": "udid"},
        "serial_number": {"aliases": ("serialnumber", "sn"), "fetch_rsrc_key": "serialnumber"},
        "mac_address": {"aliases": ("macaddress", "macaddr"), "fetch_rsrc_key": "macaddress"},
    }

    def __init__(self, data: Dict[str, Any], **kwargs: Any):
        super().__init__(data, **kwargs)
        general = data.get("general") or {}
        self.serial_number: Optional[str] = general.get("serial_number")
        self.udid: Optional[str] = general.get("udid")
        self.mac_address: Optional[str] = general.get("mac_address")
        self.hardware: Dict[str, Any] = data.get("hardware") or {}
        self.location: Dict[str, Any] = data.get("location") or {}

    @property
    def model(self) -> Optional[str]:
        return self.hardware.get("model")

    @property
    def os_version(self) -> Optional[str]:
        return self.hardware.get("os_version")
