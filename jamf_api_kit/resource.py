"""
Base classes for objects that live at a Jamf Pro API resource path.

JPAPIResource
    Anything fetched from the API and saved back to it.
SingletonResource
    A resource the server has exactly one of, e.g. the check-in settings.
CollectionResource
    A resource the server has many of, e.g. buildings. Provides listing,
    paging, sorting, filtering, fetching by any identifier, creating and
    deleting.

Concrete classes combine one of these with an OAPIObject schema class::

    class Building(CollectionResource, schemas.Building):
        LIST_PATH = "v1/buildings"
        POST_OBJECT = schemas.Building
        PUT_OBJECT = schemas.Building

Instances are never built directly: use ``fetch``, ``create`` or
``all(instantiate=True)``.
"""

from __future__ import annotations

import logging
import random as _random
from typing import Any, Dict, List, Optional, Sequence, Union

from .connection import Connection, resolve_cnx
from .exceptions import (
    InvalidDataError,
    JamfProAPIError,
    MissingDataError,
    NoSuchItemError,
    UnsupportedError,
)
from .oapi_object import OAPIObject
from .pager import Pager, parse_url_filter_param, parse_url_sort_param
from .utils import hybridmethod, is_integer_like

logger = logging.getLogger(__name__)


class Filterable:
    """Mixin for collections whose list endpoint accepts RSQL filters on FILTER_KEYS."""

    FILTER_KEYS: Sequence[str] = ()


class JPAPIResource(OAPIObject):
    """An OAPIObject tied to a connection, which can be saved to the server."""

    POST_OBJECT: Optional[type] = None
    PUT_OBJECT: Optional[type] = None
    PATCH_OBJECT: Optional[type] = None

    def __init__(
        self,
        data: Optional[Dict[str, Any]] = None,
        *,
        cnx: Optional[Connection] = None,
        creating_from_create: bool = False,
        _factory: bool = False,
    ):
        if not _factory:
            raise UnsupportedError(
                f"Use .fetch, .create, or .all(instantiate=True) to instantiate {type(self).__name__} objects"
            )
        self.cnx = resolve_cnx(cnx)
        super().__init__(data, creating_from_create=creating_from_create)

    @classmethod
    def _instantiate(cls, data: Dict[str, Any], cnx: Optional[Connection] = None):
        return cls(data, cnx=cnx, _factory=True)

    @property
    def exists(self) -> bool:
        return True

    def save(self) -> Any:
        """
        Create or update the object in Jamf Pro.

        Updates are only sent when there are unsaved changes.

        Returns:
            The object's id (or "saved" for objects without one)
        """
        if not self.mutable():
            raise UnsupportedError(f"{type(self).__name__} objects cannot be changed")
        if self.exists:
            if not self.has_unsaved_changes():
                return self._values.get("id") or "saved"
            self._update_in_jamf()
        else:
            self._create_in_jamf()
        self.clear_unsaved_changes()
        return self._values.get("id") or "saved"

    def _create_in_jamf(self) -> Any:
        raise UnsupportedError(f"{type(self).__name__} objects cannot be created")

    def _update_in_jamf(self) -> None:
        if self.PUT_OBJECT is not None:
            put_object = self.PUT_OBJECT(self.to_jamf())
            self.cnx.jp_put(self.update_path, put_object.to_jamf())
        elif self.PATCH_OBJECT is not None:
            patch_object = self.PATCH_OBJECT(self.to_jamf())
            self.cnx.jp_patch(self.update_path, patch_object.to_jamf())
        else:
            raise MissingDataError(f"Class {type(self).__name__} has not defined a PUT_OBJECT or PATCH_OBJECT")
        logger.debug("Updated %s at %s", type(self).__name__, self.update_path)


class SingletonResource(JPAPIResource):
    """
    A resource with exactly one instance on the server.

    The fetched instance is cached per connection until ``refresh=True``.
    """

    GET_PATH: str = ""
    PUT_PATH: Optional[str] = None
    PATCH_PATH: Optional[str] = None

    @classmethod
    def fetch(cls, refresh: bool = False, cnx: Optional[Connection] = None):
        cnx = resolve_cnx(cnx)
        if refresh:
            cnx.singleton_cache.delete(cls)
        cached = cnx.singleton_cache.get(cls)
        if cached is not None:
            return cached
        instance = cls._instantiate(cnx.jp_get(cls.GET_PATH), cnx)
        return cnx.singleton_cache.set(cls, instance)

    @property
    def get_path(self) -> str:
        return self.GET_PATH

    @property
    def update_path(self) -> str:
        return self.PUT_PATH or self.PATCH_PATH or self.GET_PATH

    def __str__(self) -> str:
        return f"{type(self).__name__}@{self.cnx.host}"


class CollectionResource(JPAPIResource):
    """
    A resource with many instances, listed at LIST_PATH.

    Class-level ``get_path()`` and friends return the collection paths.
    On instances, ``get_path``, ``update_path`` and ``delete_path`` are the
    object's own paths once it exists in Jamf; before that only
    ``post_path`` is set.
    """

    LIST_PATH: str = ""
    GET_PATH: Optional[str] = None
    PUT_PATH: Optional[str] = None
    PATCH_PATH: Optional[str] = None
    POST_PATH: Optional[str] = None
    DELETE_PATH: Optional[str] = None

    ALT_IDENTIFIERS: Sequence[str] = ()
    NON_UNIQUE_IDENTIFIERS: Sequence[str] = ()

    CREATABLE = True
    DELETABLE = True

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.LIST_PATH:
            cls._create_identifier_list_methods()

    # -------- Paths --------
    @classmethod
    def get_path(cls) -> str:
        return cls.GET_PATH or cls.LIST_PATH

    @classmethod
    def put_path(cls) -> str:
        return cls.PUT_PATH or cls.LIST_PATH

    @classmethod
    def patch_path(cls) -> str:
        return cls.PATCH_PATH or cls.LIST_PATH

    @classmethod
    def post_path(cls) -> str:
        return cls.POST_PATH or cls.LIST_PATH

    @classmethod
    def delete_path(cls) -> str:
        return cls.DELETE_PATH or cls.LIST_PATH

    # -------- Capabilities --------
    @classmethod
    def filterable(cls) -> bool:
        return issubclass(cls, Filterable)

    @classmethod
    def deletable(cls) -> bool:
        return cls.DELETABLE

    @classmethod
    def creatable(cls) -> bool:
        return cls.CREATABLE and cls.mutable()

    @classmethod
    def identifiers(cls) -> List[str]:
        """Attributes that can be used to look up an instance."""
        idents = [name for name, attr_def in cls.OAPI_PROPERTIES.items() if attr_def.get("identifier")]
        idents += list(cls.ALT_IDENTIFIERS) + list(cls.NON_UNIQUE_IDENTIFIERS)
        result: List[str] = []
        for ident in idents:
            if ident in cls.OAPI_PROPERTIES and ident not in result:
                result.append(ident)
        return result

    # -------- Listing --------
    @classmethod
    def all(
        cls,
        sort: Union[str, Sequence[str], None] = None,
        filter: Optional[str] = None,
        instantiate: bool = False,
        refresh: bool = False,
        cnx: Optional[Connection] = None,
    ) -> List[Any]:
        """
        Every instance in the collection, as raw dicts or instantiated objects.

        The unsorted, unfiltered list is cached per connection until
        ``refresh=True``. Sorted or filtered lists are always read from the
        server. The filter is ignored for classes that aren't Filterable.
        """
        cnx = resolve_cnx(cnx)
        sort_param = parse_url_sort_param(sort)
        filter_param = parse_url_filter_param(filter) if cls.filterable() else None

        if sort_param or filter_param:
            data = Pager.all_pages(cls.LIST_PATH, sort=sort_param, filter=filter_param, cnx=cnx)
        else:
            if refresh:
                cnx.collection_cache.delete(cls)
            data = cnx.collection_cache.get(cls)
            if data is None:
                data = cnx.collection_cache.set(cls, Pager.all_pages(cls.LIST_PATH, cnx=cnx))

        if instantiate:
            return [cls._instantiate(item, cnx) for item in data]
        return list(data)

    @classmethod
    def pager(
        cls,
        page_size: int = Pager.DEFAULT_PAGE_SIZE,
        sort: Union[str, Sequence[str], None] = None,
        filter: Optional[str] = None,
        instantiate: bool = False,
        cnx: Optional[Connection] = None,
    ) -> Pager:
        cnx = resolve_cnx(cnx)
        return Pager(
            cls.LIST_PATH,
            page_size=page_size,
            sort=sort,
            filter=filter if cls.filterable() else None,
            instantiate=(lambda data: cls._instantiate(data, cnx)) if instantiate else None,
            cnx=cnx,
        )

    @classmethod
    def _create_identifier_list_methods(cls) -> None:
        for ident in cls.identifiers():
            method_name = f"all_{ident}es" if ident.endswith("s") else f"all_{ident}s"
            if method_name in cls.__dict__:
                continue
            setattr(cls, method_name, classmethod(_identifier_list_method(ident)))
        name_attr = cls.OBJECT_NAME_ATTR
        if name_attr and "all_names" not in cls.__dict__ and name_attr in cls.identifiers():
            setattr(cls, "all_names", classmethod(_identifier_list_method(name_attr)))

    @classmethod
    def map_all(
        cls,
        ident: str,
        to: str,
        cached_list: Optional[List[Dict[str, Any]]] = None,
        refresh: bool = False,
        cnx: Optional[Connection] = None,
    ) -> Dict[Any, Any]:
        """
        Map one identifier to another attribute for every instance.

        Examples:
            >>> Building.map_all("id", to="name")
            {'1': 'Main Office', '2': 'Warehouse'}
        """
        if ident not in cls.identifiers():
            raise InvalidDataError(f"No identifier '{ident}' for class {cls.__name__}")
        if to not in cls.OAPI_PROPERTIES:
            raise NoSuchItemError(f"No attribute '{to}' for class {cls.__name__}")

        items = cached_list if cached_list is not None else cls.all(refresh=refresh, cnx=cnx)
        to_def = cls.OAPI_PROPERTIES[to]
        to_class = to_def.get("class")
        mapped: Dict[Any, Any] = {}
        for item in items:
            value = item.get(to)
            if isinstance(to_class, type) and value is not None:
                value = [to_class(sub) for sub in value] if to_def.get("multi") else to_class(value)
            mapped[item.get(ident)] = value
        return mapped

    # -------- Lookup --------
    @classmethod
    def raw_data(cls, searchterm: Any = None, *, cnx: Optional[Connection] = None, **ident_and_val: Any) -> Optional[Dict[str, Any]]:
        """
        The raw API data for one instance, or None if there's no match.

        Look up by a searchterm matched against every identifier, or by
        exactly one ``identifier=value`` keyword.
        """
        cnx = resolve_cnx(cnx)
        if searchterm is not None:
            return cls._raw_data_by_searchterm_only(searchterm, cnx)
        if len(ident_and_val) != 1:
            raise ValueError("Required parameter 'identifier=value', where identifier is id, name, etc.")

        ident, value = next(iter(ident_and_val.items()))
        if ident == "name" and cls.OBJECT_NAME_ATTR:
            ident = cls.OBJECT_NAME_ATTR
        if ident == "id":
            return cls._raw_data_by_id(value, cnx)
        if ident not in cls.identifiers():
            return None
        return cls._raw_data_by_other_identifier(ident, value, cnx)

    @classmethod
    def _raw_data_by_searchterm_only(cls, searchterm: Any, cnx: Connection) -> Optional[Dict[str, Any]]:
        if is_integer_like(searchterm):
            return cls._raw_data_by_id(searchterm, cnx)
        for ident in cls.identifiers():
            if ident == "id":
                continue
            data = cls._raw_data_by_other_identifier(ident, searchterm, cnx)
            if data:
                return data
        return None

    @classmethod
    def _raw_data_by_id(cls, obj_id: Any, cnx: Connection) -> Optional[Dict[str, Any]]:
        try:
            return cnx.jp_get(f"{cls.get_path()}/{obj_id}")
        except JamfProAPIError as exc:
            if exc.http_status == 404 or exc.has_code("INVALID_ID"):
                return None
            raise

    @classmethod
    def _raw_data_by_other_identifier(cls, ident: str, value: Any, cnx: Connection) -> Optional[Dict[str, Any]]:
        if cls.filterable() and ident in cls.FILTER_KEYS:
            # RSQL quoted values escape backslash and double quote
            escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
            found = cls.pager(filter=f'{ident}=="{escaped}"', page_size=1, cnx=cnx).page("first")
            return found[0] if found else None

        wanted = str(value).casefold()
        for data in cls.all(cnx=cnx):
            candidate = data.get(ident)
            if candidate is not None and str(candidate).casefold() == wanted:
                return data
        return None

    @classmethod
    def valid_id(cls, searchterm: Any = None, *, cnx: Optional[Connection] = None, **ident_and_val: Any) -> Optional[str]:
        """The id of the matching instance, or None."""
        data = cls.raw_data(searchterm, cnx=cnx, **ident_and_val)
        if not data or data.get("id") is None:
            return None
        return str(data["id"])

    @classmethod
    def fetch(
        cls,
        searchterm: Any = None,
        *,
        random: bool = False,
        cnx: Optional[Connection] = None,
        **ident_and_val: Any,
    ):
        """
        Fetch one instance.

        Examples:
            >>> Building.fetch(3)
            >>> Building.fetch("Main Office")
            >>> Building.fetch(name="Main Office")
            >>> Building.fetch(random=True)

        Raises:
            NoSuchItemError: Nothing matched
        """
        cnx = resolve_cnx(cnx)
        if searchterm == "random":
            random, searchterm = True, None

        data = None
        if searchterm is not None:
            data = cls.raw_data(searchterm, cnx=cnx)
        elif random:
            listed = cls.all(cnx=cnx)
            if listed:
                data = cls._raw_data_by_id(_random.choice(listed)["id"], cnx)
        elif ident_and_val:
            data = cls.raw_data(cnx=cnx, **ident_and_val)

        if not data:
            raise NoSuchItemError(f"No matching {cls.__name__}")
        return cls._instantiate(data, cnx)

    # -------- Create / delete --------
    @classmethod
    def create(cls, cnx: Optional[Connection] = None, **attrs: Any):
        """A new, unsaved instance. Call ``save()`` to create it in Jamf."""
        if not cls.creatable():
            raise UnsupportedError(f"Creating {cls.__name__} objects is not supported")
        attrs.pop("id", None)
        return cls(attrs, cnx=cnx, creating_from_create=True, _factory=True)

    @hybridmethod
    def delete(cls, *ids: Any, cnx: Optional[Connection] = None) -> List[Any]:
        """
        Delete instances by id.

        Returns:
            The API error causes for ids that weren't found. Any other
            failure is raised.
        """
        if not cls.deletable():
            raise UnsupportedError(f"Deleting {cls.__name__} objects is not currently supported")
        cnx = resolve_cnx(cnx)
        errors: List[Any] = []
        try:
            for id_to_delete in ids:
                try:
                    cnx.jp_delete(f"{cls.delete_path()}/{id_to_delete}")
                except JamfProAPIError as exc:
                    if exc.http_status != 404:
                        raise
                    errors.extend(exc.errors)
        finally:
            cnx.flushcache(cls)
        return errors

    # -------- Instances --------
    def __init__(self, data: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(data, **kwargs)
        self._set_api_paths()

    @property
    def exists(self) -> bool:
        return self._values.get("id") is not None

    def _set_api_paths(self) -> None:
        cls = type(self)
        if self.exists:
            obj_id = self._values["id"]
            self.get_path = f"{cls.get_path()}/{obj_id}"
            update_base = cls.PUT_PATH or cls.PATCH_PATH or cls.LIST_PATH
            self.update_path = f"{update_base}/{obj_id}"
            self.delete_path = f"{cls.delete_path()}/{obj_id}"
            self.post_path = None
        else:
            self.get_path = None
            self.update_path = None
            self.delete_path = None
            self.post_path = cls.post_path()

    @delete.instancemethod
    def delete(self) -> None:
        """Delete this object from Jamf Pro."""
        if not self.deletable():
            raise UnsupportedError(f"Deleting {type(self).__name__} objects is not currently supported")
        self.cnx.jp_delete(self.delete_path)
        self.cnx.flushcache(type(self))

    def _create_in_jamf(self) -> str:
        if self.POST_OBJECT is None:
            raise MissingDataError(f"Class {type(self).__name__} has not defined a POST_OBJECT")
        self.validate_for_create()
        post_object = self.POST_OBJECT(self.to_jamf())
        result = self.cnx.jp_post(self.post_path, post_object.to_jamf()) or {}
        self._values["id"] = str(result.get("id")) if result.get("id") is not None else None
        self._set_api_paths()
        self.cnx.flushcache(type(self))
        logger.debug("Created %s id %s", type(self).__name__, self._values["id"])
        return self._values["id"]

    def validate_for_create(self) -> None:
        """Every attribute the POST_OBJECT requires must be set."""
        for attr_name, attr_def in self.POST_OBJECT.OAPI_PROPERTIES.items():
            if attr_def.get("required") and self._values.get(attr_name) is None:
                raise MissingDataError(
                    f"Attribute '{attr_name}' cannot be None, must be a {_class_label(attr_def.get('class'))}"
                )

    def __str__(self) -> str:
        return f"{type(self).__name__}@{self.cnx.host}, id: {self._values.get('id')}"


def _class_label(klass: Any) -> str:
    return klass.__name__ if isinstance(klass, type) else str(klass)


def _identifier_list_method(ident: str):
    def list_identifier(cls, refresh: bool = False, cached_list: Optional[List[Dict[str, Any]]] = None, cnx: Optional[Connection] = None) -> List[Any]:
        items = cached_list if cached_list is not None else cls.all(refresh=refresh, cnx=cnx)
        klass = cls.OAPI_PROPERTIES[ident].get("class")
        if isinstance(klass, type):
            return [klass(item.get(ident)) for item in items]
        return [item.get(ident) for item in items]

    list_identifier.__name__ = f"all_{ident}s"
    list_identifier.__doc__ = f"The '{ident}' of every instance."
    return list_identifier
