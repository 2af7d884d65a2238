"""
Jamf Pro API resources: buildings, API roles and clients, inventory preload
records, packages and the client check-in settings.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from . import schemas
from .change_log import ChangeLog
from .connection import Connection, resolve_cnx
from .exceptions import InvalidDataError, MissingDataError, NoSuchItemError
from .resource import CollectionResource, Filterable, SingletonResource
from .utils import format_size_bytes

logger = logging.getLogger(__name__)


class Building(ChangeLog, Filterable, CollectionResource, schemas.Building):
    LIST_PATH = "v1/buildings"
    POST_OBJECT = schemas.Building
    PUT_OBJECT = schemas.Building
    ALT_IDENTIFIERS = ("name",)
    OBJECT_NAME_ATTR = "name"
    FILTER_KEYS = (
        "name",
        "streetAddress1",
        "streetAddress2",
        "city",
        "stateProvince",
        "zipPostalCode",
        "country",
    )


class APIRole(Filterable, CollectionResource, schemas.ApiRole):
    LIST_PATH = "v1/api-roles"
    AVAILABLE_PRIVS_PATH = "v1/api-role-privileges"
    POST_OBJECT = schemas.ApiRoleRequest
    PUT_OBJECT = schemas.ApiRoleRequest
    ALT_IDENTIFIERS = ("displayName",)
    OBJECT_NAME_ATTR = "displayName"
    FILTER_KEYS = ("id", "displayName")

    @classmethod
    def available_privileges(cls, cnx: Optional[Connection] = None) -> List[str]:
        """Every privilege that can be granted to an API role."""
        data = resolve_cnx(cnx).jp_get(cls.AVAILABLE_PRIVS_PATH) or {}
        return list(schemas.ApiRolePrivileges(data).privileges)


class APIClient(Filterable, CollectionResource, schemas.ApiIntegrationResponse):
    LIST_PATH = "v1/api-integrations"
    NEW_CREDENTIALS_PATH_SUFFIX = "client-credentials"
    POST_OBJECT = schemas.ApiIntegrationRequest
    PUT_OBJECT = schemas.ApiIntegrationRequest
    ALT_IDENTIFIERS = ("displayName",)
    OBJECT_NAME_ATTR = "displayName"
    FILTER_KEYS = ("id", "displayName")

    @classmethod
    def new_credentials(cls, client_ident: Any, cnx: Optional[Connection] = None) -> schemas.OAuthClientCredentials:
        """
        Generate a new client secret for an API client.

        The secret is only ever shown in this response, and the old one
        stops working.
        """
        cnx = resolve_cnx(cnx)
        client_id = cls.valid_id(client_ident, cnx=cnx)
        if client_id is None:
            raise NoSuchItemError(f"No APIClient matching '{client_ident}'")
        data = cnx.jp_post(f"{cls.LIST_PATH}/{client_id}/{cls.NEW_CREDENTIALS_PATH_SUFFIX}")
        return schemas.OAuthClientCredentials(data or {})


class InventoryPreloadRecord(ChangeLog, Filterable, CollectionResource, schemas.InventoryPreloadRecord):
    """
    Inventory preload records. Their history covers the whole collection,
    so the change log is only available from the class.
    """

    LIST_PATH = "v2/inventory-preload/records"
    HISTORY_PATH = "v2/inventory-preload/history"
    POST_OBJECT = schemas.InventoryPreloadRecord
    PUT_OBJECT = schemas.InventoryPreloadRecord
    ALT_IDENTIFIERS = ("serialNumber",)
    FILTER_KEYS = tuple(key for key in schemas.InventoryPreloadRecord.OAPI_PROPERTIES if key != "extensionAttributes")
    INSTANCE_CHANGE_LOG = False

    @classmethod
    def history_path(cls, obj_id: Any = None) -> str:
        return cls.HISTORY_PATH

    @property
    def ext_attrs(self) -> Dict[str, Any]:
        return {ea.name: ea.value for ea in self.extensionAttributes}

    def set_ext_attr(self, ea_name: str, new_value: Any) -> Any:
        self.remove_ext_attr(ea_name)
        self.extensionAttributes_append(
            schemas.InventoryPreloadExtensionAttribute({"name": ea_name, "value": new_value})
        )
        return new_value

    def remove_ext_attr(self, ea_name: str) -> None:
        for idx, ea in enumerate(self.extensionAttributes):
            if ea.name == ea_name:
                self.extensionAttributes_delete_at(idx)
                return

    def clear(self) -> None:
        """Set every optional attribute to None, and remove all extension attributes."""
        for attr_name, attr_def in self.OAPI_PROPERTIES.items():
            if attr_name == "extensionAttributes":
                self.extensionAttributes = []
            elif attr_def.get("nil_ok"):
                setattr(self, attr_name, None)


class JPackage(ChangeLog, Filterable, CollectionResource, schemas.Package):
    """
    Packages.

    New packages get the same defaults the Jamf Pro web UI uses.
    """

    LIST_PATH = "v1/packages"
    UPLOAD_ENDPOINT = "upload"
    POST_OBJECT = schemas.Package
    PUT_OBJECT = schemas.Package
    ALT_IDENTIFIERS = ("packageName", "fileName")
    OBJECT_NAME_ATTR = "packageName"
    FILTER_KEYS = (
        "id",
        "fileName",
        "packageName",
        "categoryId",
        "info",
        "notes",
        "manifestFileName",
        "cloudTransferStatus",
    )

    CHECKSUM_ALGORITHMS = {"MD5": "md5", "SHA_512": "sha512"}
    DEFAULT_CHECKSUM_ALGORITHM = "SHA_512"

    NEW_PACKAGE_DEFAULTS = {
        "categoryId": "-1",
        "priority": 10,
        "fillUserTemplate": False,
        "rebootRequired": False,
        "osInstall": False,
        "suppressUpdates": False,
        "suppressFromDock": False,
        "suppressEula": False,
        "suppressRegistration": False,
    }

    def __init__(self, data: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(data, **kwargs)
        if not self.exists:
            for attr_name, default in self.NEW_PACKAGE_DEFAULTS.items():
                if self._values.get(attr_name) is None:
                    self._values[attr_name] = default

    @property
    def filename(self) -> Optional[str]:
        return self.fileName

    @classmethod
    def calculate_checksum(cls, local_file: Union[str, Path], algorithm: str = DEFAULT_CHECKSUM_ALGORITHM) -> str:
        """
        Checksum of a local file, as Jamf Pro stores it.

        Args:
            local_file: Path to the file
            algorithm: "MD5" or "SHA_512"
        """
        hash_name = cls.CHECKSUM_ALGORITHMS.get(algorithm)
        if hash_name is None:
            raise InvalidDataError(f"algorithm must be one of: {', '.join(cls.CHECKSUM_ALGORITHMS)}")
        digest = hashlib.new(hash_name)
        with Path(local_file).open("rb") as handle:
            for chunk in iter(lambda: handle.read(1024 * 1024), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def upload(self, local_file: Union[str, Path], update_checksum: bool = True) -> Any:
        """
        Upload the package file to the primary distribution point.

        The package must already exist in Jamf Pro. Its fileName is updated
        to match the uploaded file and, by default, its checksum too.
        """
        if not self.exists:
            raise MissingDataError("Save the package before uploading its file")
        local_file = Path(local_file)
        if not local_file.is_file():
            raise NoSuchItemError(f"No such file: {local_file}")

        self.fileName = local_file.name
        if update_checksum:
            self.hashType = self.DEFAULT_CHECKSUM_ALGORITHM
            self.hashValue = self.calculate_checksum(local_file, self.DEFAULT_CHECKSUM_ALGORITHM)
        self.save()

        logger.info(
            "Uploading %s (%s) to package %s",
            local_file.name, format_size_bytes(local_file.stat().st_size), self._values.get("id"),
        )
        result = self.cnx.jp_upload(f"{self.get_path}/{self.UPLOAD_ENDPOINT}", local_file)
        self.cnx.flushcache(type(self))
        return result


class ClientCheckInSettings(SingletonResource, schemas.ClientCheckInV3):
    GET_PATH = "v3/check-in"
    PUT_PATH = "v3/check-in"
    PUT_OBJECT = schemas.ClientCheckInV3
