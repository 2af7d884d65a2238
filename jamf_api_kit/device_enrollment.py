"""
Device Enrollment (Automated Device Enrollment / "DEP") instances, and the
devices Apple has assigned to them.
"""

from __future__ import annotations

import base64
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from . import schemas
from .concurrency import execute_concurrent
from .connection import Connection, resolve_cnx
from .exceptions import NoSuchItemError
from .resource import CollectionResource
from .schemas import (
    DeviceEnrollmentDevice,
    DeviceEnrollmentDeviceSearchResults,
    DeviceEnrollmentDisownResponse,
    DeviceEnrollmentInstanceSyncStatus,
    DeviceEnrollmentToken,
)
from .utils import hybridmethod, normalize_serials

logger = logging.getLogger(__name__)


class DeviceEnrollment(CollectionResource, schemas.DeviceEnrollmentInstance):
    LIST_PATH = "v1/device-enrollments"
    POST_PATH = f"{LIST_PATH}/upload-token"
    POST_OBJECT = DeviceEnrollmentToken
    PUT_OBJECT = schemas.DeviceEnrollmentInstance

    PUB_KEY_PATH_SUFFIX = "public-key"
    DEVICES_PATH_SUFFIX = "devices"
    SYNCS_PATH_SUFFIX = "syncs"
    LATEST_PATH_SUFFIX = "latest"
    DISOWN_PATH_SUFFIX = "disown"
    UPLOAD_TOKEN_PATH_SUFFIX = "upload-token"

    TYPES = ("computers", "mobiledevices")
    COMPUTERS_RE = re.compile(r"mac", re.IGNORECASE)

    NON_UNIQUE_IDENTIFIERS = ("name",)
    OBJECT_NAME_ATTR = "name"

    MAX_WORKERS = 4

    # -------- Instances and tokens --------
    @classmethod
    def create(
        cls,
        cnx: Optional[Connection] = None,
        token_file: Union[str, Path, None] = None,
        encoded_token: Optional[str] = None,
        **_ignored: Any,
    ) -> "DeviceEnrollment":
        """
        Create an instance by uploading a server token from Apple Business
        or School Manager, given as the downloaded file or already base64-encoded.
        """
        cnx = resolve_cnx(cnx)
        token = DeviceEnrollmentToken(_token_payload(token_file, encoded_token))
        result = cnx.jp_post(cls.post_path(), token.to_jamf()) or {}
        cnx.flushcache(cls)
        return cls.fetch(id=result.get("id"), cnx=cnx)

    def renew_token(self, token_file: Union[str, Path, None] = None, encoded_token: Optional[str] = None) -> None:
        """Replace this instance's server token."""
        token = DeviceEnrollmentToken(_token_payload(token_file, encoded_token))
        self.cnx.jp_put(f"{self.get_path}/{self.UPLOAD_TOKEN_PATH_SUFFIX}", token.to_jamf())

    @classmethod
    def public_key(cls, cnx: Optional[Connection] = None) -> str:
        """The public key to upload to Apple when creating a server token."""
        return resolve_cnx(cnx).jp_get(f"{cls.LIST_PATH}/{cls.PUB_KEY_PATH_SUFFIX}")

    # -------- Devices --------
    @hybridmethod
    def devices(
        cls,
        instance: Any = None,
        type: Optional[str] = None,
        refresh: bool = False,
        cnx: Optional[Connection] = None,
    ) -> List[DeviceEnrollmentDevice]:
        """
        Devices in one instance, or in all of them.

        Args:
            instance: Any identifier of an instance; None for all instances
            type: "computers" or "mobiledevices" to limit the result
            refresh: Re-read the device lists from the server
        """
        if type is not None and type not in cls.TYPES:
            raise ValueError(f"Type must be one of: {', '.join(cls.TYPES)}")
        cnx = resolve_cnx(cnx)
        devs = cls._fetch_devices(instance, refresh, cnx)
        if type is None:
            return devs
        want_computers = type == "computers"
        return [dev for dev in devs if _is_computer(dev) == want_computers]

    @devices.instancemethod
    def devices(self, type: Optional[str] = None, refresh: bool = False) -> List[DeviceEnrollmentDevice]:
        return self.__class__.devices(self._values.get("id"), type=type, refresh=refresh, cnx=self.cnx)

    @hybridmethod
    def device_sns(cls, instance: Any = None, type: Optional[str] = None, refresh: bool = False, cnx: Optional[Connection] = None) -> List[str]:
        devices = cls.devices(instance, type=type, refresh=refresh, cnx=cnx)
        return [dev.serialNumber for dev in devices if dev.serialNumber]

    @device_sns.instancemethod
    def device_sns(self, type: Optional[str] = None, refresh: bool = False) -> List[str]:
        return [dev.serialNumber for dev in self.devices(type=type, refresh=refresh) if dev.serialNumber]

    @hybridmethod
    def includes(cls, sn: str, instance: Any = None, type: Optional[str] = None, refresh: bool = False, cnx: Optional[Connection] = None) -> bool:
        """Is the serial number in an instance? Case-insensitive."""
        wanted = str(sn).upper()
        return any(str(found).upper() == wanted for found in cls.device_sns(instance, type=type, refresh=refresh, cnx=cnx))

    @includes.instancemethod
    def includes(self, sn: str, type: Optional[str] = None, refresh: bool = False) -> bool:
        return self.__class__.includes(sn, self._values.get("id"), type=type, refresh=refresh, cnx=self.cnx)

    @hybridmethod
    def devices_with_status(
        cls,
        status: str,
        instance: Any = None,
        type: Optional[str] = None,
        refresh: bool = False,
        cnx: Optional[Connection] = None,
    ) -> List[DeviceEnrollmentDevice]:
        statuses = DeviceEnrollmentDevice.PROFILE_STATUS_OPTIONS
        if status not in statuses:
            raise ValueError(f"profileStatus must be one of: {', '.join(statuses)}")
        return [dev for dev in cls.devices(instance, type=type, refresh=refresh, cnx=cnx) if dev.profileStatus == status]

    @devices_with_status.instancemethod
    def devices_with_status(self, status: str, type: Optional[str] = None, refresh: bool = False) -> List[DeviceEnrollmentDevice]:
        return self.__class__.devices_with_status(status, self._values.get("id"), type=type, refresh=refresh, cnx=self.cnx)

    @classmethod
    def device(cls, sn: str, instance: Any = None, refresh: bool = False, cnx: Optional[Connection] = None) -> Optional[DeviceEnrollmentDevice]:
        """The device with the serial number, or None."""
        # SNs from Apple are always upper case
        wanted = str(sn).upper()
        for dev in cls.devices(instance, refresh=refresh, cnx=cnx):
            if dev.serialNumber == wanted:
                return dev
        return None

    # -------- Syncs and disowning --------
    @hybridmethod
    def sync_history(cls, instance: Any = None, latest: bool = False, cnx: Optional[Connection] = None):
        """
        Sync status records for one instance, or all of them.

        With ``latest=True`` and an instance, only the most recent record is
        returned.
        """
        cnx = resolve_cnx(cnx)
        if instance is not None:
            instance_id = cls._valid_instance_id(instance, cnx)
            path = f"{cls.get_path()}/{instance_id}/{cls.SYNCS_PATH_SUFFIX}"
            if latest:
                path += f"/{cls.LATEST_PATH_SUFFIX}"
        else:
            path = f"{cls.get_path()}/{cls.SYNCS_PATH_SUFFIX}"
            latest = False

        data = cnx.jp_get(path)
        if latest:
            return DeviceEnrollmentInstanceSyncStatus(data or {})
        return [DeviceEnrollmentInstanceSyncStatus(item) for item in data or []]

    @sync_history.instancemethod
    def sync_history(self, latest: bool = False):
        return self.__class__.sync_history(self._values.get("id"), latest=latest, cnx=self.cnx)

    def latest_sync(self) -> DeviceEnrollmentInstanceSyncStatus:
        return self.sync_history(latest=True)

    @hybridmethod
    def disown(cls, *sns: Any, from_instance: Any, cnx: Optional[Connection] = None) -> Dict[str, Any]:
        """
        Disown devices, removing them from Apple's assignment to this organization.

        Returns:
            The per-serial result reported by the server
        """
        cnx = resolve_cnx(cnx)
        instance_id = cls._valid_instance_id(from_instance, cnx)
        serials = normalize_serials(_flatten(sns))
        path = f"{cls.get_path()}/{instance_id}/{cls.DISOWN_PATH_SUFFIX}"
        response = DeviceEnrollmentDisownResponse(cnx.jp_post(path, {"devices": serials}) or {})
        cnx.collection_cache.delete(_devices_key(cls, instance_id))
        return response.devices or {}

    @disown.instancemethod
    def disown(self, *sns: Any) -> Dict[str, Any]:
        return self.__class__.disown(*sns, from_instance=self._values.get("id"), cnx=self.cnx)

    # -------- Helpers --------
    @classmethod
    def _valid_instance_id(cls, instance: Any, cnx: Connection) -> str:
        instance_id = cls.valid_id(instance, cnx=cnx)
        if instance_id is None:
            raise NoSuchItemError(f"No DeviceEnrollment instance matches '{instance}'")
        return instance_id

    @classmethod
    def _fetch_devices(cls, instance: Any, refresh: bool, cnx: Connection) -> List[DeviceEnrollmentDevice]:
        if instance is not None:
            return cls._devices_for_instance_id(cls._valid_instance_id(instance, cnx), refresh, cnx)

        per_instance = execute_concurrent(
            lambda instance_id: cls._devices_for_instance_id(instance_id, refresh, cnx),
            cls.all_ids(cnx=cnx),
            max_workers=cls.MAX_WORKERS,
            logger=logger,
            label="Reading device enrollment devices",
        )
        devs: List[DeviceEnrollmentDevice] = []
        for found in per_instance:
            devs.extend(found)
        return devs

    @classmethod
    def _devices_for_instance_id(cls, instance_id: str, refresh: bool, cnx: Connection) -> List[DeviceEnrollmentDevice]:
        key = _devices_key(cls, instance_id)
        if refresh:
            cnx.collection_cache.delete(key)
        cached = cnx.collection_cache.get(key)
        if cached is not None:
            return list(cached)
        data = cnx.jp_get(f"{cls.LIST_PATH}/{instance_id}/{cls.DEVICES_PATH_SUFFIX}") or {}
        devs = list(DeviceEnrollmentDeviceSearchResults(data).results)
        cnx.collection_cache.set(key, devs)
        return list(devs)


def _devices_key(cls: type, instance_id: Any) -> tuple:
    return (cls, DeviceEnrollment.DEVICES_PATH_SUFFIX, str(instance_id))


def _is_computer(dev: DeviceEnrollmentDevice) -> bool:
    return bool(DeviceEnrollment.COMPUTERS_RE.search(dev.model or ""))


def _flatten(items: Any) -> List[Any]:
    flat: List[Any] = []
    for item in items:
        if isinstance(item, (list, tuple, set)):
            flat.extend(item)
        else:
            flat.append(item)
    return flat


def _token_payload(token_file: Union[str, Path, None], encoded_token: Optional[str]) -> Dict[str, Any]:
    if encoded_token:
        return {"tokenFileName": None, "encodedToken": encoded_token}
    if token_file is None:
        raise ValueError("Provide token_file or encoded_token")
    path = Path(token_file)
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return {"tokenFileName": path.name, "encodedToken": encoded}
