"""
Computer and mobile device prestages, and the assignment of serial numbers
to their scopes.

A prestage's scope is protected by an optimistic lock: every scope update
carries the ``versionLock`` read with the scope, and the server rejects an
update made with a stale one. Updates here re-read the scope and retry a
few times before giving up with VersionLockError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from . import schemas
from .connection import Connection, resolve_cnx
from .device_enrollment import DeviceEnrollment
from .exceptions import JamfProAPIError, NoSuchItemError, UnsupportedError, VersionLockError
from .resource import CollectionResource
from .schemas import PrestageScope, PrestageScopeResponse
from .utils import hybridmethod, normalize_serials

logger = logging.getLogger(__name__)

SCOPE_PATH = "scope"
OPTIMISTIC_LOCK_FAILED = "OPTIMISTIC_LOCK_FAILED"


def _flatten_serials(sns: Iterable[Any]) -> List[str]:
    flat: List[Any] = []
    for sn in sns:
        if isinstance(sn, (list, tuple, set)):
            flat.extend(sn)
        else:
            flat.append(sn)
    return normalize_serials(flat)


class Prestage:
    """
    Mixin for prestage collection classes.

    Concrete classes set LIST_PATH, and SCOPE_PATH_PREFIX when scopes live
    under a different API version than the prestages themselves.
    """

    SCOPE_PATH_PREFIX: Optional[str] = None
    DEVICE_TYPE = "computers"
    SCOPE_UPDATE_ATTEMPTS = 3

    ALT_IDENTIFIERS = ("profileUuid",)
    NON_UNIQUE_IDENTIFIERS = ("displayName",)
    OBJECT_NAME_ATTR = "displayName"

    # -------- Class operations --------
    @classmethod
    def default(cls, cnx: Optional[Connection] = None):
        """The default prestage, or None if there isn't one."""
        cnx = resolve_cnx(cnx)
        for data in cls.all(cnx=cnx):
            if data.get("defaultPrestage"):
                return cls.fetch(id=data["id"], cnx=cnx)
        return None

    @classmethod
    def scope_prefix(cls) -> str:
        return cls.SCOPE_PATH_PREFIX or cls.LIST_PATH

    @classmethod
    def scope_path(cls, prestage_id: Any) -> str:
        return f"{cls.scope_prefix()}/{prestage_id}/{SCOPE_PATH}"

    @classmethod
    def serials_by_prestage_id(cls, refresh: bool = False, cnx: Optional[Connection] = None) -> Dict[str, str]:
        """Every assigned serial number mapped to its prestage id."""
        cnx = resolve_cnx(cnx)
        key = (cls, SCOPE_PATH)
        if refresh:
            cnx.collection_cache.delete(key)
        cached = cnx.collection_cache.get(key)
        if cached is None:
            response = PrestageScope(cnx.jp_get(f"{cls.scope_prefix()}/{SCOPE_PATH}") or {})
            raw = response.serialsByPrestageId or {}
            cached = cnx.collection_cache.set(key, {str(sn): str(psid) for sn, psid in raw.items()})
        return dict(cached)

    @classmethod
    def serials_for_prestage(cls, prestage_ident: Any, refresh: bool = False, cnx: Optional[Connection] = None) -> List[str]:
        cnx = resolve_cnx(cnx)
        prestage_id = cls._valid_prestage_id(prestage_ident, cnx)
        return [sn for sn, psid in cls.serials_by_prestage_id(refresh, cnx=cnx).items() if psid == prestage_id]

    @classmethod
    def assigned_prestage_id(cls, sn: str, refresh: bool = False, cnx: Optional[Connection] = None) -> Optional[str]:
        return cls.serials_by_prestage_id(refresh, cnx=cnx).get(str(sn).upper())

    @hybridmethod
    def is_assigned(cls, sn: str, prestage: Any = None, refresh: bool = False, cnx: Optional[Connection] = None) -> bool:
        """Is the serial number assigned to any prestage, or to the given one?"""
        cnx = resolve_cnx(cnx)
        assigned_id = cls.assigned_prestage_id(sn, refresh, cnx=cnx)
        if assigned_id is None:
            return False
        if prestage is None:
            return True
        return cls._valid_prestage_id(prestage, cnx) == assigned_id

    @is_assigned.instancemethod
    def is_assigned(self, sn: str) -> bool:
        return str(sn).upper() in self.assigned_sns

    @classmethod
    def unassigned_sns(cls, cnx: Optional[Connection] = None) -> List[str]:
        """Serials known to device enrollment instances but in no prestage scope."""
        cnx = resolve_cnx(cnx)
        assigned = cls.serials_by_prestage_id(refresh=True, cnx=cnx)
        return [sn for sn in DeviceEnrollment.device_sns(type=cls.DEVICE_TYPE, cnx=cnx) if sn and str(sn).upper() not in assigned]

    @hybridmethod
    def assign(cls, *sns: Any, to_prestage: Any, cnx: Optional[Connection] = None) -> PrestageScopeResponse:
        """
        Add serial numbers to a prestage's scope.

        Raises:
            UnsupportedError: A serial isn't in any device enrollment instance,
                or is already assigned to a prestage.
            VersionLockError: The scope kept changing underneath us.
        """
        cnx = resolve_cnx(cnx)
        prestage_id = cls._valid_prestage_id(to_prestage, cnx)
        sns_to_assign = _flatten_serials(sns)

        known = {str(sn).upper() for sn in DeviceEnrollment.device_sns(cnx=cnx) if sn}
        not_in_dep = [sn for sn in sns_to_assign if sn not in known]
        if not_in_dep:
            raise UnsupportedError(f"These SNs are not in any Device Enrollment instance: {', '.join(not_in_dep)}")

        unassigned = {sn.upper() for sn in cls.unassigned_sns(cnx=cnx)}
        already_assigned = [sn for sn in sns_to_assign if sn not in unassigned]
        if already_assigned:
            raise UnsupportedError(f"These SNs are already assigned to a prestage: {', '.join(already_assigned)}")

        def add_serials(current: List[str]) -> List[str]:
            return normalize_serials(current + sns_to_assign)

        return cls._update_scope(prestage_id, add_serials, cnx)

    @assign.instancemethod
    def assign(self, *sns: Any) -> PrestageScopeResponse:
        scope = type(self).assign(*sns, to_prestage=self._values.get("id"), cnx=self.cnx)
        self._remember_scope(scope)
        return scope

    @hybridmethod
    def unassign(cls, *sns: Any, from_prestage: Any, cnx: Optional[Connection] = None) -> PrestageScopeResponse:
        """Remove serial numbers from a prestage's scope."""
        cnx = resolve_cnx(cnx)
        prestage_id = cls._valid_prestage_id(from_prestage, cnx)
        to_remove = set(_flatten_serials(sns))

        def remove_serials(current: List[str]) -> List[str]:
            return [sn for sn in current if sn.upper() not in to_remove]

        return cls._update_scope(prestage_id, remove_serials, cnx)

    @unassign.instancemethod
    def unassign(self, *sns: Any) -> PrestageScopeResponse:
        scope = type(self).unassign(*sns, from_prestage=self._values.get("id"), cnx=self.cnx)
        self._remember_scope(scope)
        return scope

    @classmethod
    def _valid_prestage_id(cls, ident: Any, cnx: Connection) -> str:
        prestage_id = cls.valid_id(ident, cnx=cnx)
        if prestage_id is None:
            raise NoSuchItemError(f"No {cls.__name__} matching '{ident}'")
        return prestage_id

    @classmethod
    def _update_scope(cls, prestage_id: str, change, cnx: Connection) -> PrestageScopeResponse:
        """
        PUT a changed scope, re-reading and retrying on optimistic-lock conflicts.

        ``change`` takes the current serials and returns the new ones.
        """
        spath = cls.scope_path(prestage_id)
        for attempt in range(1, cls.SCOPE_UPDATE_ATTEMPTS + 1):
            scope = PrestageScopeResponse(cnx.jp_get(spath) or {})
            current = [assignment.serialNumber for assignment in scope.assignments]
            payload = {"serialNumbers": change(current), "versionLock": scope.versionLock}
            try:
                result = PrestageScopeResponse(cnx.jp_put(spath, payload) or {})
            except JamfProAPIError as exc:
                if not _is_lock_conflict(exc):
                    raise
                logger.warning(
                    "Scope of %s %s changed during update (attempt %d/%d), retrying",
                    cls.__name__, prestage_id, attempt, cls.SCOPE_UPDATE_ATTEMPTS,
                )
                continue
            cnx.collection_cache.delete((cls, SCOPE_PATH))
            return result

        raise VersionLockError(
            f"The scope of {cls.__name__} {prestage_id} was modified by someone else "
            f"{cls.SCOPE_UPDATE_ATTEMPTS} times in a row. Please try again"
        )

    # -------- Instance operations --------
    def scope(self, refresh: bool = False) -> PrestageScopeResponse:
        """
        This prestage's scope.

        Raises:
            VersionLockError: The scope's version lock doesn't match the one
                read with this prestage, so the prestage is stale.
        """
        if refresh:
            self._scope = None
        cached = getattr(self, "_scope", None)
        if cached is not None:
            return cached
        scope = PrestageScopeResponse(self.cnx.jp_get(type(self).scope_path(self._values.get("id"))) or {})
        if scope.versionLock != self._values.get("versionLock"):
            raise VersionLockError(
                f"The {type(self).__name__} '{self.name}' has been modified since it was fetched. "
                "Please refetch and try again"
            )
        self._scope = scope
        return scope

    @property
    def assigned_sns(self) -> List[str]:
        return [assignment.serialNumber for assignment in self.scope().assignments]

    def _remember_scope(self, scope: PrestageScopeResponse) -> None:
        self._scope = scope
        self._values["versionLock"] = scope.versionLock

    def save(self) -> Any:
        result = super().save()
        self._scope = None
        return result


def _is_lock_conflict(exc: JamfProAPIError) -> bool:
    return exc.http_status == 409 or exc.has_code(OPTIMISTIC_LOCK_FAILED)


class ComputerPrestage(Prestage, CollectionResource, schemas.ComputerPrestage):
    LIST_PATH = "v3/computer-prestages"
    SCOPE_PATH_PREFIX = "v2/computer-prestages"
    POST_OBJECT = schemas.ComputerPrestage
    PUT_OBJECT = schemas.ComputerPrestage
    DEVICE_TYPE = "computers"


class MobileDevicePrestage(Prestage, CollectionResource, schemas.MobileDevicePrestage):
    LIST_PATH = "v2/mobile-device-prestages"
    POST_OBJECT = schemas.MobileDevicePrestage
    PUT_OBJECT = schemas.MobileDevicePrestage
    DEVICE_TYPE = "mobiledevices"
