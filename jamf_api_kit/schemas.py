"""
Attribute tables for Jamf Pro API request and response objects.

These mirror the server's OpenAPI schemas. Resource classes in
``api_objects``, ``prestage`` and ``device_enrollment`` subclass them, and
the rest are nested or helper objects.
"""

from __future__ import annotations

from .oapi_object import Immutable, OAPIObject

# -------- Building --------


class Building(OAPIObject):
    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "name": {"class": "string", "required": True, "min_length": 1},
        "streetAddress1": {"class": "string", "nil_ok": True},
        "streetAddress2": {"class": "string", "nil_ok": True},
        "city": {"class": "string", "nil_ok": True},
        "stateProvince": {"class": "string", "nil_ok": True},
        "zipPostalCode": {"class": "string", "nil_ok": True},
        "country": {"class": "string", "nil_ok": True},
    }


# -------- API roles and clients --------


class ApiRoleRequest(OAPIObject):
    OAPI_PROPERTIES = {
        "displayName": {"class": "string", "required": True, "min_length": 1},
        "privileges": {"class": "string", "required": True, "multi": True, "unique_items": True},
    }


class ApiRole(OAPIObject):
    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "displayName": {"class": "string", "required": True, "min_length": 1},
        "privileges": {"class": "string", "required": True, "multi": True, "unique_items": True},
    }


class ApiRolePrivileges(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "privileges": {"class": "string", "multi": True},
    }


class ApiIntegrationRequest(OAPIObject):
    OAPI_PROPERTIES = {
        "authorizationScopes": {"class": "string", "required": True, "multi": True},
        "displayName": {"class": "string", "required": True, "min_length": 1},
        "enabled": {"class": "boolean"},
        "accessTokenLifetimeSeconds": {"class": "integer", "minimum": 1, "nil_ok": True},
    }


class ApiIntegrationResponse(OAPIObject):
    APP_TYPE_OPTIONS = ("CLIENT_CREDENTIALS", "NATIVE_APP_OAUTH", "NONE")

    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "authorizationScopes": {"class": "string", "required": True, "multi": True},
        "displayName": {"class": "string", "required": True, "min_length": 1},
        "enabled": {"class": "boolean", "required": True},
        "accessTokenLifetimeSeconds": {"class": "integer", "minimum": 1, "nil_ok": True},
        "appType": {"class": "string", "readonly": True, "enum": APP_TYPE_OPTIONS},
        "clientId": {"class": "string", "readonly": True},
    }


class OAuthClientCredentials(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "clientId": {"class": "string"},
        "clientSecret": {"class": "string"},
    }


# -------- History --------


class ObjectHistory(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary"},
        "username": {"class": "string"},
        "date": {"class": "string"},
        "note": {"class": "string"},
        "details": {"class": "string"},
    }


class ObjectHistoryNote(OAPIObject):
    OAPI_PROPERTIES = {
        "note": {"class": "string", "required": True, "min_length": 1},
    }


class HistorySearchResults(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "totalCount": {"class": "integer"},
        "results": {"class": ObjectHistory, "multi": True},
    }


# -------- Inventory preload --------


class InventoryPreloadExtensionAttribute(OAPIObject):
    OAPI_PROPERTIES = {
        "name": {"class": "string", "required": True},
        "value": {"class": "string", "nil_ok": True},
    }


class InventoryPreloadRecord(OAPIObject):
    DEVICE_TYPE_OPTIONS = ("Computer", "Mobile Device", "Unknown")

    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "serialNumber": {"class": "string", "required": True, "min_length": 1},
        "deviceType": {"class": "string", "required": True, "enum": DEVICE_TYPE_OPTIONS},
        "username": {"class": "string", "nil_ok": True},
        "fullName": {"class": "string", "nil_ok": True},
        "emailAddress": {"class": "string", "nil_ok": True},
        "phoneNumber": {"class": "string", "nil_ok": True},
        "position": {"class": "string", "nil_ok": True},
        "department": {"class": "string", "nil_ok": True},
        "building": {"class": "string", "nil_ok": True},
        "room": {"class": "string", "nil_ok": True},
        "poNumber": {"class": "string", "nil_ok": True},
        "poDate": {"class": "string", "nil_ok": True},
        "warrantyExpiration": {"class": "string", "nil_ok": True},
        "appleCareId": {"class": "string", "nil_ok": True},
        "lifeExpectancy": {"class": "string", "nil_ok": True},
        "purchasePrice": {"class": "string", "nil_ok": True},
        "purchasingContact": {"class": "string", "nil_ok": True},
        "purchasingAccount": {"class": "string", "nil_ok": True},
        "leaseExpiration": {"class": "string", "nil_ok": True},
        "barCode1": {"class": "string", "nil_ok": True},
        "barCode2": {"class": "string", "nil_ok": True},
        "assetTag": {"class": "string", "nil_ok": True},
        "vendor": {"class": "string", "nil_ok": True},
        "extensionAttributes": {"class": InventoryPreloadExtensionAttribute, "multi": True},
    }


# -------- Packages --------


class Package(OAPIObject):
    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "packageName": {"class": "string", "required": True, "min_length": 1},
        "fileName": {"class": "string", "required": True, "min_length": 1},
        "categoryId": {"class": "string", "required": True},
        "info": {"class": "string", "nil_ok": True},
        "notes": {"class": "string", "nil_ok": True},
        "priority": {"class": "integer", "required": True, "minimum": 1, "maximum": 20},
        "osRequirements": {"class": "string", "nil_ok": True},
        "fillUserTemplate": {"class": "boolean", "required": True},
        "indexed": {"class": "boolean", "readonly": True},
        "fillExistingUsers": {"class": "boolean", "nil_ok": True},
        "swu": {"class": "boolean", "nil_ok": True},
        "rebootRequired": {"class": "boolean", "required": True},
        "selfHealNotify": {"class": "boolean", "nil_ok": True},
        "selfHealingAction": {"class": "string", "nil_ok": True},
        "osInstall": {"class": "boolean", "required": True},
        "serialNumber": {"class": "string", "nil_ok": True},
        "parentPackageId": {"class": "string", "nil_ok": True},
        "basePath": {"class": "string", "nil_ok": True},
        "suppressUpdates": {"class": "boolean", "required": True},
        "cloudTransferStatus": {"class": "string", "readonly": True},
        "ignoreConflicts": {"class": "boolean", "nil_ok": True},
        "suppressFromDock": {"class": "boolean", "required": True},
        "suppressEula": {"class": "boolean", "required": True},
        "suppressRegistration": {"class": "boolean", "required": True},
        "installLanguage": {"class": "string", "nil_ok": True},
        "md5": {"class": "string", "nil_ok": True},
        "sha256": {"class": "string", "nil_ok": True},
        "hashType": {"class": "string", "nil_ok": True, "enum": ("MD5", "SHA_512")},
        "hashValue": {"class": "string", "nil_ok": True},
        "size": {"class": "string", "readonly": True},
        "osInstallerVersion": {"class": "string", "nil_ok": True},
        "manifest": {"class": "string", "nil_ok": True},
        "manifestFileName": {"class": "string", "nil_ok": True},
        "format": {"class": "string", "nil_ok": True},
    }


# -------- Check-in settings --------


class ClientCheckInV3(OAPIObject):
    OAPI_PROPERTIES = {
        "checkInFrequency": {"class": "integer", "enum": (5, 15, 30, 60)},
        "createHooks": {"class": "boolean"},
        "hookLog": {"class": "boolean"},
        "hookPolicies": {"class": "boolean"},
        "createStartupScript": {"class": "boolean"},
        "startupLog": {"class": "boolean"},
        "startupPolicies": {"class": "boolean"},
        "startupSsh": {"class": "boolean"},
        "enableLocalConfigurationProfiles": {"class": "boolean"},
    }


# -------- Device enrollment --------


class DeviceEnrollmentInstance(OAPIObject):
    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary", "readonly": True},
        "name": {"class": "string", "required": True, "min_length": 1},
        "supervisionIdentityId": {"class": "string", "nil_ok": True},
        "siteId": {"class": "string", "nil_ok": True},
        "serverName": {"class": "string", "readonly": True},
        "serverUuid": {"class": "string", "readonly": True},
        "adminId": {"class": "string", "readonly": True},
        "orgName": {"class": "string", "readonly": True},
        "orgEmail": {"class": "string", "readonly": True},
        "orgPhone": {"class": "string", "readonly": True},
        "orgAddress": {"class": "string", "readonly": True},
        "tokenExpirationDate": {"class": "string", "readonly": True},
    }


class DeviceEnrollmentToken(OAPIObject):
    OAPI_PROPERTIES = {
        "tokenFileName": {"class": "string", "nil_ok": True},
        "encodedToken": {"class": "string", "required": True, "min_length": 1},
    }


class DeviceEnrollmentDevice(OAPIObject, Immutable):
    PROFILE_STATUS_OPTIONS = ("EMPTY", "ASSIGNED", "PUSHED", "REMOVED")

    OAPI_PROPERTIES = {
        "id": {"class": "j_id", "identifier": "primary"},
        "deviceEnrollmentProgramInstanceId": {"class": "string"},
        "prestageId": {"class": "string"},
        "serialNumber": {"class": "string"},
        "description": {"class": "string"},
        "model": {"class": "string"},
        "color": {"class": "string"},
        "assetTag": {"class": "string"},
        "profileStatus": {"class": "string", "enum": PROFILE_STATUS_OPTIONS},
        "syncState": {"class": "hash"},
        "profileAssignTime": {"class": "string"},
        "profilePushTime": {"class": "string"},
        "deviceAssignedDate": {"class": "string"},
    }


class DeviceEnrollmentDeviceSearchResults(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "totalCount": {"class": "integer"},
        "results": {"class": DeviceEnrollmentDevice, "multi": True},
    }


class DeviceEnrollmentInstanceSyncStatus(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "syncState": {"class": "string"},
        "instanceId": {"class": "string"},
        "timestamp": {"class": "string"},
    }


class DeviceEnrollmentDisownResponse(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "devices": {"class": "hash"},
    }


# -------- Prestages --------


class PrestageScopeAssignment(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "serialNumber": {"class": "string"},
        "assignmentDate": {"class": "string"},
        "userAssigned": {"class": "string"},
    }


class PrestageScopeResponse(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "prestageId": {"class": "j_id"},
        "assignments": {"class": PrestageScopeAssignment, "multi": True},
        "versionLock": {"class": "integer"},
    }


class PrestageScope(OAPIObject, Immutable):
    OAPI_PROPERTIES = {
        "serialsByPrestageId": {"class": "hash"},
    }


_PRESTAGE_COMMON = {
    "id": {"class": "j_id", "identifier": "primary", "readonly": True},
    "displayName": {"class": "string", "required": True, "min_length": 1},
    "mandatory": {"class": "boolean", "required": True},
    "mdmRemovable": {"class": "boolean", "required": True},
    "supportPhoneNumber": {"class": "string", "nil_ok": True},
    "supportEmailAddress": {"class": "string", "nil_ok": True},
    "department": {"class": "string", "nil_ok": True},
    "defaultPrestage": {"class": "boolean", "required": True},
    "enrollmentSiteId": {"class": "string", "nil_ok": True},
    "keepExistingSiteMembership": {"class": "boolean", "required": True},
    "keepExistingLocationInformation": {"class": "boolean", "required": True},
    "requireAuthentication": {"class": "boolean", "required": True},
    "authenticationPrompt": {"class": "string", "nil_ok": True},
    "preventActivationLock": {"class": "boolean", "required": True},
    "enableDeviceBasedActivationLock": {"class": "boolean", "required": True},
    "deviceEnrollmentProgramInstanceId": {"class": "string", "required": True},
    "skipSetupItems": {"class": "hash", "nil_ok": True},
    "locationInformation": {"class": "hash", "nil_ok": True},
    "purchasingInformation": {"class": "hash", "nil_ok": True},
    "anchorCertificates": {"class": "string", "multi": True},
    "enrollmentCustomizationId": {"class": "string", "nil_ok": True},
    "language": {"class": "string", "nil_ok": True},
    "region": {"class": "string", "nil_ok": True},
    "autoAdvanceSetup": {"class": "boolean", "required": True},
    "profileUuid": {"class": "string", "readonly": True},
    "siteId": {"class": "string", "nil_ok": True},
    "versionLock": {"class": "integer", "readonly": True},
}


class ComputerPrestage(OAPIObject):
    RECOVERY_LOCK_PASSWORD_TYPE_OPTIONS = ("MANUAL", "RANDOM")

    OAPI_PROPERTIES = {
        **_PRESTAGE_COMMON,
        "installProfilesDuringSetup": {"class": "boolean", "required": True},
        "prestageInstalledProfileIds": {"class": "string", "multi": True},
        "customPackageIds": {"class": "string", "multi": True},
        "customPackageDistributionPointId": {"class": "string", "nil_ok": True},
        "enableRecoveryLock": {"class": "boolean", "nil_ok": True},
        "recoveryLockPasswordType": {"class": "string", "nil_ok": True, "enum": RECOVERY_LOCK_PASSWORD_TYPE_OPTIONS},
        "rotateRecoveryLockPassword": {"class": "boolean", "nil_ok": True},
        "accountSettings": {"class": "hash", "nil_ok": True},
    }


class MobileDevicePrestage(OAPIObject):
    OAPI_PROPERTIES = {
        **_PRESTAGE_COMMON,
        "allowPairing": {"class": "boolean", "required": True},
        "multiUser": {"class": "boolean", "required": True},
        "supervised": {"class": "boolean", "required": True},
        "maximumSharedAccounts": {"class": "integer", "required": True, "minimum": 0},
        "configureDeviceBeforeSetupAssistant": {"class": "boolean", "required": True},
        "names": {"class": "hash", "nil_ok": True},
        "sendTimezone": {"class": "boolean", "required": True},
        "timezone": {"class": "string", "required": True},
        "storageQuotaSizeMegabytes": {"class": "integer", "required": True},
        "useStorageQuotaSize": {"class": "boolean", "required": True},
    }
