"""
Credentials and bearer tokens for the Jamf Pro APIs.

Both APIs accept the same bearer token, which is acquired from a user and
password, from an OAuth API client's credentials, or supplied pre-issued.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .exceptions import AuthenticationError, InvalidConnectionError
from .utils import parse_jamf_datetime


@dataclass
class JamfAuth:
    user: Optional[str] = None
    password: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    bearer_token: Optional[str] = None
    base_url: Optional[str] = None

    def from_env(self) -> "JamfAuth":
        self.base_url = self.base_url or os.environ.get("JAMF_BASE_URL")
        self.user = self.user or os.environ.get("JAMF_USER")
        self.password = self.password or os.environ.get("JAMF_PASSWORD")
        self.client_id = self.client_id or os.environ.get("JAMF_CLIENT_ID")
        self.client_secret = self.client_secret or os.environ.get("JAMF_CLIENT_SECRET")
        self.bearer_token = self.bearer_token or os.environ.get("JAMF_BEARER_TOKEN")
        return self

    @property
    def method(self) -> Optional[str]:
        """Which kind of credential will be used, in order of preference."""
        if self.bearer_token:
            return "bearer"
        if self.client_id and self.client_secret:
            return "client_credentials"
        if self.user and self.password:
            return "password"
        return None


class Token:
    """
    A bearer token for one Jamf Pro server.

    The token is acquired on creation. ``refresh_if_needed`` keeps it usable:
    password tokens are extended with keep-alive, client-credential tokens are
    re-acquired (the OAuth endpoint doesn't support keep-alive).
    """

    NEW_TOKEN_RSRC = "/api/v1/auth/token"
    OAUTH_TOKEN_RSRC = "/api/oauth/token"
    KEEP_ALIVE_RSRC = "/api/v1/auth/keep-alive"
    INVALIDATE_RSRC = "/api/v1/auth/invalidate-token"
    AUTH_RSRC = "/api/v1/auth"

    MIN_REFRESH_BUFFER = 60
    DFT_REFRESH_BUFFER = 300

    def __init__(
        self,
        base_url: str,
        auth: JamfAuth,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = 60,
        verify: Any = True,
        refresh_buffer: int = DFT_REFRESH_BUFFER,
        logger: Optional[logging.Logger] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify
        self.refresh_buffer = max(int(refresh_buffer), self.MIN_REFRESH_BUFFER)
        self.logger = logger or logging.getLogger(__name__)
        self.token: Optional[str] = None
        self.expires: Optional[float] = None
        self.login_time: Optional[float] = None
        self.valid = False
        self._refresh_lock = threading.Lock()

        method = auth.method
        if method is None:
            raise AuthenticationError("No bearer token, client credentials, or user/password provided")
        self.method = method
        self._acquire()

    # -------- Properties --------
    @property
    def user(self) -> Optional[str]:
        return self.auth.user or self.auth.client_id

    @property
    def auth_header(self) -> str:
        return f"Bearer {self.token}"

    @property
    def secs_remaining(self) -> Optional[float]:
        if self.expires is None:
            return None
        return self.expires - time.time()

    @property
    def expired(self) -> bool:
        remaining = self.secs_remaining
        return remaining is not None and remaining <= 0

    # -------- Acquisition --------
    def _acquire(self) -> None:
        if self.method == "bearer":
            self.token = self.auth.bearer_token
            self.expires = None
        elif self.method == "client_credentials":
            self._parse_token_response(self._fetch_token_client_creds(), "access_token", "expires_in")
        else:
            self._parse_token_response(self._fetch_token_user_pass(), "token", "expires")
        self.login_time = time.time()
        self.valid = True
        self.logger.debug("Acquired %s token for %s", self.method, self.base_url)

    def _post(self, rsrc: str, **kwargs) -> requests.Response:
        url = self.base_url + rsrc
        try:
            return self.session.request("POST", url, timeout=self.timeout, verify=self.verify, **kwargs)
        except requests.exceptions.SSLError as exc:
            raise InvalidConnectionError(f"SSL certificate verification failed for {url}") from exc
        except requests.RequestException as exc:
            raise InvalidConnectionError(f"HTTP request failed for {url}: {exc}") from exc

    def _fetch_token_user_pass(self) -> Dict[str, Any]:
        resp = self._post(self.NEW_TOKEN_RSRC, auth=(self.auth.user, self.auth.password), headers={"Accept": "application/json"})
        if resp.status_code == 401:
            raise AuthenticationError(f"Incorrect user name or password for {self.auth.user}")
        return self._json_or_fail(resp, "user/password")

    def _fetch_token_client_creds(self) -> Dict[str, Any]:
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.auth.client_id,
            "client_secret": self.auth.client_secret,
        }
        resp = self._post(self.OAUTH_TOKEN_RSRC, data=payload, headers={"Accept": "application/json"})
        if resp.status_code in (400, 401):
            raise AuthenticationError(f"Invalid client credentials for API client {self.auth.client_id}")
        return self._json_or_fail(resp, "client credentials")

    def _json_or_fail(self, resp: requests.Response, kind: str) -> Dict[str, Any]:
        if resp.status_code >= 400:
            raise AuthenticationError(f"Failed to fetch token with {kind}: HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise AuthenticationError(f"Invalid token response format: {exc}") from exc

    def _parse_token_response(self, data: Dict[str, Any], token_key: str, expiry_key: str) -> None:
        token = data.get(token_key) or data.get("token") or data.get("access_token")
        if not token:
            raise AuthenticationError("Token response did not include a token")
        self.token = token

        raw_expiry = data.get(expiry_key)
        if raw_expiry is None:
            self.expires = None
        elif expiry_key == "expires_in":
            self.expires = time.time() + float(raw_expiry)
        else:
            expires_dt = parse_jamf_datetime(raw_expiry)
            self.expires = expires_dt.timestamp() if expires_dt else None

    # -------- Lifecycle --------
    def refresh_if_needed(self, buffer: Optional[int] = None) -> bool:
        """
        Refresh the token if it expires within buffer seconds.

        Threads sharing the token refresh it once; the others see the new
        expiry after waiting on the lock. Returns True if this call refreshed.
        """
        limit = buffer or self.refresh_buffer
        if not self._expiring_within(limit):
            return False
        with self._refresh_lock:
            if not self._expiring_within(limit):
                return False
            if self.method == "client_credentials" or self.expired:
                self.logger.debug("Token expired or expiring soon, re-acquiring...")
                self._acquire()
            else:
                self.keep_alive()
        return True

    def _expiring_within(self, secs: float) -> bool:
        remaining = self.secs_remaining
        return remaining is not None and remaining <= secs

    def keep_alive(self) -> None:
        """Extend the token's life, or get a new one for API clients."""
        if self.method == "bearer":
            raise InvalidConnectionError("Tokens supplied as strings cannot be refreshed")
        if self.method == "client_credentials":
            self._acquire()
            return
        if self.expired:
            raise InvalidConnectionError("Token has expired")
        resp = self._post(self.KEEP_ALIVE_RSRC, headers={"Authorization": self.auth_header, "Accept": "application/json"})
        self._parse_token_response(self._json_or_fail(resp, "keep-alive"), "token", "expires")
        self.logger.debug("Token refreshed via keep-alive")

    def invalidate(self) -> None:
        """Invalidate the token on the server."""
        if not self.valid:
            return
        resp = self._post(self.INVALIDATE_RSRC, headers={"Authorization": self.auth_header})
        if resp.status_code >= 400 and resp.status_code != 401:
            self.logger.warning("Token invalidation returned HTTP %d", resp.status_code)
        self.valid = False
        self.token = None

    def account(self) -> Dict[str, Any]:
        """Details about the account that owns the token."""
        url = self.base_url + self.AUTH_RSRC
        try:
            resp = self.session.request(
                "GET",
                url,
                headers={"Authorization": self.auth_header, "Accept": "application/json"},
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as exc:
            raise InvalidConnectionError(f"HTTP request failed for {url}: {exc}") from exc
        return self._json_or_fail(resp, "account lookup")

    def __repr__(self) -> str:
        return f"Token(method={self.method!r}, base_url={self.base_url!r}, expires={self.expires!r})"
