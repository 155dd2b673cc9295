"""
HTTP client for the remote character service.

ApiClient adds the bearer token and maps transport and HTTP failures onto the
RemoteError hierarchy. AuthApi and CharacterApi wrap the two endpoint groups.
AuthSession owns the cached login: it is loaded from the local database once
and kept in memory, so reading the token never touches the database from a
worker thread.

All calls here are blocking; cloud_sync runs them with asyncio.to_thread.
"""

import time
from typing import List, Optional

import requests

from charsheet.database import clear_identity, get_identity, save_identity
from charsheet.errors import AuthExpiredError, RemoteError, RemoteNotFoundError
from charsheet.models import AuthIdentity, RemoteCharacter
from util.constants import API_BASE_URL, HTTP_TIMEOUT_SECONDS
from util.logging_util import log_remote_request, setup_logger

logger = setup_logger(__name__)


class AuthSession:
    """The locally cached identity and bearer token."""

    def __init__(self, identity: Optional[AuthIdentity] = None):
        self.identity = identity

    @classmethod
    def restore(cls) -> "AuthSession":
        """Build a session from the identity cached in the local database."""
        return cls(get_identity())

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def token(self) -> Optional[str]:
        return self.identity.token if self.identity else None

    def login(self, identity: AuthIdentity):
        save_identity(identity)
        self.identity = identity
        logger.info("Logged in as %s", identity.display_name)

    def logout(self):
        clear_identity()
        if self.identity is not None:
            logger.info("Logged out %s", self.identity.display_name)
        self.identity = None


class ApiClient:
    def __init__(self, session: AuthSession, base_url: str = API_BASE_URL,
                 http: Optional[requests.Session] = None):
        self.auth = session
        self.base_url = base_url.rstrip("/")
        self._http = http or requests.Session()

    def request(self, method: str, path: str, json: Optional[dict] = None):
        """Send a request and return the decoded JSON body (None for empty bodies)."""
        headers = {"Content-Type": "application/json"}
        if self.auth.token:
            headers["Authorization"] = f"Bearer {self.auth.token}"

        start = time.time()
        try:
            response = self._http.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                headers=headers,
                timeout=HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise RemoteError(f"{method} {path} failed: {e}") from e

        log_remote_request(logger, method, path, response.status_code,
                           (time.time() - start) * 1000)

        if response.status_code == 401:
            raise AuthExpiredError()
        if response.status_code == 404:
            raise RemoteNotFoundError(f"{path} not found")
        if response.status_code >= 400:
            raise RemoteError(
                f"{method} {path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON") from e


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "message" in body:
        return str(body["message"])
    return str(body)[:200]


def _identity_from_response(body: dict) -> AuthIdentity:
    try:
        return AuthIdentity(
            user_id=body["userId"],
            username=body.get("username", ""),
            email=body.get("email", ""),
            token=body["token"],
            expires_at=body.get("expiresAt", ""),
        )
    except (KeyError, TypeError) as e:
        raise RemoteError(f"Malformed auth response: {e}", retryable=False) from e


def _character_from_response(body: dict) -> RemoteCharacter:
    try:
        return RemoteCharacter(
            id=body["id"],
            name=body.get("name", ""),
            data=body.get("data", ""),
            user_id=body.get("userId", ""),
            created_at=body.get("createdAt", ""),
            updated_at=body.get("updatedAt", ""),
        )
    except (KeyError, TypeError) as e:
        raise RemoteError(f"Malformed character response: {e}", retryable=False) from e


class AuthApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def login(self, email: str, password: str) -> AuthIdentity:
        body = self.client.request("POST", "/auth/login", {"email": email, "password": password})
        identity = _identity_from_response(body)
        self.client.auth.login(identity)
        return identity

    def register(self, username: str, email: str, password: str) -> AuthIdentity:
        body = self.client.request(
            "POST", "/auth/register",
            {"username": username, "email": email, "password": password},
        )
        identity = _identity_from_response(body)
        self.client.auth.login(identity)
        return identity

    def logout(self):
        self.client.auth.logout()


class CharacterApi:
    """The caller's character collection on the remote service."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list(self) -> List[RemoteCharacter]:
        body = self.client.request("GET", "/characters")
        return [_character_from_response(item) for item in body or []]

    def get(self, remote_id: str) -> RemoteCharacter:
        return _character_from_response(self.client.request("GET", f"/characters/{remote_id}"))

    def create(self, name: str, data: str) -> RemoteCharacter:
        body = self.client.request("POST", "/characters", {"name": name, "data": data})
        return _character_from_response(body)

    def update(self, remote_id: str, name: Optional[str] = None,
               data: Optional[str] = None) -> RemoteCharacter:
        payload = {}
        if name is not None:
            payload["name"] = name
        if data is not None:
            payload["data"] = data
        body = self.client.request("PUT", f"/characters/{remote_id}", payload)
        return _character_from_response(body)

    def delete(self, remote_id: str) -> None:
        self.client.request("DELETE", f"/characters/{remote_id}")
