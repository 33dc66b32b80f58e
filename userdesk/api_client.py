"""HTTP client adapter for the users REST API."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional
from urllib.parse import quote

import httpx

from .config import ClientConfig
from .models import UserRecord

logger = logging.getLogger("userdesk.api")


class UserDeskError(RuntimeError):
    """Base class for errors raised while talking to the users API."""


class APIConnectionError(UserDeskError):
    """Raised when the users API could not be reached."""


class APIError(UserDeskError):
    """Raised when the users API answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    return cleaned.rstrip("/")


def _user_path(user_id: str) -> str:
    return f"/users/{quote(str(user_id), safe='')}"


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


class UsersAPIClient:
    """Issue CRUD requests for user records against a REST backend."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        if client is None:
            client = httpx.Client(
                base_url=_normalize_base_url(self._config.base_url),
                timeout=self._config.timeout,
            )
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client

    @property
    def base_url(self) -> str:
        return str(self._client.base_url).rstrip("/")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "UsersAPIClient":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def list_users(self) -> List[UserRecord]:
        data = self._request("GET", "/users")
        if not isinstance(data, list):
            raise UserDeskError("Users API returned an unexpected list payload")
        users: List[UserRecord] = []
        for item in data:
            if not isinstance(item, dict):
                raise UserDeskError("Users API returned a malformed user entry")
            try:
                users.append(UserRecord.from_payload(item))
            except ValueError as exc:
                raise UserDeskError(str(exc)) from exc
        return users

    def create_user(self, record: UserRecord) -> UserRecord:
        data = self._request("POST", "/users", json=record.to_payload())
        return self._record_or(data, record)

    def update_user(self, user_id: str, fields: Mapping[str, str]) -> Optional[UserRecord]:
        data = self._request("PUT", _user_path(user_id), json=dict(fields))
        if isinstance(data, dict):
            try:
                return UserRecord.from_payload(data)
            except ValueError:
                return None
        return None

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", _user_path(user_id))

    @staticmethod
    def _record_or(data: Any, fallback: UserRecord) -> UserRecord:
        # Servers may answer with an echo, a partial body or nothing at all.
        if isinstance(data, dict):
            try:
                return UserRecord.from_payload(data)
            except ValueError:
                return fallback
        return fallback

    def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        if not path.startswith("/"):
            path = "/" + path

        logger.debug("%s %s", method, path)
        try:
            response = self._client.request(method, path, json=json)
        except httpx.RequestError as exc:
            raise APIConnectionError(f"Failed to contact users API: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise UserDeskError(f"Invalid users API URL for {path}: {exc}") from exc

        if response.status_code >= 400:
            message = f"Users API request {method} {path} failed with status {response.status_code}"
            try:
                parsed = response.json()
            except ValueError:
                parsed = response.text
            message = _extract_error_message(parsed, message)
            raise APIError(response.status_code, message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UserDeskError("Users API returned an invalid response") from exc


__all__ = ["APIConnectionError", "APIError", "UserDeskError", "UsersAPIClient"]
