"""User storage backing the development REST server."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .models import USER_FIELDS, UserRecord

logger = logging.getLogger("userdesk.store")


class UserNotFoundError(KeyError):
    """Raised when a user id is not present in the store."""


class DuplicateUserError(ValueError):
    """Raised when creating a user whose id already exists."""


class UserStore:
    """Ordered in-memory user collection, optionally mirrored to a JSON file.

    The file uses the ``{"users": [...]}`` layout and is rewritten after every
    successful mutation.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._users: Dict[str, UserRecord] = {}
        self._lock = threading.Lock()
        if path is not None and path.exists():
            self._load(path)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def list(self) -> List[UserRecord]:
        with self._lock:
            return list(self._users.values())

    def get(self, user_id: str) -> UserRecord:
        with self._lock:
            try:
                return self._users[user_id]
            except KeyError as exc:
                raise UserNotFoundError(user_id) from exc

    def create(self, record: UserRecord) -> UserRecord:
        with self._lock:
            if record.id in self._users:
                raise DuplicateUserError(f"User '{record.id}' already exists")
            users = dict(self._users)
            users[record.id] = record
            self._commit(users)
        logger.info("Created user %s", record.id)
        return record

    def update(self, user_id: str, fields: Mapping[str, str]) -> UserRecord:
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise UserNotFoundError(user_id)
            merged = current.fields()
            merged.update({name: str(value) for name, value in fields.items() if name in USER_FIELDS})
            updated = UserRecord(id=user_id, **merged)
            users = dict(self._users)
            users[user_id] = updated
            self._commit(users)
        logger.info("Updated user %s", user_id)
        return updated

    def delete(self, user_id: str) -> UserRecord:
        with self._lock:
            users = dict(self._users)
            try:
                removed = users.pop(user_id)
            except KeyError as exc:
                raise UserNotFoundError(user_id) from exc
            self._commit(users)
        logger.info("Deleted user %s", user_id)
        return removed

    def _load(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, dict) or not isinstance(raw.get("users", []), list):
            raise ValueError(f"Data file {path} must contain a 'users' list")
        for item in raw.get("users", []):
            record = UserRecord.from_payload(item)
            self._users[record.id] = record
        logger.info("Loaded %d user(s) from %s", len(self._users), path)

    def _commit(self, users: Dict[str, UserRecord]) -> None:
        # Memory only changes once the file write has succeeded.
        if self._path is not None:
            self._persist(self._path, users)
        self._users = users

    @staticmethod
    def _persist(path: Path, users: Dict[str, UserRecord]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"users": [record.to_payload() for record in users.values()]}
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


__all__ = ["DuplicateUserError", "UserNotFoundError", "UserStore"]
