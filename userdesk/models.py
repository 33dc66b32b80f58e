"""Domain models exchanged with the users REST API."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Dict, Mapping

USER_FIELDS = ("fname", "lname", "email", "birthday")


def new_user_id() -> str:
    """Return a fresh identifier for a record created on the client."""

    return str(uuid.uuid4())


@dataclass(frozen=True)
class UserRecord:
    """Immutable snapshot of a user record as stored by the server."""

    id: str
    fname: str
    lname: str
    email: str
    birthday: str

    @staticmethod
    def from_payload(data: Mapping[str, object]) -> "UserRecord":
        """Create a :class:`UserRecord` from a decoded response body."""
        required_fields = {"id", *USER_FIELDS}
        missing = required_fields - data.keys()
        if missing:
            raise ValueError(f"User payload is missing fields: {', '.join(sorted(missing))}")

        return UserRecord(
            id=str(data["id"]),
            fname=str(data["fname"]),
            lname=str(data["lname"]),
            email=str(data["email"]),
            birthday=str(data["birthday"]),
        )

    @property
    def display_name(self) -> str:
        return f"{self.fname} {self.lname}".strip()

    def fields(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in USER_FIELDS}

    def to_payload(self) -> Dict[str, str]:
        return {"id": self.id, **self.fields()}


__all__ = ["USER_FIELDS", "UserRecord", "new_user_id"]
