"""FastAPI development backend that serves the users REST API."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, field_validator

from .forms import date_shaped, email_shaped
from .models import UserRecord, new_user_id
from .store import DuplicateUserError, UserNotFoundError, UserStore

logger = logging.getLogger("userdesk.server")


def _require_text(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be empty")
    return stripped


def _check_email(value: str) -> str:
    message = email_shaped(value)
    if message:
        raise ValueError(message)
    return value


def _check_birthday(value: str) -> str:
    message = date_shaped(value)
    if message:
        raise ValueError(message)
    return value


class UserPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    fname: str
    lname: str
    email: str
    birthday: str

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("fname", "lname", "email", "birthday")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("birthday")
    @classmethod
    def _birthday(cls, value: str) -> str:
        return _check_birthday(value)


class UserUpdatePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fname: Optional[str] = None
    lname: Optional[str] = None
    email: Optional[str] = None
    birthday: Optional[str] = None

    @field_validator("fname", "lname", "email", "birthday")
    @classmethod
    def _non_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _require_text(value)

    @field_validator("email")
    @classmethod
    def _email(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_email(value)

    @field_validator("birthday")
    @classmethod
    def _birthday(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_birthday(value)


class UserResponse(BaseModel):
    id: str
    fname: str
    lname: str
    email: str
    birthday: str


def user_to_response(record: UserRecord) -> UserResponse:
    return UserResponse(**record.to_payload())


def create_app(
    *,
    store: UserStore | None = None,
    data_file: Path | None = None,
) -> FastAPI:
    """Create the development users API."""

    if store is None:
        store = UserStore(data_file)

    app = FastAPI(
        title="userdesk development backend",
        description="In-memory users REST API for local development",
        version="1.0.0",
    )
    app.state.store = store

    def _not_found(user_id: str) -> HTTPException:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User '{user_id}' not found")

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/users", response_model=List[UserResponse])
    def list_users() -> List[UserResponse]:
        return [user_to_response(record) for record in store.list()]

    @app.get("/users/{user_id}", response_model=UserResponse)
    def read_user(user_id: str) -> UserResponse:
        try:
            return user_to_response(store.get(user_id))
        except UserNotFoundError as exc:
            raise _not_found(user_id) from exc

    @app.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    def create_user(payload: UserPayload) -> UserResponse:
        record = UserRecord(
            id=payload.id or new_user_id(),
            fname=payload.fname,
            lname=payload.lname,
            email=payload.email,
            birthday=payload.birthday,
        )
        try:
            created = store.create(record)
        except DuplicateUserError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return user_to_response(created)

    @app.put("/users/{user_id}", response_model=UserResponse)
    def update_user(user_id: str, payload: UserUpdatePayload) -> UserResponse:
        fields = payload.model_dump(exclude_none=True)
        try:
            updated = store.update(user_id, fields)
        except UserNotFoundError as exc:
            raise _not_found(user_id) from exc
        return user_to_response(updated)

    @app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_user(user_id: str) -> Response:
        try:
            store.delete(user_id)
        except UserNotFoundError as exc:
            raise _not_found(user_id) from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["UserPayload", "UserResponse", "UserUpdatePayload", "create_app", "user_to_response"]
