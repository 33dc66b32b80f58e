"""Keep the user form and the cached user list in step with the server.

Every mutation follows the same policy: send the request, and only once the
server has accepted it invalidate the cached user list so the next read
re-fetches the server's view. The client never patches the list locally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from .api_client import UserDeskError, UsersAPIClient
from .cache import CacheKey, CacheService
from .forms import FormController, FormMode, build_user_form
from .models import USER_FIELDS, UserRecord, new_user_id

logger = logging.getLogger("userdesk.sync")

T = TypeVar("T")

USERS_KEY: CacheKey = ("users",)
SENTINEL_KEY: CacheKey = ("random",)
SENTINEL_VALUE = {"value": "Some random data"}


class MutationStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class MutationState:
    """Lifecycle of the most recent call of one mutation kind."""

    status: MutationStatus = MutationStatus.IDLE
    variables: Any = None
    result: Any = None
    error: Optional[BaseException] = None


class UserSync:
    """Create, update and delete user records on behalf of the form."""

    def __init__(
        self,
        api: UsersAPIClient,
        cache: CacheService,
        form: FormController | None = None,
        *,
        id_factory: Callable[[], str] = new_user_id,
    ) -> None:
        self._api = api
        self._cache = cache
        self._form = form or build_user_form()
        self._id_factory = id_factory
        self._generation = 0
        self._mutations: Dict[str, MutationState] = {
            "create": MutationState(),
            "update": MutationState(),
            "delete": MutationState(),
        }

    @property
    def form(self) -> FormController:
        return self._form

    @property
    def mode(self) -> FormMode:
        return self._form.mode

    @property
    def mutations(self) -> Dict[str, MutationState]:
        return dict(self._mutations)

    def list_users(self) -> List[UserRecord]:
        return self._cache.fetch(USERS_KEY, self._api.list_users)

    def edit_load(self, record: UserRecord) -> None:
        self._form.load(record)
        self._generation += 1
        logger.debug("Editing user %s", record.id)

    def cancel_edit(self) -> None:
        self._reset_form()

    def submit(self) -> Optional[UserRecord]:
        """Validate the form, then update the edit target or create a new record."""

        return self._form.handle_submit(self._dispatch)

    def create(self, values: Mapping[str, str]) -> UserRecord:
        record = UserRecord(id=self._id_factory(), **{name: values[name] for name in USER_FIELDS})

        def on_success(_result: UserRecord, generation: int) -> None:
            self._cache.invalidate(USERS_KEY)
            if generation == self._generation:
                self._reset_form()

        return self._mutate("create", record.to_payload(), lambda: self._api.create_user(record), on_success)

    def update(self, user_id: str, values: Mapping[str, str]) -> Optional[UserRecord]:
        fields = {name: values[name] for name in USER_FIELDS if name in values}

        def on_success(_result: Optional[UserRecord], generation: int) -> None:
            self._cache.write(SENTINEL_KEY, dict(SENTINEL_VALUE))
            self._cache.invalidate(USERS_KEY)
            if generation == self._generation:
                self._reset_form()

        return self._mutate(
            "update",
            {"id": user_id, "updated_data": fields},
            lambda: self._api.update_user(user_id, fields),
            on_success,
        )

    def delete(self, user_id: str) -> None:
        def on_success(_result: None, _generation: int) -> None:
            self._cache.invalidate(USERS_KEY)
            editing = self._form.editing
            if editing is not None and editing.id == user_id:
                logger.info("User %s was deleted while being edited; leaving edit mode", user_id)
                self._reset_form()

        self._mutate("delete", user_id, lambda: self._api.delete_user(user_id), on_success)

    def _dispatch(self, values: Dict[str, str]) -> Optional[UserRecord]:
        editing = self._form.editing
        if editing is not None:
            return self.update(editing.id, values)
        return self.create(values)

    def _reset_form(self) -> None:
        self._form.reset()
        self._generation += 1

    def _mutate(
        self,
        kind: str,
        variables: Any,
        call: Callable[[], T],
        on_success: Callable[[T, int], None],
    ) -> T:
        generation = self._generation
        state = MutationState(status=MutationStatus.PENDING, variables=variables)
        self._mutations[kind] = state
        logger.info("Starting %s mutation: %s", kind, variables)

        try:
            result = call()
        except Exception as exc:
            self._mutations[kind] = replace(state, status=MutationStatus.ERROR, error=exc)
            if isinstance(exc, UserDeskError):
                logger.error("Failed to %s user: %s", kind, exc)
            else:
                logger.exception("Failed to %s user", kind)
            raise

        self._mutations[kind] = replace(state, status=MutationStatus.SUCCESS, result=result)
        on_success(result, generation)
        return result


__all__ = [
    "MutationState",
    "MutationStatus",
    "SENTINEL_KEY",
    "SENTINEL_VALUE",
    "USERS_KEY",
    "UserSync",
]
