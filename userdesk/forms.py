"""Form state for creating and editing user records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Mapping, Optional, TypeVar, Union

from .models import UserRecord

T = TypeVar("T")

Validator = Callable[[str], Optional[str]]

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class FormValidationError(ValueError):
    """Raised when a submission is rejected before reaching the network."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors: Dict[str, str] = dict(errors)
        summary = "; ".join(f"{name}: {message}" for name, message in self.errors.items())
        super().__init__(f"Form has invalid fields ({summary})")


@dataclass(frozen=True)
class Idle:
    """No record is loaded; submitting creates a new record."""


@dataclass(frozen=True)
class Editing:
    """``record`` is loaded into the form; submitting updates it."""

    record: UserRecord


FormMode = Union[Idle, Editing]

IDLE = Idle()


def email_shaped(value: str) -> Optional[str]:
    if _EMAIL_PATTERN.match(value):
        return None
    return "Email must be a valid address"


def date_shaped(value: str) -> Optional[str]:
    if _DATE_PATTERN.match(value):
        try:
            date.fromisoformat(value)
        except ValueError:
            pass
        else:
            return None
    return "Birthday must be a date (YYYY-MM-DD)"


@dataclass
class _Field:
    required: Optional[str]
    validator: Optional[Validator]
    value: str = ""


class FormController:
    """Hold field values, validation errors and the edit target."""

    def __init__(self) -> None:
        self._fields: Dict[str, _Field] = {}
        self._errors: Dict[str, str] = {}
        self._mode: FormMode = IDLE

    def register(
        self,
        name: str,
        *,
        required: Optional[str] = None,
        validator: Optional[Validator] = None,
    ) -> None:
        if name in self._fields:
            raise ValueError(f"Field '{name}' is already registered")
        self._fields[name] = _Field(required=required, validator=validator)

    @property
    def mode(self) -> FormMode:
        return self._mode

    @property
    def editing(self) -> Optional[UserRecord]:
        if isinstance(self._mode, Editing):
            return self._mode.record
        return None

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self._errors)

    def values(self) -> Dict[str, str]:
        return {name: field.value for name, field in self._fields.items()}

    def get_value(self, name: str) -> str:
        return self._field(name).value

    def set_value(self, name: str, value: str) -> None:
        self._field(name).value = "" if value is None else str(value)

    def is_empty(self) -> bool:
        return all(not field.value for field in self._fields.values())

    def load(self, record: UserRecord) -> None:
        """Enter edit mode for ``record``, replacing any in-progress input."""

        for name, value in record.fields().items():
            if name in self._fields:
                self.set_value(name, value)
        self._errors = {}
        self._mode = Editing(record)

    def reset(self) -> None:
        for field in self._fields.values():
            field.value = ""
        self._errors = {}
        self._mode = IDLE

    def validate(self) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        for name, field in self._fields.items():
            value = field.value.strip()
            if not value:
                if field.required:
                    errors[name] = field.required
                continue
            if field.validator is not None:
                message = field.validator(value)
                if message:
                    errors[name] = message
        self._errors = errors
        return dict(errors)

    def handle_submit(self, callback: Callable[[Dict[str, str]], T]) -> T:
        """Validate the form and pass its values to ``callback``.

        Raises :class:`FormValidationError` without calling ``callback`` when
        any field is invalid.
        """

        errors = self.validate()
        if errors:
            raise FormValidationError(errors)
        values = {name: value.strip() for name, value in self.values().items()}
        return callback(values)

    def _field(self, name: str) -> _Field:
        try:
            return self._fields[name]
        except KeyError as exc:
            raise KeyError(f"Unknown form field '{name}'") from exc


def build_user_form() -> FormController:
    """Return a form with the four user fields registered."""

    form = FormController()
    form.register("fname", required="First name is required")
    form.register("lname", required="Last name is required")
    form.register("email", required="Email is required", validator=email_shaped)
    form.register("birthday", required="Birthday is required", validator=date_shaped)
    return form


__all__ = [
    "Editing",
    "FormController",
    "FormMode",
    "FormValidationError",
    "IDLE",
    "Idle",
    "build_user_form",
    "date_shaped",
    "email_shaped",
]
