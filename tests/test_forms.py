import pytest

from userdesk.forms import (
    IDLE,
    Editing,
    FormController,
    FormValidationError,
    build_user_form,
    date_shaped,
    email_shaped,
)
from userdesk.models import UserRecord

ADA = UserRecord("u1", "Ada", "Lovelace", "ada@x.com", "1815-12-10")


def _fill(form: FormController, **values: str) -> None:
    for name, value in values.items():
        form.set_value(name, value)


def test_empty_submission_reports_every_required_field() -> None:
    form = build_user_form()
    called = []

    with pytest.raises(FormValidationError) as excinfo:
        form.handle_submit(called.append)

    assert called == []
    assert excinfo.value.errors == {
        "fname": "First name is required",
        "lname": "Last name is required",
        "email": "Email is required",
        "birthday": "Birthday is required",
    }
    assert form.errors == excinfo.value.errors


def test_partial_submission_reports_only_missing_fields() -> None:
    form = build_user_form()
    _fill(form, fname="Ada", email="ada@x.com", birthday="1815-12-10", lname="   ")

    with pytest.raises(FormValidationError) as excinfo:
        form.handle_submit(lambda values: values)

    assert excinfo.value.errors == {"lname": "Last name is required"}


def test_valid_submission_passes_stripped_values() -> None:
    form = build_user_form()
    _fill(form, fname=" Ada ", lname="Lovelace", email="ada@x.com", birthday="1815-12-10")

    values = form.handle_submit(lambda submitted: submitted)

    assert values == {"fname": "Ada", "lname": "Lovelace", "email": "ada@x.com", "birthday": "1815-12-10"}
    assert form.errors == {}


def test_shape_validators() -> None:
    assert email_shaped("ada@x.com") is None
    assert email_shaped("ada.x.com") is not None
    assert date_shaped("1815-12-10") is None
    assert date_shaped("1815-13-10") is not None
    assert date_shaped("10/12/1815") is not None


def test_load_enters_edit_mode_and_overwrites_input() -> None:
    form = build_user_form()
    _fill(form, fname="Someone", lname="Else")
    form.validate()

    form.load(ADA)

    assert form.mode == Editing(ADA)
    assert form.editing is ADA
    assert form.values() == ADA.fields()
    assert form.errors == {}


def test_reset_returns_to_idle_with_empty_fields() -> None:
    form = build_user_form()
    form.load(ADA)

    form.reset()

    assert form.mode is IDLE
    assert form.editing is None
    assert form.is_empty()


def test_unknown_and_duplicate_fields_are_rejected() -> None:
    form = build_user_form()
    with pytest.raises(KeyError):
        form.set_value("nickname", "Ada")
    with pytest.raises(ValueError):
        form.register("fname")
