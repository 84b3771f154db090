import copy
import datetime
from typing import Any

import pytest

from account_forms.form.accounts import (
    DEFAULT_GENDER,
    LOGIN_SCHEMA,
    SIGNUP_SCHEMA,
    initial_login_state,
    initial_signup_state,
)
from account_forms.form.schema import FieldSchema, FormSchema
from account_forms.form.rules import MinLength
from account_forms.form.types import Invalid, Valid

TODAY = datetime.date(2024, 6, 1)


def valid_signup_record() -> dict[str, Any]:
    return {
        "name": "Alice Liddell",
        "password": "Abcdef1!",
        "dateOfBirth": {"day": 29, "month": "February", "year": 2000},
        "gender": "FEMALE",
        "graduatedFrom": "Oxford",
        "currentlyWorking": "Writer",
    }


def test_valid_signup_record():
    result = SIGNUP_SCHEMA.validate(valid_signup_record(), today=TODAY)
    assert isinstance(result, Valid)
    assert result.ok
    assert result.payload == {
        "name": "Alice Liddell",
        "password": "Abcdef1!",
        "dateOfBirth": datetime.date(2000, 2, 29),
        "gender": "FEMALE",
        "graduatedFrom": "Oxford",
        "currentlyWorking": "Writer",
    }


def test_validation_is_pure():
    record = valid_signup_record()
    record["name"] = "A"
    record_copy = copy.deepcopy(record)
    first = SIGNUP_SCHEMA.validate(record, today=TODAY)
    second = SIGNUP_SCHEMA.validate(record, today=TODAY)
    assert first == second
    assert record == record_copy


def test_extra_fields_are_ignored():
    record = valid_signup_record()
    record["isAdmin"] = True
    result = SIGNUP_SCHEMA.validate(record, today=TODAY)
    assert isinstance(result, Valid)
    assert "isAdmin" not in result.payload


def test_missing_fields_are_errors():
    result = SIGNUP_SCHEMA.validate({}, today=TODAY)
    assert isinstance(result, Invalid)
    assert not result.ok
    assert set(result.errors) == set(SIGNUP_SCHEMA.field_names)


def test_initial_signup_state():
    state = initial_signup_state()
    assert state["gender"] == DEFAULT_GENDER
    result = SIGNUP_SCHEMA.validate(state, today=TODAY)
    assert isinstance(result, Invalid)
    assert set(result.errors) == {"name", "password", "dateOfBirth", "graduatedFrom", "currentlyWorking"}
    assert result.errors["dateOfBirth"] == "Day must be between 1 and 31"


@pytest.mark.parametrize(
    "password, expected_error",
    [
        ("abc", "Password must be at least 8 characters"),
        ("abcdefgh", "Password must contain at least one uppercase letter"),
        ("ABCDEFGH", "Password must contain at least one lowercase letter"),
        ("Abcdefgh", "Password must contain at least one number"),
        ("Abcdefg1", "Password must contain at least one special character"),
        ("Abcdef1!", None),
    ],
)
def test_signup_password(password: str, expected_error: str | None):
    record = valid_signup_record()
    record["password"] = password
    assert SIGNUP_SCHEMA.validate_field("password", record, today=TODAY) == expected_error
    result = SIGNUP_SCHEMA.validate(record, today=TODAY)
    if expected_error is None:
        assert isinstance(result, Valid)
    else:
        assert isinstance(result, Invalid)
        assert result.errors == {"password": expected_error}


@pytest.mark.parametrize(
    "date_of_birth, expected_error",
    [
        ({"day": 29, "month": "February", "year": 2024}, None),
        ({"day": 29, "month": "February", "year": 2023}, "Please enter a valid date"),
        ({"day": 31, "month": "February", "year": 2024}, "Please enter a valid date"),
        ({"day": 31, "month": "November", "year": 2001}, "Please enter a valid date"),
        ({"day": 0, "month": "March", "year": 2001}, "Day must be between 1 and 31"),
        ({"day": 32, "month": "March", "year": 2001}, "Day must be between 1 and 31"),
        ({"day": 1, "month": "Mar", "year": 2001}, "Please select a valid month"),
        ({"day": 1, "month": "", "year": 2001}, "Please select a valid month"),
        ({"day": 1, "month": "March", "year": 1899}, "Year must be between 1900 and the current year"),
        ({"day": 1, "month": "March", "year": 2025}, "Year must be between 1900 and the current year"),
        ({"day": None, "month": "March", "year": 2001}, "Day must be between 1 and 31"),
        ("1 March 2001", "Day must be between 1 and 31"),
    ],
)
def test_signup_date_of_birth(date_of_birth: Any, expected_error: str | None):
    record = valid_signup_record()
    record["dateOfBirth"] = date_of_birth
    assert SIGNUP_SCHEMA.validate_field("dateOfBirth", record, today=TODAY) == expected_error


def test_year_bound_follows_today():
    record = valid_signup_record()
    record["dateOfBirth"] = {"day": 1, "month": "January", "year": 2025}
    assert isinstance(SIGNUP_SCHEMA.validate(record, today=TODAY), Invalid)
    assert isinstance(SIGNUP_SCHEMA.validate(record, today=datetime.date(2025, 1, 1)), Valid)


@pytest.mark.parametrize(
    "name, valid",
    [
        ("A", False),
        ("Al", True),
        ("A" * 50, True),
        ("A" * 51, False),
    ],
)
def test_signup_name_length(name: str, valid: bool):
    record = valid_signup_record()
    record["name"] = name
    result = SIGNUP_SCHEMA.validate(record, today=TODAY)
    assert result.ok is valid


def test_short_circuit_per_field():
    record = valid_signup_record()
    record["password"] = ""
    record["graduatedFrom"] = "X"
    result = SIGNUP_SCHEMA.validate(record, today=TODAY)
    assert isinstance(result, Invalid)
    assert result.errors == {
        "password": "Password must be at least 8 characters",
        "graduatedFrom": "Institution name must be at least 2 characters",
    }


def test_password_checklist():
    record = valid_signup_record()
    record["password"] = "abcdefg1"
    checklist = SIGNUP_SCHEMA.checklist("password", record, today=TODAY)
    assert [(c.message, c.passed) for c in checklist] == [
        ("Password must be at least 8 characters", True),
        ("Password must contain at least one uppercase letter", False),
        ("Password must contain at least one lowercase letter", True),
        ("Password must contain at least one number", True),
        ("Password must contain at least one special character", False),
    ]


@pytest.mark.parametrize(
    "record, expected_errors",
    [
        ({"name": "", "password": ""}, {"name": "Name is required", "password": "Password is required"}),
        ({"name": "A", "password": "x"}, {"name": "Name must be at least 2 characters"}),
        ({"name": "Alice", "password": "x"}, {}),
    ],
)
def test_login_schema(record: dict, expected_errors: dict):
    result = LOGIN_SCHEMA.validate(record, today=TODAY)
    if expected_errors:
        assert isinstance(result, Invalid)
        assert result.errors == expected_errors
    else:
        assert isinstance(result, Valid)
        assert result.payload == record


def test_initial_login_state_is_invalid():
    assert not LOGIN_SCHEMA.validate(initial_login_state()).ok


def test_schema_dump_and_load():
    restored = FormSchema.from_dict(SIGNUP_SCHEMA.to_dict(), normalizers={"dateOfBirth": datetime.date.fromisoformat})
    assert restored.field_names == SIGNUP_SCHEMA.field_names
    for original_field, restored_field in zip(SIGNUP_SCHEMA.fields, restored.fields):
        assert original_field.rules == restored_field.rules
    assert restored.to_dict() == SIGNUP_SCHEMA.to_dict()


def test_schema_construction_errors():
    with pytest.raises(ValueError):
        FormSchema([])
    with pytest.raises(ValueError):
        FormSchema(
            [
                FieldSchema("name", (MinLength(2, "short"),)),
                FieldSchema("name", (MinLength(3, "shorter"),)),
            ]
        )
