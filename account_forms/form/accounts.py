"""Schemas of the account forms. Field names match the backend's JSON keys."""

from account_forms.form.dates import MONTHS, compose_date
from account_forms.form.rules import (
    CalendarDate,
    Component,
    IntBetween,
    MaxLength,
    MinLength,
    OneOf,
    Pattern,
    Required,
    YearSince,
)
from account_forms.form.schema import FieldSchema, FormSchema
from account_forms.form.types import FormState

GENDERS = ("prefer-not-to-say", "MALE", "FEMALE", "OTHER")
DEFAULT_GENDER = "OTHER"

EARLIEST_BIRTH_YEAR = 1900

SIGNUP_PASSWORD_RULES = (
    MinLength(8, "Password must be at least 8 characters"),
    Pattern("[A-Z]", "Password must contain at least one uppercase letter"),
    Pattern("[a-z]", "Password must contain at least one lowercase letter"),
    Pattern("[0-9]", "Password must contain at least one number"),
    Pattern("[^A-Za-z0-9]", "Password must contain at least one special character"),
)

SIGNUP_SCHEMA = FormSchema(
    [
        FieldSchema(
            "name",
            (
                MinLength(2, "Name must be at least 2 characters"),
                MaxLength(50, "Name must be at most 50 characters"),
            ),
        ),
        FieldSchema("password", SIGNUP_PASSWORD_RULES),
        FieldSchema(
            "dateOfBirth",
            (
                Component("day", IntBetween(1, 31, "Day must be between 1 and 31")),
                Component("month", OneOf(MONTHS, "Please select a valid month")),
                Component(
                    "year",
                    YearSince(EARLIEST_BIRTH_YEAR, f"Year must be between {EARLIEST_BIRTH_YEAR} and the current year"),
                ),
                CalendarDate("Please enter a valid date"),
            ),
            normalizer=compose_date,
        ),
        FieldSchema("gender", (OneOf(GENDERS, "Please select a gender"),)),
        FieldSchema(
            "graduatedFrom",
            (
                MinLength(2, "Institution name must be at least 2 characters"),
                MaxLength(100, "Institution name must be at most 100 characters"),
            ),
        ),
        FieldSchema(
            "currentlyWorking",
            (
                MinLength(2, "Current role must be at least 2 characters"),
                MaxLength(100, "Current role must be at most 100 characters"),
            ),
        ),
    ]
)

LOGIN_SCHEMA = FormSchema(
    [
        FieldSchema(
            "name",
            (
                Required("Name is required"),
                MinLength(2, "Name must be at least 2 characters"),
            ),
        ),
        FieldSchema("password", (Required("Password is required"),)),
    ]
)


def initial_signup_state() -> FormState:
    """What the signup form holds before the user has typed anything"""
    return {
        "name": "",
        "password": "",
        "dateOfBirth": {"day": 0, "month": "", "year": 0},
        "gender": DEFAULT_GENDER,
        "graduatedFrom": "",
        "currentlyWorking": "",
    }


def initial_login_state() -> FormState:
    return {"name": "", "password": ""}
