import re
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Optional

from telebot import types as tg

from account_forms.form.accounts import GENDERS
from account_forms.form.dates import MONTHS
from account_forms.utils.strings import mask


class InputKind(Enum):
    TEXT = "text"
    SECRET = "secret"  # the user's message is deleted after reading
    DATE = "date"  # parsed into day/month/year components
    CHOICE = "choice"  # reply keyboard with fixed options


_DATE_SEPARATORS = re.compile(r"[\s./-]+")


def _int_or_none(s: str) -> Optional[int]:
    try:
        return int(s)
    except ValueError:
        return None


def _canonical_month(s: str) -> str:
    if s.isdigit():
        n = int(s)
        return MONTHS[n - 1] if 1 <= n <= len(MONTHS) else s
    for month in MONTHS:
        if s.lower() == month.lower() or (len(s) >= 3 and month.lower().startswith(s.lower())):
            return month
    return s


def parse_date_components(text: str) -> dict[str, Any]:
    """
    '29 February 2024', '29 feb 2024', '29.02.2024', '29/02/2024' -> {"day": 29, "month": "February", "year": 2024}

    Does not validate anything: unparseable parts end up as None (day, year) or as they were typed (month),
    and the form schema reports them.
    """
    parts = [p for p in _DATE_SEPARATORS.split(text.strip()) if p]
    if len(parts) != 3:
        return {"day": None, "month": "", "year": None}
    day, month, year = parts
    return {"day": _int_or_none(day), "month": _canonical_month(month), "year": _int_or_none(year)}


@dataclass
class FieldPrompt:
    """How a form field is asked for in the chat"""

    field_name: str
    query_message: str
    descr: str  # used in summaries and error lists
    kind: InputKind = InputKind.TEXT
    choices: list[str] = dataclass_field(default_factory=list)

    def __post_init__(self) -> None:
        if self.kind is InputKind.CHOICE and not self.choices:
            raise ValueError(f"Choice field {self.field_name!r} must list its choices")

    def parse(self, text: str) -> Any:
        if self.kind is InputKind.DATE:
            return parse_date_components(text)
        elif self.kind is InputKind.SECRET:
            return text
        else:
            return text.strip()

    def value_to_str(self, value: Any) -> str:
        if self.kind is InputKind.SECRET:
            return mask(str(value or ""))
        elif self.kind is InputKind.DATE and isinstance(value, dict):
            return " ".join(str(value.get(c) or "?") for c in ("day", "month", "year"))
        else:
            return str(value)

    def reply_markup(self) -> tg.ReplyMarkup:
        if self.kind is not InputKind.CHOICE:
            return tg.ReplyKeyboardRemove()
        markup = tg.ReplyKeyboardMarkup(resize_keyboard=True, one_time_keyboard=True, row_width=2)
        markup.add(*[tg.KeyboardButton(choice) for choice in self.choices])
        return markup


SIGNUP_PROMPTS = [
    FieldPrompt("name", "Enter your full name.", descr="Name"),
    FieldPrompt("password", "Enter your password.", descr="Password", kind=InputKind.SECRET),
    FieldPrompt(
        "dateOfBirth",
        "Enter your date of birth, e.g. 29 February 2000 or 29.02.2000.",
        descr="Date of birth",
        kind=InputKind.DATE,
    ),
    FieldPrompt("gender", "Select your gender.", descr="Gender", kind=InputKind.CHOICE, choices=list(GENDERS)),
    FieldPrompt("graduatedFrom", "Where did you graduate from?", descr="Institution"),
    FieldPrompt("currentlyWorking", "What is your current role?", descr="Current role"),
]

LOGIN_PROMPTS = [
    FieldPrompt("name", "Enter your name.", descr="Name"),
    FieldPrompt("password", "Enter your password.", descr="Password", kind=InputKind.SECRET),
]
