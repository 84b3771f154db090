import datetime
from dataclasses import dataclass
from typing import Any, Union

FieldName = str
FormState = dict[FieldName, Any]
ErrorState = dict[FieldName, str]
SubmissionPayload = dict[FieldName, Any]


@dataclass(frozen=True)
class ValidationContext:
    """Everything a rule may look at besides the field's own value"""

    record: FormState
    today: datetime.date


@dataclass(frozen=True)
class Valid:
    payload: SubmissionPayload

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    errors: ErrorState

    @property
    def ok(self) -> bool:
        return False


ValidationResult = Union[Valid, Invalid]
