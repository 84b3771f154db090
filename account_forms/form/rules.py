"""
Declarative validation rules. Each rule is a small frozen dataclass tagged with a ``kind``,
so that a field's rule list is plain data: it can be dumped with ``to_dict``, restored with
``rule_from_dict`` and tested in isolation.

Rules never raise on unexpected value types, a value of the wrong type just fails the check.
"""

import dataclasses
import re
from collections.abc import Mapping
from typing import Any, ClassVar, Type

from account_forms.form.dates import compose_date
from account_forms.form.types import ValidationContext

_RULE_BY_KIND: dict[str, Type["Rule"]] = {}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclasses.dataclass(frozen=True)
class Rule:
    """Base class for rules; subclasses define ``message`` and implement ``check``"""

    kind: ClassVar[str]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        kind = cls.__dict__.get("kind")
        if kind is None:
            return
        if kind in _RULE_BY_KIND:
            raise ValueError(f"Duplicate rule kind: {kind!r}")
        _RULE_BY_KIND[kind] = cls

    def check(self, value: Any, context: ValidationContext) -> bool:
        raise NotImplementedError("Rule cannot be used directly, please use concrete subclasses")

    def to_dict(self) -> dict[str, Any]:
        dump: dict[str, Any] = {"kind": self.kind}
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if isinstance(value, Rule):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = list(value)
            dump[field.name] = value
        return dump


def rule_from_dict(dump: Mapping[str, Any]) -> Rule:
    params = dict(dump)
    kind = params.pop("kind", None)
    rule_cls = _RULE_BY_KIND.get(kind)  # type: ignore
    if rule_cls is None:
        raise ValueError(f"Unknown rule kind: {kind!r}")
    for name, value in params.items():
        if isinstance(value, Mapping) and "kind" in value:
            params[name] = rule_from_dict(value)
        elif isinstance(value, list):
            params[name] = tuple(value)
    return rule_cls(**params)


@dataclasses.dataclass(frozen=True)
class Required(Rule):
    message: str

    kind: ClassVar[str] = "required"

    def check(self, value: Any, context: ValidationContext) -> bool:
        return value is not None and value != ""


@dataclasses.dataclass(frozen=True)
class MinLength(Rule):
    min_length: int
    message: str

    kind: ClassVar[str] = "minLength"

    def check(self, value: Any, context: ValidationContext) -> bool:
        return isinstance(value, str) and len(value) >= self.min_length


@dataclasses.dataclass(frozen=True)
class MaxLength(Rule):
    max_length: int
    message: str

    kind: ClassVar[str] = "maxLength"

    def check(self, value: Any, context: ValidationContext) -> bool:
        return isinstance(value, str) and len(value) <= self.max_length


@dataclasses.dataclass(frozen=True)
class Pattern(Rule):
    """Passes if the regex is found anywhere in the string"""

    pattern: str
    message: str

    kind: ClassVar[str] = "pattern"

    def check(self, value: Any, context: ValidationContext) -> bool:
        return isinstance(value, str) and re.search(self.pattern, value) is not None


@dataclasses.dataclass(frozen=True)
class IntBetween(Rule):
    """Inclusive on both ends"""

    min_value: int
    max_value: int
    message: str

    kind: ClassVar[str] = "intBetween"

    def check(self, value: Any, context: ValidationContext) -> bool:
        return _is_int(value) and self.min_value <= value <= self.max_value


@dataclasses.dataclass(frozen=True)
class YearSince(Rule):
    """From the given year up to the current one, inclusive"""

    min_year: int
    message: str

    kind: ClassVar[str] = "yearSince"

    def check(self, value: Any, context: ValidationContext) -> bool:
        return _is_int(value) and self.min_year <= value <= context.today.year


@dataclasses.dataclass(frozen=True)
class OneOf(Rule):
    options: tuple[str, ...]
    message: str

    kind: ClassVar[str] = "oneOf"

    def check(self, value: Any, context: ValidationContext) -> bool:
        return isinstance(value, str) and value in self.options


@dataclasses.dataclass(frozen=True)
class Component(Rule):
    """Applies the wrapped rule to one component of a composite value; the error message
    is the wrapped rule's, but it is reported for the composite field as a whole"""

    component: str
    rule: Rule

    kind: ClassVar[str] = "component"

    @property
    def message(self) -> str:
        return self.rule.message

    def check(self, value: Any, context: ValidationContext) -> bool:
        if not isinstance(value, Mapping):
            return False
        return self.rule.check(value.get(self.component), context)


@dataclasses.dataclass(frozen=True)
class CalendarDate(Rule):
    """Day, month and year components must form a real date (e.g. no 31st of February)"""

    message: str

    kind: ClassVar[str] = "calendarDate"

    def check(self, value: Any, context: ValidationContext) -> bool:
        if not isinstance(value, Mapping):
            return False
        try:
            compose_date(value)
        except ValueError:
            return False
        return True
