import datetime
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, Callable, Collection, Mapping, Optional

from account_forms.form.rules import Rule, rule_from_dict
from account_forms.form.types import (
    ErrorState,
    FieldName,
    Invalid,
    SubmissionPayload,
    ValidationContext,
    ValidationResult,
    Valid,
)


@dataclass(frozen=True)
class RuleCheck:
    rule: Rule
    passed: bool

    @property
    def message(self) -> str:
        return self.rule.message  # type: ignore


@dataclass(frozen=True)
class FieldSchema:
    name: FieldName
    rules: tuple[Rule, ...]
    # applied to the value of a valid field to get its payload form, e.g. day/month/year -> date
    normalizer: Optional[Callable[[Any], Any]] = dataclass_field(default=None, kw_only=True, compare=False)

    def first_error(self, value: Any, context: ValidationContext) -> Optional[str]:
        for rule in self.rules:
            if not rule.check(value, context):
                return rule.message  # type: ignore
        return None

    def checklist(self, value: Any, context: ValidationContext) -> list[RuleCheck]:
        """Evaluates all the rules, without stopping at the first failing one; used for
        hints like 'password must contain...'"""
        return [RuleCheck(rule, rule.check(value, context)) for rule in self.rules]

    def normalize(self, value: Any) -> Any:
        if self.normalizer is None:
            return value
        return self.normalizer(value)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "rules": [r.to_dict() for r in self.rules]}


class FormSchema:
    """Ordered collection of field schemas. Validation is a pure function of the record
    (and of the current date, used by year rules)"""

    def __init__(self, fields: Collection[FieldSchema]):
        if not fields:
            raise ValueError("Fields list can't be empty")
        field_names = [f.name for f in fields]
        for fn in field_names:
            if field_names.count(fn) > 1:
                raise ValueError(f"All fields must have unique names, but there is at least one duplicate: {fn}!")
        self.fields = list(fields)
        self.fields_by_name = {f.name: f for f in self.fields}

    @property
    def field_names(self) -> list[FieldName]:
        return [f.name for f in self.fields]

    def _context(self, record: Mapping[str, Any], today: Optional[datetime.date]) -> ValidationContext:
        return ValidationContext(record=dict(record), today=today or datetime.date.today())

    def validate(self, record: Mapping[str, Any], today: Optional[datetime.date] = None) -> ValidationResult:
        context = self._context(record, today)
        errors: ErrorState = {}
        for field in self.fields:
            error = field.first_error(record.get(field.name), context)
            if error is not None:
                errors[field.name] = error
        if errors:
            return Invalid(errors)
        payload: SubmissionPayload = {field.name: field.normalize(record.get(field.name)) for field in self.fields}
        return Valid(payload)

    def validate_field(
        self, name: FieldName, record: Mapping[str, Any], today: Optional[datetime.date] = None
    ) -> Optional[str]:
        return self.fields_by_name[name].first_error(record.get(name), self._context(record, today))

    def checklist(
        self, name: FieldName, record: Mapping[str, Any], today: Optional[datetime.date] = None
    ) -> list[RuleCheck]:
        return self.fields_by_name[name].checklist(record.get(name), self._context(record, today))

    def to_dict(self) -> list[dict[str, Any]]:
        return [f.to_dict() for f in self.fields]

    @classmethod
    def from_dict(
        cls,
        dump: list[Mapping[str, Any]],
        normalizers: Optional[Mapping[FieldName, Callable[[Any], Any]]] = None,
    ) -> "FormSchema":
        """Normalizers are code, not data, so they are not part of the dump and can be passed separately"""
        normalizers = normalizers or {}
        return FormSchema(
            [
                FieldSchema(
                    name=field_dump["name"],
                    rules=tuple(rule_from_dict(r) for r in field_dump["rules"]),
                    normalizer=normalizers.get(field_dump["name"]),
                )
                for field_dump in dump
            ]
        )
