"""Declarative mapping of request validation failures to field messages.

Pydantic reports each failure with a location tuple and an error type. The
first string element of the location below the request section is the JSON
field name, and the error type selects a message template from
``FIELD_ERROR_RULES``. ``FIELD_RULE_OVERRIDES`` replaces the template for a
single field.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class FieldErrorRule:
    template: str
    # Key in the pydantic error ``ctx`` that fills ``{limit}``
    limit_key: Optional[str] = None


REQUIRED_RULE = FieldErrorRule("{field} is required")

FIELD_ERROR_RULES: Dict[str, FieldErrorRule] = {
    "missing": REQUIRED_RULE,
    "string_too_short": REQUIRED_RULE,
    "greater_than": FieldErrorRule("{field} must be greater than {limit}", "gt"),
}

# (field, error type) -> rule
FIELD_RULE_OVERRIDES: Dict[Tuple[str, str], FieldErrorRule] = {
    # 0 is not an owner identifier
    ("user_id", "greater_than"): REQUIRED_RULE,
}

DEFAULT_RULE = FieldErrorRule("{field} is not valid")

# Errors that mean the body could not be parsed at all
UNPARSEABLE_BODY_ERRORS = {"json_invalid", "model_attributes_type", "dict_type"}

REQUEST_SECTIONS = {"body", "query", "path", "header"}

_NO_INPUT = object()


def _field_name(loc: Iterable[Any]) -> Optional[str]:
    names = [part for part in loc if isinstance(part, str) and part not in REQUEST_SECTIONS]
    return names[0] if names else None


def _format_limit(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _rule_for(field: str, err: Mapping[str, Any]) -> FieldErrorRule:
    # An explicit JSON null for the field itself counts as an absent value
    loc = tuple(err.get("loc", ()))
    if loc and loc[-1] == field and err.get("input", _NO_INPUT) is None:
        return REQUIRED_RULE
    err_type = err.get("type", "")
    override = FIELD_RULE_OVERRIDES.get((field, err_type))
    if override is not None:
        return override
    return FIELD_ERROR_RULES.get(err_type, DEFAULT_RULE)


def is_unparseable_body(errors: Iterable[Mapping[str, Any]]) -> bool:
    return any(err.get("type") in UNPARSEABLE_BODY_ERRORS for err in errors)


def format_field_errors(errors: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """Turn pydantic error dicts into ``{field: message}``.

    Only the first failure per field is kept.
    """
    result: Dict[str, str] = {}
    for err in errors:
        field = _field_name(err.get("loc", ()))
        if field is None or field in result:
            continue
        rule = _rule_for(field, err)
        limit = ""
        if rule.limit_key:
            limit = _format_limit((err.get("ctx") or {}).get(rule.limit_key, ""))
        result[field] = rule.template.format(field=field, limit=limit)
    return result
