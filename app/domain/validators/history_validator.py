"""Validators for history event rules. Pure functions, no infrastructure or DB access."""

import json
from typing import Any, Dict, Mapping, Optional, Union

from app.domain.exceptions import DomainValidationError
from app.domain.models.history import HistoryAction, TargetType


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_required_fields(**fields: Any) -> None:
    """Raise DomainValidationError naming every missing (None or blank) field."""
    missing = [name for name, value in fields.items() if _is_blank(value)]
    if missing:
        raise DomainValidationError(f"Missing required field(s): {', '.join(missing)}")


def validate_target_type(target_type: Union[TargetType, str]) -> TargetType:
    """Coerce to TargetType. Raises DomainValidationError for unknown kinds."""
    if isinstance(target_type, TargetType):
        return target_type
    try:
        return TargetType(target_type)
    except ValueError as e:
        allowed = ", ".join(t.value for t in TargetType)
        raise DomainValidationError(
            f"targetType must be one of {allowed}, got {target_type!r}"
        ) from e


def normalize_action(action: Union[HistoryAction, str]) -> str:
    """Actions are open-ended; well-known ones are reduced to their string value."""
    if isinstance(action, HistoryAction):
        return action.value
    if not isinstance(action, str):
        raise DomainValidationError(f"action must be a string, got {type(action).__name__}")
    return action.strip()


def validate_json_mapping(name: str, value: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Ensure an opaque mapping (diff/metadata) has string keys and is JSON-serializable.
    Returns a plain dict copy; contents are never interpreted.
    """
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise DomainValidationError(f"{name} must be a mapping")
    if not all(isinstance(k, str) for k in value):
        raise DomainValidationError(f"{name} keys must be strings")
    try:
        json.dumps(value)
    except (TypeError, ValueError) as e:
        raise DomainValidationError(f"{name} must be JSON-serializable") from e
    return dict(value)
