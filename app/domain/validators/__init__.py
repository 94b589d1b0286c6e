"""Domain validators. Pure validation functions."""

from app.domain.validators.history_validator import (
    normalize_action,
    validate_json_mapping,
    validate_required_fields,
    validate_target_type,
)

__all__ = [
    "normalize_action",
    "validate_json_mapping",
    "validate_required_fields",
    "validate_target_type",
]
