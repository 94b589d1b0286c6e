"""Idempotency key resolution. Pure computation, no I/O."""

import hashlib
import json
from typing import Optional, Union

from app.domain.exceptions import DomainValidationError
from app.domain.models.history import TargetType

KEY_MAX_LENGTH = 255


def derive_idempotency_key(
    *,
    nonce: str,
    company_id: str,
    target_type: Union[TargetType, str],
    target_id: str,
    action: str,
    actor_user_id: str,
) -> str:
    """
    SHA-256 over a canonical JSON payload. Equal inputs always yield the same key.
    The nonce distinguishes separate logical requests that touch the same target.
    """
    payload = {
        "nonce": nonce,
        "companyId": company_id,
        "targetType": target_type.value if isinstance(target_type, TargetType) else target_type,
        "targetId": target_id,
        "action": action,
        "actorUserId": actor_user_id,
    }
    normalized = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def resolve_idempotency_key(
    *,
    explicit_key: Optional[str],
    nonce: Optional[str],
    company_id: str,
    target_type: Union[TargetType, str],
    target_id: str,
    action: str,
    actor_user_id: str,
) -> Optional[str]:
    """
    Explicit key wins and is used verbatim (trimmed). Otherwise a key is derived only when a
    nonce is supplied. Without either, the write is not deduplicated and None is returned.
    """
    if explicit_key is not None and explicit_key.strip():
        key = explicit_key.strip()
        if len(key) > KEY_MAX_LENGTH:
            raise DomainValidationError(
                f"idempotency key must be at most {KEY_MAX_LENGTH} characters"
            )
        return key
    if nonce is not None and nonce.strip():
        return derive_idempotency_key(
            nonce=nonce.strip(),
            company_id=company_id,
            target_type=target_type,
            target_id=target_id,
            action=action,
            actor_user_id=actor_user_id,
        )
    return None
