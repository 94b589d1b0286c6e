"""Redis-backed idempotency replay cache for recorded history events."""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from redis.exceptions import RedisError

from app.application.exceptions import StorageError
from app.domain.models.history import HistoryEvent, TargetType
from app.infrastructure.cache.redis_client import RedisClient

IDEMPOTENCY_PREFIX = "history:idempotency:"
IDEMPOTENCY_TTL = 300  # 5 minutes


def _cache_key(company_id: str, key: str) -> str:
    return f"{IDEMPOTENCY_PREFIX}{company_id}:{key}"


class RedisIdempotencyCache:
    """Implements IdempotencyCache. Keys are namespaced per tenant."""

    def __init__(self, redis_client: RedisClient, ttl: int = IDEMPOTENCY_TTL) -> None:
        self._redis = redis_client
        self._ttl = ttl

    async def get(self, company_id: str, key: str) -> Optional[HistoryEvent]:
        try:
            raw = await self._redis.get_cache(_cache_key(company_id, key))
        except RedisError as e:
            raise StorageError(f"Idempotency cache unavailable: {e}") from e
        if not raw:
            return None
        data = json.loads(raw)
        return HistoryEvent(
            id=data["id"],
            company_id=data["companyId"],
            user_id=data["userId"],
            target_type=TargetType(data["targetType"]),
            target_id=data["targetId"],
            action=data["action"],
            actor_user_id=data["actorUserId"],
            occurred_at=datetime.fromisoformat(data["occurredAt"]),
            reason=data.get("reason"),
            diff=data.get("diff"),
            metadata=data.get("metadata"),
            idempotency_key=key,
        )

    async def put(self, event: HistoryEvent) -> None:
        if event.idempotency_key is None:
            return
        payload: Dict[str, Any] = event.to_dict()
        try:
            await self._redis.set_cache(
                _cache_key(event.company_id, event.idempotency_key),
                json.dumps(payload),
                ttl=self._ttl,
            )
        except RedisError as e:
            raise StorageError(f"Idempotency cache unavailable: {e}") from e
