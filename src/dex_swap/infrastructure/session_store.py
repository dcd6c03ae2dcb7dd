# src/dex_swap/infrastructure/session_store.py
"""Redis persistence for per-wallet SessionContext (duplicate marker, precheck flag)."""

import json

import redis.asyncio as aioredis

from src.dex_swap.domain.models import SessionContext

_KEY = "dex:session:{wallet}"
SESSION_TTL_SECONDS = 7 * 24 * 3600


class SessionStore:
    def __init__(self, redis: aioredis.Redis, ttl_seconds: int = SESSION_TTL_SECONDS) -> None:
        self._redis = redis
        self._ttl = ttl_seconds

    async def load(self, wallet_address: str) -> SessionContext:
        raw = await self._redis.get(_KEY.format(wallet=wallet_address))
        if not raw:
            return SessionContext(wallet_address=wallet_address)
        return SessionContext.from_dict(json.loads(raw))

    async def save(self, ctx: SessionContext) -> None:
        await self._redis.set(
            _KEY.format(wallet=ctx.wallet_address),
            json.dumps(ctx.to_dict()),
            ex=self._ttl,
        )
