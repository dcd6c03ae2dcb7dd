# src/dex_pricing/infrastructure/pool_reader.py
"""Pool state reads from the DEX contract's read-only getters.

read_fresh()        — always hits the ledger; used before pricing a submission.
read_for_display()  — Redis cache with a short TTL; display only.
"""

import asyncio
import json
import logging
from datetime import datetime
from decimal import Decimal

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.dex_common.datetime_utils import utc_now
from src.dex_common.errors import InternalError
from src.dex_common.units import base_to_tokens
from src.dex_ledger.domain.repository import LedgerClientProtocol
from src.dex_pricing.domain.models import PoolState

logger = logging.getLogger(__name__)

_CACHE_KEY = "dex:pool:{contract_id}"


class PoolReader:
    def __init__(
        self,
        ledger: LedgerClientProtocol,
        redis: aioredis.Redis | None = None,
        contract_address: str | None = None,
        contract_name: str | None = None,
        cache_ttl_seconds: int | None = None,
    ) -> None:
        self._ledger = ledger
        self._redis = redis
        self._address = contract_address or settings.DEX_CONTRACT_ADDRESS
        self._name = contract_name or settings.DEX_CONTRACT_NAME
        self._ttl = cache_ttl_seconds or settings.POOL_DISPLAY_CACHE_TTL_SECONDS

    @property
    def cache_key(self) -> str:
        return _CACHE_KEY.format(contract_id=f"{self._address}.{self._name}")

    async def read_fresh(self) -> PoolState:
        sbtc, tokens, locked = await asyncio.gather(
            self._getter("get-sbtc-balance"),
            self._getter("get-token-balance"),
            self._getter("get-total-locked"),
        )
        pool = PoolState(
            sbtc_balance=sbtc,
            token_balance=base_to_tokens(tokens),
            locked_tokens=base_to_tokens(locked),
            read_at=utc_now(),
        )
        logger.debug(
            "Pool read: sbtc=%d tokens=%s locked=%s", sbtc, pool.token_balance, pool.locked_tokens
        )
        if self._redis is not None:
            await self._store(pool)
        return pool

    async def read_for_display(self) -> PoolState:
        if self._redis is not None:
            try:
                cached = await self._redis.get(self.cache_key)
            except RedisError as exc:
                logger.warning("Pool cache read failed, reading ledger: %s", exc)
                cached = None
            if cached:
                return _decode(cached)
        return await self.read_fresh()

    async def _getter(self, function_name: str) -> int:
        value = await self._ledger.read_only_call(self._address, self._name, function_name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise InternalError(f"{function_name} returned non-uint value: {value!r}")
        return value

    async def _store(self, pool: PoolState) -> None:
        try:
            await self._redis.set(self.cache_key, _encode(pool), ex=self._ttl)
        except RedisError as exc:
            logger.warning("Pool cache write failed: %s", exc)


def _encode(pool: PoolState) -> str:
    return json.dumps({
        "sbtc_balance": pool.sbtc_balance,
        "token_balance": str(pool.token_balance),
        "locked_tokens": str(pool.locked_tokens),
        "read_at": pool.read_at.isoformat() if pool.read_at else None,
    })


def _decode(raw: str) -> PoolState:
    data = json.loads(raw)
    return PoolState(
        sbtc_balance=int(data["sbtc_balance"]),
        token_balance=Decimal(data["token_balance"]),
        locked_tokens=Decimal(data["locked_tokens"]),
        read_at=datetime.fromisoformat(data["read_at"]) if data.get("read_at") else None,
    )
