"""Redis-backed storage for shop-scoped data.

Layout (all keys under ``storeforge:``):

- ``shop:{domain}:projects``           hash of project id -> project JSON
- ``shop:{domain}:customers``          set of customer ids
- ``shop:{domain}:customer:{id}``      hash of the customer's personal fields
- ``compliance:ledger:{topic}:{domain}:{request_key}``
                                       idempotency marker (``pending``/``done``)

Everything a shop owns sits under its ``shop:{domain}:`` prefix so that a
shop redaction is a single prefix scan.
"""

import json
import re
from typing import Any

import redis.asyncio as aioredis

KEY_PREFIX = "storeforge"
DELETE_BATCH_SIZE = 500
CLAIM_TTL_SECONDS = 900  # a crashed attempt frees its claim after this

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(value: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", value)


def shop_key(shop_domain: str, *parts: str) -> str:
    """Build a key scoped to one shop."""
    return ":".join((KEY_PREFIX, "shop", shop_domain, *parts))


def ledger_key(topic: str, shop_domain: str, request_key: str) -> str:
    """Build the idempotency marker key for one compliance request."""
    return ":".join((KEY_PREFIX, "compliance", "ledger", topic, shop_domain, request_key))


class ShopDataStore:
    """Read, write and erase the data Storeforge keeps per shop."""

    def __init__(self, redis: aioredis.Redis, *, ledger_ttl: int) -> None:
        self.redis = redis
        self.ledger_ttl = ledger_ttl

    # --- Store projects ---

    async def put_project(self, shop_domain: str, project_id: str, project: dict[str, Any]) -> None:
        await self.redis.hset(shop_key(shop_domain, "projects"), project_id, json.dumps(project))

    async def list_projects(self, shop_domain: str) -> list[dict[str, Any]]:
        raw = await self.redis.hvals(shop_key(shop_domain, "projects"))
        return [json.loads(value) for value in raw]

    # --- Customer records ---

    async def put_customer(
        self, shop_domain: str, customer_id: str, fields: dict[str, str]
    ) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(shop_key(shop_domain, "customer", customer_id), mapping=fields)
            pipe.sadd(shop_key(shop_domain, "customers"), customer_id)
            await pipe.execute()

    async def get_customer(self, shop_domain: str, customer_id: str) -> dict[str, str] | None:
        record: dict[str, str] = await self.redis.hgetall(
            shop_key(shop_domain, "customer", customer_id)
        )
        return record or None

    async def delete_customer(self, shop_domain: str, customer_id: str) -> int:
        """Erase one customer's record. Returns the number of keys removed."""
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(shop_key(shop_domain, "customer", customer_id))
            pipe.srem(shop_key(shop_domain, "customers"), customer_id)
            deleted, _ = await pipe.execute()
        return int(deleted)

    async def delete_shop(self, shop_domain: str) -> int:
        """Erase every key scoped to the shop. Returns the number removed."""
        pattern = f"{_escape_glob(shop_key(shop_domain))}:*"
        removed = 0
        batch: list[str] = []
        async for key in self.redis.scan_iter(match=pattern, count=DELETE_BATCH_SIZE):
            batch.append(key)
            if len(batch) >= DELETE_BATCH_SIZE:
                removed += await self.redis.delete(*batch)
                batch.clear()
        if batch:
            removed += await self.redis.delete(*batch)
        return removed

    # --- Idempotency ledger ---

    async def claim(self, key: str) -> bool:
        """Mark a request as in progress. False if it was already claimed."""
        return bool(await self.redis.set(key, "pending", nx=True, ex=CLAIM_TTL_SECONDS))

    async def claim_state(self, key: str) -> str | None:
        """Current marker value: ``pending``, ``done`` or None when unclaimed."""
        state: str | None = await self.redis.get(key)
        return state

    async def complete(self, key: str) -> None:
        await self.redis.set(key, "done", ex=self.ledger_ttl)

    async def release(self, key: str) -> None:
        """Drop a claim so a retry can run the request again."""
        await self.redis.delete(key)
