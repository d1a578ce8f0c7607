import logging
from contextlib import asynccontextmanager

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

import config

logger = logging.getLogger(__name__)


def create_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(config.MONGODB_URL)


async def get_database(request: Request) -> AsyncIOMotorDatabase:
    """Dependency returning the database attached to the app at startup."""
    return request.app.mongodb


async def ensure_indexes(db) -> None:
    # At most one active request per user/service/date; cancelled rows drop out of the index
    await db["pickup_requests"].create_index(
        [
            ("organization_id", ASCENDING),
            ("user_id", ASCENDING),
            ("service_day_id", ASCENDING),
            ("request_date", ASCENDING),
        ],
        unique=True,
        partialFilterExpression={"active": True},
        name="uniq_active_request",
    )
    await db["pickup_requests"].create_index([("series_id", ASCENDING)])
    await db["pickup_requests"].create_index([("driver_id", ASCENDING), ("status", ASCENDING)])
    await db["users"].create_index(
        [("organization_id", ASCENDING), ("email", ASCENDING)], unique=True, name="uniq_org_email"
    )
    await db["organizations"].create_index([("slug", ASCENDING)], unique=True)
    await db["addresses"].create_index([("user_id", ASCENDING)])
    await db["appeals"].create_index(
        [("organization_id", ASCENDING), ("user_id", ASCENDING)], unique=True, name="uniq_user_appeal"
    )
    await db["notifications"].create_index([("recipient_id", ASCENDING), ("created_at", ASCENDING)])
    logger.info("MongoDB indexes ensured")


@asynccontextmanager
async def transaction(db):
    """Yield a session bound to a transaction, or None when transactions are off.

    Operations must pass the yielded value as ``session=``; ``None`` makes them
    plain single-document writes.
    """
    if not config.MONGODB_TRANSACTIONS:
        yield None
        return
    async with await db.client.start_session() as session:
        async with session.start_transaction():
            yield session
