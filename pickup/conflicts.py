import logging
from typing import Iterable, List, Optional

from pymongo.errors import BulkWriteError, DuplicateKeyError

from database.documents import date_to_datetime, to_object_id
from errors import ConflictError

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "You already have a pickup request for this service occurrence"


async def find_duplicate(
    db,
    organization_id: str,
    user_id: str,
    service_day_id: str,
    request_date,
    exclude_request_ids: Iterable[str] = (),
    session=None,
) -> Optional[dict]:
    query = {
        "organization_id": organization_id,
        "user_id": user_id,
        "service_day_id": service_day_id,
        "request_date": date_to_datetime(request_date),
        "active": True,
    }
    excluded = [to_object_id(request_id, "request ID") for request_id in exclude_request_ids]
    if excluded:
        query["_id"] = {"$nin": excluded}
    return await db["pickup_requests"].find_one(query, session=session)


async def assert_no_duplicate(
    db,
    organization_id: str,
    user_id: str,
    service_day_id: str,
    request_date,
    exclude_request_ids: Iterable[str] = (),
    session=None,
) -> None:
    """Raise ``ConflictError`` if the user already holds an active request for this date."""
    existing = await find_duplicate(
        db, organization_id, user_id, service_day_id, request_date, exclude_request_ids, session
    )
    if existing:
        logger.info(
            "Duplicate pickup request for user %s, service %s on %s", user_id, service_day_id, request_date
        )
        raise ConflictError(DUPLICATE_MESSAGE)


async def insert_request(db, document: dict, session=None) -> dict:
    """Insert one request, turning a unique-index violation into ``ConflictError``."""
    try:
        result = await db["pickup_requests"].insert_one(document, session=session)
    except DuplicateKeyError:
        raise ConflictError(DUPLICATE_MESSAGE) from None
    document["_id"] = result.inserted_id
    return document


async def insert_series(db, documents: List[dict], session=None) -> List[dict]:
    try:
        result = await db["pickup_requests"].insert_many(documents, ordered=True, session=session)
    except BulkWriteError as exc:
        write_errors = exc.details.get("writeErrors", [])
        if any(error.get("code") == 11000 for error in write_errors):
            raise ConflictError(DUPLICATE_MESSAGE) from None
        raise
    for document, inserted_id in zip(documents, result.inserted_ids):
        document["_id"] = inserted_id
    return documents
