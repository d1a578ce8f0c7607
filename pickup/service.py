"""Pickup request operations.

Every function receives the database, the acting user and (through the
actor) the organization explicitly. Notifications and analytics are queued
on the caller's ``BackgroundTasks`` so they run after the response and can
never roll back a state change.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from analytics.analytics import track_event
from auth.dependencies import Actor
from database.connection import transaction
from database.documents import as_date, date_to_datetime, serialize, to_object_id
from errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from geo.distance import distance_between
from models.enums import RequestStatus, UserRole, UserStatus
from models.pickup import PickupRequestCreate, PickupRequestResponse, PickupRequestUpdate
from models.service_day import ServiceDayResponse
from notifications.dispatcher import NotificationService
from pickup.conflicts import DUPLICATE_MESSAGE, assert_no_duplicate, insert_request, insert_series
from pickup.transitions import ensure_not_terminal, ensure_transition, status_fields
from scheduling.occurrences import resolve_occurrences, weekday_of
from scheduling.rules import validate_day_of_week, validate_end_date_limit, validate_not_in_past, validate_request_options
from scheduling.timing import CutoffAction, current_time, cutoff_message, service_start, validate_cutoff
from service_days.repository import get_service_day

logger = logging.getLogger(__name__)

REQUESTS = "pickup_requests"

REQUEST_TYPES = ("ALL", "PICKUP", "DROPOFF")


def request_from_document(doc: dict) -> PickupRequestResponse:
    data = serialize(doc)
    data["request_date"] = as_date(data.get("request_date"))
    data["end_date"] = as_date(data.get("end_date"))
    return PickupRequestResponse(**data)


async def load_request(db, organization_id: str, request_id: str, session=None) -> dict:
    doc = await db[REQUESTS].find_one(
        {"_id": to_object_id(request_id, "request ID"), "organization_id": organization_id}, session=session
    )
    if not doc:
        raise NotFoundError("Pickup request not found")
    return doc


async def _load_address(db, organization_id: str, address_id: str, user_id: str) -> dict:
    address = await db["addresses"].find_one(
        {"_id": to_object_id(address_id, "address ID"), "organization_id": organization_id, "user_id": user_id}
    )
    if not address:
        raise NotFoundError("Address not found")
    return address


async def _default_address(db, organization_id: str, user_id: str) -> Optional[dict]:
    return await db["addresses"].find_one({"organization_id": organization_id, "user_id": user_id, "is_default": True})


async def _driver_distance(db, organization_id: str, driver_id: str, address_id: Optional[str]) -> Optional[float]:
    """Distance from the driver's default address to the pickup address, if both are geocoded."""
    driver_address = await _default_address(db, organization_id, driver_id)
    if not driver_address or not address_id:
        return None
    pickup_address = await db["addresses"].find_one(
        {"_id": to_object_id(address_id, "address ID"), "organization_id": organization_id}
    )
    return distance_between(driver_address, pickup_address)


async def _resolve_target_user(db, actor: Actor, user_id: Optional[str]) -> str:
    if not actor.is_admin:
        if user_id and user_id != actor.id:
            raise ForbiddenError("You can only request pickups for yourself")
        return actor.id
    if not user_id:
        raise BadRequestError("User is required when booking on behalf of a member")
    user = await db["users"].find_one(
        {"_id": to_object_id(user_id, "user ID"), "organization_id": actor.organization_id}
    )
    if not user:
        raise NotFoundError("User not found")
    return user_id


def _check_request_date(
    service_day: ServiceDayResponse, request_date: date, now: datetime, action: CutoffAction
) -> None:
    """Past-date, weekday, service-period and cutoff checks for a candidate date."""
    try:
        validate_not_in_past(request_date, now.date())
        validate_day_of_week(service_day.weekdays, request_date)
        start = service_start(request_date, service_day.time)
    except ValueError as e:
        raise BadRequestError(str(e))
    if service_day.start_date and request_date < service_day.start_date:
        raise BadRequestError("Request date is before this service starts")
    if service_day.end_date and request_date > service_day.end_date:
        raise BadRequestError("Request date is after this service ends")
    if not validate_cutoff(action, start, now):
        raise BadRequestError(cutoff_message(action))


def _check_options(payload) -> None:
    try:
        validate_request_options(payload.is_pick_up, payload.is_drop_off, payload.is_group_ride, payload.number_of_group)
    except ValueError as e:
        raise BadRequestError(str(e))


def _request_document(base: dict, request_date: date, series_id: Optional[str] = None) -> dict:
    doc = dict(base)
    doc.update(
        request_date=date_to_datetime(request_date),
        day_of_week=weekday_of(request_date),
        series_id=series_id,
    )
    return doc


async def _discard_series(db, series_oid) -> None:
    """Remove a half-inserted series when no transaction can roll it back."""
    removed = await db[REQUESTS].delete_many({"series_id": str(series_oid)})
    await db["pickup_series"].delete_one({"_id": series_oid})
    logger.warning(f"Series {series_oid} collided with an existing request; {removed.deleted_count} row(s) removed")


async def create_pickup_requests(
    db, actor: Actor, payload: PickupRequestCreate, tasks: BackgroundTasks, now: Optional[datetime] = None
) -> Tuple[List[dict], Optional[str]]:
    """Create a single request or a weekly recurring series.

    Returns the inserted documents and the series id (``None`` for a single ride).
    Validation runs before anything is persisted; a recurring series is
    inserted all-or-nothing.
    """
    now = now or current_time()
    organization_id = actor.organization_id

    _check_options(payload)
    try:
        validate_end_date_limit(payload.end_date, payload.request_date, payload.is_recurring)
    except ValueError as e:
        raise BadRequestError(str(e))

    service_day = await get_service_day(db, organization_id, payload.service_day_id)
    if not service_day.is_active:
        raise BadRequestError("This service is not currently active")

    user_id = await _resolve_target_user(db, actor, payload.user_id)
    await _load_address(db, organization_id, payload.address_id, user_id)
    _check_request_date(service_day, payload.request_date, now, CutoffAction.CREATE)

    created_at = datetime.utcnow()
    base = {
        "organization_id": organization_id,
        "user_id": user_id,
        "service_day_id": payload.service_day_id,
        "address_id": payload.address_id,
        "is_pick_up": payload.is_pick_up,
        "is_drop_off": payload.is_drop_off,
        "is_group_ride": payload.is_group_ride,
        "number_of_group": payload.number_of_group,
        "notes": payload.notes,
        "is_recurring": payload.is_recurring,
        "end_date": date_to_datetime(payload.end_date),
        "driver_id": None,
        "distance": None,
        **status_fields(RequestStatus.PENDING),
        "created_at": created_at,
        "updated_at": created_at,
    }

    series_id = None
    async with transaction(db) as session:
        await assert_no_duplicate(
            db, organization_id, user_id, payload.service_day_id, payload.request_date, session=session
        )
        if not payload.is_recurring:
            docs = [await insert_request(db, _request_document(base, payload.request_date), session=session)]
        else:
            end = payload.end_date
            if service_day.end_date and service_day.end_date < end:
                end = service_day.end_date
            dates = resolve_occurrences(payload.request_date, [weekday_of(payload.request_date)], end_date=end)
            series = await db["pickup_series"].insert_one(
                {"organization_id": organization_id, "user_id": user_id, "created_at": created_at},
                session=session,
            )
            series_id = str(series.inserted_id)
            try:
                docs = await insert_series(
                    db, [_request_document(base, day, series_id) for day in dates], session=session
                )
            except ConflictError:
                if session is None:
                    await _discard_series(db, series.inserted_id)
                raise

    logger.info(f"Created {len(docs)} pickup request(s) for user {user_id} on service {payload.service_day_id}")
    tasks.add_task(
        track_event,
        db,
        "pickup_request",
        actor.id,
        organization_id,
        {
            "request_ids": [str(doc["_id"]) for doc in docs],
            "service_day_id": payload.service_day_id,
            "is_recurring": payload.is_recurring,
            "created_by_admin": actor.is_admin,
        },
    )
    return docs, series_id


async def _set_checked(db, query: dict, update: dict, session=None) -> Optional[dict]:
    try:
        return await db[REQUESTS].find_one_and_update(
            query, update, return_document=ReturnDocument.AFTER, session=session
        )
    except DuplicateKeyError:
        raise ConflictError(DUPLICATE_MESSAGE) from None


async def update_pickup_request(
    db,
    actor: Actor,
    request_id: str,
    payload: PickupRequestUpdate,
    tasks: BackgroundTasks,
    now: Optional[datetime] = None,
) -> List[dict]:
    """Edit one request, or it and every later open request of its series."""
    now = now or current_time()
    organization_id = actor.organization_id

    existing = await load_request(db, organization_id, request_id)
    if not actor.is_admin and existing["user_id"] != actor.id:
        raise ForbiddenError("You can only change your own pickup requests")
    ensure_not_terminal(existing["status"])
    _check_options(payload)

    user_id = existing["user_id"]
    service_day = await get_service_day(db, organization_id, payload.service_day_id)
    await _load_address(db, organization_id, payload.address_id, user_id)
    _check_request_date(service_day, payload.request_date, now, CutoffAction.UPDATE)

    changes = {
        "service_day_id": payload.service_day_id,
        "address_id": payload.address_id,
        "is_pick_up": payload.is_pick_up,
        "is_drop_off": payload.is_drop_off,
        "is_group_ride": payload.is_group_ride,
        "number_of_group": payload.number_of_group,
        "notes": payload.notes,
        "updated_at": datetime.utcnow(),
    }

    if not payload.update_series:
        async with transaction(db) as session:
            await assert_no_duplicate(
                db,
                organization_id,
                user_id,
                payload.service_day_id,
                payload.request_date,
                exclude_request_ids=[request_id],
                session=session,
            )
            updated = await _set_checked(
                db,
                {"_id": existing["_id"], "organization_id": organization_id},
                {
                    "$set": {
                        **changes,
                        "request_date": date_to_datetime(payload.request_date),
                        "day_of_week": weekday_of(payload.request_date),
                    }
                },
                session=session,
            )
        docs = [updated]
    else:
        docs = await _update_series(db, existing, payload, changes)

    tasks.add_task(
        track_event,
        db,
        "pickup_update",
        actor.id,
        organization_id,
        {"request_id": request_id, "update_series": payload.update_series, "updated": len(docs)},
    )
    return docs


async def _update_series(db, existing: dict, payload: PickupRequestUpdate, changes: dict) -> List[dict]:
    series_id = existing.get("series_id")
    if not series_id:
        raise BadRequestError("This request is not part of a recurring series")
    organization_id = existing["organization_id"]
    user_id = existing["user_id"]

    series_filter = {
        "organization_id": organization_id,
        "series_id": series_id,
        "request_date": {"$gte": existing["request_date"]},
        "status": {"$in": [RequestStatus.PENDING.value, RequestStatus.ACCEPTED.value]},
    }
    members = await db[REQUESTS].find(series_filter).sort("request_date", 1).to_list(length=None)
    member_ids = [str(doc["_id"]) for doc in members]

    async with transaction(db) as session:
        if as_date(existing["request_date"]) == payload.request_date:
            if payload.service_day_id != existing["service_day_id"]:
                for doc in members:
                    await assert_no_duplicate(
                        db,
                        organization_id,
                        user_id,
                        payload.service_day_id,
                        doc["request_date"],
                        exclude_request_ids=member_ids,
                        session=session,
                    )
            await db[REQUESTS].update_many(series_filter, {"$set": changes}, session=session)
        else:
            new_dates = resolve_occurrences(
                payload.request_date, [weekday_of(payload.request_date)], count=len(members)
            )
            for day in new_dates:
                await assert_no_duplicate(
                    db,
                    organization_id,
                    user_id,
                    payload.service_day_id,
                    day,
                    exclude_request_ids=member_ids,
                    session=session,
                )
            pairs = list(zip(members, new_dates))
            # Members keep their relative order; move from the far end so no two share a date mid-way
            if payload.request_date > as_date(existing["request_date"]):
                pairs.reverse()
            for doc, day in pairs:
                await _set_checked(
                    db,
                    {"_id": doc["_id"]},
                    {"$set": {**changes, "request_date": date_to_datetime(day), "day_of_week": weekday_of(day)}},
                    session=session,
                )

    logger.info(f"Updated {len(members)} request(s) of series {series_id}")
    ids = [doc["_id"] for doc in members]
    return await db[REQUESTS].find({"_id": {"$in": ids}}).sort("request_date", 1).to_list(length=None)


def _filters(
    actor: Actor,
    status: Optional[str],
    request_type: Optional[str],
    request_date: Optional[date],
    service_day_id: Optional[str],
) -> dict:
    where = {"organization_id": actor.organization_id}
    if actor.role is UserRole.USER:
        where["user_id"] = actor.id
    if status and status.upper() != "ALL":
        try:
            where["status"] = RequestStatus(status.upper()).value
        except ValueError:
            raise BadRequestError(f"Unknown status {status!r}")
    if request_type:
        request_type = request_type.upper()
        if request_type not in REQUEST_TYPES:
            raise BadRequestError(f"Unknown request type {request_type!r}")
        if request_type == "PICKUP":
            where["is_pick_up"] = True
        elif request_type == "DROPOFF":
            where["is_drop_off"] = True
    if request_date:
        where["request_date"] = date_to_datetime(request_date)
    if service_day_id:
        where["service_day_id"] = service_day_id
    return where


async def _request_stats(db, actor: Actor) -> dict:
    base = {"organization_id": actor.organization_id}
    if actor.is_driver:
        return {
            "my_accepted": await db[REQUESTS].count_documents(
                {**base, "driver_id": actor.id, "status": RequestStatus.ACCEPTED.value}
            ),
            "available": await db[REQUESTS].count_documents({**base, "status": RequestStatus.PENDING.value}),
            "total_completed": await db[REQUESTS].count_documents(
                {**base, "driver_id": actor.id, "status": RequestStatus.COMPLETED.value}
            ),
        }
    if actor.role is UserRole.USER:
        base["user_id"] = actor.id
    stats = {"total": await db[REQUESTS].count_documents(base)}
    for status in RequestStatus:
        stats[status.value.lower()] = await db[REQUESTS].count_documents({**base, "status": status.value})
    return stats


async def list_pickup_requests(
    db,
    actor: Actor,
    page: int = 1,
    page_size: int = 10,
    status: Optional[str] = None,
    request_type: Optional[str] = None,
    request_date: Optional[date] = None,
    service_day_id: Optional[str] = None,
    search: Optional[str] = None,
    max_distance: Optional[float] = None,
) -> dict:
    where = _filters(actor, status, request_type, request_date, service_day_id)

    if search:
        users = await db["users"].find(
            {"organization_id": actor.organization_id, "name": {"$regex": re.escape(search.strip()), "$options": "i"}},
            {"_id": 1},
        ).to_list(length=None)
        matching = [str(user["_id"]) for user in users]
        if "user_id" in where:
            where["$and"] = [{"user_id": {"$in": matching}}]
        else:
            where["user_id"] = {"$in": matching}

    driver_address = None
    if not actor.is_driver:
        max_distance = None
    elif max_distance is None:
        driver = await db["users"].find_one({"_id": to_object_id(actor.id, "user ID")})
        max_distance = driver.get("max_distance") if driver else None
    if max_distance:
        driver_address = await _default_address(db, actor.organization_id, actor.id)

    skip = (page - 1) * page_size
    if max_distance and driver_address and driver_address.get("latitude") is not None:
        # Distance is computed per address, so filter in memory before paginating
        candidates = await db[REQUESTS].find(where).sort("created_at", -1).to_list(length=None)
        address_ids = list({to_object_id(doc["address_id"], "address ID") for doc in candidates})
        found = await db["addresses"].find({"_id": {"$in": address_ids}}).to_list(length=None)
        addresses = {str(addr["_id"]): addr for addr in found}
        nearby = []
        for doc in candidates:
            distance = distance_between(driver_address, addresses.get(doc["address_id"]))
            if distance is None or distance <= max_distance:
                nearby.append(doc)
        total_count = len(nearby)
        docs = nearby[skip : skip + page_size]
    else:
        total_count = await db[REQUESTS].count_documents(where)
        docs = await db[REQUESTS].find(where).sort("created_at", -1).skip(skip).limit(page_size).to_list(length=None)

    total_pages = math.ceil(total_count / page_size) if total_count else 0
    return {
        "requests": [request_from_document(doc) for doc in docs],
        "page": page,
        "page_size": page_size,
        "total_count": total_count,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
        "stats": await _request_stats(db, actor),
    }


async def accept_request(db, actor: Actor, request_id: str, tasks: BackgroundTasks) -> dict:
    organization_id = actor.organization_id
    existing = await load_request(db, organization_id, request_id)
    ensure_transition(existing["status"], RequestStatus.ACCEPTED)

    distance = await _driver_distance(db, organization_id, actor.id, existing.get("address_id"))
    updated = await db[REQUESTS].find_one_and_update(
        {"_id": existing["_id"], "organization_id": organization_id, "status": RequestStatus.PENDING.value},
        {
            "$set": {
                **status_fields(RequestStatus.ACCEPTED),
                "driver_id": actor.id,
                "distance": distance,
                "updated_at": datetime.utcnow(),
            }
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        logger.info(f"Driver {actor.id} lost the race to accept request {request_id}")
        raise ConflictError("This request has already been accepted by another driver")

    logger.info(f"Driver {actor.id} accepted request {request_id}")
    tasks.add_task(
        NotificationService.notify_user,
        db,
        updated["user_id"],
        "Pickup accepted",
        f"Your pickup on {as_date(updated['request_date'])} has been accepted by {actor.name}.",
    )
    tasks.add_task(
        track_event, db, "pickup_acceptance", actor.id, organization_id, {"request_id": request_id, "distance": distance}
    )
    return updated


async def assign_driver(db, actor: Actor, request_id: str, driver_id: str, tasks: BackgroundTasks) -> dict:
    """Admin assignment; also reassigns an already accepted request."""
    organization_id = actor.organization_id
    existing = await load_request(db, organization_id, request_id)
    current = ensure_not_terminal(existing["status"])
    if current is RequestStatus.PENDING:
        ensure_transition(current, RequestStatus.ACCEPTED)

    driver = await db["users"].find_one(
        {
            "_id": to_object_id(driver_id, "driver ID"),
            "organization_id": organization_id,
            "role": UserRole.TRANSPORTATION_TEAM.value,
            "status": UserStatus.APPROVED.value,
        }
    )
    if not driver:
        raise NotFoundError("Driver not found")

    distance = await _driver_distance(db, organization_id, driver_id, existing.get("address_id"))
    updated = await db[REQUESTS].find_one_and_update(
        {"_id": existing["_id"], "organization_id": organization_id, "status": current.value},
        {
            "$set": {
                **status_fields(RequestStatus.ACCEPTED),
                "driver_id": driver_id,
                "distance": distance,
                "updated_at": datetime.utcnow(),
            }
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ConflictError("The request changed while assigning a driver, please retry")

    previous_driver = existing.get("driver_id")
    logger.info(f"Admin {actor.id} assigned driver {driver_id} to request {request_id}")
    tasks.add_task(
        NotificationService.notify_user,
        db,
        driver_id,
        "New ride assigned",
        f"You have been assigned a pickup on {as_date(updated['request_date'])}.",
    )
    if previous_driver and previous_driver != driver_id:
        tasks.add_task(
            NotificationService.notify_user,
            db,
            previous_driver,
            "Ride reassigned",
            f"The pickup on {as_date(updated['request_date'])} was reassigned to another driver.",
        )
    tasks.add_task(
        track_event,
        db,
        "driver_assigned",
        actor.id,
        organization_id,
        {"request_id": request_id, "driver_id": driver_id, "previous_driver_id": previous_driver},
    )
    return updated


async def complete_request(
    db, actor: Actor, request_id: str, tasks: BackgroundTasks, now: Optional[datetime] = None
) -> dict:
    organization_id = actor.organization_id
    existing = await load_request(db, organization_id, request_id)
    if existing.get("driver_id") != actor.id:
        raise NotFoundError("Pickup request not found or not assigned to you")
    ensure_transition(existing["status"], RequestStatus.COMPLETED)

    updated = await db[REQUESTS].find_one_and_update(
        {"_id": existing["_id"], "driver_id": actor.id, "status": RequestStatus.ACCEPTED.value},
        {
            "$set": {
                **status_fields(RequestStatus.COMPLETED),
                "completed_at": now or current_time(),
                "updated_at": datetime.utcnow(),
            }
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ConflictError("The request changed before it could be completed")

    tasks.add_task(
        track_event, db, "pickup_completion", actor.id, organization_id, {"request_id": request_id}
    )
    return updated


def _clean_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise BadRequestError("Cancellation reason is required")
    return reason


async def _check_cancel_cutoff(db, existing: dict, now: datetime) -> None:
    # Only accepted rides are held to the cancel cutoff
    if existing["status"] != RequestStatus.ACCEPTED.value:
        return
    service_day =await get_service_day(db, existing["organization_id"], existing["service_day_id"])
    try:
        start = service_start(existing["request_date"], service_day.time)
    except ValueError as e:
        raise BadRequestError(str(e))
    if not validate_cutoff(CutoffAction.CANCEL, start, now, status=existing["status"]):
        raise BadRequestError(cutoff_message(CutoffAction.CANCEL))


async def cancel_request(
    db, actor: Actor, request_id: str, reason: str, tasks: BackgroundTasks, now: Optional[datetime] = None
) -> dict:
    """Member or admin cancellation; CANCELLED is final."""
    now = now or current_time()
    reason = _clean_reason(reason)
    organization_id = actor.organization_id

    existing = await load_request(db, organization_id, request_id)
    if not actor.is_admin and existing["user_id"] != actor.id:
        raise NotFoundError("Pickup request not found or not authorized")
    ensure_transition(existing["status"], RequestStatus.CANCELLED)
    await _check_cancel_cutoff(db, existing, now)

    notes = existing.get("notes")
    cancel_note = f"CANCELLED: {reason}"
    updated = await db[REQUESTS].find_one_and_update(
        {"_id": existing["_id"], "status": existing["status"]},
        {
            "$set": {
                **status_fields(RequestStatus.CANCELLED),
                "notes": f"{notes}\n\n{cancel_note}" if notes else cancel_note,
                "driver_id": None,
                "updated_at": datetime.utcnow(),
            }
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ConflictError("The request changed before it could be cancelled, please retry")

    driver_id = existing.get("driver_id")
    if driver_id and existing["status"] == RequestStatus.ACCEPTED.value:
        tasks.add_task(
            NotificationService.notify_user,
            db,
            driver_id,
            "Ride cancelled",
            f"The pickup on {as_date(existing['request_date'])} was cancelled. Reason: {reason}",
        )
    tasks.add_task(
        track_event,
        db,
        "pickup_cancellation",
        actor.id,
        organization_id,
        {"request_id": request_id, "previous_status": existing["status"], "reason": reason},
    )
    return updated


async def driver_cancel_request(
    db, actor: Actor, request_id: str, reason: str, tasks: BackgroundTasks, now: Optional[datetime] = None
) -> dict:
    """A driver hands an accepted ride back to the pending pool."""
    now = now or current_time()
    reason = _clean_reason(reason)
    organization_id = actor.organization_id

    existing = await load_request(db, organization_id, request_id)
    if existing.get("driver_id") != actor.id:
        raise NotFoundError("Pickup request not found or not assigned to you")
    ensure_transition(existing["status"], RequestStatus.PENDING)
    await _check_cancel_cutoff(db, existing, now)

    async with transaction(db) as session:
        updated = await db[REQUESTS].find_one_and_update(
            {"_id": existing["_id"], "driver_id": actor.id, "status": RequestStatus.ACCEPTED.value},
            {
                "$set": {
                    **status_fields(RequestStatus.PENDING),
                    "driver_id": None,
                    "distance": None,
                    "updated_at": datetime.utcnow(),
                }
            },
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if not updated:
            raise ConflictError("The request changed before it could be released, please retry")
        await db["driver_request_cancels"].insert_one(
            {
                "organization_id": organization_id,
                "driver_id": actor.id,
                "request_id": request_id,
                "note": reason,
                "created_at": datetime.utcnow(),
            },
            session=session,
        )

    logger.info(f"Driver {actor.id} released request {request_id}")
    tasks.add_task(
        NotificationService.notify_user,
        db,
        existing["user_id"],
        "Driver cancelled",
        f"Your pickup on {as_date(existing['request_date'])} was cancelled by the driver. "
        f"Reason: {reason}. Another driver will be assigned shortly.",
    )
    tasks.add_task(
        track_event,
        db,
        "driver_pickup_cancellation",
        actor.id,
        organization_id,
        {"request_id": request_id, "reason": reason},
    )
    return updated


async def driver_stats(db, actor: Actor, now: Optional[datetime] = None) -> dict:
    now = now or current_time()
    start_of_day = datetime(now.year, now.month, now.day)
    base = {"organization_id": actor.organization_id}
    mine = {**base, "driver_id": actor.id}
    return {
        "my_active_requests": await db[REQUESTS].count_documents({**mine, "status": RequestStatus.ACCEPTED.value}),
        "available_requests": await db[REQUESTS].count_documents({**base, "status": RequestStatus.PENDING.value}),
        "completed_today": await db[REQUESTS].count_documents(
            {
                **mine,
                "status": RequestStatus.COMPLETED.value,
                "completed_at": {"$gte": start_of_day, "$lt": start_of_day + timedelta(days=1)},
            }
        ),
        "total_completed": await db[REQUESTS].count_documents({**mine, "status": RequestStatus.COMPLETED.value}),
    }
