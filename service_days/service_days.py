# service_days.py

import logging
import math
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

import config
from analytics.analytics import track_event
from auth.dependencies import Actor, get_current_actor, require_roles
from database.connection import get_database, transaction
from database.documents import as_date, to_object_id
from errors import BadRequestError, NotFoundError
from models.enums import RequestStatus, UserRole
from models.service_day import OccurrencesResponse, ServiceDayCreate, ServiceDayOption, ServiceDayResponse
from notifications.dispatcher import NotificationService
from pickup.transitions import status_fields
from scheduling.occurrences import service_day_occurrences, service_day_options
from scheduling.timing import today
from service_days.repository import COLLECTION, get_service_day, service_day_from_document, service_day_to_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/service-days", tags=["service_days"])

get_admin = require_roles(UserRole.ADMIN, UserRole.OWNER)

DEFAULT_OCCURRENCES = 10


@router.post("/", response_model=ServiceDayResponse, status_code=201)
async def create_service_day(
    payload: ServiceDayCreate, tasks: BackgroundTasks, admin: Actor = Depends(get_admin), db=Depends(get_database)
):
    doc = service_day_to_document(payload, admin.organization_id)
    doc["created_at"] = doc["updated_at"]
    doc["deactivated_at"] = None if payload.is_active else doc["updated_at"]
    result = await db[COLLECTION].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"Service day {payload.name!r} created in organization {admin.organization_id}")
    tasks.add_task(
        track_event, db, "service_day_created", admin.id, admin.organization_id, {"service_day_id": str(result.inserted_id)}
    )
    return service_day_from_document(doc)


@router.get("/")
async def list_service_days(
    status: str = Query("active", pattern="^(active|inactive|all)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    where = {"organization_id": actor.organization_id}
    if status != "all":
        where["is_active"] = status == "active"
    total_count = await db[COLLECTION].count_documents(where)
    docs = (
        await db[COLLECTION]
        .find(where)
        .sort("name", 1)
        .skip((page - 1) * page_size)
        .limit(page_size)
        .to_list(length=None)
    )
    total_pages = math.ceil(total_count / page_size) if total_count else 0
    return {
        "service_days": [service_day_from_document(doc) for doc in docs],
        "page": page,
        "page_size": page_size,
        "total_count": total_count,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


@router.get("/{service_day_id}", response_model=ServiceDayResponse)
async def get_service_day_by_id(
    service_day_id: str, actor: Actor = Depends(get_current_actor), db=Depends(get_database)
):
    return await get_service_day(db, actor.organization_id, service_day_id)


@router.put("/{service_day_id}", response_model=ServiceDayResponse)
async def update_service_day(
    service_day_id: str, payload: ServiceDayCreate, admin: Actor = Depends(get_admin), db=Depends(get_database)
):
    # The weekday list is replaced wholesale; activity only changes through toggle
    doc = service_day_to_document(payload, admin.organization_id)
    doc.pop("is_active")
    result = await db[COLLECTION].update_one(
        {"_id": to_object_id(service_day_id, "service day ID"), "organization_id": admin.organization_id},
        {"$set": doc},
    )
    if result.matched_count == 0:
        raise NotFoundError("Service not found")
    return await get_service_day(db, admin.organization_id, service_day_id)


@router.delete("/{service_day_id}")
async def delete_service_day(
    service_day_id: str, tasks: BackgroundTasks, admin: Actor = Depends(get_admin), db=Depends(get_database)
):
    """Delete a service day and cancel the open requests still booked on it."""
    service_day = await get_service_day(db, admin.organization_id, service_day_id)
    open_filter = {
        "organization_id": admin.organization_id,
        "service_day_id": service_day_id,
        "status": {"$in": [RequestStatus.PENDING.value, RequestStatus.ACCEPTED.value]},
    }
    async with transaction(db) as session:
        affected = await db["pickup_requests"].find(open_filter, session=session).to_list(length=None)
        await db["pickup_requests"].update_many(
            open_filter,
            {
                "$set": {
                    **status_fields(RequestStatus.CANCELLED),
                    "driver_id": None,
                    "updated_at": datetime.utcnow(),
                }
            },
            session=session,
        )
        await db[COLLECTION].delete_one(
            {"_id": to_object_id(service_day_id, "service day ID"), "organization_id": admin.organization_id},
            session=session,
        )

    logger.info(f"Service day {service_day_id} deleted by {admin.id}; {len(affected)} open request(s) cancelled")
    for doc in affected:
        message = f"Your pickup on {as_date(doc['request_date'])} was cancelled because {service_day.name} was removed."
        tasks.add_task(NotificationService.notify_user, db, doc["user_id"], "Service removed", message)
        if doc.get("driver_id"):
            tasks.add_task(NotificationService.notify_user, db, doc["driver_id"], "Ride cancelled", message)
    return {"message": "Service day deleted", "cancelled_requests": len(affected)}


@router.patch("/{service_day_id}/toggle", response_model=ServiceDayResponse)
async def toggle_service_day(service_day_id: str, admin: Actor = Depends(get_admin), db=Depends(get_database)):
    """Deactivate a service, or restore one deactivated long enough ago."""
    service_day = await get_service_day(db, admin.organization_id, service_day_id)
    now = datetime.utcnow()
    if not service_day.is_active and service_day.deactivated_at:
        hours_since = (now - service_day.deactivated_at).total_seconds() / 3600
        if hours_since < config.SERVICE_RESTORE_HOURS:
            remaining = math.ceil(config.SERVICE_RESTORE_HOURS - hours_since)
            raise BadRequestError(
                f"Service can only be restored after {config.SERVICE_RESTORE_HOURS} hours. "
                f"Please wait {remaining} more hour{'s' if remaining > 1 else ''}."
            )
    await db[COLLECTION].update_one(
        {"_id": to_object_id(service_day_id, "service day ID")},
        {
            "$set": {
                "is_active": not service_day.is_active,
                "deactivated_at": now if service_day.is_active else None,
                "updated_at": now,
            }
        },
    )
    logger.info(f"Service day {service_day_id} {'deactivated' if service_day.is_active else 'restored'}")
    return await get_service_day(db, admin.organization_id, service_day_id)


@router.get("/{service_day_id}/occurrences", response_model=OccurrencesResponse)
async def get_service_day_occurrences(
    service_day_id: str,
    from_date: Optional[date] = None,
    count: Optional[int] = Query(None, ge=1, le=config.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    service_day = await get_service_day(db, actor.organization_id, service_day_id)
    if count is None and not service_day.end_date and not service_day.cycle:
        count = DEFAULT_OCCURRENCES
    try:
        dates = service_day_occurrences(service_day, from_date or today(), count)
    except ValueError as e:
        raise BadRequestError(str(e))
    return OccurrencesResponse(service_day_id=service_day_id, dates=dates)


@router.get("/{service_day_id}/options", response_model=List[ServiceDayOption])
async def get_service_day_options(
    service_day_id: str, actor: Actor = Depends(get_current_actor), db=Depends(get_database)
):
    service_day = await get_service_day(db, actor.organization_id, service_day_id)
    return service_day_options(service_day, today())
