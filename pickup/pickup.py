# pickup.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

import config
from auth.dependencies import Actor, get_current_actor, require_roles
from database.connection import get_database
from errors import NotFoundError
from models.enums import UserRole
from models.pickup import (
    PickupAssign,
    PickupCancel,
    PickupRequestCreate,
    PickupRequestPage,
    PickupRequestResponse,
    PickupRequestUpdate,
    PickupStatusUpdateResponse,
)
from pickup import service
from pickup.service import request_from_document

router = APIRouter(prefix="/api/pickup", tags=["pickup_requests"])

get_member = require_roles(UserRole.USER, UserRole.ADMIN, UserRole.OWNER)
get_driver = require_roles(UserRole.TRANSPORTATION_TEAM)
get_admin = require_roles(UserRole.ADMIN, UserRole.OWNER)


def status_response(doc: dict) -> PickupStatusUpdateResponse:
    return PickupStatusUpdateResponse(
        id=str(doc["_id"]), status=doc["status"], driver_id=doc.get("driver_id"), distance=doc.get("distance")
    )


# --- Members and admins ---
@router.post("/requests", response_model=List[PickupRequestResponse], status_code=201)
async def create_pickup_request(
    request_data: PickupRequestCreate,
    tasks: BackgroundTasks,
    actor: Actor = Depends(get_member),
    db=Depends(get_database),
):
    docs, _ = await service.create_pickup_requests(db, actor, request_data, tasks)
    return [request_from_document(doc) for doc in docs]


@router.put("/requests/{request_id}", response_model=List[PickupRequestResponse])
async def update_pickup_request(
    request_id: str,
    request_data: PickupRequestUpdate,
    tasks: BackgroundTasks,
    actor: Actor = Depends(get_member),
    db=Depends(get_database),
):
    docs = await service.update_pickup_request(db, actor, request_id, request_data, tasks)
    return [request_from_document(doc) for doc in docs]


@router.get("/requests", response_model=PickupRequestPage)
async def list_pickup_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    status: Optional[str] = None,
    request_type: Optional[str] = Query(None, alias="type"),
    request_date: Optional[date] = None,
    service_day_id: Optional[str] = None,
    search: Optional[str] = None,
    max_distance: Optional[float] = Query(None, gt=0),
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    return await service.list_pickup_requests(
        db,
        actor,
        page=page,
        page_size=page_size,
        status=status,
        request_type=request_type,
        request_date=request_date,
        service_day_id=service_day_id,
        search=search,
        max_distance=max_distance,
    )


@router.get("/requests/{request_id}", response_model=PickupRequestResponse)
async def get_pickup_request(request_id: str, actor: Actor = Depends(get_current_actor), db=Depends(get_database)):
    doc = await service.load_request(db, actor.organization_id, request_id)
    if actor.role is UserRole.USER and doc["user_id"] != actor.id:
        raise NotFoundError("Pickup request not found")
    return request_from_document(doc)


@router.patch("/requests/{request_id}/cancel", response_model=PickupStatusUpdateResponse)
async def cancel_pickup_request(
    request_id: str,
    body: PickupCancel,
    tasks: BackgroundTasks,
    actor: Actor = Depends(get_member),
    db=Depends(get_database),
):
    return status_response(await service.cancel_request(db, actor, request_id, body.reason, tasks))


@router.patch("/requests/{request_id}/assign", response_model=PickupStatusUpdateResponse)
async def assign_pickup_request(
    request_id: str,
    body: PickupAssign,
    tasks: BackgroundTasks,
    actor: Actor = Depends(get_admin),
    db=Depends(get_database),
):
    return status_response(await service.assign_driver(db, actor, request_id, body.driver_id, tasks))


# --- Drivers ---
@router.patch("/requests/{request_id}/accept", response_model=PickupStatusUpdateResponse)
async def accept_pickup_request(
    request_id: str, tasks: BackgroundTasks, driver: Actor = Depends(get_driver), db=Depends(get_database)
):
    return status_response(await service.accept_request(db, driver, request_id, tasks))


@router.patch("/requests/{request_id}/complete", response_model=PickupStatusUpdateResponse)
async def complete_pickup_request(
    request_id: str, tasks: BackgroundTasks, driver: Actor = Depends(get_driver), db=Depends(get_database)
):
    return status_response(await service.complete_request(db, driver, request_id, tasks))


@router.patch("/requests/{request_id}/driver-cancel", response_model=PickupStatusUpdateResponse)
async def driver_cancel_pickup_request(
    request_id: str,
    body: PickupCancel,
    tasks: BackgroundTasks,
    driver: Actor = Depends(get_driver),
    db=Depends(get_database),
):
    return status_response(await service.driver_cancel_request(db, driver, request_id, body.reason, tasks))
