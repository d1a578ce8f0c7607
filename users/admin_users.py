import logging
import math
import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import config
from analytics.analytics import track_event
from auth.dependencies import Actor, require_roles
from auth.password_handler import generate_temp_password, hash_password
from database.connection import get_database, transaction
from database.documents import to_object_id
from errors import BadRequestError, NotFoundError
from geo.geocoding import Geocoder, get_geocoder
from models.enums import ADMIN_ROLES, RequestStatus, UserRole, UserStatus
from models.user import AdminUserCreate, UserBan, UserResponse, UserRoleUpdate
from notifications.dispatcher import NotificationService
from pickup.transitions import status_fields
from users.users import user_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin_users"])

get_admin = require_roles(UserRole.ADMIN, UserRole.OWNER)

UNBAN = {
    "$set": {"status": UserStatus.APPROVED.value},
    "$unset": {"banned_at": "", "banned_by": "", "ban_reason": "", "ban_expires": ""},
}


async def _load_user(db, admin: Actor, user_id: str) -> dict:
    user = await db["users"].find_one(
        {"_id": to_object_id(user_id, "user ID"), "organization_id": admin.organization_id}
    )
    if not user:
        raise NotFoundError("User not found")
    return user


async def _set_user(db, user: dict, changes: dict) -> dict:
    return await db["users"].find_one_and_update(
        {"_id": user["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )


@router.get("/")
async def list_users(
    status: Optional[UserStatus] = None,
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    admin: Actor = Depends(get_admin),
    db=Depends(get_database),
):
    where = {"organization_id": admin.organization_id}
    if status:
        where["status"] = status.value
    if role:
        where["role"] = role.value
    if search:
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        where["$or"] = [{"name": pattern}, {"email": pattern}]

    total_count = await db["users"].count_documents(where)
    docs = (
        await db["users"]
        .find(where)
        .sort("created_at", -1)
        .skip((page - 1) * page_size)
        .limit(page_size)
        .to_list(length=None)
    )
    total_pages = math.ceil(total_count / page_size) if total_count else 0
    return {
        "users": [user_response(doc) for doc in docs],
        "page": page,
        "page_size": page_size,
        "total_count": total_count,
        "total_pages": total_pages,
    }


@router.post("/", response_model=UserResponse, status_code=201)
async def create_user(
    payload: AdminUserCreate,
    tasks: BackgroundTasks,
    admin: Actor = Depends(get_admin),
    db=Depends(get_database),
    geocode: Geocoder = Depends(get_geocoder),
):
    """Create an approved member with a geocoded default address.

    Members who never log in get no password. Otherwise an explicit password
    is used, or a temporary one built from last name and phone digits.
    """
    if await db["users"].find_one({"organization_id": admin.organization_id, "email": payload.email}):
        raise BadRequestError("Email already registered")

    address = {
        "name": "Home",
        "street": payload.street,
        "city": payload.city,
        "province": payload.province,
        "postal_code": payload.postal_code,
        "country": "Canada",
    }
    coordinates = await geocode(address)
    if coordinates is None:
        raise BadRequestError("Could not locate the address, please check it")

    password = None
    if payload.is_login_required:
        password = hash_password(payload.password or generate_temp_password(payload.last_name, payload.phone_number))

    now = datetime.utcnow()
    user_doc = {
        "organization_id": admin.organization_id,
        "email": payload.email,
        "name": f"{payload.first_name} {payload.last_name}",
        "phone_number": payload.phone_number,
        "whatsapp_number": None,
        "password": password,
        "role": UserRole.USER.value,
        "status": UserStatus.APPROVED.value,
        "max_distance": None,
        "email_notifications": True,
        "whatsapp_notifications": False,
        "created_at": now,
    }
    try:
        async with transaction(db) as session:
            result = await db["users"].insert_one(user_doc, session=session)
            await db["addresses"].insert_one(
                {
                    **address,
                    "organization_id": admin.organization_id,
                    "user_id": str(result.inserted_id),
                    "latitude": coordinates.latitude,
                    "longitude": coordinates.longitude,
                    "is_default": True,
                    "created_at": now,
                },
                session=session,
            )
    except DuplicateKeyError:
        raise BadRequestError("Email already registered") from None

    user_doc["_id"] = result.inserted_id
    logger.info(f"Admin {admin.id} created member {result.inserted_id}")
    tasks.add_task(
        track_event, db, "admin_user_created", admin.id, admin.organization_id, {"user_id": str(result.inserted_id)}
    )
    return user_response(user_doc)


@router.patch("/{user_id}/approve", response_model=UserResponse)
async def approve_user(user_id: str, tasks: BackgroundTasks, admin: Actor = Depends(get_admin), db=Depends(get_database)):
    user = await _load_user(db, admin, user_id)
    if user["status"] not in (UserStatus.PENDING.value, UserStatus.REJECTED.value):
        raise BadRequestError(f"Cannot approve a {user['status'].lower()} user")
    updated = await _set_user(
        db, user, {"status": UserStatus.APPROVED.value, "approved_by": admin.id, "approved_at": datetime.utcnow()}
    )
    tasks.add_task(
        NotificationService.notify_user, db, user_id, "Account approved", "Your account has been approved.", "account"
    )
    tasks.add_task(track_event, db, "user_approval", user_id, admin.organization_id, {"approved_by": admin.id})
    return user_response(updated)


@router.patch("/{user_id}/reject", response_model=UserResponse)
async def reject_user(user_id: str, admin: Actor = Depends(get_admin), db=Depends(get_database)):
    user = await _load_user(db, admin, user_id)
    if user["status"] != UserStatus.PENDING.value:
        raise BadRequestError("Only pending users can be rejected")
    updated = await _set_user(db, user, {"status": UserStatus.REJECTED.value})
    return user_response(updated)


@router.put("/{user_id}/ban", response_model=UserResponse)
async def ban_user(
    user_id: str, ban: UserBan, tasks: BackgroundTasks, admin: Actor = Depends(get_admin), db=Depends(get_database)
):
    reason = ban.reason.strip()
    if not reason:
        raise BadRequestError("Ban reason is required")
    user = await _load_user(db, admin, user_id)
    if UserRole(user["role"]) in ADMIN_ROLES:
        raise BadRequestError("Cannot ban admin users")
    if user["status"] == UserStatus.BANNED.value:
        raise BadRequestError("User is already banned")

    async with transaction(db) as session:
        updated = await db["users"].find_one_and_update(
            {"_id": user["_id"]},
            {
                "$set": {
                    "status": UserStatus.BANNED.value,
                    "banned_at": datetime.utcnow(),
                    "banned_by": admin.id,
                    "ban_reason": reason,
                    "ban_expires": ban.ban_expires,
                }
            },
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        cancelled = await db["pickup_requests"].update_many(
            {"organization_id": admin.organization_id, "user_id": user_id, "status": RequestStatus.PENDING.value},
            {"$set": {**status_fields(RequestStatus.CANCELLED), "updated_at": datetime.utcnow()}},
            session=session,
        )

    logger.info(f"User {user_id} banned by {admin.id}; {cancelled.modified_count} pending request(s) cancelled")
    tasks.add_task(
        track_event, db, "user_ban", user_id, admin.organization_id, {"banned_by": admin.id, "reason": reason}
    )
    return user_response(updated)


@router.put("/{user_id}/unban", response_model=UserResponse)
async def unban_user(user_id: str, tasks: BackgroundTasks, admin: Actor = Depends(get_admin), db=Depends(get_database)):
    user = await _load_user(db, admin, user_id)
    if user["status"] != UserStatus.BANNED.value:
        raise BadRequestError("User is not banned")
    updated = await db["users"].find_one_and_update(
        {"_id": user["_id"]}, UNBAN, return_document=ReturnDocument.AFTER
    )
    tasks.add_task(track_event, db, "user_unban", user_id, admin.organization_id, {"unbanned_by": admin.id})
    return user_response(updated)


@router.patch("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: str, body: UserRoleUpdate, admin: Actor = Depends(get_admin), db=Depends(get_database)
):
    if body.role is UserRole.PLATFORM_ADMIN:
        raise BadRequestError("Platform admins cannot be assigned from an organization")
    user = await _load_user(db, admin, user_id)
    if user["status"] != UserStatus.APPROVED.value:
        raise BadRequestError("Only approved users can change role")
    updated = await _set_user(db, user, {"role": body.role.value})
    logger.info(f"User {user_id} role changed to {body.role.value} by {admin.id}")
    return user_response(updated)
