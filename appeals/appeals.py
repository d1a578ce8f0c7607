# appeals.py

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
from auth.jwt_handler import verify_appeal_token
from database.connection import get_database, transaction
from database.documents import serialize, to_object_id
from errors import BadRequestError, ConflictError, NotFoundError
from models.appeal import AppealCreate, AppealPage, AppealResponse, AppealReview, AppealTokenInfo
from models.enums import OPEN_APPEAL_STATUSES, AppealStatus, UserRole, UserStatus
from notifications.dispatcher import NotificationService
from users.admin_users import UNBAN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appeals", tags=["appeals"])

get_admin = require_roles(UserRole.ADMIN, UserRole.OWNER)

ALREADY_SUBMITTED = "You have already submitted an appeal. Please wait for review."


def appeal_response(doc: dict, user_name: Optional[str] = None) -> AppealResponse:
    data = serialize(doc)
    data.setdefault("user_name", user_name)
    return AppealResponse(**data)


async def _token_user(db, token: str) -> dict:
    payload = verify_appeal_token(token)
    if not payload:
        raise BadRequestError("Invalid or expired appeal token")
    user = await db["users"].find_one(
        {"_id": to_object_id(payload["sub"], "user ID"), "organization_id": payload.get("org")}
    )
    if not user:
        raise NotFoundError("User not found")
    user["appeal_expires_at"] = datetime.utcfromtimestamp(payload["exp"])
    return user


# --- Banned users ---
@router.get("/token", response_model=AppealTokenInfo)
async def decode_appeal_token(token: str, db=Depends(get_database)):
    user = await _token_user(db, token)
    return AppealTokenInfo(email=user["email"], user_name=user.get("name", ""), expires_at=user["appeal_expires_at"])


@router.post("/", response_model=AppealResponse, status_code=201)
async def create_appeal(payload: AppealCreate, tasks: BackgroundTasks, db=Depends(get_database)):
    """File the one appeal a banned account gets."""
    user = await _token_user(db, payload.appeal_token)
    if user["status"] != UserStatus.BANNED.value:
        raise BadRequestError("Only banned accounts can appeal")
    reason = payload.reason.strip()
    if not reason:
        raise BadRequestError("Your reason for appeal is required")

    user_id = str(user["_id"])
    if await db["appeals"].find_one({"organization_id": user["organization_id"], "user_id": user_id}):
        raise BadRequestError(ALREADY_SUBMITTED)

    doc = {
        "organization_id": user["organization_id"],
        "user_id": user_id,
        "email": user["email"],
        "reason": reason,
        "additional_info": payload.additional_info,
        "status": AppealStatus.PENDING.value,
        "review_notes": None,
        "reviewed_by": None,
        "reviewed_at": None,
        "created_at": datetime.utcnow(),
    }
    try:
        result = await db["appeals"].insert_one(doc)
    except DuplicateKeyError:
        raise BadRequestError(ALREADY_SUBMITTED) from None
    doc["_id"] = result.inserted_id
    logger.info(f"User {user_id} filed an appeal")
    tasks.add_task(track_event, db, "appeal_created", user_id, user["organization_id"], {"appeal_id": str(result.inserted_id)})
    return appeal_response(doc, user.get("name"))


# --- Admins ---
@router.get("/", response_model=AppealPage)
async def list_appeals(
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    admin: Actor = Depends(get_admin),
    db=Depends(get_database),
):
    where = {"organization_id": admin.organization_id}
    if status and status.upper() != "ALL":
        try:
            where["status"] = AppealStatus(status.upper()).value
        except ValueError:
            raise BadRequestError(f"Unknown appeal status {status!r}")
    if search:
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        users = await db["users"].find(
            {"organization_id": admin.organization_id, "name": pattern}, {"_id": 1}
        ).to_list(length=None)
        where["$or"] = [{"email": pattern}, {"user_id": {"$in": [str(user["_id"]) for user in users]}}]

    total_count = await db["appeals"].count_documents(where)
    docs = (
        await db["appeals"]
        .find(where)
        .sort("created_at", -1)
        .skip((page - 1) * page_size)
        .limit(page_size)
        .to_list(length=None)
    )
    user_ids = [to_object_id(doc["user_id"], "user ID") for doc in docs]
    names = {
        str(user["_id"]): user.get("name")
        for user in await db["users"].find({"_id": {"$in": user_ids}}, {"name": 1}).to_list(length=None)
    }
    total_pages = math.ceil(total_count / page_size) if total_count else 0
    return {
        "appeals": [appeal_response(doc, names.get(doc["user_id"])) for doc in docs],
        "page": page,
        "page_size": page_size,
        "total_count": total_count,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


async def _decide(db, admin: Actor, appeal_id: str, allowed, target: AppealStatus, review: AppealReview, session=None):
    """Move an appeal out of one of ``allowed`` statuses, failing if someone else got there first."""
    query = {"_id": to_object_id(appeal_id, "appeal ID"), "organization_id": admin.organization_id}
    appeal = await db["appeals"].find_one(query, session=session)
    if not appeal:
        raise NotFoundError("Appeal not found")
    if appeal["status"] not in {status.value for status in allowed}:
        raise BadRequestError(f"Cannot move a {appeal['status'].lower()} appeal to {target.value.lower()}")
    updated = await db["appeals"].find_one_and_update(
        {**query, "status": appeal["status"]},
        {
            "$set": {
                "status": target.value,
                "review_notes": review.review_notes,
                "reviewed_by": admin.name,
                "reviewed_at": datetime.utcnow(),
            }
        },
        return_document=ReturnDocument.AFTER,
        session=session,
    )
    if not updated:
        raise ConflictError("The appeal changed while it was being reviewed, please retry")
    return updated


@router.patch("/{appeal_id}/review", response_model=AppealResponse)
async def review_appeal(
    appeal_id: str, review: AppealReview, admin: Actor = Depends(get_admin), db=Depends(get_database)
):
    updated = await _decide(db, admin, appeal_id, {AppealStatus.PENDING}, AppealStatus.UNDER_REVIEW, review)
    return appeal_response(updated)


@router.patch("/{appeal_id}/approve", response_model=AppealResponse)
async def approve_appeal(
    appeal_id: str,
    review: AppealReview,
    tasks: BackgroundTasks,
    admin: Actor = Depends(get_admin),
    db=Depends(get_database),
):
    """Grant the appeal and lift the ban."""
    async with transaction(db) as session:
        updated = await _decide(
            db, admin, appeal_id, OPEN_APPEAL_STATUSES, AppealStatus.APPROVED, review, session=session
        )
        await db["users"].update_one(
            {"_id": to_object_id(updated["user_id"], "user ID"), "organization_id": admin.organization_id},
            UNBAN,
            session=session,
        )

    logger.info(f"Appeal {appeal_id} approved by {admin.id}; user {updated['user_id']} unbanned")
    tasks.add_task(
        NotificationService.notify_user,
        db,
        updated["user_id"],
        "Appeal approved",
        "Your appeal was approved and your account has been restored.",
        "account",
    )
    tasks.add_task(
        track_event, db, "appeal_approved", updated["user_id"], admin.organization_id, {"appeal_id": appeal_id}
    )
    return appeal_response(updated)


@router.patch("/{appeal_id}/reject", response_model=AppealResponse)
async def reject_appeal(
    appeal_id: str, review: AppealReview, admin: Actor = Depends(get_admin), db=Depends(get_database)
):
    updated = await _decide(db, admin, appeal_id, OPEN_APPEAL_STATUSES, AppealStatus.REJECTED, review)
    logger.info(f"Appeal {appeal_id} rejected by {admin.id}")
    return appeal_response(updated)
