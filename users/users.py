import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError

from analytics.analytics import track_event
from auth.dependencies import Actor, get_current_actor
from auth.jwt_handler import create_access_token, create_appeal_token
from auth.password_handler import hash_password, verify_password
from database.connection import get_database
from database.documents import serialize, to_object_id
from errors import BadRequestError, BannedError, ForbiddenError, NotFoundError, UnauthorizedError
from models.enums import UserRole, UserStatus
from models.user import UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class UserPreferences(BaseModel):
    phone_number: Optional[str] = None
    whatsapp_number: Optional[str] = None
    max_distance: Optional[int] = Field(default=None, ge=1)
    email_notifications: Optional[bool] = None
    whatsapp_notifications: Optional[bool] = None


def user_response(doc: dict) -> UserResponse:
    data = serialize(doc)
    data.pop("password", None)
    return UserResponse(**data)


@router.post("/register", response_model=UserResponse, status_code=201)
async def register_user(user: UserCreate, tasks: BackgroundTasks, db=Depends(get_database)):
    """Sign up as a member; an admin must approve the account before login."""
    organization = await db["organizations"].find_one({"_id": to_object_id(user.organization_id, "organization ID")})
    if not organization:
        raise NotFoundError("Organization not found")
    if await db["users"].find_one({"organization_id": user.organization_id, "email": user.email}):
        raise BadRequestError("Email already registered")

    user_doc = {
        "organization_id": user.organization_id,
        "email": user.email,
        "name": user.name,
        "phone_number": user.phone_number,
        "whatsapp_number": user.whatsapp_number,
        "password": hash_password(user.password),
        "role": UserRole.USER.value,
        "status": UserStatus.PENDING.value,
        "max_distance": None,
        "email_notifications": True,
        "whatsapp_notifications": False,
        "created_at": datetime.utcnow(),
    }
    try:
        result = await db["users"].insert_one(user_doc)
    except DuplicateKeyError:
        raise BadRequestError("Email already registered") from None
    user_doc["_id"] = result.inserted_id
    logger.info(f"New member registered in organization {user.organization_id}")
    tasks.add_task(track_event, db, "user_registration", str(result.inserted_id), user.organization_id)
    return user_response(user_doc)


@router.post("/login")
async def login_user(user_credentials: UserLogin, tasks: BackgroundTasks, db=Depends(get_database)):
    user = await db["users"].find_one(
        {"organization_id": user_credentials.organization_id, "email": user_credentials.email}
    )
    if not user or not verify_password(user_credentials.password, user.get("password")):
        raise UnauthorizedError("Invalid credentials")
    if user["status"] == UserStatus.BANNED.value:
        appeal_token = create_appeal_token(str(user["_id"]), user["organization_id"], user["email"])
        raise BannedError("Your account is banned", appeal_token=appeal_token)
    if user["status"] != UserStatus.APPROVED.value:
        raise ForbiddenError(f"Your account is {user['status'].lower()}")

    access_token = create_access_token(str(user["_id"]), user["role"], user["organization_id"])
    tasks.add_task(track_event, db, "user_login", str(user["_id"]), user["organization_id"])
    return {"access_token": access_token, "token_type": "bearer", "user": user_response(user)}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(actor: Actor = Depends(get_current_actor), db=Depends(get_database)):
    user = await db["users"].find_one({"_id": to_object_id(actor.id, "user ID")})
    return user_response(user)


@router.patch("/me", response_model=UserResponse)
async def update_preferences(
    preferences: UserPreferences, actor: Actor = Depends(get_current_actor), db=Depends(get_database)
):
    changes = preferences.model_dump(exclude_unset=True)
    if "max_distance" in changes and not actor.is_driver:
        raise BadRequestError("Only drivers can set a maximum distance")
    if changes:
        await db["users"].update_one({"_id": to_object_id(actor.id, "user ID")}, {"$set": changes})
    user = await db["users"].find_one({"_id": to_object_id(actor.id, "user ID")})
    return user_response(user)
