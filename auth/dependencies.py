from typing import Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from auth.jwt_handler import verify_token
from database.connection import get_database
from errors import ForbiddenError, UnauthorizedError
from models.enums import ADMIN_ROLES, UserRole, UserStatus

bearer_scheme = HTTPBearer(auto_error=False)


class Actor(BaseModel):
    """The authenticated caller, carrying its organization explicitly."""

    id: str
    organization_id: Optional[str] = None
    role: UserRole
    name: str
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_driver(self) -> bool:
        return self.role is UserRole.TRANSPORTATION_TEAM


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(get_database),
) -> Actor:
    if credentials is None:
        raise UnauthorizedError("Authentication credentials were not provided.")
    payload = verify_token(credentials.credentials)
    if not payload or "sub" not in payload or "purpose" in payload:
        raise UnauthorizedError("Invalid or expired token.")

    user_id = payload["sub"]
    user = await db["users"].find_one({"_id": ObjectId(user_id)}) if ObjectId.is_valid(user_id) else None
    if not user:
        raise UnauthorizedError("User not found.")
    if user.get("organization_id") != payload.get("org"):
        raise UnauthorizedError("Token does not match the user's organization.")
    if user.get("status") != UserStatus.APPROVED.value:
        raise ForbiddenError("Your account is not approved.")

    return Actor(
        id=str(user["_id"]),
        organization_id=user.get("organization_id"),
        role=user["role"],
        name=user.get("name", ""),
        email=user.get("email"),
    )


def require_roles(*roles: UserRole):
    """Dependency factory admitting only the given roles."""
    allowed = frozenset(roles)

    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise ForbiddenError("Access forbidden: insufficient role.")
        return actor

    return dependency
