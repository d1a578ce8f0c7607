import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError

from auth.dependencies import Actor, get_current_actor, require_roles
from database.connection import get_database
from database.documents import serialize, to_object_id
from errors import ConflictError, NotFoundError
from models.enums import UserRole
from models.organization import OrganizationCreate, OrganizationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/organizations", tags=["organizations"])

get_platform_admin = require_roles(UserRole.PLATFORM_ADMIN)


@router.post("/", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    payload: OrganizationCreate, actor: Actor = Depends(get_platform_admin), db=Depends(get_database)
):
    if await db["organizations"].find_one({"slug": payload.slug}):
        raise ConflictError("An organization with this slug already exists")
    doc = {**payload.model_dump(), "created_at": datetime.utcnow(), "created_by": actor.id}
    try:
        result = await db["organizations"].insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError("An organization with this slug already exists") from None
    doc["_id"] = result.inserted_id
    logger.info(f"Organization {payload.slug} created")
    return OrganizationResponse(**serialize(doc))


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(organization_id: str, actor: Actor = Depends(get_current_actor), db=Depends(get_database)):
    # Members only see their own organization
    if actor.role is not UserRole.PLATFORM_ADMIN and actor.organization_id != organization_id:
        raise NotFoundError("Organization not found")
    doc = await db["organizations"].find_one({"_id": to_object_id(organization_id, "organization ID")})
    if not doc:
        raise NotFoundError("Organization not found")
    return OrganizationResponse(**serialize(doc))
