import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends

from auth.dependencies import Actor, get_current_actor
from database.connection import get_database
from database.documents import serialize, to_object_id
from errors import BadRequestError, NotFoundError
from geo.geocoding import Geocoder, get_geocoder
from models.address import AddressCreate, AddressResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/addresses", tags=["addresses"])


def address_response(doc: dict) -> AddressResponse:
    return AddressResponse(**serialize(doc))


async def _owned_address(db, actor: Actor, address_id: str) -> dict:
    address = await db["addresses"].find_one(
        {"_id": to_object_id(address_id, "address ID"), "user_id": actor.id, "organization_id": actor.organization_id}
    )
    if not address:
        raise NotFoundError("Address not found")
    return address


async def _locate(geocode: Geocoder, address: dict) -> dict:
    coordinates = await geocode(address)
    if coordinates is None:
        raise BadRequestError("Could not locate the address, please check it")
    return {"latitude": coordinates.latitude, "longitude": coordinates.longitude}


async def _clear_default(db, actor: Actor) -> None:
    await db["addresses"].update_many(
        {"user_id": actor.id, "organization_id": actor.organization_id, "is_default": True},
        {"$set": {"is_default": False}},
    )


@router.get("/", response_model=List[AddressResponse])
async def list_addresses(actor: Actor = Depends(get_current_actor), db=Depends(get_database)):
    docs = await db["addresses"].find(
        {"user_id": actor.id, "organization_id": actor.organization_id}
    ).sort("created_at", 1).to_list(length=None)
    return [address_response(doc) for doc in docs]


@router.post("/", response_model=AddressResponse, status_code=201)
async def create_address(
    payload: AddressCreate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
    geocode: Geocoder = Depends(get_geocoder),
):
    doc = payload.model_dump()
    doc.update(await _locate(geocode, doc))
    # The first address always becomes the default
    has_addresses = await db["addresses"].count_documents({"user_id": actor.id, "organization_id": actor.organization_id})
    if not has_addresses:
        doc["is_default"] = True
    elif doc["is_default"]:
        await _clear_default(db, actor)
    doc.update(user_id=actor.id, organization_id=actor.organization_id, created_at=datetime.utcnow())
    result = await db["addresses"].insert_one(doc)
    doc["_id"] = result.inserted_id
    return address_response(doc)


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: str,
    payload: AddressCreate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
    geocode: Geocoder = Depends(get_geocoder),
):
    existing = await _owned_address(db, actor, address_id)
    changes = payload.model_dump()
    changes.update(await _locate(geocode, changes))
    if changes["is_default"]:
        await _clear_default(db, actor)
    elif existing.get("is_default"):
        # Unsetting the only default would leave the user without one
        changes["is_default"] = True
    await db["addresses"].update_one({"_id": existing["_id"]}, {"$set": changes})
    return address_response(await _owned_address(db, actor, address_id))


@router.patch("/{address_id}/default", response_model=AddressResponse)
async def set_default_address(address_id: str, actor: Actor = Depends(get_current_actor), db=Depends(get_database)):
    existing = await _owned_address(db, actor, address_id)
    await _clear_default(db, actor)
    await db["addresses"].update_one({"_id": existing["_id"]}, {"$set": {"is_default": True}})
    return address_response(await _owned_address(db, actor, address_id))


@router.delete("/{address_id}")
async def delete_address(address_id: str, actor: Actor = Depends(get_current_actor), db=Depends(get_database)):
    existing = await _owned_address(db, actor, address_id)
    in_use = await db["pickup_requests"].count_documents(
        {"address_id": address_id, "organization_id": actor.organization_id, "status": {"$in": ["PENDING", "ACCEPTED"]}}
    )
    if in_use:
        raise BadRequestError("Address is used by open pickup requests")
    await db["addresses"].delete_one({"_id": existing["_id"]})
    logger.info(f"Address {address_id} deleted by {actor.id}")
    return {"message": "Address deleted"}
