from datetime import datetime

from database.documents import as_date, date_to_datetime, serialize, to_object_id
from errors import NotFoundError
from models.service_day import ServiceDayCreate, ServiceDayResponse

COLLECTION = "service_days"


def service_day_to_document(payload: ServiceDayCreate, organization_id: str) -> dict:
    doc = payload.model_dump(mode="json")
    doc.update(
        organization_id=organization_id,
        start_date=date_to_datetime(payload.start_date),
        end_date=date_to_datetime(payload.end_date),
        updated_at=datetime.utcnow(),
    )
    return doc


def service_day_from_document(doc: dict) -> ServiceDayResponse:
    data = serialize(doc)
    data["start_date"] = as_date(data.get("start_date"))
    data["end_date"] = as_date(data.get("end_date"))
    return ServiceDayResponse(**data)


async def get_service_day(db, organization_id: str, service_day_id: str, session=None) -> ServiceDayResponse:
    doc = await db[COLLECTION].find_one(
        {"_id": to_object_id(service_day_id, "service day ID"), "organization_id": organization_id},
        session=session,
    )
    if not doc:
        raise NotFoundError("Service not found")
    return service_day_from_document(doc)
