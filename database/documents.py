from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from bson import ObjectId

from errors import BadRequestError


def to_object_id(value: str, label: str = "ID") -> ObjectId:
    if not ObjectId.is_valid(value):
        raise BadRequestError(f"Invalid {label}.")
    return ObjectId(value)


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Turn a Mongo document into an API payload with a string ``id``."""
    if doc is None:
        return None
    out = dict(doc)
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    for key, value in out.items():
        if isinstance(value, ObjectId):
            out[key] = str(value)
    return out


def date_to_datetime(value: Optional[date]) -> Optional[datetime]:
    """BSON has no date type; calendar dates are stored as midnight datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
    return datetime(value.year, value.month, value.day)


def as_date(value: Union[date, datetime, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value
