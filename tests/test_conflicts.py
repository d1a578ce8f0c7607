import asyncio
from datetime import date, timedelta

import pytest

from database.connection import ensure_indexes
from database.documents import date_to_datetime
from errors import ConflictError
from models.enums import RequestStatus
from pickup.conflicts import assert_no_duplicate, find_duplicate, insert_request, insert_series
from pickup.service import _set_checked
from pickup.transitions import status_fields

REQUEST_DATE = date(2024, 1, 7)


def seed(db, status=RequestStatus.PENDING, user_id="u1", organization_id="org1"):
    doc = {
        "organization_id": organization_id,
        "user_id": user_id,
        "service_day_id": "s1",
        "request_date": date_to_datetime(REQUEST_DATE),
        **status_fields(status),
    }
    return asyncio.run(insert_request(db, doc))


def test_duplicate_for_same_user_service_and_date(db):
    seed(db)
    with pytest.raises(ConflictError) as exc_info:
        asyncio.run(assert_no_duplicate(db, "org1", "u1", "s1", REQUEST_DATE))
    assert exc_info.value.status_code == 409


def test_cancelled_requests_do_not_block(db):
    seed(db, status=RequestStatus.CANCELLED)
    asyncio.run(assert_no_duplicate(db, "org1", "u1", "s1", REQUEST_DATE))


def test_other_users_and_tenants_do_not_block(db):
    seed(db, user_id="u2")
    seed(db, organization_id="org2")
    asyncio.run(assert_no_duplicate(db, "org1", "u1", "s1", REQUEST_DATE))


def test_excluded_requests_are_ignored(db):
    doc = seed(db)
    found = asyncio.run(find_duplicate(db, "org1", "u1", "s1", REQUEST_DATE, exclude_request_ids=[str(doc["_id"])]))
    assert found is None


@pytest.fixture
def indexed_db(db):
    asyncio.run(ensure_indexes(db))
    return db


def request_doc(request_date=REQUEST_DATE, status=RequestStatus.PENDING):
    return {
        "organization_id": "org1",
        "user_id": "u1",
        "service_day_id": "s1",
        "request_date": date_to_datetime(request_date),
        **status_fields(status),
    }


def test_unique_index_rejects_a_second_active_insert(indexed_db):
    asyncio.run(insert_request(indexed_db, request_doc()))
    with pytest.raises(ConflictError):
        asyncio.run(insert_request(indexed_db, request_doc()))


def test_unique_index_ignores_cancelled_rows(indexed_db):
    asyncio.run(insert_request(indexed_db, request_doc(status=RequestStatus.CANCELLED)))
    asyncio.run(insert_request(indexed_db, request_doc()))
    assert asyncio.run(indexed_db["pickup_requests"].count_documents({})) == 2


def test_series_insert_hitting_an_existing_row_is_a_conflict(indexed_db):
    asyncio.run(insert_request(indexed_db, request_doc(REQUEST_DATE + timedelta(weeks=1))))
    series = [request_doc(REQUEST_DATE + timedelta(weeks=i)) for i in range(3)]
    with pytest.raises(ConflictError):
        asyncio.run(insert_series(indexed_db, series))


def test_moving_a_request_onto_a_taken_date_is_a_conflict(indexed_db):
    asyncio.run(insert_request(indexed_db, request_doc()))
    other = asyncio.run(insert_request(indexed_db, request_doc(REQUEST_DATE + timedelta(weeks=1))))
    with pytest.raises(ConflictError):
        asyncio.run(
            _set_checked(
                indexed_db, {"_id": other["_id"]}, {"$set": {"request_date": date_to_datetime(REQUEST_DATE)}}
            )
        )
