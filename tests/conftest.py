import asyncio
import os
from datetime import datetime, timedelta
from types import SimpleNamespace

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from auth.jwt_handler import create_access_token
from auth.password_handler import hash_password
from database.connection import get_database
from geo.geocoding import Coordinates, get_geocoder
from main import app
from models.enums import UserRole, UserStatus
from scheduling.occurrences import weekday_of
from scheduling.timing import today

ALL_WEEKDAYS = [0, 1, 2, 3, 4, 5, 6]


def run(coro):
    return asyncio.run(coro)


def next_weekday(weekday: int, after_days: int = 1):
    """First date at least ``after_days`` from today falling on the Sunday-based ``weekday``."""
    day = today() + timedelta(days=after_days)
    while weekday_of(day) != weekday:
        day += timedelta(days=1)
    return day


async def fake_geocoder(address):
    return Coordinates(43.6532, -79.3832)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["church-pickup-test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_geocoder] = lambda: fake_geocoder
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def org(db):
    result = run(db["organizations"].insert_one({"name": "Grace Church", "slug": "grace", "created_at": datetime.utcnow()}))
    return str(result.inserted_id)


@pytest.fixture
def make_user(db, org):
    counter = {"n": 0}

    def _make(
        role=UserRole.USER,
        status=UserStatus.APPROVED,
        name=None,
        password="password123",
        max_distance=None,
        latitude=43.6532,
        longitude=-79.3832,
        organization_id=None,
    ):
        counter["n"] += 1
        organization_id = organization_id or org
        name = name or f"{role.value.title()} {counter['n']}"
        email = f"user{counter['n']}@example.org"
        user = run(
            db["users"].insert_one(
                {
                    "organization_id": organization_id,
                    "email": email,
                    "name": name,
                    "phone_number": "416-555-0100",
                    "password": hash_password(password),
                    "role": role.value,
                    "status": status.value,
                    "max_distance": max_distance,
                    "email_notifications": True,
                    "whatsapp_notifications": False,
                    "created_at": datetime.utcnow(),
                }
            )
        )
        user_id = str(user.inserted_id)
        address = run(
            db["addresses"].insert_one(
                {
                    "organization_id": organization_id,
                    "user_id": user_id,
                    "name": "Home",
                    "street": "1 Queen St",
                    "city": "Toronto",
                    "province": "ON",
                    "postal_code": "M5H 2N2",
                    "country": "Canada",
                    "latitude": latitude,
                    "longitude": longitude,
                    "is_default": True,
                    "created_at": datetime.utcnow(),
                }
            )
        )
        token = create_access_token(user_id, role, organization_id)
        return SimpleNamespace(
            id=user_id,
            email=email,
            organization_id=organization_id,
            address_id=str(address.inserted_id),
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture
def make_service_day(db, org):
    def _make(**overrides):
        doc = {
            "organization_id": org,
            "name": "Sunday Service",
            "time": "10:00",
            "weekdays": ALL_WEEKDAYS,
            "frequency": "WEEKLY",
            "ordinal": "NEXT",
            "start_date": None,
            "end_date": None,
            "cycle": None,
            "service_type": "REGULAR",
            "is_active": True,
            "created_at": datetime.utcnow(),
            "updated_at": datetime.utcnow(),
        }
        doc.update(overrides)
        return str(run(db["service_days"].insert_one(doc)).inserted_id)

    return _make
