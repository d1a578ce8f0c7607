# drivers.py

from fastapi import APIRouter, Depends

from auth.dependencies import Actor, require_roles
from database.connection import get_database
from models.enums import UserRole
from models.pickup import DriverStats
from pickup.service import driver_stats

router = APIRouter(prefix="/api/drivers", tags=["drivers"])

get_current_driver = require_roles(UserRole.TRANSPORTATION_TEAM)


@router.get("/stats", response_model=DriverStats)
async def get_driver_stats(driver: Actor = Depends(get_current_driver), db=Depends(get_database)):
    """Dashboard counters for the signed-in driver."""
    return await driver_stats(db, driver)
