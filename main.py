# main.py

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from database.connection import create_client, ensure_indexes
from errors import register_exception_handlers

# Import routers
from appeals.appeals import router as appeals_router
from drivers.drivers import router as drivers_router
from notifications.notifications import router as notifications_router
from organizations.organizations import router as organizations_router
from pickup.pickup import router as pickup_router
from service_days.service_days import router as service_days_router
from users.addresses import router as addresses_router
from users.admin_users import router as admin_users_router
from users.users import router as users_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    config.configure_logging()
    app = FastAPI(title="Church Pickup API", version="1.0.0")

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_db_client():
        app.mongodb_client = create_client()
        app.mongodb = app.mongodb_client[config.MONGODB_DB]
        await ensure_indexes(app.mongodb)
        logger.info(f"Connected to MongoDB database {config.MONGODB_DB}")

    @app.on_event("shutdown")
    async def shutdown_db_client():
        app.mongodb_client.close()

    # Include all routers
    app.include_router(organizations_router)
    app.include_router(users_router)
    app.include_router(admin_users_router)
    app.include_router(appeals_router)
    app.include_router(addresses_router)
    app.include_router(service_days_router)
    app.include_router(pickup_router)
    app.include_router(drivers_router)
    app.include_router(notifications_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
