# salonbook/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .db import init_db
from .errors import register_error_handlers
from .routers import (
    appointments_routes,
    auth_routes,
    availability_routes,
    notifications_routes,
    schedule_exceptions_routes,
    services_routes,
    stylist_services_routes,
    users_routes,
)

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    init_db()
    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Salon Booking API", version="1.0.0", lifespan=lifespan)
register_error_handlers(app)

app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(services_routes.router)
app.include_router(availability_routes.router)
app.include_router(stylist_services_routes.router)
app.include_router(schedule_exceptions_routes.router)
app.include_router(appointments_routes.router)
app.include_router(notifications_routes.router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
