from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
import logging
import pytz
from app.routers import (
    auth,
    users,
    permissions,
    members,
    transactions,
    finances,
    reports,
    programs,
    writings,
    notifications,
)
from app.core.config import settings as app_settings
from app.core.db import AsyncSessionLocal
from app.services.permissions import ensure_role_permission_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

timezone = pytz.timezone(app_settings.TIMEZONE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.
    """
    logger.info("Starting Students' Union API...")

    # Role permissions are read on every gated request; make sure the record exists
    try:
        async with AsyncSessionLocal() as db:
            await ensure_role_permission_config(db)
    except Exception:
        logger.error("Could not verify the role permissions record", exc_info=True)

    yield

    logger.info("Shutting down Students' Union API...")


app = FastAPI(
    title="Students' Union API",
    description="Membership, dues and finance management for the students' union",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "service": "students-union-api",
        "timezone": app_settings.TIMEZONE,
        "server_time": datetime.now(timezone).isoformat(),
    }


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(permissions.router)
app.include_router(members.router)
app.include_router(transactions.router)
app.include_router(finances.router)
app.include_router(reports.router)
app.include_router(programs.router)
app.include_router(writings.router)
app.include_router(notifications.router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8008, reload=True)
