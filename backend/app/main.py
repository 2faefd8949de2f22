"""AppForge FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import locks
from app.config import settings
from app.db.factory import close_database, init_database
from app.logging_config import setup_logging
from app.routers.api import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    await init_database()
    yield
    await locks.close()
    await close_database()


app = FastAPI(
    title="AppForge API",
    description="Turns an app idea into a blueprint and a provisioned backend",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)
