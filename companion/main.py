from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from companion.config import settings
from companion.logging_config import configure_logging
from companion.routes import sessions


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Configure logging on startup. Nothing to tear down on shutdown."""
    configure_logging(settings.log_level)
    yield


app = FastAPI(
    title="lecture-companion",
    description="Session storage with validation, recovery, migration and backups",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(sessions.router)


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    uvicorn.run("companion.main:app", host=settings.host, port=settings.port)
