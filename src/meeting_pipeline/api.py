"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from meeting_pipeline.dependencies import close_clients
from meeting_pipeline.routes import meetings_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_clients()


app = FastAPI(title="Meeting Pipeline Service", lifespan=lifespan)
app.include_router(meetings_router)
