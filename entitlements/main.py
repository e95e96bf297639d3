from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from entitlements import __version__
from entitlements.config import Settings
from entitlements.controllers import v1
from entitlements.db import init_db
from entitlements.dependencies import redis_client
from entitlements.logger import setup_logging

settings = Settings()
setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(init_db, settings)
    yield
    await redis_client.aclose()


app = FastAPI(
    title="Entitlement & Usage Metering API",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(v1.router)

Instrumentator().instrument(app).expose(app)
