import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_quote
from .core.config import settings
from .core.observability import setup_logging
from .utils.redis_cache import close_redis_client

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Field Service Quote Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_quote.router, prefix=settings.API_V1_STR)


@app.on_event("shutdown")
def _close_cache() -> None:
    close_redis_client()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
