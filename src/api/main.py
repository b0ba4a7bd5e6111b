import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.deps import close_service, get_rules, get_service, get_settings
from src.api.routes import assets
from src.app_shell.config import configure_logging, validate_ops_rules
from src.components.assets import AssetHistoryService

logger = logging.getLogger(__name__)

FRONTEND_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Fail fast on a broken rules file, then warm the service."""
    try:
        rules = get_rules()
    except (FileNotFoundError, ValueError) as e:
        logging.basicConfig()
        logger.critical("Cannot start without rules: %s", e)
        sys.exit(1)

    configure_logging(rules.ops.log_level)
    validate_ops_rules(rules)
    logger.info("Rules loaded from %s", get_settings().rules_path)

    if not get_service().is_service_configured():
        logger.warning("Object store credentials are not configured; uploads will fail")

    try:
        yield
    finally:
        await close_service()


def health(service: AssetHistoryService = Depends(get_service)) -> dict[str, Any]:
    return {"status": "ok", "service": "api", "configured": service.is_service_configured()}


def create_app() -> FastAPI:
    api = FastAPI(title="Asset Version History API", version="0.1.0", lifespan=lifespan)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=FRONTEND_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api.include_router(assets.router, prefix="/api/assets", tags=["Assets"])
    api.add_api_route("/health", health, methods=["GET"])
    return api


app = create_app()
