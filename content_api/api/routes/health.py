import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from content_api.core.config import Settings, get_settings
from content_api.services.repository import RepositoryUnavailableError, get_repository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health")
async def health(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> JSONResponse:
    database = "UP"
    status_code = status.HTTP_200_OK
    try:
        await repository.ping()
    except RepositoryUnavailableError as exc:
        logger.warning("health check database ping failed: %s", exc)
        database = "DOWN"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "UP" if database == "UP" else "DOWN",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {"database": database, "app": "UP"},
            "version": settings.app_version,
        },
    )
