from fastapi import APIRouter, Depends, Query, status

from content_api.api.errors import ApiError, validation_error
from content_api.core.auth import Actor
from content_api.core.security import get_actor
from content_api.schemas.common import Envelope, Page, SortOrder
from content_api.schemas.lookups import LookupKind, LookupOut, LookupSortBy, LookupWriteRequest
from content_api.services.repository import (
    LOOKUP_TABLES,
    RepositoryNotFoundError,
    RepositoryReferenceError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)


def build_lookup_router(kind: LookupKind) -> APIRouter:
    """CRUD routes for one lookup table (departments, employments, experiences)."""
    label = LOOKUP_TABLES[kind].label
    plural = f"{label}s"
    router = APIRouter()

    def unavailable(exc: RepositoryUnavailableError) -> ApiError:
        return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database unavailable", error=str(exc))

    @router.get("", response_model=Envelope[Page[LookupOut]])
    async def list_lookups(
        search: str | None = Query(default=None, max_length=100),
        sort_by: LookupSortBy = Query(default="id"),
        sort_order: SortOrder = Query(default="desc"),
        per_page: int = Query(default=10, ge=1, le=100),
        page: int = Query(default=1, ge=1),
        repository=Depends(get_repository),
    ) -> Envelope[Page[LookupOut]]:
        try:
            rows, total = await repository.list_lookups(
                kind=kind,
                search=search,
                sort_by=sort_by,
                sort_order=sort_order,
                limit=per_page,
                offset=(page - 1) * per_page,
            )
        except RepositoryValidationError as exc:
            raise validation_error(exc) from exc
        except RepositoryUnavailableError as exc:
            raise unavailable(exc) from exc

        return Envelope(
            message=f"{plural} retrieved successfully",
            data=Page[LookupOut].build(
                items=[LookupOut(**row) for row in rows],
                total=total,
                page=page,
                per_page=per_page,
            ),
        )

    @router.get("/all", response_model=Envelope[list[LookupOut]])
    async def list_all_lookups(repository=Depends(get_repository)) -> Envelope[list[LookupOut]]:
        try:
            rows, _ = await repository.list_lookups(
                kind=kind,
                search=None,
                sort_by="title_en",
                sort_order="asc",
                limit=None,
                offset=0,
            )
        except RepositoryUnavailableError as exc:
            raise unavailable(exc) from exc

        return Envelope(
            message=f"All {plural.lower()} retrieved successfully",
            data=[LookupOut(**row) for row in rows],
        )

    @router.get("/{lookup_id}", response_model=Envelope[LookupOut])
    async def get_lookup(lookup_id: int, repository=Depends(get_repository)) -> Envelope[LookupOut]:
        try:
            row = await repository.get_lookup(kind=kind, lookup_id=lookup_id)
        except RepositoryNotFoundError as exc:
            raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
        except RepositoryUnavailableError as exc:
            raise unavailable(exc) from exc

        return Envelope(message=f"{label} retrieved successfully", data=LookupOut(**row))

    @router.post("", response_model=Envelope[LookupOut], status_code=status.HTTP_201_CREATED)
    async def create_lookup(
        payload: LookupWriteRequest,
        actor: Actor = Depends(get_actor),
        repository=Depends(get_repository),
    ) -> Envelope[LookupOut]:
        try:
            row = await repository.create_lookup(
                kind=kind,
                title_id=payload.title_id,
                title_en=payload.title_en,
                actor=actor,
            )
        except RepositoryUnavailableError as exc:
            raise unavailable(exc) from exc

        return Envelope(message=f"{label} created successfully", data=LookupOut(**row))

    @router.put("/{lookup_id}", response_model=Envelope[LookupOut])
    async def update_lookup(
        lookup_id: int,
        payload: LookupWriteRequest,
        actor: Actor = Depends(get_actor),
        repository=Depends(get_repository),
    ) -> Envelope[LookupOut]:
        try:
            row = await repository.update_lookup(
                kind=kind,
                lookup_id=lookup_id,
                title_id=payload.title_id,
                title_en=payload.title_en,
                actor=actor,
            )
        except RepositoryNotFoundError as exc:
            raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
        except RepositoryUnavailableError as exc:
            raise unavailable(exc) from exc

        return Envelope(message=f"{label} updated successfully", data=LookupOut(**row))

    @router.delete("/{lookup_id}", response_model=Envelope[None])
    async def delete_lookup(
        lookup_id: int,
        actor: Actor = Depends(get_actor),
        repository=Depends(get_repository),
    ) -> Envelope[None]:
        try:
            await repository.delete_lookup(kind=kind, lookup_id=lookup_id)
        except RepositoryNotFoundError as exc:
            raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
        except RepositoryReferenceError as exc:
            raise ApiError(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
        except RepositoryUnavailableError as exc:
            raise unavailable(exc) from exc

        return Envelope(message=f"{label} deleted successfully")

    return router


departments_router = build_lookup_router("department")
employments_router = build_lookup_router("employment")
experiences_router = build_lookup_router("experience")
