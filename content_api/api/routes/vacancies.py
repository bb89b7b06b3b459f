from fastapi import APIRouter, Depends, Query, status

from content_api.api.errors import ApiError, validation_error
from content_api.core.auth import Actor, Principal
from content_api.core.security import get_actor, get_human_principal
from content_api.schemas.common import Envelope, Page, SortOrder
from content_api.schemas.vacancies import (
    SweepResultOut,
    VacancyOut,
    VacancySortBy,
    VacancyStatisticsOut,
    VacancyWriteRequest,
)
from content_api.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    VacancyFilters,
)
from content_api.services.vacancies import VacancyService, get_vacancy_service

router = APIRouter()


def _unavailable(exc: RepositoryUnavailableError) -> ApiError:
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database unavailable", error=str(exc))


@router.get("", response_model=Envelope[Page[VacancyOut]])
async def list_vacancies(
    sort_by: VacancySortBy = Query(default="id"),
    sort_order: SortOrder = Query(default="desc"),
    per_page: int = Query(default=10, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    department_id: int | None = Query(default=None),
    employment_id: int | None = Query(default=None),
    experience_id: int | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    is_urgent: bool | None = Query(default=None),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[Page[VacancyOut]]:
    filters = VacancyFilters(
        department_id=department_id,
        employment_id=employment_id,
        experience_id=experience_id,
        is_active=is_active,
        is_urgent=is_urgent,
    )
    try:
        rows, total = await service.list_vacancies(
            filters=filters,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            per_page=per_page,
        )
    except RepositoryValidationError as exc:
        raise validation_error(exc) from exc
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(
        message="Vacancies retrieved successfully",
        data=Page[VacancyOut].build(
            items=[VacancyOut(**row) for row in rows],
            total=total,
            page=page,
            per_page=per_page,
        ),
    )


@router.get("/all", response_model=Envelope[list[VacancyOut]])
async def list_all_vacancies(
    sort_by: VacancySortBy = Query(default="id"),
    sort_order: SortOrder = Query(default="desc"),
    department_id: int | None = Query(default=None),
    employment_id: int | None = Query(default=None),
    experience_id: int | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    is_urgent: bool | None = Query(default=None),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[list[VacancyOut]]:
    filters = VacancyFilters(
        department_id=department_id,
        employment_id=employment_id,
        experience_id=experience_id,
        is_active=is_active,
        is_urgent=is_urgent,
    )
    try:
        rows = await service.list_all_vacancies(filters=filters, sort_by=sort_by, sort_order=sort_order)
    except RepositoryValidationError as exc:
        raise validation_error(exc) from exc
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="All vacancies retrieved successfully", data=[VacancyOut(**row) for row in rows])


@router.get("/active", response_model=Envelope[list[VacancyOut]])
async def list_active_vacancies(
    department_id: int | None = Query(default=None),
    employment_id: int | None = Query(default=None),
    experience_id: int | None = Query(default=None),
    is_urgent: bool | None = Query(default=None),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[list[VacancyOut]]:
    filters = VacancyFilters(
        department_id=department_id,
        employment_id=employment_id,
        experience_id=experience_id,
        is_urgent=is_urgent,
    )
    try:
        rows = await service.list_active_vacancies(filters=filters)
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="Active vacancies retrieved successfully", data=[VacancyOut(**row) for row in rows])


@router.get("/check-expired", response_model=Envelope[SweepResultOut])
async def check_expired_vacancies(
    principal: Principal = Depends(get_human_principal),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[SweepResultOut]:
    try:
        inactivated = await service.check_expired()
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(
        message=f"Successfully inactivated {inactivated} expired vacancies.",
        data=SweepResultOut(inactivated=inactivated),
    )


@router.get("/statistics", response_model=Envelope[VacancyStatisticsOut])
async def vacancy_statistics(
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[VacancyStatisticsOut]:
    try:
        stats = await service.statistics()
    except RepositoryUnavailableError as exc:
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Error fetching vacancy statistics",
            error=str(exc),
        ) from exc

    return Envelope(message="Vacancy statistics retrieved successfully", data=VacancyStatisticsOut(**stats))


@router.get("/getVacancyDetail/{identifier}", response_model=Envelope[VacancyOut])
async def get_vacancy_detail(
    identifier: str,
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[VacancyOut]:
    try:
        row = await service.get_vacancy_detail(identifier)
    except RepositoryNotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="Vacancy details retrieved successfully", data=VacancyOut(**row))


@router.get("/getRelatedVacancies", response_model=Envelope[list[VacancyOut]])
async def get_related_vacancies(
    department_id: int | None = Query(default=None),
    current_vacancy_id: int | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=20),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[list[VacancyOut]]:
    if department_id is None:
        raise ApiError(
            status.HTTP_422_UNPROCESSABLE_CONTENT,
            "Department ID is required",
            errors={"department_id": ["The department_id field is required."]},
        )

    try:
        rows = await service.list_related_vacancies(
            department_id=department_id,
            exclude_id=current_vacancy_id,
            limit=limit,
        )
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="Related vacancies retrieved successfully", data=[VacancyOut(**row) for row in rows])


@router.get("/{vacancy_id}", response_model=Envelope[VacancyOut])
async def get_vacancy(
    vacancy_id: int,
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[VacancyOut]:
    try:
        row = await service.get_vacancy(vacancy_id)
    except RepositoryNotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="Vacancy retrieved successfully", data=VacancyOut(**row))


@router.post("", response_model=Envelope[VacancyOut], status_code=status.HTTP_201_CREATED)
async def create_vacancy(
    payload: VacancyWriteRequest,
    actor: Actor = Depends(get_actor),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[VacancyOut]:
    try:
        row = await service.create_vacancy(fields=payload.model_dump(), actor=actor)
    except RepositoryValidationError as exc:
        raise validation_error(exc) from exc
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="Vacancy created successfully", data=VacancyOut(**row))


@router.put("/{vacancy_id}", response_model=Envelope[VacancyOut])
async def update_vacancy(
    vacancy_id: int,
    payload: VacancyWriteRequest,
    actor: Actor = Depends(get_actor),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[VacancyOut]:
    try:
        row = await service.update_vacancy(
            vacancy_id=vacancy_id,
            fields=payload.model_dump(exclude_unset=True),
            actor=actor,
        )
    except RepositoryNotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
    except RepositoryValidationError as exc:
        raise validation_error(exc) from exc
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="Vacancy updated successfully", data=VacancyOut(**row))


@router.delete("/{vacancy_id}", response_model=Envelope[None])
async def delete_vacancy(
    vacancy_id: int,
    actor: Actor = Depends(get_actor),
    service: VacancyService = Depends(get_vacancy_service),
) -> Envelope[None]:
    try:
        await service.delete_vacancy(vacancy_id)
    except RepositoryNotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise _unavailable(exc) from exc

    return Envelope(message="Vacancy deleted successfully")
