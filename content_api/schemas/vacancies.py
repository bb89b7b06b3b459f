from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from content_api.schemas.lookups import LookupRef

WorkMode = Literal["Onsite", "Hybrid", "Remote"]
VacancySortBy = Literal[
    "id",
    "title_id",
    "title_en",
    "posted_date",
    "closed_date",
    "urgent",
    "is_active",
    "created_at",
    "updated_at",
]


class VacancyWriteRequest(BaseModel):
    title_id: str = Field(min_length=1, max_length=255)
    title_en: str = Field(min_length=1, max_length=255)
    department_id: int
    employment_id: int
    experience_id: int
    work_mode: WorkMode | None = None
    description_id: str | None = None
    description_en: str | None = None
    requirement_id: str | None = None
    requirement_en: str | None = None
    responsibilities_id: str | None = None
    responsibilities_en: str | None = None
    posted_date: date
    closed_date: date | None = None
    # Left out of a PUT, the stored flag is kept; on create they default to False/True.
    urgent: bool | None = None
    is_active: bool | None = None

    @field_validator("closed_date")
    @classmethod
    def _closed_not_before_posted(cls, value: date | None, info: ValidationInfo) -> date | None:
        posted_date = info.data.get("posted_date")
        if value is not None and posted_date is not None and value < posted_date:
            raise ValueError("closed_date must be a date after or equal to posted_date")
        return value


class VacancyOut(BaseModel):
    id: int
    title_id: str
    title_en: str
    department_id: int
    employment_id: int
    experience_id: int
    work_mode: WorkMode | None = None
    description_id: str | None = None
    description_en: str | None = None
    requirement_id: str | None = None
    requirement_en: str | None = None
    responsibilities_id: str | None = None
    responsibilities_en: str | None = None
    posted_date: date
    closed_date: date | None = None
    urgent: bool = False
    is_active: bool = True
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime
    department: LookupRef | None = None
    employment: LookupRef | None = None
    experience: LookupRef | None = None


class SweepResultOut(BaseModel):
    inactivated: int


class DepartmentVacancyCountOut(BaseModel):
    id: int
    title_en: str
    vacancy_count: int


class LatestVacancyOut(BaseModel):
    id: int
    title_id: str
    title_en: str
    work_mode: WorkMode | None = None
    urgent: bool
    is_active: bool
    posted_date: date
    closed_date: date | None = None
    department_name: str
    experience_level: str


class VacancyStatisticsOut(BaseModel):
    total_vacancies: int
    active_vacancies: int
    urgent_vacancies: int
    total_departments: int
    total_employments: int
    total_experiences: int
    latest_vacancies: list[LatestVacancyOut] = Field(default_factory=list)
    vacancies_by_department: list[DepartmentVacancyCountOut] = Field(default_factory=list)
