from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

LookupKind = Literal["department", "employment", "experience"]
LookupSortBy = Literal["id", "title_id", "title_en", "created_at", "updated_at"]


class LookupRef(BaseModel):
    id: int
    title_id: str
    title_en: str


class LookupOut(LookupRef):
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime


class LookupWriteRequest(BaseModel):
    # title_id is the Indonesian title, title_en the English one.
    title_id: str = Field(min_length=1, max_length=100)
    title_en: str = Field(min_length=1, max_length=100)
