from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

SortOrder = Literal["asc", "desc"]


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None


class Page(BaseModel, Generic[T]):
    """Paginator payload; key names follow the admin frontend's table widget."""

    model_config = ConfigDict(populate_by_name=True)

    current_page: int
    data: list[T] = Field(default_factory=list)
    per_page: int
    total: int
    last_page: int
    from_: int | None = Field(default=None, alias="from")
    to: int | None = None

    @classmethod
    def build(cls, *, items: list[Any], total: int, page: int, per_page: int) -> "Page[T]":
        last_page = max(1, -(-total // per_page))
        first = (page - 1) * per_page + 1 if items else None
        last = first + len(items) - 1 if first is not None else None
        return cls(
            current_page=page,
            data=items,
            per_page=per_page,
            total=total,
            last_page=last_page,
            from_=first,
            to=last,
        )
