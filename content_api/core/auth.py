from dataclasses import dataclass, field
from typing import Any

SYSTEM_ACTOR = "System"


@dataclass(slots=True, frozen=True)
class Actor:
    """Who is performing a write; stored in created_by / updated_by."""

    employee_id: str
    user_id: int | None = None


@dataclass(slots=True)
class Principal:
    subject: str
    actor: Actor
    name: str | None = None
    email: str | None = None
    roles: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)
