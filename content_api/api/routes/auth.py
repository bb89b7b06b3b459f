from typing import Any

from fastapi import APIRouter, Depends

from content_api.core.auth import Principal
from content_api.core.security import get_human_principal
from content_api.schemas.common import Envelope

router = APIRouter()


@router.get("/validate-token", response_model=Envelope[dict[str, Any]])
async def validate_token(principal: Principal = Depends(get_human_principal)) -> Envelope[dict[str, Any]]:
    return Envelope(
        message="Token is valid",
        data={
            "subject": principal.subject,
            "employee_id": principal.actor.employee_id,
            "user_id": principal.actor.user_id,
            "name": principal.name,
            "email": principal.email,
            "roles": principal.roles,
        },
    )
