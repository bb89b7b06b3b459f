import logging
from typing import Any

import httpx
from fastapi import Depends, Header, HTTPException, status

from content_api.core.auth import Actor, Principal
from content_api.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


async def get_human_principal(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")

    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")

    if not settings.identity_base_url:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication service not configured properly",
        )

    user = await _fetch_identity_user(
        identity_base_url=settings.identity_base_url,
        token=token,
        timeout_seconds=settings.auth_timeout_seconds,
    )
    return _principal_from_identity(user)


async def get_actor(principal: Principal = Depends(get_human_principal)) -> Actor:
    return principal.actor


async def _fetch_identity_user(
    *,
    identity_base_url: str,
    token: str,
    timeout_seconds: float,
) -> dict[str, Any]:
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
    }
    url = f"{identity_base_url.rstrip('/')}/me"

    try:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("identity introspection failed url=%s error=%s", url, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token") from exc

    if response.status_code != 200:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    try:
        payload = response.json()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token") from exc

    user = _unwrap_identity_payload(payload)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return user


def _unwrap_identity_payload(payload: Any) -> dict[str, Any] | None:
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict):
        return data
    return payload


def _principal_from_identity(user: dict[str, Any]) -> Principal:
    raw_id = user.get("id")
    subject = str(raw_id).strip() if raw_id is not None else ""
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    return Principal(
        subject=subject,
        actor=_resolve_actor(user),
        name=_as_text(user.get("name")),
        email=_as_text(user.get("email")),
        roles=_resolve_roles(user),
        raw=user,
    )


def _resolve_actor(user: dict[str, Any]) -> Actor:
    user_id = _as_int(user.get("id"))
    for key in ("employee_id", "u_employee_id"):
        employee_id = _as_text(user.get(key))
        if employee_id:
            return Actor(employee_id=employee_id, user_id=user_id)
    return Actor(employee_id=str(user.get("id")).strip(), user_id=user_id)


def _resolve_roles(user: dict[str, Any]) -> list[str]:
    roles = user.get("roles")
    if isinstance(roles, list):
        resolved: list[str] = []
        for role in roles:
            if isinstance(role, str) and role.strip():
                resolved.append(role.strip())
            elif isinstance(role, dict):
                name = _as_text(role.get("name"))
                if name:
                    resolved.append(name)
        return resolved

    role = _as_text(user.get("role"))
    return [role] if role else []


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
