#!/usr/bin/env python3
"""Local stand-in for the identity service: answers GET /me for two fixed tokens."""
from __future__ import annotations

import argparse

import uvicorn
from fastapi import FastAPI, Header, HTTPException

USERS_BY_TOKEN: dict[str, dict[str, object]] = {
    "admin-token": {"id": 1, "employee_id": "EMP-0001", "name": "Local Admin", "email": "admin@example.test"},
    "editor-token": {"id": 2, "u_employee_id": "EMP-0002", "name": "Local Editor", "email": "editor@example.test"},
}

app = FastAPI(title="mock-identity")


@app.get("/me")
async def me(authorization: str = Header(default="")) -> dict[str, object]:
    scheme, _, token = authorization.partition(" ")
    user = USERS_BY_TOKEN.get(token.strip()) if scheme.lower() == "bearer" else None
    if user is None:
        raise HTTPException(status_code=401, detail="invalid token")
    return {"data": user}


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock identity service /me endpoint for local runs.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8089)
    args = parser.parse_args()
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
