"""Caller identity resolution for the HTTP API."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, Request, status

USER_HEADER_NAME = "X-User-Id"


@dataclass(slots=True)
class UserResolver:
    """Read the authenticated user id placed on the request by the gateway.

    Session handling happens upstream; this only enforces that every
    account/message operation is scoped to a user.
    """

    header_name: str = USER_HEADER_NAME

    def resolve(self, request: Request) -> str:
        """Return the caller id or raise 401."""
        user_id = request.headers.get(self.header_name, "").strip()
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
            )
        return user_id


__all__ = ["USER_HEADER_NAME", "UserResolver"]
