"""FastAPI web application exposing the NexusMail operations."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status as http_status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from nexus_mail.core import AppSettings, load_app_settings
from nexus_mail.core.interfaces import MailProvider
from nexus_mail.core.models import ConnectionRequest, ProtocolKind
from nexus_mail.providers import build_providers
from nexus_mail.services import EmailHandler, OperationResult
from nexus_mail.storage import ConnectionPool, SqliteMailRepository
from .security import UserResolver

LOGGER = logging.getLogger(__name__)

DEFAULT_MESSAGE_LIMIT = 50
MAX_MESSAGE_LIMIT = 200

_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_DEFAULT_ENV_FILE = _PROJECT_ROOT / ".env"

# Legacy protocol names used by older dashboard clients.
_PROTOCOL_ALIASES: Mapping[str, ProtocolKind] = {
    "imap": ProtocolKind.IMAP_SMTP,
    "sendgrid": ProtocolKind.TRANSACTIONAL_HTTP,
}


class ConnectionConfig(BaseModel):
    """Candidate account fields shared by ``test`` and account creation."""

    model_config = ConfigDict(populate_by_name=True)

    protocol: ProtocolKind | None = Field(default=None, alias="protocolKind")
    address: str | None = None
    credential: str | None = None
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)

    @field_validator("protocol", mode="before")
    @classmethod
    def _accept_aliases(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _PROTOCOL_ALIASES.get(value.lower(), value)
        return value

    def to_request(self) -> ConnectionRequest | None:
        """Return a domain request, or ``None`` when required fields are missing."""
        if self.protocol is None or not self.address or not self.credential:
            return None
        return ConnectionRequest(
            protocol=self.protocol,
            address=self.address.strip(),
            credential=self.credential,
            host=self.host or None,
            port=self.port,
        )


class HandlerRequest(ConnectionConfig):
    """Body of the action-dispatching endpoint."""

    action: str
    account_id: str | None = Field(default=None, alias="accountId")
    to: str | None = None
    subject: str | None = None
    content: str | None = None
    silent: bool = False


class ReadFlagRequest(BaseModel):
    """Body of the read-flag endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    is_read: bool = Field(default=True, alias="isRead")


def create_app(
    settings: AppSettings | None = None,
    *,
    providers: Mapping[ProtocolKind, MailProvider] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = settings or load_app_settings(env_file=_DEFAULT_ENV_FILE)
    registry = providers if providers is not None else build_providers(app_settings)
    app = FastAPI(title="NexusMail")
    user_resolver = UserResolver()

    connection_pool = ConnectionPool(app_settings.storage)
    app.state.connection_pool = connection_pool

    def current_user(request: Request) -> str:
        return user_resolver.resolve(request)

    def get_repository() -> Iterator[SqliteMailRepository]:
        with connection_pool.acquire(timeout=10.0) as repository:
            yield repository

    def get_handler(
        repository: SqliteMailRepository = Depends(get_repository),  # noqa: B008
    ) -> EmailHandler:
        return EmailHandler(repository, registry, app_settings)

    @app.on_event("shutdown")
    def shutdown_event() -> None:
        """Close connection pool on app shutdown."""
        connection_pool.close()
        LOGGER.info("Connection pool closed")

    @app.exception_handler(HTTPException)
    async def http_error(_: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        LOGGER.debug("Rejected request body: %s", exc.errors())
        return JSONResponse(
            {"error": "Invalid JSON body"}, status_code=http_status.HTTP_400_BAD_REQUEST
        )

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        return OperationResult(success=True, message="Service is healthy").to_payload()

    @app.post("/api/email-handler")
    def email_handler(
        body: HandlerRequest,
        user_id: str = Depends(current_user),  # noqa: B008
        handler: EmailHandler = Depends(get_handler),  # noqa: B008
    ) -> JSONResponse:
        action = body.action
        if action == "health":
            return _respond(handler.health())
        if action == "test":
            request = body.to_request()
            if request is None:
                return _respond(
                    OperationResult.failure(
                        "protocolKind, address and credential are required"
                    ),
                    failure_status=http_status.HTTP_400_BAD_REQUEST,
                )
            return _respond(handler.test(request))
        if action == "send":
            if not body.account_id:
                return _missing_account()
            return _respond(
                handler.send(
                    user_id,
                    body.account_id,
                    body.to or "",
                    body.subject or "",
                    body.content or "",
                )
            )
        if action == "sync":
            if not body.account_id:
                return _missing_account()
            return _respond(handler.sync(user_id, body.account_id, silent=body.silent))
        return JSONResponse(
            {"error": "Invalid Action"}, status_code=http_status.HTTP_400_BAD_REQUEST
        )

    @app.get("/api/accounts")
    def list_accounts(
        user_id: str = Depends(current_user),  # noqa: B008
        handler: EmailHandler = Depends(get_handler),  # noqa: B008
    ) -> JSONResponse:
        return _respond(handler.list_accounts(user_id))

    @app.post("/api/accounts")
    def create_account(
        body: ConnectionConfig,
        user_id: str = Depends(current_user),  # noqa: B008
        handler: EmailHandler = Depends(get_handler),  # noqa: B008
    ) -> JSONResponse:
        request = body.to_request()
        if request is None:
            return _respond(
                OperationResult.failure("protocolKind, address and credential are required"),
                failure_status=http_status.HTTP_400_BAD_REQUEST,
            )
        result = handler.create_account(user_id, request)
        return _respond(
            result,
            success_status=http_status.HTTP_201_CREATED,
            failure_status=http_status.HTTP_400_BAD_REQUEST,
        )

    @app.delete("/api/accounts/{account_id}")
    def delete_account(
        account_id: str,
        user_id: str = Depends(current_user),  # noqa: B008
        handler: EmailHandler = Depends(get_handler),  # noqa: B008
    ) -> JSONResponse:
        return _respond(handler.delete_account(user_id, account_id))

    @app.get("/api/messages")
    def list_messages(
        account_id: str | None = Query(default=None),  # noqa: B008
        limit: int = Query(default=DEFAULT_MESSAGE_LIMIT, ge=1, le=MAX_MESSAGE_LIMIT),  # noqa: B008
        user_id: str = Depends(current_user),  # noqa: B008
        handler: EmailHandler = Depends(get_handler),  # noqa: B008
    ) -> JSONResponse:
        return _respond(handler.list_messages(user_id, account_id=account_id, limit=limit))

    @app.post("/api/messages/{message_id}/read")
    def mark_read(
        message_id: str,
        body: ReadFlagRequest | None = None,
        user_id: str = Depends(current_user),  # noqa: B008
        handler: EmailHandler = Depends(get_handler),  # noqa: B008
    ) -> JSONResponse:
        is_read = body.is_read if body is not None else True
        return _respond(handler.mark_read(user_id, message_id, is_read=is_read))

    @app.delete("/api/messages/{message_id}")
    def delete_message(
        message_id: str,
        user_id: str = Depends(current_user),  # noqa: B008
        handler: EmailHandler = Depends(get_handler),  # noqa: B008
    ) -> JSONResponse:
        return _respond(handler.delete_message(user_id, message_id))

    return app


def _respond(
    result: OperationResult,
    *,
    success_status: int = http_status.HTTP_200_OK,
    failure_status: int = http_status.HTTP_200_OK,
) -> JSONResponse:
    """Serialise ``result``; operation failures default to HTTP 200."""
    if result.success:
        code = success_status
    elif result.not_found:
        code = http_status.HTTP_404_NOT_FOUND
    else:
        code = failure_status
    return JSONResponse(result.to_payload(), status_code=code)


def _missing_account() -> JSONResponse:
    return _respond(
        OperationResult.failure("accountId is required"),
        failure_status=http_status.HTTP_400_BAD_REQUEST,
    )


__all__ = ["create_app"]
