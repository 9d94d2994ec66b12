"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class ImapSettings(BaseModel):
    """Settings controlling IMAP sessions opened for linked accounts."""

    default_port: int = Field(default=993, description="Implicit TLS IMAP port")
    mailbox: str = Field(default="INBOX", description="Mailbox to synchronize")
    timeout_seconds: float = Field(
        default=10.0, gt=0, description="Socket timeout for connect and login"
    )


class SmtpSettings(BaseModel):
    """Settings for outbound SMTP submission."""

    default_port: int = Field(default=587, description="STARTTLS submission port")
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Socket timeout for SMTP sessions"
    )


class SendGridSettings(BaseModel):
    """Settings for the SendGrid transactional HTTP API."""

    base_url: str = Field(
        default="https://api.sendgrid.com", description="SendGrid API base URL"
    )
    timeout_seconds: float = Field(
        default=15.0, gt=0, description="Request timeout for SendGrid calls"
    )


class StorageSettings(BaseModel):
    """Settings for local persistence."""

    db_path: Path = Field(
        default=Path("./nexus_mail.db"), description="SQLite database path"
    )
    pool_size: int = Field(
        default=5, ge=1, description="Connections kept by the web connection pool"
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class SyncSettings(BaseModel):
    """Settings bounding a single synchronization call."""

    fetch_limit: int = Field(
        default=5, ge=1, description="Most recent messages fetched per sync"
    )
    time_budget_seconds: float = Field(
        default=60.0, gt=0, description="Wall-clock budget for one sync call"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    imap: ImapSettings = Field(default_factory=ImapSettings)
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)
    sendgrid: SendGridSettings = Field(default_factory=SendGridSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


ENV_PREFIX = "NEXUS_MAIL_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, include_environment: bool
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "ImapSettings",
    "LoggingSettings",
    "SendGridSettings",
    "SmtpSettings",
    "StorageSettings",
    "SyncSettings",
    "load_app_settings",
]
