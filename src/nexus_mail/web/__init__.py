"""Web application entry point for NexusMail.

Run with ``uvicorn --factory nexus_mail.web:create_app`` or ``nexus-mail serve``.
"""

from .app import create_app

__all__ = ["create_app"]
