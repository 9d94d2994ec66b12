"""Operations offered over linked accounts."""

from .handler import EmailHandler, OperationResult, account_view, message_view
from .sender import OutboundSender
from .synchronizer import MessageSynchronizer
from .tester import ConnectionTester

__all__ = [
    "ConnectionTester",
    "EmailHandler",
    "MessageSynchronizer",
    "OperationResult",
    "OutboundSender",
    "account_view",
    "message_view",
]
