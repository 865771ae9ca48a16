"""Client for sending multicast messages to GCM with retry and backoff."""

from .errors import ErrorCode, GcmError
from .message import Message, new_message
from .response import Response, ResponseError, Result, is_retryable
from .retry import BackoffPolicy, BackoffScheduler
from .sender import Sender, check_message
from .transport import BatchTransport, HttpTransport, TransportLimits

__all__ = [
    "BackoffPolicy",
    "BackoffScheduler",
    "BatchTransport",
    "check_message",
    "ErrorCode",
    "GcmError",
    "HttpTransport",
    "is_retryable",
    "Message",
    "new_message",
    "Response",
    "ResponseError",
    "Result",
    "Sender",
    "TransportLimits",
]
