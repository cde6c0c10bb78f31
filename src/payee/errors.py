"""Exception hierarchy for payee classification."""

from __future__ import annotations


class PayeeError(Exception):
    """Base class for all payee classifier errors."""


class ExternalServiceError(PayeeError):
    """The AI classification service failed to produce a usable answer."""


class AuthenticationError(ExternalServiceError):
    """Credentials were rejected. Never retried."""


class RateLimitError(ExternalServiceError):
    """The service asked us to slow down."""


class ServiceTimeoutError(ExternalServiceError):
    """The service did not answer within the configured timeout."""


class MalformedResponseError(ExternalServiceError):
    """The service answered with something we could not parse."""


class AlignmentError(PayeeError):
    """Batch output does not line up 1:1 with batch input."""


class BatchCancelledError(PayeeError):
    """The caller cancelled a batch before all chunks ran."""
