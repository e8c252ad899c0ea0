"""Typed errors for the catalog extraction pipeline.

Every failure the pipeline can surface to a user is a ``CatalogError``
subclass with a stable ``kind`` and a display-ready ``user_message``.
Callers should branch on the class or ``kind``, never on message wording.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Categories of user-facing failures."""

    DOCUMENT_READ = "document_read"
    INVALID_URL = "invalid_url"
    NETWORK_FETCH = "network_fetch"
    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    BILLING_DISABLED = "billing_disabled"
    TIMEOUT = "timeout"
    GENERIC = "generic"
    EXTRACTION_EMPTY = "extraction_empty"
    PERSISTENCE = "persistence"
    NOT_FOUND = "not_found"


class CatalogError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.GENERIC
    default_message = "An unexpected error occurred."

    def __init__(self, user_message: str | None = None, *, detail: str | None = None):
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(self.user_message)


class DocumentReadError(CatalogError):
    kind = ErrorKind.DOCUMENT_READ
    default_message = "The file could not be read as a PDF document."


class InvalidUrlError(CatalogError):
    kind = ErrorKind.INVALID_URL
    default_message = "Invalid URL. Enter an absolute http(s) address."


class NetworkFetchError(CatalogError):
    kind = ErrorKind.NETWORK_FETCH
    default_message = "The web page could not be retrieved."


class GatewayError(CatalogError):
    """Generic model-call failure; ``user_message`` carries the reason."""

    kind = ErrorKind.GENERIC
    default_message = "The AI request failed."


class InvalidCredentialError(GatewayError):
    kind = ErrorKind.INVALID_CREDENTIAL
    default_message = "The AI service rejected the API key. Check your credentials."


class RateLimitedError(GatewayError):
    kind = ErrorKind.RATE_LIMITED
    default_message = "The AI service is rate limiting requests. Wait a moment and try again."


class BillingDisabledError(GatewayError):
    kind = ErrorKind.BILLING_DISABLED
    default_message = "Billing is not enabled or credit is exhausted for the AI service account."


class GatewayTimeoutError(GatewayError):
    kind = ErrorKind.TIMEOUT
    default_message = (
        "The AI request timed out. The catalog may be too large or too complex."
    )


class ExtractionEmptyError(CatalogError):
    kind = ErrorKind.EXTRACTION_EMPTY
    default_message = "The AI could not extract anything usable from this document."


class PersistenceError(CatalogError):
    kind = ErrorKind.PERSISTENCE
    default_message = "Data was extracted but not saved to the database."


class NotFoundError(CatalogError):
    kind = ErrorKind.NOT_FOUND
    default_message = "The catalog no longer exists."

    def __init__(self, record_id: int | None = None, user_message: str | None = None):
        self.record_id = record_id
        if user_message is None and record_id is not None:
            user_message = f"Catalog {record_id} no longer exists."
        super().__init__(user_message)
