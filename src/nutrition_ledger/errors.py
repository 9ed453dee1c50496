"""Error types surfaced by the ledger services.

Malformed input (unparseable AI hints, non-numeric profile fields, negative
quantities, zero targets) never raises; it is defaulted where it is read.
Only collaborator failures and policy violations reach the caller.
"""

from datetime import datetime


class LedgerError(Exception):
    """Base class for ledger errors."""


class CollaboratorError(LedgerError):
    """An external collaborator (AI, food database, store) failed."""

    def __init__(self, collaborator: str, message: str) -> None:
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class ProductNotFoundError(CollaboratorError):
    """The food database has no usable product for a barcode."""

    def __init__(self, code: str) -> None:
        super().__init__("openfoodfacts", f"product {code} not found")
        self.code = code


class FutureEntryError(LedgerError):
    """A meal or weight sample is dated after the current instant."""

    def __init__(self, timestamp: datetime, now: datetime) -> None:
        super().__init__(
            f"Entry dated {timestamp.isoformat()} is after {now.isoformat()}"
        )
        self.timestamp = timestamp
        self.now = now


class StaleCaptureError(LedgerError):
    """A capture flow result no longer matches the active flow."""


class NotFoundError(LedgerError):
    """A record does not exist for the requesting owner."""


class InvalidEntryError(LedgerError):
    """An entry value violates a domain invariant, such as a non-positive weight."""
