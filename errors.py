"""Error taxonomy shared by the store, the routes and the client.

Every error here is recoverable: it is reported to the caller with enough
detail to retry and never takes the process down.
"""


class SetlistError(Exception):
    """Base class for setlist/song operation failures."""

    status_code = 400
    kind = "SetlistError"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"ok": False, "error": self.message, "kind": self.kind}
        payload.update(self.details)
        return payload


class ValidationError(SetlistError):
    """Malformed input: empty name, non-positive order, wrong type."""

    kind = "ValidationError"


class NotFound(SetlistError):
    """Setlist, song or entry is absent or not owned by the caller."""

    status_code = 404
    kind = "NotFound"


class DuplicateEntry(SetlistError):
    status_code = 409
    kind = "DuplicateEntry"


class InvalidPosition(SetlistError):
    """Insert position outside ``1..n+1``."""

    kind = "InvalidPosition"


class InvalidOrderSequence(SetlistError):
    """Supplied orders are not exactly ``1..n`` over distinct songs."""

    kind = "InvalidOrderSequence"


class StorageError(SetlistError):
    """The database refused the transaction. Not retried here."""

    status_code = 500
    kind = "StorageError"
