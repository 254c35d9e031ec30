"""Error types raised by the workflow engine, record store and service.

Each error carries the HTTP status the API answers with, so the blueprint
needs a single handler for the whole family.
"""


class TrackerError(Exception):
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """Bad input, rejected before anything is written."""

    status = 400


class NotFoundError(TrackerError):
    status = 404


class ConflictError(TrackerError):
    """The row changed underneath us or already exists."""

    status = 409


class InvalidTransitionError(ConflictError):
    """Strict mode refused to move a record to the requested stage."""


class TransportError(TrackerError):
    """The database was unreachable or returned an unexpected fault."""

    status = 503
