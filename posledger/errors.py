"""Errors raised by the catalog, pricing and stock services.

Every error carries the HTTP status it maps to; the API layer renders the
message as a plain-text body so clients can show it to the user verbatim.
"""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(LedgerError, ValueError):
    status_code = 400


class InvalidDelta(ValidationError):
    pass


class NotFound(LedgerError):
    status_code = 404


class AlreadyReverted(LedgerError):
    status_code = 409


class ConflictError(LedgerError):
    """A concurrent write won the race. Nothing was applied; retry is safe."""

    status_code = 409
