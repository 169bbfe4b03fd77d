"""Typed exception hierarchy for ledger errors.

Route handlers map each subclass to an HTTP status; anything that is not a
``LedgerError`` surfaces as an opaque internal error.
"""


class LedgerError(Exception):
    """Base exception for all ledger rule violations.

    The message is human-readable and safe to return to the caller.
    """

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Malformed or out-of-range input (non-positive shares/price, empty id set)."""

    status_code = 400


class NotFoundError(LedgerError):
    """Referenced stock, lot or transaction is absent or owned by someone else."""

    status_code = 404


class ConflictError(LedgerError):
    """The entity is no longer in a state that allows the operation.

    Raised for sold lots, lots taken by a concurrent sell, and duplicate
    stock names.
    """

    status_code = 409
