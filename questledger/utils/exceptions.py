"""
Custom exceptions for Quest Ledger business logic.

Ledger-integrity errors (anything raised while crediting) propagate to the
caller. BestEffortFailure is only ever logged.
"""


class QuestLedgerError(Exception):
    """Base exception for all Quest Ledger business logic errors."""

    def __init__(self, message: str, code: str = "QUESTLEDGER_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(QuestLedgerError):
    """Resource not found."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class MemberNotFoundError(NotFoundError):
    """Member not found (or deleted)."""

    def __init__(self, identifier=None):
        super().__init__("Member", identifier)


class QuestNotFoundError(NotFoundError):
    """Quest not found."""

    def __init__(self, identifier=None):
        super().__init__("Quest", identifier)


class ValidationError(QuestLedgerError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class ConfigurationError(QuestLedgerError):
    """Catalog or tier configuration error (empty tier table, disabled badge)."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class ConflictError(QuestLedgerError):
    """Concurrent crediting kept colliding; the caller should retry the trigger."""

    def __init__(self, member_id, attempts: int):
        self.member_id = member_id
        self.attempts = attempts
        message = f"Concurrent update conflict for member {member_id} after {attempts} attempts"
        super().__init__(message, "CONCURRENT_UPDATE_CONFLICT")


class BestEffortFailure(QuestLedgerError):
    """A side effect (badge grant, notification) failed after the ledger committed."""

    def __init__(self, action: str, original_error: Exception = None):
        self.action = action
        self.original_error = original_error
        message = f"{action} failed"
        if original_error:
            message = f"{action} failed: {original_error}"
        super().__init__(message, "BEST_EFFORT_FAILURE")
