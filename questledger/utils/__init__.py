"""
Utility modules for Quest Ledger.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    not_found,
    internal_error,
    exception_response,
)
from .exceptions import (
    QuestLedgerError,
    NotFoundError,
    MemberNotFoundError,
    QuestNotFoundError,
    ValidationError,
    ConfigurationError,
    ConflictError,
    BestEffortFailure,
)
from .locks import member_lock
