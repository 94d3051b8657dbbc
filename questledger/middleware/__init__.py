"""
Middleware package for Quest Ledger.
"""
from .service_auth import require_service_auth, get_service_key_from_request
