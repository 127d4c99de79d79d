"""
Domain errors raised by the account service and photo storage.

Services raise these instead of HTTPException so they can be used outside a
request; app.main maps each one to a status code and response body.
"""
from typing import List, Dict


class AccountServiceError(Exception):
    """Base class for account lifecycle errors"""
    message = "Account operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class AccountNotFoundError(AccountServiceError):
    message = "Account doesn't exist"

    def __init__(self, account_id: int):
        super().__init__()
        self.account_id = account_id


class DuplicateEmailError(AccountServiceError):
    message = "Email is currently being used"


class AccountValidationError(AccountServiceError):
    """Patched account failed field validation; nothing was persisted"""
    message = "One or more validation errors occurred"

    def __init__(self, errors: List[Dict[str, str]], message: str | None = None):
        super().__init__(message)
        # Each entry is {"field": <camelCase name or path>, "message": <reason>}
        self.errors = errors


class AccountStorageError(AccountServiceError):
    """Backing store unreachable or rejected the commit"""
    message = "Database error occurred"


class PhotoStorageError(AccountServiceError):
    """Photo could not be read or written to the photo directory"""
    message = "Photo could not be stored"
