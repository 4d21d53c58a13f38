"""
Custom exception classes
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Raised when a resource doesn't exist or isn't owned by the caller"""
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class AuthenticationError(HTTPException):
    """Raised on missing, invalid or expired credentials"""
    def __init__(self, detail: str = "Invalid token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ValidationFailedError(HTTPException):
    """Raised for business-rule validation failures (400)"""
    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
        self.errors = errors


class ConfigurationError(RuntimeError):
    """Raised when an adapter is used without its required configuration"""


class AIAnalysisError(RuntimeError):
    """Raised when the hosted model call fails for any reason"""


class StorageError(RuntimeError):
    """Raised when an object storage operation fails"""
