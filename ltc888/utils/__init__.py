"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    LTC888Error,
    AuthorizationError,
    FHIRClientError,
    MappingError,
    HookError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "LTC888Error",
    "AuthorizationError",
    "FHIRClientError",
    "MappingError",
    "HookError",
]
