"""
Custom Exception Hierarchy

Provides specific exception types for the authorization, transport,
mapping and hook layers, with structured error information.
"""
from typing import Optional, Dict, Any


class LTC888Error(Exception):
    """Base exception for all SDK errors."""
    
    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class AuthorizationError(LTC888Error):
    """Errors during the SMART on FHIR launch / token exchange."""
    
    def __init__(
        self,
        message: str,
        launch_type: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="AUTHORIZATION_ERROR",
            details={"launch_type": launch_type, **(details or {})}
        )
        self.launch_type = launch_type


class FHIRClientError(LTC888Error):
    """Errors while reading or writing FHIR resources."""
    
    def __init__(
        self,
        message: str,
        resource_type: str = "unknown",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="FHIR_CLIENT_ERROR",
            details={
                "resource_type": resource_type,
                "status_code": status_code,
                **(details or {})
            }
        )
        self.resource_type = resource_type
        self.status_code = status_code


class MappingError(LTC888Error):
    """Errors converting raw measurements into FHIR resources."""
    
    def __init__(
        self,
        message: str,
        observation_type: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="MAPPING_ERROR",
            details={"observation_type": observation_type, **(details or {})}
        )
        self.observation_type = observation_type


class HookError(LTC888Error):
    """Typed failure a hook handler may raise; rendered as an error card."""
    
    def __init__(
        self,
        message: str,
        hook: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="HOOK_ERROR",
            details={"hook": hook, **(details or {})}
        )
        self.hook = hook
