from .cds_hooks import CDSRequest, CDSServiceDefinition, CDSServicesResponse, HealthResponse

__all__ = [
    "CDSRequest",
    "CDSServiceDefinition",
    "CDSServicesResponse",
    "HealthResponse",
]
