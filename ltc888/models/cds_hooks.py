"""
API request / response schemas for the CDS Hooks HTTP surface.

Card responses are not modelled here: they are serialised by the card
model itself so that absent fields stay absent on the wire.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CDSRequest(BaseModel):
    """Incoming CDS Hooks call."""
    hook: Optional[str] = None
    hookInstance: Optional[str] = None
    fhirServer: Optional[str] = None
    context: Optional[Dict[str, Any]] = Field(default_factory=dict)
    prefetch: Optional[Dict[str, Any]] = Field(default_factory=dict)

    model_config = {
        "extra": "allow",
        "json_schema_extra": {"example": {
            "hook": "patient-view",
            "hookInstance": "d1577c69-dfbe-44ad-ba6d-3e05e953b2ea",
            "context": {"patientId": "patient-123", "userId": "Practitioner/456"},
            "prefetch": {
                "observations": [{
                    "resourceType": "Observation",
                    "code": {"coding": [{"system": "http://loinc.org", "code": "2339-0"}]},
                    "valueQuantity": {"value": 150, "unit": "mg/dL"},
                }],
            },
        }},
    }


class CDSServiceDefinition(BaseModel):
    """One entry of the discovery document."""
    hook: str
    title: str
    description: str
    id: str
    prefetch: Optional[Dict[str, str]] = None


class CDSServicesResponse(BaseModel):
    services: List[CDSServiceDefinition]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    timestamp: str
