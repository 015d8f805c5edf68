"""
LTC888 — long-term-care (長照 888) FHIR integration toolkit.

SMART on FHIR authorization, a FHIR REST client, measurement mappers and
a CDS Hooks smart-alert service.
"""
from ltc888.core.fhir import (
    FHIRAuth,
    LTC888Client,
    map_blood_pressure,
    map_blood_glucose,
    map_body_weight,
    map_step_count,
    map_body_temperature,
    map_heart_rate,
    map_observation,
)
from ltc888.core.cds import CDSHooksService, create_smart_alert_service

__version__ = "1.0.0"

__all__ = [
    "FHIRAuth",
    "LTC888Client",
    "map_blood_pressure",
    "map_blood_glucose",
    "map_body_weight",
    "map_step_count",
    "map_body_temperature",
    "map_heart_rate",
    "map_observation",
    "CDSHooksService",
    "create_smart_alert_service",
]
