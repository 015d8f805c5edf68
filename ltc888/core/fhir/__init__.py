"""
FHIR Integration Layer

SMART on FHIR authorization, an async REST client wrapper and mappers from
raw long-term-care measurements to FHIR Observations.
"""
from .auth import FHIRAuth, FHIRSession, LaunchRequest, SmartConfiguration
from .client import LTC888Client
from .mapper import (
    map_blood_pressure,
    map_blood_glucose,
    map_body_weight,
    map_step_count,
    map_body_temperature,
    map_heart_rate,
    map_observation,
    SUPPORTED_OBSERVATION_TYPES,
)

__all__ = [
    "FHIRAuth",
    "FHIRSession",
    "LaunchRequest",
    "SmartConfiguration",
    "LTC888Client",
    "map_blood_pressure",
    "map_blood_glucose",
    "map_body_weight",
    "map_step_count",
    "map_body_temperature",
    "map_heart_rate",
    "map_observation",
    "SUPPORTED_OBSERVATION_TYPES",
]
