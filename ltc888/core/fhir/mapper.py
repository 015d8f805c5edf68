"""
Long-Term Care Measurement Mappers

Converts raw 888-programme measurements into FHIR R4 Observation resources
following the TW Core IG conventions (LOINC codes, UCUM units).

Usage:
    from ltc888.core.fhir import map_observation

    obs = map_observation("blood-pressure", {"systolic": 120, "diastolic": 80}, "patient-123")
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from ltc888.utils import MappingError

LOINC = "http://loinc.org"
UCUM = "http://unitsofmeasure.org"
OBSERVATION_CATEGORY = "http://terminology.hl7.org/CodeSystem/observation-category"

EffectiveDateTime = Union[datetime, str, None]

# ── Glucose sample types ──────────────────────────────────────────────────────

DEFAULT_GLUCOSE_TYPE = "隨機"

GLUCOSE_TYPES = {
    "空腹": {"code": "33747-0", "display": "Glucose [Mass/volume] in Blood --fasting"},
    "飯後": {"code": "33748-8", "display": "Glucose [Mass/volume] in Blood --2 hours post meal"},
    "隨機": {"code": "2339-0", "display": "Glucose [Mass/volume] in Blood"},
}


# ── Helpers ───────────────────────────────────────────────────────────────────

def _effective(value: EffectiveDateTime) -> str:
    """Datetimes become UTC instants with millisecond precision; strings pass through."""
    if value is None:
        value = datetime.now(timezone.utc)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return value


def _category(code: str, display: str) -> list:
    return [{"coding": [{"system": OBSERVATION_CATEGORY, "code": code, "display": display}]}]


def _concept(code: str, display: str, text: str) -> dict:
    return {"coding": [{"system": LOINC, "code": code, "display": display}], "text": text}


def _quantity(value: Any, unit: str, ucum_code: str) -> dict:
    return {"value": value, "unit": unit, "system": UCUM, "code": ucum_code}


def _observation(
    patient_id: str,
    effective_date_time: EffectiveDateTime,
    category: list,
    code: dict,
    **extra: Any,
) -> Dict[str, Any]:
    return {
        "resourceType": "Observation",
        "status": "final",
        "category": category,
        "code": code,
        "subject": {"reference": f"Patient/{patient_id}"},
        "effectiveDateTime": _effective(effective_date_time),
        **extra,
    }


# ── Mappers ───────────────────────────────────────────────────────────────────

def map_blood_pressure(
    systolic: float,
    diastolic: float,
    patient_id: str,
    effective_date_time: EffectiveDateTime = None,
) -> Dict[str, Any]:
    """Blood pressure panel (85354-9) with systolic / diastolic components."""
    return _observation(
        patient_id,
        effective_date_time,
        _category("vital-signs", "生命徵象"),
        _concept("85354-9", "Blood pressure panel with all children optional", "血壓"),
        component=[
            {
                "code": _concept("8480-6", "Systolic blood pressure", "收縮壓"),
                "valueQuantity": _quantity(systolic, "mmHg", "mm[Hg]"),
            },
            {
                "code": _concept("8462-4", "Diastolic blood pressure", "舒張壓"),
                "valueQuantity": _quantity(diastolic, "mmHg", "mm[Hg]"),
            },
        ],
    )


def map_blood_glucose(
    value: float,
    patient_id: str,
    type: str = DEFAULT_GLUCOSE_TYPE,
    effective_date_time: EffectiveDateTime = None,
) -> Dict[str, Any]:
    """
    Blood glucose in mg/dL.

    `type` is 空腹 (fasting), 飯後 (2 h post meal) or 隨機 (random); unknown
    types fall back to the random-glucose code.
    """
    glucose_type = GLUCOSE_TYPES.get(type, GLUCOSE_TYPES[DEFAULT_GLUCOSE_TYPE])
    return _observation(
        patient_id,
        effective_date_time,
        _category("laboratory", "檢驗"),
        _concept(glucose_type["code"], glucose_type["display"], f"血糖（{type}）"),
        valueQuantity=_quantity(value, "mg/dL", "mg/dL"),
    )


def map_body_weight(value: float, patient_id: str, effective_date_time: EffectiveDateTime = None):
    return _observation(
        patient_id,
        effective_date_time,
        _category("vital-signs", "生命徵象"),
        _concept("29463-7", "Body weight", "體重"),
        valueQuantity=_quantity(value, "kg", "kg"),
    )


def map_step_count(steps: int, patient_id: str, effective_date_time: EffectiveDateTime = None):
    return _observation(
        patient_id,
        effective_date_time,
        _category("activity", "活動"),
        _concept("55423-8", "Number of steps", "步數"),
        valueQuantity=_quantity(steps, "steps", "{steps}"),
    )


def map_body_temperature(value: float, patient_id: str, effective_date_time: EffectiveDateTime = None):
    return _observation(
        patient_id,
        effective_date_time,
        _category("vital-signs", "生命徵象"),
        _concept("8310-5", "Body temperature", "體溫"),
        valueQuantity=_quantity(value, "°C", "Cel"),
    )


def map_heart_rate(value: float, patient_id: str, effective_date_time: EffectiveDateTime = None):
    return _observation(
        patient_id,
        effective_date_time,
        _category("vital-signs", "生命徵象"),
        _concept("8867-4", "Heart rate", "心率"),
        valueQuantity=_quantity(value, "次/分鐘", "/min"),
    )


def _map_glucose_value(value: Any, patient_id: str, effective: EffectiveDateTime):
    if isinstance(value, dict):
        return map_blood_glucose(
            value.get("value"), patient_id, value.get("type") or DEFAULT_GLUCOSE_TYPE, effective
        )
    return map_blood_glucose(value, patient_id, DEFAULT_GLUCOSE_TYPE, effective)


_TYPE_MAP: Dict[str, Callable[[Any, str, EffectiveDateTime], Dict[str, Any]]] = {
    "blood-pressure": lambda v, pid, eff: map_blood_pressure(v["systolic"], v["diastolic"], pid, eff),
    "blood-glucose":  _map_glucose_value,
    "weight":         map_body_weight,
    "steps":          map_step_count,
    "temperature":    map_body_temperature,
    "heart-rate":     map_heart_rate,
}

SUPPORTED_OBSERVATION_TYPES = list(_TYPE_MAP)


def map_observation(
    type: str,
    value: Any,
    patient_id: str,
    effective_date_time: Optional[EffectiveDateTime] = None,
) -> Dict[str, Any]:
    """
    Pick the mapper for `type` and apply it.

    Raises:
        MappingError: if `type` is not one of SUPPORTED_OBSERVATION_TYPES.
    """
    mapper = _TYPE_MAP.get(type)
    if mapper is None:
        raise MappingError(
            f"Unsupported observation type: {type}",
            observation_type=str(type),
            details={"supported": SUPPORTED_OBSERVATION_TYPES},
        )
    return mapper(value, patient_id, effective_date_time)
