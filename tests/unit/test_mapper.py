"""
Unit Tests for the measurement → FHIR Observation mappers
"""
from datetime import datetime, timezone

import pytest

from ltc888.core.fhir import (
    SUPPORTED_OBSERVATION_TYPES,
    map_blood_glucose,
    map_blood_pressure,
    map_body_temperature,
    map_body_weight,
    map_heart_rate,
    map_observation,
    map_step_count,
)
from ltc888.utils import MappingError

PATIENT_ID = "patient-123"
TEST_DATE = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class TestBloodPressure:

    def test_maps_components(self):
        result = map_blood_pressure(120, 80, PATIENT_ID, TEST_DATE)

        assert result["resourceType"] == "Observation"
        assert result["status"] == "final"
        assert result["subject"]["reference"] == f"Patient/{PATIENT_ID}"
        assert len(result["component"]) == 2
        assert result["component"][0]["valueQuantity"]["value"] == 120
        assert result["component"][1]["valueQuantity"]["value"] == 80

    def test_loinc_codes(self):
        result = map_blood_pressure(120, 80, PATIENT_ID, TEST_DATE)

        assert result["code"]["coding"][0]["code"] == "85354-9"
        assert result["component"][0]["code"]["coding"][0]["code"] == "8480-6"
        assert result["component"][1]["code"]["coding"][0]["code"] == "8462-4"

    def test_effective_datetime_is_utc_instant(self):
        result = map_blood_pressure(120, 80, PATIENT_ID, TEST_DATE)
        assert result["effectiveDateTime"] == "2024-01-01T10:00:00.000Z"

    def test_effective_string_passes_through(self):
        result = map_blood_pressure(120, 80, PATIENT_ID, "2024-01-01")
        assert result["effectiveDateTime"] == "2024-01-01"

    def test_default_effective_is_now(self):
        result = map_blood_pressure(120, 80, PATIENT_ID)
        assert result["effectiveDateTime"].endswith("Z")


class TestBloodGlucose:

    @pytest.mark.parametrize("glucose_type,code", [
        ("空腹", "33747-0"),
        ("飯後", "33748-8"),
        ("隨機", "2339-0"),
    ])
    def test_sample_type_codes(self, glucose_type, code):
        result = map_blood_glucose(95, PATIENT_ID, glucose_type, TEST_DATE)

        assert result["code"]["coding"][0]["code"] == code
        assert result["code"]["text"] == f"血糖（{glucose_type}）"

    def test_value_and_unit(self):
        result = map_blood_glucose(95, PATIENT_ID, "空腹", TEST_DATE)

        assert result["resourceType"] == "Observation"
        assert result["valueQuantity"]["value"] == 95
        assert result["valueQuantity"]["unit"] == "mg/dL"
        assert result["category"][0]["coding"][0]["code"] == "laboratory"

    def test_unknown_type_falls_back_to_random(self):
        result = map_blood_glucose(95, PATIENT_ID, "睡前", TEST_DATE)
        assert result["code"]["coding"][0]["code"] == "2339-0"


class TestSimpleMeasurements:

    @pytest.mark.parametrize("mapper,value,code,unit", [
        (map_body_weight, 65.5, "29463-7", "kg"),
        (map_step_count, 5000, "55423-8", "steps"),
        (map_body_temperature, 36.5, "8310-5", "°C"),
        (map_heart_rate, 72, "8867-4", "次/分鐘"),
    ])
    def test_code_value_unit(self, mapper, value, code, unit):
        result = mapper(value, PATIENT_ID, TEST_DATE)

        assert result["resourceType"] == "Observation"
        assert result["code"]["coding"][0]["code"] == code
        assert result["valueQuantity"]["value"] == value
        assert result["valueQuantity"]["unit"] == unit

    def test_ucum_codes(self):
        assert map_body_temperature(36.5, PATIENT_ID)["valueQuantity"]["code"] == "Cel"
        assert map_heart_rate(72, PATIENT_ID)["valueQuantity"]["code"] == "/min"


class TestMapObservation:

    def test_blood_pressure(self):
        result = map_observation("blood-pressure", {"systolic": 120, "diastolic": 80}, PATIENT_ID, TEST_DATE)

        assert result["resourceType"] == "Observation"
        assert len(result["component"]) == 2

    def test_blood_glucose_with_type(self):
        result = map_observation("blood-glucose", {"value": 95, "type": "空腹"}, PATIENT_ID, TEST_DATE)
        assert result["code"]["coding"][0]["code"] == "33747-0"

    def test_blood_glucose_plain_value(self):
        result = map_observation("blood-glucose", 110, PATIENT_ID, TEST_DATE)

        assert result["code"]["coding"][0]["code"] == "2339-0"
        assert result["valueQuantity"]["value"] == 110

    def test_weight(self):
        result = map_observation("weight", 70, PATIENT_ID, TEST_DATE)
        assert result["code"]["coding"][0]["code"] == "29463-7"

    def test_unsupported_type(self):
        with pytest.raises(MappingError) as exc_info:
            map_observation("unknown-type", 100, PATIENT_ID, TEST_DATE)

        assert "Unsupported observation type" in str(exc_info.value)
        assert exc_info.value.code == "MAPPING_ERROR"
        assert exc_info.value.observation_type == "unknown-type"

    def test_supported_types(self):
        assert SUPPORTED_OBSERVATION_TYPES == [
            "blood-pressure", "blood-glucose", "weight", "steps", "temperature", "heart-rate",
        ]
