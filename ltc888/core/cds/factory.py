"""
Smart Alert Service Factory

Builds the CDS Hooks service used by the 御管轉診平台 dashboard: one
composite handler on "patient-view" plus the default alert copy.
"""
from __future__ import annotations

import inspect
from datetime import datetime
from typing import Callable, List, Optional

from .base import Card
from .rules_population import PopulationReminderEvaluator
from .rules_schedule import ScheduledReminderEvaluator
from .rules_threshold import ThresholdAlertEvaluator
from .service import CDSHooksService, HookHandler, _normalize_cards

PATIENT_VIEW = "patient-view"
ORDER_SELECT = "order-select"

ALERT_TEMPLATES_KEY = "default-alert-templates"

DEFAULT_ALERT_TEMPLATES = {
    "blood-pressure-high": {
        "summary": "血壓數值異常",
        "detail": "個案血壓連續多日超標，建議立即追蹤處理。",
        "indicator": "critical",
    },
    "blood-glucose-high": {
        "summary": "血糖數值異常",
        "detail": "個案血糖值超出正常範圍，建議追蹤處理。",
        "indicator": "warning",
    },
    "visit-reminder": {
        "summary": "訪視提醒",
        "detail": "個案已達預定訪視時間，請安排訪視。",
        "indicator": "info",
    },
    "appointment-reminder": {
        "summary": "門診提醒",
        "detail": "個案有預約門診，請提醒準時返診。",
        "indicator": "info",
    },
}

# Service discovery metadata (GET /cds-services)
SMART_ALERT_SERVICES = [
    {
        "hook": PATIENT_VIEW,
        "title": "病人檢視提醒",
        "description": "當檢視病人資料時，提供智慧提醒與警示",
        "id": "smart-alert-patient-view",
        "prefetch": {
            "patient": "Patient/{{context.patientId}}",
            "observations": "Observation?subject=Patient/{{context.patientId}}&_sort=-date&_count=10",
            "conditions": "Condition?subject=Patient/{{context.patientId}}",
            "carePlans": "CarePlan?subject=Patient/{{context.patientId}}",
        },
    },
    {
        "hook": ORDER_SELECT,
        "title": "醫囑選擇提醒",
        "description": "當選擇醫囑時，提供相關提醒與建議",
        "id": "smart-alert-order-select",
        "prefetch": {
            "patient": "Patient/{{context.patientId}}",
            "medications": "MedicationStatement?subject=Patient/{{context.patientId}}",
        },
    },
]


class SmartAlertHandler(HookHandler):
    """
    Runs the built-in evaluators in a fixed order (threshold, schedule,
    population) and concatenates their cards.
    """

    def __init__(self, evaluators: Optional[List[HookHandler]] = None):
        self.evaluators = evaluators if evaluators is not None else [
            ThresholdAlertEvaluator(),
            ScheduledReminderEvaluator(),
            PopulationReminderEvaluator(),
        ]

    async def evaluate(self, context, prefetch, service) -> List[Card]:
        cards: List[Card] = []
        for evaluator in self.evaluators:
            result = evaluator.evaluate(context, prefetch, service)
            if inspect.isawaitable(result):
                result = await result
            cards.extend(_normalize_cards(result))
        return cards


def create_smart_alert_service(
    base_url: Optional[str] = None,
    clock: Optional[Callable[[], datetime]] = None,
    **options,
) -> CDSHooksService:
    """Service with the smart-alert handler on patient-view and default templates loaded."""
    service = CDSHooksService(base_url=base_url, clock=clock, **options)
    service.register_hook(PATIENT_VIEW, SmartAlertHandler())
    service.set_predefined_data(ALERT_TEMPLATES_KEY, DEFAULT_ALERT_TEMPLATES)
    return service
