"""
Vital-Sign Threshold Rules

Scans prefetched Observations for values above their upper limit and
emits one card per breached measurement.

Observations consumed (LOINC, first coding only):
    85354-9  Blood pressure panel
             8480-6  systolic  component (mmHg)
             8462-4  diastolic component (mmHg)
    2339-0   Glucose [Mass/volume] in Blood, random (mg/dL)

Rules:
    1. Blood pressure  — systolic > 140 or diastolic > 90
                         critical if systolic > 160 or diastolic > 100
    2. Blood glucose   — value > 126 mg/dL, critical if > 200

Both rules fire independently; a patient with high BP and high glucose
gets two cards.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING

from .base import Card, HookContext, Indicator, Prefetch, first_coding_code, prefetch_resources
from .rules_common import ALERT_SOURCE_LABEL, exceeds, format_value, suggestion_uuid
from .service import HookHandler

if TYPE_CHECKING:
    from .service import CDSHooksService

# ── Codes ─────────────────────────────────────────────────────────────────────

LOINC_BP_PANEL   = "85354-9"
LOINC_SYSTOLIC   = "8480-6"
LOINC_DIASTOLIC  = "8462-4"
LOINC_GLUCOSE    = "2339-0"

# ── Thresholds ────────────────────────────────────────────────────────────────

SBP_HIGH          = 140
DBP_HIGH          = 90
SBP_CRITICAL      = 160
DBP_CRITICAL      = 100

GLUCOSE_HIGH      = 126    # mg/dL
GLUCOSE_CRITICAL  = 200


@dataclass
class ThresholdAlert:
    """One breached measurement, before it is turned into a card."""
    type: str           # "血壓異常" / "血糖異常"
    value: str          # e.g. "150/95 mmHg"
    threshold: str      # e.g. "140/90 mmHg"
    severity: Indicator


# ── Helpers ───────────────────────────────────────────────────────────────────

def _find_observation(observations: List[dict], code: str) -> Optional[dict]:
    return next(
        (obs for obs in observations if first_coding_code(obs.get("code")) == code),
        None,
    )


def _component_value(observation: dict, code: str):
    for component in observation.get("component") or []:
        if first_coding_code(component.get("code")) == code:
            return (component.get("valueQuantity") or {}).get("value")
    return None


# ── Rule 1: Blood pressure ────────────────────────────────────────────────────

def rule_blood_pressure(observations: List[dict]) -> Optional[ThresholdAlert]:
    panel = _find_observation(observations, LOINC_BP_PANEL)
    if panel is None:
        return None

    systolic = _component_value(panel, LOINC_SYSTOLIC)
    diastolic = _component_value(panel, LOINC_DIASTOLIC)

    if not (exceeds(systolic, SBP_HIGH) or exceeds(diastolic, DBP_HIGH)):
        return None

    critical = exceeds(systolic, SBP_CRITICAL) or exceeds(diastolic, DBP_CRITICAL)
    return ThresholdAlert(
        type="血壓異常",
        value=f"{format_value(systolic)}/{format_value(diastolic)} mmHg",
        threshold=f"{SBP_HIGH}/{DBP_HIGH} mmHg",
        severity=Indicator.CRITICAL if critical else Indicator.WARNING,
    )


# ── Rule 2: Blood glucose ─────────────────────────────────────────────────────

def rule_blood_glucose(observations: List[dict]) -> Optional[ThresholdAlert]:
    glucose = _find_observation(observations, LOINC_GLUCOSE)
    if glucose is None:
        return None

    value = (glucose.get("valueQuantity") or {}).get("value")
    if not exceeds(value, GLUCOSE_HIGH):
        return None

    return ThresholdAlert(
        type="血糖異常",
        value=f"{format_value(value)} mg/dL",
        threshold=f"{GLUCOSE_HIGH} mg/dL",
        severity=Indicator.CRITICAL if exceeds(value, GLUCOSE_CRITICAL) else Indicator.WARNING,
    )


THRESHOLD_RULES = [
    rule_blood_pressure,
    rule_blood_glucose,
]


# ── Card construction ─────────────────────────────────────────────────────────

def _alert_card(alert: ThresholdAlert, context: HookContext, service: "CDSHooksService") -> Card:
    patient_id = context.patient_id
    now = service.now()

    return service.create_alert_card(
        summary=f"{alert.type}：數值超出正常範圍",
        detail=f"目前數值：{alert.value}，正常範圍上限：{alert.threshold}。建議立即追蹤處理。",
        indicator=alert.severity,
        source=ALERT_SOURCE_LABEL,
        suggestions=[
            service.create_suggestion(
                "查看詳細資料",
                suggestion_uuid(f"alert-{alert.type}", now),
                [
                    service.create_action(
                        "link",
                        "前往個案管理頁面",
                        url=service.dashboard_url("patient", patient_id),
                    ),
                ],
            ),
            service.create_suggestion(
                "發送提醒通知",
                suggestion_uuid(f"notify-{alert.type}", now),
                [
                    service.create_action(
                        "create",
                        "建立提醒通知",
                        resource={
                            "resourceType": "Communication",
                            "status": "completed",
                            "subject": {"reference": f"Patient/{patient_id}"},
                            "payload": [{
                                "contentString": f"個案數值異常：{alert.type} {alert.value}",
                            }],
                        },
                    ),
                ],
            ),
        ],
        links=[
            service.create_link("查看完整健康記錄", service.dashboard_url("observations", patient_id)),
            service.create_link("聯絡個管師", service.dashboard_url("contact", patient_id)),
        ],
    )


# ── Public interface ───────────────────────────────────────────────────────────

def evaluate_thresholds(
    context: HookContext,
    prefetch: Prefetch,
    service: "CDSHooksService",
) -> List[Card]:
    """
    Evaluate every threshold rule against `prefetch["observations"]`.

    Returns:
        One card per breached measurement, in rule order (BP, glucose).
    """
    observations = prefetch_resources(prefetch, "observations")
    alerts = [alert for alert in (rule(observations) for rule in THRESHOLD_RULES) if alert]
    return [_alert_card(alert, context, service) for alert in alerts]


class ThresholdAlertEvaluator(HookHandler):
    """Vital-sign out-of-range alerts."""

    def evaluate(self, context, prefetch, service):
        return evaluate_thresholds(context, prefetch, service)
