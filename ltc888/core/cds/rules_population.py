"""
Population-Based Reminder Rules

Condition / risk-factor reminders for specific patient groups.

Rules:
    1. Early CKD referral   — a Condition coded SNOMED 42399005 (chronic
                              kidney disease) or whose text mentions
                              慢性腎臟病 → nephrology referral (warning).
    2. Smoking cessation    — the first tobacco smoking status Observation
                              (LOINC 72166-2, or text mentioning 抽菸) with
                              value SNOMED 428041000124106 (current smoker)
                              → cessation clinic information (info).
"""
from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from .base import Card, HookContext, Prefetch, first_coding_code, prefetch_resources
from .rules_common import ALERT_SOURCE_LABEL, suggestion_uuid
from .service import HookHandler

if TYPE_CHECKING:
    from .service import CDSHooksService

# ── Codes ─────────────────────────────────────────────────────────────────────

SNOMED_CKD             = "42399005"
CKD_TEXT               = "慢性腎臟病"
SNOMED_REFERRAL        = "306206005"     # Referral to service

LOINC_SMOKING_STATUS   = "72166-2"
SMOKING_TEXT           = "抽菸"
SNOMED_CURRENT_SMOKER  = "428041000124106"


def _text_contains(concept: Optional[dict], needle: str) -> bool:
    text = (concept or {}).get("text")
    return isinstance(text, str) and needle in text


def _is_ckd(condition: dict) -> bool:
    code = condition.get("code")
    return first_coding_code(code) == SNOMED_CKD or _text_contains(code, CKD_TEXT)


def _is_smoking_status(observation: dict) -> bool:
    code = observation.get("code")
    return first_coding_code(code) == LOINC_SMOKING_STATUS or _text_contains(code, SMOKING_TEXT)


# ── Rule 1: Early CKD referral ────────────────────────────────────────────────

def rule_ckd_referral(
    conditions: List[dict],
    context: HookContext,
    service: "CDSHooksService",
) -> Optional[Card]:
    if not any(_is_ckd(cond) for cond in conditions):
        return None

    patient_id = context.patient_id
    return service.create_alert_card(
        summary="早期 CKD 個案轉診提醒",
        detail="此個案為早期慢性腎臟病（CKD）個案，建議轉診至腎臟科門診進行專業追蹤。",
        indicator="warning",
        source=ALERT_SOURCE_LABEL,
        suggestions=[
            service.create_suggestion(
                "建立轉診單",
                suggestion_uuid("referral-ckd", service.now()),
                [
                    service.create_action(
                        "create",
                        "建立轉診單",
                        resource={
                            "resourceType": "ServiceRequest",
                            "status": "draft",
                            "intent": "order",
                            "subject": {"reference": f"Patient/{patient_id}"},
                            "code": {
                                "coding": [{
                                    "system": "http://snomed.info/sct",
                                    "code": SNOMED_REFERRAL,
                                    "display": "轉診至專科",
                                }],
                            },
                        },
                    ),
                ],
            ),
        ],
        links=[
            service.create_link("查看個案完整資料", service.dashboard_url("patient", patient_id)),
            service.create_link("腎臟科門診資訊", service.dashboard_url("specialty", "nephrology")),
        ],
    )


# ── Rule 2: Smoking cessation ─────────────────────────────────────────────────

def rule_smoking_cessation(
    observations: List[dict],
    context: HookContext,
    service: "CDSHooksService",
) -> Optional[Card]:
    # Only the first smoking-status record counts, even if a later one says "current"
    status = next((obs for obs in observations if _is_smoking_status(obs)), None)
    if status is None or first_coding_code(status.get("valueCodeableConcept")) != SNOMED_CURRENT_SMOKER:
        return None

    patient_id = context.patient_id
    return service.create_alert_card(
        summary="戒菸門診提醒",
        detail="此個案目前有抽菸習慣，建議提供戒菸門診資訊並追蹤就醫情況。",
        indicator="info",
        source=ALERT_SOURCE_LABEL,
        suggestions=[
            service.create_suggestion(
                "發送戒菸資訊",
                suggestion_uuid("smoking-info", service.now()),
                [
                    service.create_action(
                        "create",
                        "建立衛教資料",
                        resource={
                            "resourceType": "Communication",
                            "status": "completed",
                            "subject": {"reference": f"Patient/{patient_id}"},
                            "payload": [{
                                "contentString": "戒菸門診資訊：建議您前往戒菸門診尋求專業協助，可提高戒菸成功率。",
                            }],
                        },
                    ),
                ],
            ),
        ],
        links=[
            service.create_link("戒菸門診查詢", service.dashboard_url("smoking-cessation")),
        ],
    )


# ── Public interface ───────────────────────────────────────────────────────────

def evaluate_population(
    context: HookContext,
    prefetch: Prefetch,
    service: "CDSHooksService",
) -> List[Card]:
    """Evaluate the CKD and smoking rules; CKD card (if any) comes first."""
    cards: List[Card] = []

    ckd = rule_ckd_referral(prefetch_resources(prefetch, "conditions"), context, service)
    if ckd is not None:
        cards.append(ckd)

    smoking = rule_smoking_cessation(prefetch_resources(prefetch, "observations"), context, service)
    if smoking is not None:
        cards.append(smoking)

    return cards


class PopulationReminderEvaluator(HookHandler):
    """Condition and risk-factor reminders."""

    def evaluate(self, context, prefetch, service):
        return evaluate_population(context, prefetch, service)
