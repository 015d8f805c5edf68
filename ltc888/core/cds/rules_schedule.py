"""
Scheduled Reminder Rules

Date-driven reminders computed from prefetched CarePlans and Appointments.

Rules:
    1. Hospice second visit   — a CarePlan categorised "hospice-care" whose
                                period.start is exactly 7 whole days ago.
    2. Next-day appointment   — an Appointment whose start is exactly 1
                                whole day away.

Whole days are floor(elapsed / 24h). The match is an exact equality on
that count: an evaluation that does not run on the matching day produces
no reminder for that record.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import List, Optional, TYPE_CHECKING

from ltc888.utils import get_logger
from .base import Card, HookContext, Prefetch, first_coding_code, prefetch_resources
from .rules_common import (
    ALERT_SOURCE_LABEL,
    local_time,
    parse_fhir_datetime,
    suggestion_uuid,
    to_fhir_instant,
)
from .service import HookHandler

if TYPE_CHECKING:
    from .service import CDSHooksService

logger = get_logger(__name__)

HOSPICE_CATEGORY_CODE = "hospice-care"

SECOND_VISIT_AFTER_DAYS = 7
APPOINTMENT_REMINDER_DAYS = 1

ONE_DAY = timedelta(days=1)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """floor((later - earlier) / 1 day); negative when `later` precedes `earlier`."""
    return math.floor((later - earlier) / ONE_DAY)


def _is_hospice_plan(plan: dict) -> bool:
    categories = plan.get("category") or []
    return bool(categories) and first_coding_code(categories[0]) == HOSPICE_CATEGORY_CODE


def _display_date(value: datetime) -> str:
    local = local_time(value)
    return f"{local.year}/{local.month}/{local.day}"


def _display_time(value: datetime) -> str:
    return local_time(value).strftime("%H:%M")


# ── Rule 1: Hospice second visit ──────────────────────────────────────────────

def rule_hospice_second_visit(
    plan: dict,
    context: HookContext,
    service: "CDSHooksService",
    now: datetime,
) -> Optional[Card]:
    if not _is_hospice_plan(plan):
        return None

    start = parse_fhir_datetime((plan.get("period") or {}).get("start"))
    if start is None:
        logger.debug(f"Hospice CarePlan {plan.get('id')} has no usable period.start, skipping")
        return None

    if whole_days_between(start, now) != SECOND_VISIT_AFTER_DAYS:
        return None

    patient_id = context.patient_id
    proposed_start = now + timedelta(days=SECOND_VISIT_AFTER_DAYS)

    return service.create_alert_card(
        summary="安寧共照第二次訪視提醒",
        detail=f"個案於 {_display_date(start)} 完成首訪，今日為第七日，建議進行第二次訪視。",
        indicator="info",
        source=ALERT_SOURCE_LABEL,
        suggestions=[
            service.create_suggestion(
                "安排訪視",
                suggestion_uuid("schedule-visit", now),
                [
                    service.create_action(
                        "create",
                        "建立訪視預約",
                        resource={
                            "resourceType": "Appointment",
                            "status": "proposed",
                            "subject": {"reference": f"Patient/{patient_id}"},
                            "start": to_fhir_instant(proposed_start),
                            "participant": [{
                                "actor": {"reference": f"Practitioner/{context.user_id}"},
                                "status": "accepted",
                            }],
                        },
                    ),
                ],
            ),
        ],
        links=[
            service.create_link("查看個案資料", service.dashboard_url("patient", patient_id)),
        ],
    )


# ── Rule 2: Next-day appointment ──────────────────────────────────────────────

def rule_next_day_appointment(
    appointment: dict,
    context: HookContext,
    service: "CDSHooksService",
    now: datetime,
) -> Optional[Card]:
    start = parse_fhir_datetime(appointment.get("start"))
    if start is None:
        logger.debug(f"Appointment {appointment.get('id')} has no usable start, skipping")
        return None

    if whole_days_between(now, start) != APPOINTMENT_REMINDER_DAYS:
        return None

    patient_id = context.patient_id
    appointment_id = appointment.get("id")
    at = _display_time(start)

    links = []
    if appointment_id:
        links.append(service.create_link("查看預約詳情", service.dashboard_url("appointment", appointment_id)))

    return service.create_alert_card(
        summary="明日門診提醒",
        detail=f"個案預約於明日 {at} 進行門診，請提醒個案準時返診。",
        indicator="info",
        source=ALERT_SOURCE_LABEL,
        suggestions=[
            service.create_suggestion(
                "發送提醒訊息",
                suggestion_uuid("send-reminder", now),
                [
                    service.create_action(
                        "create",
                        "建立提醒通知",
                        resource={
                            "resourceType": "Communication",
                            "status": "completed",
                            "subject": {"reference": f"Patient/{patient_id}"},
                            "payload": [{
                                "contentString": f"提醒：明日 {at} 有門診預約，請準時返診。",
                            }],
                        },
                    ),
                ],
            ),
        ],
        links=links,
    )


# ── Public interface ───────────────────────────────────────────────────────────

def evaluate_schedule(
    context: HookContext,
    prefetch: Prefetch,
    service: "CDSHooksService",
) -> List[Card]:
    """
    Evaluate the hospice and appointment reminders.

    Returns:
        Care-plan reminders first (in prefetch order), then appointment
        reminders (in prefetch order).
    """
    now = service.now()
    cards: List[Card] = []

    for plan in prefetch_resources(prefetch, "carePlans"):
        card = rule_hospice_second_visit(plan, context, service, now)
        if card is not None:
            cards.append(card)

    for appointment in prefetch_resources(prefetch, "appointments"):
        card = rule_next_day_appointment(appointment, context, service, now)
        if card is not None:
            cards.append(card)

    return cards


class ScheduledReminderEvaluator(HookHandler):
    """Exact-day reminders for hospice visits and appointments."""

    def evaluate(self, context, prefetch, service):
        return evaluate_schedule(context, prefetch, service)
