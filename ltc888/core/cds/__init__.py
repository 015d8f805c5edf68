"""
CDS Hooks Layer

Hook registry / dispatcher, card model and the built-in smart-alert rules.

Usage:
    from ltc888.core.cds import create_smart_alert_service

    service = create_smart_alert_service(base_url="http://localhost:3000")
    response = await service.handle_hook("patient-view", context, prefetch)
    response.to_dict()   # {"cards": [...]}
"""
from .base import (
    Action,
    ActionType,
    Card,
    CDSResponse,
    HookContext,
    Indicator,
    Link,
    LinkType,
    SelectionBehavior,
    Source,
    Suggestion,
    prefetch_resources,
)
from .service import CDSHooksService, FunctionHandler, HookHandler, HookResult
from .rules_threshold import ThresholdAlertEvaluator, evaluate_thresholds
from .rules_schedule import ScheduledReminderEvaluator, evaluate_schedule
from .rules_population import PopulationReminderEvaluator, evaluate_population
from .factory import (
    ALERT_TEMPLATES_KEY,
    DEFAULT_ALERT_TEMPLATES,
    SMART_ALERT_SERVICES,
    SmartAlertHandler,
    create_smart_alert_service,
)

__all__ = [
    "Action",
    "ActionType",
    "Card",
    "CDSResponse",
    "HookContext",
    "Indicator",
    "Link",
    "LinkType",
    "SelectionBehavior",
    "Source",
    "Suggestion",
    "prefetch_resources",
    "CDSHooksService",
    "FunctionHandler",
    "HookHandler",
    "HookResult",
    "ThresholdAlertEvaluator",
    "ScheduledReminderEvaluator",
    "PopulationReminderEvaluator",
    "evaluate_thresholds",
    "evaluate_schedule",
    "evaluate_population",
    "SmartAlertHandler",
    "create_smart_alert_service",
    "ALERT_TEMPLATES_KEY",
    "DEFAULT_ALERT_TEMPLATES",
    "SMART_ALERT_SERVICES",
]
