"""
CDS Hooks — Base Types

Value objects returned to the calling EHR / dashboard: Card, Suggestion,
Action, Link and Source, plus the per-invocation HookContext.

Wire shape follows CDS Hooks: optional fields and empty collections are
left out of the serialised JSON entirely, never emitted as null or [].
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union


class Indicator(str, Enum):
    """
    Urgency of a card, as rendered by the consuming dashboard.

    INFO     – reminder, no action required right now
    WARNING  – value or situation needs follow-up
    CRITICAL – act immediately
    """
    INFO     = "info"
    WARNING  = "warning"
    CRITICAL = "critical"


class SelectionBehavior(str, Enum):
    ANY         = "any"
    AT_MOST_ONE = "at-most-one"


class ActionType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LINK   = "link"


class LinkType(str, Enum):
    ABSOLUTE = "absolute"
    SMART    = "smart"


@dataclass
class Source:
    """Attribution shown under the card."""
    label: str
    url: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"label": self.label}
        if self.url:
            data["url"] = self.url
        return data


@dataclass
class Action:
    """
    A single change the user can accept.

    `resource` is meaningful for create/update/delete, `url` for link.
    Either one is only serialised when it was supplied.
    """
    type: ActionType
    description: str
    resource: Optional[Dict[str, Any]] = None
    url: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "type": self.type.value,
            "description": self.description,
        }
        if self.resource:
            data["resource"] = self.resource
        if self.url:
            data["url"] = self.url
        return data


@dataclass
class Suggestion:
    """A proposed remediation, made of zero or more actions."""
    label: str
    uuid: str                                   # caller-supplied, stable for re-invocation
    actions: List[Action] = field(default_factory=list)

    def to_dict(self) -> dict:
        # actions is always present, even when empty
        return {
            "label": self.label,
            "uuid": self.uuid,
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass
class Link:
    label: str
    url: str
    type: LinkType = LinkType.ABSOLUTE
    app_context: Optional[str] = None           # only meaningful for SMART links

    def to_dict(self) -> dict:
        data = {
            "label": self.label,
            "url": self.url,
            "type": self.type.value,
        }
        if self.app_context:
            data["appContext"] = self.app_context
        return data


@dataclass
class Card:
    """
    One decision-support notice.

    A handler may produce 0-N cards per invocation; each one is rendered
    independently by the dashboard.
    """
    # ── Core identity ─────────────────────────────────────────────────────
    summary: str
    indicator: Indicator
    source: Source
    detail: Optional[str] = None

    # None only for the dispatcher's synthetic error card
    selection_behavior: Optional[SelectionBehavior] = SelectionBehavior.ANY

    # ── Remediation ───────────────────────────────────────────────────────
    suggestions: List[Suggestion] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    # ── Serialisation ─────────────────────────────────────────────────────
    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"summary": self.summary}
        if self.detail is not None:
            data["detail"] = self.detail
        data["indicator"] = self.indicator.value
        data["source"] = self.source.to_dict()
        if self.selection_behavior is not None:
            data["selectionBehavior"] = self.selection_behavior.value
        if self.suggestions:
            data["suggestions"] = [s.to_dict() for s in self.suggestions]
        if self.links:
            data["links"] = [l.to_dict() for l in self.links]
        return data


@dataclass
class CDSResponse:
    """What every hook invocation returns: `{"cards": [...]}`."""
    cards: List[Card] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "cards": [c.to_dict() if isinstance(c, Card) else c for c in self.cards]
        }


@dataclass
class HookContext:
    """
    Per-invocation input supplied by the calling system.

    Hook-specific fields (`selections` for order-select, `encounterId`, ...)
    are kept in `extra` under their wire names.
    """
    patient_id: Optional[str] = None
    user_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "HookContext":
        data = dict(data or {})
        patient_id = data.pop("patientId", None)
        user_id = data.pop("userId", None)
        return cls(patient_id=patient_id, user_id=user_id, extra=data)

    def get(self, key: str, default: Any = None) -> Any:
        return self.extra.get(key, default)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        if self.patient_id is not None:
            data["patientId"] = self.patient_id
        if self.user_id is not None:
            data["userId"] = self.user_id
        return data


Prefetch = Mapping[str, Any]


def prefetch_resources(prefetch: Optional[Prefetch], key: str) -> List[dict]:
    """
    Return the records stored under `key` as a list of resources.

    Accepts a plain list, a FHIR Bundle (entries are unwrapped) or a single
    resource. Missing / null keys yield an empty list.
    """
    if not prefetch:
        return []
    value = prefetch.get(key)
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        if value.get("resourceType") == "Bundle":
            return [
                entry["resource"]
                for entry in value.get("entry", [])
                if "resource" in entry
            ]
        return [value]
    raise TypeError(f"Prefetch '{key}' must be a list, Bundle or resource, got {type(value).__name__}")


def first_coding_code(element: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Code of the first coding of a CodeableConcept, or None."""
    if not element:
        return None
    codings = element.get("coding") or []
    if not codings:
        return None
    return codings[0].get("code")


CardResult = Union[Card, List[Card], None]
