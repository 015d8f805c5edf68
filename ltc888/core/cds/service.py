"""
CDS Hooks Service

Central dispatcher. Maps hook names (e.g. "patient-view", "order-select")
to handlers, feeds them the caller's context and prefetch data, and
returns a well-formed `{"cards": [...]}` response in every case.

Usage:
    from ltc888.core.cds import CDSHooksService

    service = CDSHooksService(base_url="http://localhost:3000")
    service.register_hook("patient-view", my_handler)
    response = await service.handle_hook("patient-view", context, prefetch)
    response.to_dict()   # {"cards": [...]}

Adding a new hook:
    1. Subclass HookHandler and implement evaluate(context, prefetch, service)
       (or write a plain function with the same signature).
    2. register_hook("<hook-name>", handler).
"""
from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ltc888.config import settings
from ltc888.utils import get_logger
from .base import (
    Action,
    ActionType,
    Card,
    CardResult,
    CDSResponse,
    HookContext,
    Indicator,
    Link,
    LinkType,
    Prefetch,
    SelectionBehavior,
    Source,
    Suggestion,
)

logger = get_logger(__name__)

DEFAULT_SOURCE_LABEL = "御管轉診平台"
ERROR_SOURCE_LABEL = "CDS Hooks Service"
ERROR_SUMMARY = "處理錯誤"


class HookHandler(ABC):
    """Something that can answer a hook invocation with cards."""

    @abstractmethod
    def evaluate(
        self,
        context: HookContext,
        prefetch: Prefetch,
        service: "CDSHooksService",
    ) -> CardResult:
        """
        Inspect the context / prefetch data and return zero or more cards.

        May also return an awaitable resolving to the same.
        """


class FunctionHandler(HookHandler):
    """Adapts a plain `(context, prefetch, service)` callable."""

    def __init__(self, func: Callable[..., Any]):
        self.func = func

    def evaluate(self, context, prefetch, service):
        return self.func(context, prefetch, service)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.func, '__name__', self.func)!r})"


@dataclass
class HookResult:
    """Outcome of running one handler: cards on success, a message on failure."""
    cards: List[Card] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, cards: List[Card]) -> "HookResult":
        return cls(cards=cards)

    @classmethod
    def failure(cls, message: str) -> "HookResult":
        return cls(error=message)


def _normalize_cards(result: CardResult) -> List[Card]:
    if result is None:
        return []
    if isinstance(result, (list, tuple)):
        return list(result)
    return [result]


class CDSHooksService:
    """
    Hook registry plus a static key/value store of predefined data.

    Configure once at startup (register_hook / set_predefined_data), then
    call handle_hook per request. Holds no per-patient state.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        **options: Any,
    ):
        self.hooks: Dict[str, HookHandler] = {}
        self.predefined_data: Dict[str, Any] = {}
        self.options: Dict[str, Any] = {
            "base_url": (base_url or settings.base_url).rstrip("/"),
            **options,
        }
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ── Configuration ────────────────────────────────────────────────────

    @property
    def base_url(self) -> str:
        return self.options["base_url"]

    @base_url.setter
    def base_url(self, value: str) -> None:
        self.options["base_url"] = value.rstrip("/")

    def now(self) -> datetime:
        """Evaluation time; timezone-aware."""
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def register_hook(
        self,
        hook: str,
        handler: Union[HookHandler, Callable[..., Any]],
    ) -> None:
        """Store `handler` under `hook`, replacing any previous handler."""
        if not isinstance(handler, HookHandler):
            handler = FunctionHandler(handler)
        self.hooks[hook] = handler
        logger.debug(f"CDSHooksService: registered {handler!r} for hook '{hook}'")

    def set_predefined_data(self, key: str, data: Any) -> None:
        self.predefined_data[key] = data

    def get_predefined_data(self, key: str) -> Any:
        return self.predefined_data.get(key)

    # ── Dispatch ─────────────────────────────────────────────────────────

    async def handle_hook(
        self,
        hook: str,
        context: Union[HookContext, Mapping[str, Any], None] = None,
        prefetch: Optional[Prefetch] = None,
    ) -> CDSResponse:
        """
        Run the handler registered for `hook`.

        Returns:
            CDSResponse in all cases. Unknown hooks yield no cards; a failing
            handler yields exactly one critical error card.
        """
        handler = self.hooks.get(hook)
        if handler is None:
            logger.debug(f"CDSHooksService: no handler registered for '{hook}'")
            return CDSResponse(cards=[])

        if not isinstance(context, HookContext):
            context = HookContext.from_dict(context)

        result = await self._invoke(hook, handler, context, prefetch or {})
        if not result.ok:
            return CDSResponse(cards=[self._error_card(result.error)])

        logger.info(f"CDSHooksService [{hook}]: {len(result.cards)} card(s)")
        return CDSResponse(cards=result.cards)

    async def _invoke(
        self,
        hook: str,
        handler: HookHandler,
        context: HookContext,
        prefetch: Prefetch,
    ) -> HookResult:
        try:
            outcome = handler.evaluate(context, prefetch, self)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return HookResult.success(_normalize_cards(outcome))
        except Exception as exc:
            # Any handler failure becomes the single error card
            logger.error(f"CDSHooksService [{hook}]: handler raised {exc}", exc_info=True)
            return HookResult.failure(str(exc))

    @staticmethod
    def _error_card(message: str) -> Card:
        return Card(
            summary=ERROR_SUMMARY,
            detail=message,
            indicator=Indicator.CRITICAL,
            source=Source(label=ERROR_SOURCE_LABEL),
            selection_behavior=None,
        )

    # ── Builders ─────────────────────────────────────────────────────────

    def create_alert_card(
        self,
        summary: str,
        detail: Optional[str] = None,
        indicator: Union[Indicator, str] = Indicator.INFO,
        source: Union[Source, Mapping[str, Any], str, None] = None,
        suggestions: Optional[List[Suggestion]] = None,
        links: Optional[List[Link]] = None,
        selection_behavior: Union[SelectionBehavior, str] = SelectionBehavior.ANY,
    ) -> Card:
        """Build a card; empty suggestion / link lists are dropped on the wire."""
        if source is None:
            source = Source(label=DEFAULT_SOURCE_LABEL)
        elif isinstance(source, str):
            source = Source(label=source)
        elif not isinstance(source, Source):
            source = Source(label=source["label"], url=source.get("url"))

        return Card(
            summary=summary,
            detail=detail,
            indicator=Indicator(indicator),
            source=source,
            selection_behavior=SelectionBehavior(selection_behavior),
            suggestions=list(suggestions or []),
            links=list(links or []),
        )

    def create_suggestion(
        self,
        label: str,
        uuid: str,
        actions: Optional[List[Action]] = None,
    ) -> Suggestion:
        return Suggestion(label=label, uuid=uuid, actions=list(actions or []))

    def create_action(
        self,
        type: Union[ActionType, str],
        description: str,
        resource: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
    ) -> Action:
        return Action(
            type=ActionType(type),
            description=description,
            resource=resource or None,
            url=url or None,
        )

    def create_link(
        self,
        label: str,
        url: str,
        type: Union[LinkType, str] = LinkType.ABSOLUTE,
        app_context: Optional[str] = None,
    ) -> Link:
        return Link(
            label=label,
            url=url,
            type=LinkType(type),
            app_context=app_context or None,
        )

    def dashboard_url(self, *parts: Any) -> str:
        """`{base_url}/dashboard/<parts...>`"""
        return "/".join([self.base_url, "dashboard", *(str(p) for p in parts)])
