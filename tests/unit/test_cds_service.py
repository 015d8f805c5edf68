"""
Unit Tests for the CDS Hooks dispatcher

Registry, predefined data, dispatch / failure isolation and card builders.
"""
import asyncio

import pytest

from ltc888.core.cds import (
    CDSHooksService,
    CDSResponse,
    HookContext,
    HookHandler,
    Indicator,
    Source,
    prefetch_resources,
)
from ltc888.core.cds.service import HookResult
from ltc888.utils import HookError


class TestRegistry:
    """Tests for hook registration and the predefined-data store."""

    def test_register_hook(self, service):
        service.register_hook("test-hook", lambda ctx, pf, svc: [])
        assert "test-hook" in service.hooks

    def test_plain_callable_is_wrapped(self, service):
        service.register_hook("test-hook", lambda ctx, pf, svc: [])
        assert isinstance(service.hooks["test-hook"], HookHandler)

    async def test_last_registration_wins(self, service):
        first = service.create_alert_card(summary="first")
        second = service.create_alert_card(summary="second")
        service.register_hook("test-hook", lambda ctx, pf, svc: first)
        service.register_hook("test-hook", lambda ctx, pf, svc: second)

        response = await service.handle_hook("test-hook")
        assert [c.summary for c in response.cards] == ["second"]

    def test_predefined_data(self, service):
        templates = {"visit-reminder": {"summary": "訪視提醒"}}
        service.set_predefined_data("templates", templates)

        assert service.get_predefined_data("templates") == templates
        assert service.get_predefined_data("missing") is None

    def test_base_url_trailing_slash_trimmed(self):
        service = CDSHooksService(base_url="http://example.org/")
        assert service.dashboard_url("patient", "p1") == "http://example.org/dashboard/patient/p1"


class TestHandleHook:
    """Tests for dispatch semantics."""

    async def test_unknown_hook_returns_no_cards(self, service):
        response = await service.handle_hook("unknown-hook", {}, {})

        assert isinstance(response, CDSResponse)
        assert response.cards == []
        assert response.to_dict() == {"cards": []}

    async def test_handler_receives_context_prefetch_and_service(self, service):
        seen = {}

        def handler(context, prefetch, svc):
            seen["context"] = context
            seen["prefetch"] = prefetch
            seen["service"] = svc
            return []

        prefetch = {"observations": []}
        service.register_hook("test-hook", handler)
        response = await service.handle_hook("test-hook", {"patientId": "123", "userId": "u1"}, prefetch)

        assert response.cards == []
        assert isinstance(seen["context"], HookContext)
        assert seen["context"].patient_id == "123"
        assert seen["context"].user_id == "u1"
        assert seen["prefetch"] is prefetch
        assert seen["service"] is service

    async def test_context_object_passed_through(self, service, context):
        seen = []
        service.register_hook("test-hook", lambda ctx, pf, svc: seen.append(ctx))

        await service.handle_hook("test-hook", context)
        assert seen == [context]

    async def test_single_card_is_wrapped(self, service):
        card = service.create_alert_card(summary="only one")
        service.register_hook("test-hook", lambda ctx, pf, svc: card)

        response = await service.handle_hook("test-hook")
        assert response.cards == [card]

    async def test_list_passes_through_in_order(self, service):
        cards = [service.create_alert_card(summary=str(i)) for i in range(3)]
        service.register_hook("test-hook", lambda ctx, pf, svc: cards)

        response = await service.handle_hook("test-hook")
        assert [c.summary for c in response.cards] == ["0", "1", "2"]

    async def test_none_result_means_no_cards(self, service):
        service.register_hook("test-hook", lambda ctx, pf, svc: None)

        response = await service.handle_hook("test-hook")
        assert response.cards == []

    async def test_async_handler_is_awaited(self, service):
        async def handler(context, prefetch, svc):
            await asyncio.sleep(0)
            return svc.create_alert_card(summary="async")

        service.register_hook("test-hook", handler)
        response = await service.handle_hook("test-hook")
        assert [c.summary for c in response.cards] == ["async"]

    async def test_handler_subclass(self, service):
        class Always(HookHandler):
            def evaluate(self, context, prefetch, svc):
                return [svc.create_alert_card(summary=f"for {context.patient_id}")]

        service.register_hook("test-hook", Always())
        response = await service.handle_hook("test-hook", {"patientId": "p9"})
        assert response.cards[0].summary == "for p9"


class TestFailureIsolation:
    """A failing handler always degrades to one critical card."""

    async def test_exception_becomes_error_card(self, service):
        def handler(context, prefetch, svc):
            raise ValueError("coding lookup returned nothing")

        service.register_hook("test-hook", handler)
        response = await service.handle_hook("test-hook", {"patientId": "123"}, {})

        assert len(response.cards) == 1
        card = response.cards[0]
        assert card.indicator == Indicator.CRITICAL
        assert "coding lookup returned nothing" in card.detail
        assert card.source.label == "CDS Hooks Service"

    async def test_error_card_wire_shape(self, service):
        def handler(context, prefetch, svc):
            raise HookError("broken rule", hook="test-hook")

        service.register_hook("test-hook", handler)
        response = await service.handle_hook("test-hook")

        assert response.to_dict() == {
            "cards": [{
                "summary": "處理錯誤",
                "detail": "broken rule",
                "indicator": "critical",
                "source": {"label": "CDS Hooks Service"},
            }]
        }

    async def test_async_handler_failure(self, service):
        async def handler(context, prefetch, svc):
            raise RuntimeError("async boom")

        service.register_hook("test-hook", handler)
        response = await service.handle_hook("test-hook")

        assert len(response.cards) == 1
        assert response.cards[0].detail == "async boom"

    async def test_invalid_indicator_inside_handler(self, service):
        service.register_hook(
            "test-hook",
            lambda ctx, pf, svc: svc.create_alert_card(summary="x", indicator="hard-stop"),
        )
        response = await service.handle_hook("test-hook")

        assert response.cards[0].indicator == Indicator.CRITICAL
        assert response.cards[0].summary == "處理錯誤"

    async def test_invoke_returns_result_value(self, service, context):
        service.register_hook("x", lambda ctx, pf, svc: 1 / 0)

        result = await service._invoke("x", service.hooks["x"], context, {})
        assert isinstance(result, HookResult)
        assert not result.ok
        assert result.cards == []
        assert "division by zero" in result.error


class TestBuilders:
    """Card / suggestion / action / link constructors and omission rules."""

    def test_create_alert_card(self, service):
        card = service.create_alert_card(summary="測試提醒", detail="這是測試", indicator="info")

        assert card.summary == "測試提醒"
        assert card.detail == "這是測試"
        assert card.indicator == Indicator.INFO

    def test_card_without_suggestions_or_links_omits_them(self, service):
        data = service.create_alert_card(summary="測試提醒").to_dict()

        assert "suggestions" not in data
        assert "links" not in data
        assert "detail" not in data
        assert data["indicator"] == "info"
        assert data["selectionBehavior"] == "any"
        assert data["source"] == {"label": "御管轉診平台"}

    def test_card_source_variants(self, service):
        assert service.create_alert_card(summary="a", source="X").source == Source(label="X")
        assert service.create_alert_card(
            summary="a", source={"label": "Y", "url": "http://y"}
        ).source == Source(label="Y", url="http://y")

    def test_invalid_indicator_rejected(self, service):
        with pytest.raises(ValueError):
            service.create_alert_card(summary="x", indicator="urgent")

    def test_selection_behavior(self, service):
        card = service.create_alert_card(summary="x", selection_behavior="at-most-one")
        assert card.to_dict()["selectionBehavior"] == "at-most-one"

    def test_create_suggestion(self, service):
        suggestion = service.create_suggestion("測試建議", "uuid-123")

        assert suggestion.label == "測試建議"
        assert suggestion.uuid == "uuid-123"
        assert suggestion.to_dict() == {"label": "測試建議", "uuid": "uuid-123", "actions": []}

    def test_create_action_with_resource(self, service):
        action = service.create_action("create", "建立資源", {"resourceType": "Observation"})

        assert action.type.value == "create"
        assert action.to_dict() == {
            "type": "create",
            "description": "建立資源",
            "resource": {"resourceType": "Observation"},
        }

    def test_link_action_without_url_has_no_url(self, service):
        data = service.create_action("link", "前往").to_dict()

        assert data == {"type": "link", "description": "前往"}

    def test_create_link(self, service):
        link = service.create_link("測試連結", "http://example.com", "absolute")

        assert link.to_dict() == {"label": "測試連結", "url": "http://example.com", "type": "absolute"}

    def test_smart_link_app_context(self, service):
        data = service.create_link("App", "http://app", "smart", app_context="patient=123").to_dict()

        assert data["type"] == "smart"
        assert data["appContext"] == "patient=123"

    def test_full_card_serialisation(self, service):
        card = service.create_alert_card(
            summary="s",
            detail="d",
            indicator="warning",
            suggestions=[service.create_suggestion("l", "u", [service.create_action("link", "go", url="http://go")])],
            links=[service.create_link("L", "http://l")],
        )
        data = card.to_dict()

        assert data["suggestions"][0]["actions"][0] == {"type": "link", "description": "go", "url": "http://go"}
        assert data["links"] == [{"label": "L", "url": "http://l", "type": "absolute"}]


class TestPrefetch:
    """Tests for prefetch normalisation."""

    def test_list(self):
        assert prefetch_resources({"observations": [{"id": "1"}]}, "observations") == [{"id": "1"}]

    def test_missing_key(self):
        assert prefetch_resources({}, "observations") == []
        assert prefetch_resources(None, "observations") == []

    def test_bundle_entries_unwrapped(self):
        bundle = {
            "resourceType": "Bundle",
            "entry": [{"resource": {"id": "1"}}, {"fullUrl": "x"}, {"resource": {"id": "2"}}],
        }
        assert prefetch_resources({"conditions": bundle}, "conditions") == [{"id": "1"}, {"id": "2"}]

    def test_single_resource(self):
        patient = {"resourceType": "Patient", "id": "p1"}
        assert prefetch_resources({"patient": patient}, "patient") == [patient]

    def test_malformed_value(self):
        with pytest.raises(TypeError):
            prefetch_resources({"observations": "oops"}, "observations")


class TestHookContext:

    def test_from_dict_keeps_extra_fields(self):
        ctx = HookContext.from_dict({"patientId": "p", "userId": "u", "selections": ["MedicationRequest/1"]})

        assert ctx.patient_id == "p"
        assert ctx.user_id == "u"
        assert ctx.get("selections") == ["MedicationRequest/1"]
        assert ctx.to_dict() == {"patientId": "p", "userId": "u", "selections": ["MedicationRequest/1"]}
