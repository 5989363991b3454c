import random

import pytest
from fastapi.testclient import TestClient

from flowplanner.api import get_flow_editor, get_planning_service
from flowplanner.core.config import Settings
from flowplanner.core.errors import QuotaExhaustedError, RateLimitedError
from flowplanner.llm.backends import gateway_backend
from flowplanner.llm.backends.gateway_backend import GatewayCompletionBackend
from flowplanner.llm.client import LLMClient
from flowplanner.llm.decomposer import AIPlanDecomposer, PlanDecomposer
from flowplanner.models.schemas import FlowSchema
from flowplanner.services.flow_assembler import FALLBACK_STOPS
from flowplanner.services.flow_editor import FlowEditor
from flowplanner.services.planning_service import PlanningService
from main import create_app

from conftest import FakeCompletionBackend, FakeResponse, FakeVenueSearch, make_candidate


def _client(settings, planning=None, editor=None):
    app = create_app(settings)
    if planning is not None:
        app.dependency_overrides[get_planning_service] = lambda: planning
    if editor is not None:
        app.dependency_overrides[get_flow_editor] = lambda: editor
    return TestClient(app)


def _editor(*replies, error=None):
    return FlowEditor(client=LLMClient(FakeCompletionBackend(replies=list(replies), error=error)))


@pytest.fixture
def flow_payload(three_stop_flow):
    return FlowSchema.from_domain(three_stop_flow).model_dump(by_alias=True)


def test_health(test_settings):
    res = _client(test_settings).get("/health")

    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_generate_flow_falls_back_when_nothing_is_found(test_settings):
    planning = PlanningService(venue_search=FakeVenueSearch(), rng=random.Random(1))
    client = _client(test_settings, planning=planning)

    res = client.post(
        "/generate-flow",
        json={
            "location": "Dallas, TX",
            "description": "dinner then drinks",
            "budget": "$$",
            "timeWindow": "evening",
            "vibes": ["Chill"],
            "crewSize": 4,
        },
    )

    assert res.status_code == 200
    body = res.json()
    assert len(body["stops"]) == 2
    assert body["totalDuration"] == sum(s["duration"] for s in FALLBACK_STOPS)
    assert body["budgetRange"] == "$40-80 per person"
    assert body["stops"][0]["time"] == "6:00 PM"


def test_generate_flow_returns_camel_case_stops(test_settings):
    search = FakeVenueSearch(
        {
            "restaurants": [make_candidate("ember", 4.8, "New American", name="Ember & Oak")],
            "bars": [make_candidate("velvet", 4.3, "Cocktail Bar", name="Velvet Room")],
        }
    )
    planning = PlanningService(venue_search=search, rng=random.Random(3))
    client = _client(test_settings, planning=planning)

    res = client.post(
        "/generate-flow",
        json={"location": "Austin, TX", "description": "dinner and drinks", "timeWindow": "evening"},
    )

    assert res.status_code == 200
    stops = res.json()["stops"]
    assert [s["name"] for s in stops] == ["Ember & Oak", "Velvet Room"]
    assert stops[0]["imageUrl"] == "https://img.example/ember.jpg"
    assert res.json()["totalDuration"] == sum(s["duration"] for s in stops)


def test_generate_flow_without_yelp_key_is_a_config_error():
    client = _client(Settings(yelp_api_key=None, llm_api_key=None))

    res = client.post("/generate-flow", json={"location": "Dallas, TX"})

    assert res.status_code == 500
    assert res.json() == {"error": "Yelp API not configured"}


def test_generate_flow_rejects_invalid_crew_size(test_settings):
    planning = PlanningService(venue_search=FakeVenueSearch())
    client = _client(test_settings, planning=planning)

    res = client.post("/generate-flow", json={"location": "Dallas, TX", "crewSize": 0})

    assert res.status_code == 422
    body = res.json()
    assert set(body) == {"error"}
    assert "crewSize" in body["error"]


def test_chat_returns_message_and_changes(test_settings, flow_payload):
    reply = (
        "Swapped dinner for something cheaper.\n"
        '```json\n{"action": "update_flow", "changes": {"swap": '
        '[{"stopIndex": 0, "newStop": {"name": "Luna Street Kitchen", "price": "$"}}], "remove": []}}\n```'
    )
    client = _client(test_settings, editor=_editor(reply))

    res = client.post(
        "/chat-assistant",
        json={
            "message": "make dinner cheaper",
            "flow": flow_payload,
            "conversationHistory": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello!"}],
        },
    )

    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Swapped dinner for something cheaper."
    assert body["flowChanges"]["action"] == "update_flow"
    swap = body["flowChanges"]["changes"]["swap"][0]
    assert swap["stopIndex"] == 0
    assert swap["newStop"]["name"] == "Luna Street Kitchen"


def test_chat_malformed_instruction_has_null_changes(test_settings):
    client = _client(test_settings, editor=_editor("Done!\n```json\n{oops\n```"))

    res = client.post("/chat-assistant", json={"message": "swap the bar"})

    assert res.status_code == 200
    assert res.json() == {"message": "Done!", "flowChanges": None}


@pytest.mark.parametrize(
    "error, status",
    [
        (RateLimitedError("Rate limit exceeded. Please try again in a moment."), 429),
        (QuotaExhaustedError("AI credits exhausted. Please add credits to continue."), 402),
    ],
)
def test_chat_maps_provider_throttling(test_settings, error, status):
    client = _client(test_settings, editor=_editor(error=error))

    res = client.post("/chat-assistant", json={"message": "hello"})

    assert res.status_code == status
    assert res.json() == {"error": error.message}


def test_chat_without_llm_key_is_a_config_error():
    client = _client(Settings(yelp_api_key="y", llm_api_key=None, llm_provider="gateway"))

    res = client.post("/chat-assistant", json={"message": "hello"})

    assert res.status_code == 500
    assert "error" in res.json()


@pytest.mark.parametrize("path", ["/generate-flow", "/chat-assistant"])
def test_cors_preflight_is_answered(test_settings, path):
    res = _client(test_settings).options(
        path,
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type,authorization",
        },
    )

    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "*"


def test_edit_swap_by_index(test_settings, flow_payload):
    res = _client(test_settings).post(
        "/flow/edit",
        json={"flow": flow_payload, "action": "swap", "stopIndex": 0, "newStop": {"name": "X"}},
    )

    assert res.status_code == 200
    stops = res.json()["stops"]
    assert stops[0]["name"] == "X"
    assert stops[0]["id"] == "a"
    assert stops[0]["time"] == "6:00 PM"


def test_edit_move_up_at_top_is_a_noop(test_settings, flow_payload):
    res = _client(test_settings).post(
        "/flow/edit", json={"flow": flow_payload, "action": "moveUp", "stopId": "a"}
    )

    assert res.status_code == 200
    assert [s["id"] for s in res.json()["stops"]] == ["a", "b", "c"]


def test_edit_move_down_with_retime(test_settings, flow_payload):
    res = _client(test_settings).post(
        "/flow/edit",
        json={"flow": flow_payload, "action": "moveDown", "stopId": "a", "retime": True},
    )

    stops = res.json()["stops"]
    assert [s["id"] for s in stops] == ["b", "a", "c"]
    assert [s["time"] for s in stops] == ["6:00 PM", "7:00 PM", "8:30 PM"]


def test_edit_remove_recomputes_total(test_settings, flow_payload):
    flow_payload["totalDuration"] = 9999
    res = _client(test_settings).post(
        "/flow/edit", json={"flow": flow_payload, "action": "remove", "stopId": "b"}
    )

    assert res.json()["totalDuration"] == 90 + 45


def test_edit_requires_stop_id(test_settings, flow_payload):
    res = _client(test_settings).post("/flow/edit", json={"flow": flow_payload, "action": "remove"})

    assert res.status_code == 422
    assert res.json() == {"error": "remove requires stopId"}


def test_edit_apply_changes(test_settings, flow_payload):
    res = _client(test_settings).post(
        "/flow/edit",
        json={
            "flow": flow_payload,
            "action": "applyChanges",
            "flowChanges": {"action": "update_flow", "changes": {"swap": [], "remove": [0, 2]}},
        },
    )

    assert [s["id"] for s in res.json()["stops"]] == ["b"]


@pytest.mark.parametrize("payload", [[], {"choices": [{"message": {"content": 42}}]}])
def test_generate_flow_uses_rules_when_model_reply_is_unusable(monkeypatch, test_settings, payload):
    monkeypatch.setattr(
        gateway_backend.requests, "post", lambda *args, **kwargs: FakeResponse(200, payload)
    )
    gateway = GatewayCompletionBackend(api_key="k", base_url="https://gateway.example/v1", model="m")
    search = FakeVenueSearch(
        {
            "restaurants": [make_candidate("ember", 4.8, "New American", name="Ember & Oak")],
            "bars": [make_candidate("velvet", 4.3, "Cocktail Bar", name="Velvet Room")],
        }
    )
    planning = PlanningService(
        venue_search=search,
        decomposer=PlanDecomposer(primary=AIPlanDecomposer(LLMClient(gateway))),
        rng=random.Random(5),
    )
    client = _client(test_settings, planning=planning)

    res = client.post(
        "/generate-flow",
        json={"location": "Dallas, TX", "description": "dinner then a bar", "timeWindow": "evening"},
    )

    assert res.status_code == 200
    assert [s["name"] for s in res.json()["stops"]] == ["Ember & Oak", "Velvet Room"]
    assert sorted(c["category"] for c in search.calls) == ["bars", "restaurants"]
