from typing import Dict, List, Optional

import pytest

from flowplanner.core.config import Settings
from flowplanner.models.domain import Candidate, Flow, FlowStop


class FakeVenueSearch:
    def __init__(self, by_category: Optional[Dict[str, List[Candidate]]] = None):
        self.by_category = by_category or {}
        self.calls: List[dict] = []

    def search(self, location, category, term=None, price_filter=None):
        self.calls.append(
            {
                "location": location,
                "category": category,
                "term": term,
                "price_filter": price_filter,
            }
        )
        return list(self.by_category.get(category, []))


class FakeCompletionBackend:
    def __init__(self, replies=None, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    def complete(self, messages, temperature=0.7, max_tokens=1024):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    @property
    def content(self):
        return b"" if self._payload is None else b"{}"

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise RuntimeError(f"HTTP {self.status_code}")


def make_candidate(cid: str, rating: float = 4.6, title: str = "Cocktail Bar", **kwargs) -> Candidate:
    return Candidate(
        id=cid,
        name=kwargs.pop("name", f"Venue {cid}"),
        rating=rating,
        price=kwargs.pop("price", "$$"),
        categories=[title],
        url=f"https://www.yelp.com/biz/{cid}",
        image_url=f"https://img.example/{cid}.jpg",
        review_count=kwargs.pop("review_count", 120),
    )


def make_stop(sid: str, time: str, duration: int, **kwargs) -> FlowStop:
    return FlowStop(
        id=sid,
        name=kwargs.get("name", f"Stop {sid}"),
        category=kwargs.get("category", "Bar"),
        rating=kwargs.get("rating", 4.5),
        price=kwargs.get("price", "$$"),
        reason=kwargs.get("reason", "Good spot"),
        time=time,
        duration=duration,
        tags=kwargs.get("tags", ["Bar", "Cozy"]),
        url=kwargs.get("url"),
        image_url=kwargs.get("image_url"),
    )


@pytest.fixture
def three_stop_flow() -> Flow:
    stops = [
        make_stop("a", "6:00 PM", 90, name="Ember & Oak", tags=["Dinner", "Romantic"]),
        make_stop("b", "7:30 PM", 60, name="The Velvet Room", tags=["Bar", "Rooftop"]),
        make_stop("c", "8:30 PM", 45, name="Blue Note", tags=["Live Music"]),
    ]
    return Flow.create(flow_id="flow-test", stops=stops, budget_range="$40-80 per person")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        yelp_api_key="yelp-test-key",
        llm_api_key="llm-test-key",
        llm_provider="gateway",
    )
