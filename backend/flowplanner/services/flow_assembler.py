from __future__ import annotations

import logging
import random
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import List, Optional, Sequence, Set
from uuid import uuid4

from flowplanner.llm.tools.venue_tool import VenueSearchTool
from flowplanner.models.domain import (
    Candidate,
    Flow,
    FlowStop,
    PlanStep,
    get_anchor_hour,
    get_budget_range,
    get_price_filter,
)
from flowplanner.services.itinerary import MAX_TAGS, check_invariants, format_time

logger = logging.getLogger(__name__)

TOP_CANDIDATES = 5
DEFAULT_RATING = 4.0
DEFAULT_PRICE = "$$"
TOP_RATED_THRESHOLD = 4.5

REASON_TEMPLATES = (
    "Top-rated {category} with {rating}★ from {reviews}+ reviews",
    "Perfect {activity} spot - {rating}★ rating, known for {vibe} atmosphere",
    "Locals love this {category} - {rating}★ and ideal for your {activity}",
    "Highly recommended for {activity} - {reviews}+ happy visitors",
)

FALLBACK_STOPS = (
    {
        "id": "fallback-1",
        "name": "Popular Local Spot",
        "category": "Activity",
        "rating": 4.5,
        "price": "$$",
        "reason": "A great starting point based on your preferences",
        "duration": 60,
        "tags": ["Popular", "Recommended"],
        "image_url": "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?w=400&h=300&fit=crop",
    },
    {
        "id": "fallback-2",
        "name": "Cozy Bar & Lounge",
        "category": "Bar",
        "rating": 4.3,
        "price": "$$",
        "reason": "Perfect atmosphere to continue your outing",
        "duration": 60,
        "tags": ["Cozy", "Great Drinks"],
        "image_url": "https://images.unsplash.com/photo-1470337458703-46ad1756a187?w=400&h=300&fit=crop",
    },
)


def _new_flow_id() -> str:
    return f"flow-{uuid4().hex[:12]}"


def top_candidates(candidates: Sequence[Candidate], limit: int = TOP_CANDIDATES) -> List[Candidate]:
    seen: Set[str] = set()
    unique: List[Candidate] = []
    for c in candidates:
        key = c.id or c.name
        if key in seen:
            continue
        seen.add(key)
        unique.append(c)
    # sorted() is stable, so provider order breaks rating ties.
    unique = sorted(unique, key=lambda c: c.rating if c.rating is not None else 0.0, reverse=True)
    return unique[:limit]


def build_reason(candidate: Candidate, step: PlanStep, vibes: Sequence[str], rng: random.Random) -> str:
    category = candidate.categories[0] if candidate.categories else step.type
    template = rng.choice(REASON_TEMPLATES)
    return template.format(
        category=category.lower(),
        rating=candidate.rating if candidate.rating is not None else DEFAULT_RATING,
        reviews=candidate.review_count,
        activity=step.type.lower(),
        vibe=vibes[0] if vibes else "great",
    )


def build_tags(candidate: Candidate, step: PlanStep, vibes: Sequence[str]) -> List[str]:
    tags = [step.type]
    if candidate.categories and candidate.categories[0] != step.type:
        tags.append(candidate.categories[0])
    if candidate.rating is not None and candidate.rating >= TOP_RATED_THRESHOLD:
        tags.append("Top Rated")
    if vibes and vibes[0]:
        vibe = vibes[0][:1].upper() + vibes[0][1:]
        if vibe not in tags:
            tags.append(vibe)
    return tags[:MAX_TAGS]


def fallback_flow(time_window: str, budget: str) -> Flow:
    clock = get_anchor_hour(time_window) * 60
    stops: List[FlowStop] = []
    for stop in FALLBACK_STOPS:
        stops.append(FlowStop(time=format_time(clock), url=None, **stop))
        clock += stop["duration"]
    return check_invariants(
        Flow.create(flow_id=_new_flow_id(), stops=stops, budget_range=get_budget_range(budget))
    )


class FlowAssembler:
    """
    Turns plan steps into a timed flow. One venue search per step; searches run
    concurrently but results are consumed strictly in step order, so the output
    sequence never depends on completion order.
    """

    def __init__(
        self,
        venue_search: VenueSearchTool,
        rng: Optional[random.Random] = None,
        max_workers: int = 5,
        search_timeout: float = 10.0,
    ):
        self.venue_search = venue_search
        self.rng = rng or random.Random()
        self.max_workers = max(1, max_workers)
        self.search_timeout = search_timeout

    def assemble(
        self,
        plan_steps: Sequence[PlanStep],
        time_window: str,
        vibes: Sequence[str],
        budget: str,
        location: str,
    ) -> Flow:
        price_filter = get_price_filter(budget)
        results = self._search_all(plan_steps, location, price_filter)

        clock = get_anchor_hour(time_window) * 60
        stops: List[FlowStop] = []
        used: Set[str] = set()
        for i, (step, candidates) in enumerate(zip(plan_steps, results)):
            candidate = self._choose(candidates, used)
            if candidate is None:
                logger.info("No venue found for %s, skipping", step.type)
                continue
            stop_id = candidate.id or f"stop-{i}"
            if stop_id in used:
                stop_id = f"{stop_id}-{i}"
            used.add(stop_id)
            if candidate.id:
                used.add(candidate.id)
            stops.append(
                FlowStop(
                    id=stop_id,
                    name=candidate.name,
                    category=candidate.categories[0] if candidate.categories else step.type,
                    rating=candidate.rating if candidate.rating is not None else DEFAULT_RATING,
                    price=candidate.price or DEFAULT_PRICE,
                    reason=build_reason(candidate, step, vibes, self.rng),
                    time=format_time(clock),
                    duration=step.duration,
                    tags=build_tags(candidate, step, vibes),
                    url=candidate.url,
                    image_url=candidate.image_url,
                )
            )
            clock += step.duration

        if not stops:
            logger.info("No businesses found, returning fallback flow")
            return fallback_flow(time_window, budget)

        flow = Flow.create(
            flow_id=_new_flow_id(), stops=stops, budget_range=get_budget_range(budget)
        )
        logger.info("Generated flow %s with %d stops", flow.id, len(stops))
        return check_invariants(flow)

    def _choose(self, candidates: Sequence[Candidate], used: Set[str]) -> Optional[Candidate]:
        pool = top_candidates(candidates)
        if not pool:
            return None
        fresh = [c for c in pool if (c.id or c.name) not in used]
        return self.rng.choice(fresh or pool)

    def _search_all(
        self, plan_steps: Sequence[PlanStep], location: str, price_filter: str
    ) -> List[List[Candidate]]:
        if not plan_steps:
            return []
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(plan_steps)))
        try:
            futures = [
                executor.submit(
                    self.venue_search.search,
                    location,
                    step.category,
                    step.search_term or None,
                    price_filter,
                )
                for step in plan_steps
            ]
            # One budget for the whole batch, not per step.
            deadline = time.monotonic() + self.search_timeout
            results: List[List[Candidate]] = []
            for step, future in zip(plan_steps, futures):
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    results.append(list(future.result(timeout=remaining) or []))
                except FutureTimeout:
                    logger.warning("Venue search for %s timed out", step.type)
                    results.append([])
                except Exception as exc:  # noqa: BLE001
                    logger.warning("Venue search for %s failed: %s", step.type, exc)
                    results.append([])
            return results
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
