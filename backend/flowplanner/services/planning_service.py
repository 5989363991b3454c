import logging
import random
from typing import Optional

from flowplanner.core.config import Settings
from flowplanner.llm.client import build_llm_client
from flowplanner.llm.decomposer import AIPlanDecomposer, PlanDecomposer
from flowplanner.llm.tools.venue_tool import VenueSearchTool
from flowplanner.llm.tools.venue_yelp import YelpVenueSearchTool
from flowplanner.models.domain import Flow, Scenario
from flowplanner.services.flow_assembler import FlowAssembler

logger = logging.getLogger(__name__)


class PlanningService:
    def __init__(
        self,
        venue_search: VenueSearchTool,
        decomposer: Optional[PlanDecomposer] = None,
        rng: Optional[random.Random] = None,
        max_workers: int = 5,
        search_timeout: float = 10.0,
    ):
        self.decomposer = decomposer or PlanDecomposer()
        self.assembler = FlowAssembler(
            venue_search=venue_search,
            rng=rng,
            max_workers=max_workers,
            search_timeout=search_timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlanningService":
        venue_search = YelpVenueSearchTool(
            api_key=settings.require_yelp_api_key(),
            base_url=settings.yelp_base_url,
            timeout=settings.venue_search_timeout_seconds,
            limit=settings.venue_search_limit,
        )
        # Plan analysis is best-effort; a missing LLM key only disables it.
        llm_client = build_llm_client(settings)
        primary = AIPlanDecomposer(client=llm_client) if llm_client else None
        return cls(
            venue_search=venue_search,
            decomposer=PlanDecomposer(primary=primary),
            max_workers=settings.plan_max_workers,
            # A little slack over the per-request HTTP timeout.
            search_timeout=settings.venue_search_timeout_seconds + 2.0,
        )

    def generate_flow(self, scenario: Scenario) -> Flow:
        logger.info(
            "Generating flow for %s (%s, budget %s, crew %d)",
            scenario.location,
            scenario.time_window,
            scenario.budget,
            scenario.crew_size,
        )
        steps = self.decomposer.decompose(
            scenario.description, scenario.time_window, scenario.vibes
        )
        return self.assembler.assemble(
            plan_steps=steps,
            time_window=scenario.time_window,
            vibes=scenario.vibes,
            budget=scenario.budget,
            location=scenario.location,
        )
