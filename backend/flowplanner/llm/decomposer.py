import json
import logging
import math
import re
from typing import List, Optional, Protocol, Sequence, Tuple

from flowplanner.core.categories import KNOWN_CATEGORIES, normalize_category
from flowplanner.core.errors import CompletionError
from flowplanner.llm.client import LLMClient
from flowplanner.llm.prompts import DECOMPOSER_PROMPT
from flowplanner.models.domain import PlanStep, TimeWindow

logger = logging.getLogger(__name__)

MIN_STEPS = 2
MAX_STEPS = 5
MIN_DURATION = 30
MAX_DURATION = 120
DEFAULT_DURATION = 60
DEFAULT_TYPE = "Activity"


class DecompositionStrategy(Protocol):
    def decompose(
        self, description: str, time_window: str, vibes: Sequence[str]
    ) -> List[PlanStep]:
        ...


def clamp_duration(raw: object) -> int:
    if isinstance(raw, bool):
        return DEFAULT_DURATION
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_DURATION
    if math.isnan(value) or math.isinf(value) or value <= 0:
        return DEFAULT_DURATION
    return min(MAX_DURATION, max(MIN_DURATION, math.ceil(value)))


def extract_json_array(text: str) -> Optional[list]:
    """Return the first well-formed JSON array embedded in ``text``.

    Models wrap their output in prose or code fences, so every ``[`` is tried
    as a starting point until one decodes to a list.
    """
    decoder = json.JSONDecoder()
    for match in re.finditer(r"\[", text):
        try:
            value, _end = decoder.raw_decode(text, match.start())
        except ValueError:
            continue
        if isinstance(value, list):
            return value
    return None


def _coerce_step(item: dict) -> PlanStep:
    step_type = item.get("type")
    if not isinstance(step_type, str) or not step_type.strip():
        step_type = DEFAULT_TYPE
    # Older prompts used the provider-specific key name.
    category = item.get("category", item.get("yelpCategory"))
    term = item.get("searchTerm")
    return PlanStep(
        type=step_type.strip(),
        category=normalize_category(category),
        search_term=term.strip() if isinstance(term, str) else "",
        duration=clamp_duration(item.get("duration")),
    )


class AIPlanDecomposer:
    """Asks the completion model for a JSON array of plan steps."""

    def __init__(self, client: Optional[LLMClient]):
        self.client = client

    def build_prompt(
        self, description: str, time_window: str, vibes: Sequence[str]
    ) -> str:
        return DECOMPOSER_PROMPT.format(
            description=description,
            time_window=time_window,
            vibes=", ".join(vibes) or "casual",
            categories=", ".join(sorted(KNOWN_CATEGORIES)),
        )

    def decompose(
        self, description: str, time_window: str, vibes: Sequence[str]
    ) -> List[PlanStep]:
        if self.client is None:
            return []
        prompt = self.build_prompt(description, time_window, vibes)
        try:
            content = self.client.complete_prompt(prompt, temperature=0.3)
        except CompletionError as exc:
            logger.warning("AI plan analysis failed: %s", exc)
            return []
        return self.parse_steps(content)

    @staticmethod
    def parse_steps(content: str) -> List[PlanStep]:
        parsed = extract_json_array(content or "")
        if not parsed:
            logger.info("No plan-step array found in model output")
            return []
        steps = [_coerce_step(item) for item in parsed if isinstance(item, dict)]
        return steps[:MAX_STEPS]


# Checked in this order; one step per keyword at most.
KEYWORD_STEPS: Tuple[Tuple[str, PlanStep], ...] = (
    (
        r"\b(?:sight ?seeing|tourist|explore)\b",
        PlanStep("Sightseeing", "landmarks", "tourist attractions", 90),
    ),
    (r"\b(?:museums?|art|galler(?:y|ies))\b", PlanStep("Museum", "museums", "", 90)),
    (r"\bbrunch\b", PlanStep("Brunch", "breakfast_brunch", "brunch", 75)),
    (r"\b(?:lunch|eat)\b", PlanStep("Lunch", "restaurants", "lunch", 75)),
    (r"\bdinner\b", PlanStep("Dinner", "restaurants", "dinner", 90)),
    (r"\b(?:coffee|cafes?)\b", PlanStep("Coffee", "cafes", "", 45)),
    (r"\bbars?\b", PlanStep("Bar", "bars", "cocktails", 60)),
    (r"\brooftops?\b", PlanStep("Rooftop Bar", "bars", "rooftop", 60)),
    (
        r"\b(?:night ?clubs?|clubs?|clubbing|dancing)\b",
        PlanStep("Nightclub", "danceclubs", "nightclub", 120),
    ),
    (
        r"\b(?:live music|jazz|concerts?)\b",
        PlanStep("Live Music", "musicvenues", "live music", 90),
    ),
    (r"\bkaraoke\b", PlanStep("Karaoke", "karaoke", "", 90)),
)

WINDOW_TEMPLATES = {
    TimeWindow.afternoon.value: [
        PlanStep("Lunch", "restaurants", "", 75),
        PlanStep("Dessert", "desserts", "", 45),
        PlanStep("Activity", "entertainment", "", 60),
    ],
    TimeWindow.evening.value: [
        PlanStep("Dinner", "restaurants", "", 90),
        PlanStep("Bar", "bars", "", 60),
        PlanStep("Entertainment", "nightlife", "", 60),
    ],
    TimeWindow.late_night.value: [
        PlanStep("Bar", "bars", "", 60),
        PlanStep("Nightlife", "nightlife", "", 90),
        PlanStep("Late Night", "danceclubs", "", 120),
    ],
}


def template_for(time_window: str) -> List[PlanStep]:
    key = (time_window or "").strip().lower()
    return list(WINDOW_TEMPLATES.get(key, WINDOW_TEMPLATES[TimeWindow.late_night.value]))


class RuleBasedPlanDecomposer:
    """
    Deterministic decomposition used when the model is unavailable or returns
    nothing usable. Scans the description for known activity words; falls back
    to a canned template picked by time window.
    """

    def decompose(
        self, description: str, time_window: str, vibes: Sequence[str] = ()
    ) -> List[PlanStep]:
        desc = (description or "").lower()
        steps: List[PlanStep] = []
        for pattern, step in KEYWORD_STEPS:
            if step.type == "Bar" and re.search(r"\bnight ?clubs?\b", desc):
                continue
            if re.search(pattern, desc):
                steps.append(step)

        if not steps:
            steps = template_for(time_window)
        return steps[:MAX_STEPS]


class PlanDecomposer:
    def __init__(
        self,
        primary: Optional[DecompositionStrategy] = None,
        fallback: Optional[DecompositionStrategy] = None,
    ):
        self.primary = primary
        self.fallback = fallback or RuleBasedPlanDecomposer()

    def decompose(
        self, description: str, time_window: str, vibes: Sequence[str]
    ) -> List[PlanStep]:
        steps: List[PlanStep] = []
        if self.primary is not None:
            steps = self.primary.decompose(description, time_window, vibes)
            logger.info("AI determined %d plan steps", len(steps))
        if not steps:
            steps = self.fallback.decompose(description, time_window, vibes)
            logger.info("Using default plan steps: %s", [s.type for s in steps])
        return self._pad(steps, time_window)[:MAX_STEPS]

    @staticmethod
    def _pad(steps: List[PlanStep], time_window: str) -> List[PlanStep]:
        if len(steps) >= MIN_STEPS:
            return steps
        padded = list(steps)
        used = {s.category for s in padded}
        for candidate in template_for(time_window):
            if len(padded) >= MIN_STEPS:
                break
            if candidate.category not in used:
                padded.append(candidate)
                used.add(candidate.category)
        return padded

