from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union


class BudgetTier(str, Enum):
    econ = "$"
    standard = "$$"
    premium = "$$$"
    splurge = "$$$$"

    @classmethod
    def parse(cls, raw: object) -> Optional["BudgetTier"]:
        if isinstance(raw, BudgetTier):
            return raw
        if not isinstance(raw, str):
            return None
        value = raw.strip()
        for tier in cls:
            if value == tier.value or value.lower() == tier.name:
                return tier
        return None


class TimeWindow(str, Enum):
    afternoon = "afternoon"
    evening = "evening"
    late_night = "late night"


PRICE_FILTERS: Dict[BudgetTier, str] = {
    BudgetTier.econ: "1",
    BudgetTier.standard: "1,2",
    BudgetTier.premium: "1,2,3",
    BudgetTier.splurge: "1,2,3,4",
}
DEFAULT_PRICE_FILTER = "1,2,3"

BUDGET_RANGES: Dict[BudgetTier, str] = {
    BudgetTier.econ: "$20-40 per person",
    BudgetTier.standard: "$40-80 per person",
    BudgetTier.premium: "$80-120 per person",
    BudgetTier.splurge: "$120+ per person",
}
DEFAULT_BUDGET_RANGE = "$40-80 per person"

ANCHOR_HOURS: Dict[str, int] = {
    TimeWindow.afternoon.value: 12,
    TimeWindow.evening.value: 18,
    TimeWindow.late_night.value: 21,
}
DEFAULT_ANCHOR_HOUR = 14


def get_price_filter(budget: object) -> str:
    tier = BudgetTier.parse(budget)
    return PRICE_FILTERS[tier] if tier else DEFAULT_PRICE_FILTER


def get_budget_range(budget: object) -> str:
    tier = BudgetTier.parse(budget)
    return BUDGET_RANGES[tier] if tier else DEFAULT_BUDGET_RANGE


def get_anchor_hour(time_window: object) -> int:
    if isinstance(time_window, TimeWindow):
        time_window = time_window.value
    if not isinstance(time_window, str):
        return DEFAULT_ANCHOR_HOUR
    return ANCHOR_HOURS.get(time_window.strip().lower(), DEFAULT_ANCHOR_HOUR)


@dataclass
class Scenario:
    location: str
    description: str
    budget: str = "$$"
    time_window: str = TimeWindow.evening.value
    vibes: List[str] = field(default_factory=list)
    crew_size: int = 2


@dataclass(frozen=True)
class PlanStep:
    type: str
    category: str
    search_term: str = ""
    duration: int = 60


@dataclass(frozen=True)
class Candidate:
    id: str
    name: str
    rating: Optional[float] = None
    price: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    url: Optional[str] = None
    image_url: Optional[str] = None
    review_count: int = 0


@dataclass(frozen=True)
class FlowStop:
    id: str
    name: str
    category: str
    rating: float
    price: str
    reason: str
    time: str
    duration: int
    tags: List[str] = field(default_factory=list)
    url: Optional[str] = None
    image_url: Optional[str] = None


# Fields a swap may overwrite; id and time belong to the slot, not the venue.
SWAPPABLE_FIELDS = (
    "name",
    "category",
    "rating",
    "price",
    "reason",
    "duration",
    "tags",
    "url",
    "image_url",
)


@dataclass(frozen=True)
class Flow:
    id: str
    stops: List[FlowStop]
    total_duration: int
    budget_range: str

    @classmethod
    def create(cls, flow_id: str, stops: List[FlowStop], budget_range: str) -> "Flow":
        return cls(
            id=flow_id,
            stops=list(stops),
            total_duration=sum(s.duration for s in stops),
            budget_range=budget_range,
        )


UPDATE_FLOW_ACTION = "update_flow"


@dataclass(frozen=True)
class StopSwap:
    index: int
    changes: Dict[str, Any]


@dataclass(frozen=True)
class EditInstruction:
    action: str = UPDATE_FLOW_ACTION
    swaps: List[StopSwap] = field(default_factory=list)
    removals: FrozenSet[int] = frozenset()

    @property
    def is_update(self) -> bool:
        return self.action == UPDATE_FLOW_ACTION

    @property
    def is_empty(self) -> bool:
        return not self.swaps and not self.removals


@dataclass(frozen=True)
class ParsedInstruction:
    instruction: EditInstruction


@dataclass(frozen=True)
class NoInstruction:
    pass


@dataclass(frozen=True)
class MalformedInstruction:
    raw: str
    error: str


InstructionOutcome = Union[ParsedInstruction, NoInstruction, MalformedInstruction]


@dataclass
class ChatMessage:
    role: str
    content: str


@dataclass(frozen=True)
class ChatReply:
    text: str
    outcome: InstructionOutcome

    @property
    def flow_changes(self) -> Optional[EditInstruction]:
        if isinstance(self.outcome, ParsedInstruction):
            return self.outcome.instruction
        return None
