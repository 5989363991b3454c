from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from flowplanner.models.domain import (
    ChatMessage,
    EditInstruction,
    Flow,
    FlowStop,
    Scenario,
    StopSwap,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScenarioRequest(CamelModel):
    location: str = Field(min_length=1)
    description: str = ""
    budget: str = "$$"
    time_window: str = "evening"
    vibes: List[str] = Field(default_factory=list)
    crew_size: int = Field(2, ge=1, le=20)

    def to_domain(self) -> Scenario:
        return Scenario(
            location=self.location,
            description=self.description,
            budget=self.budget,
            time_window=self.time_window,
            vibes=list(self.vibes),
            crew_size=self.crew_size,
        )


class FlowStopSchema(CamelModel):
    id: str
    name: str
    category: str
    rating: float
    price: str
    reason: str
    time: str
    duration: int = Field(gt=0)
    tags: List[str] = Field(default_factory=list, max_length=3)
    url: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_domain(cls, obj: FlowStop) -> "FlowStopSchema":
        return cls(
            id=obj.id,
            name=obj.name,
            category=obj.category,
            rating=obj.rating,
            price=obj.price,
            reason=obj.reason,
            time=obj.time,
            duration=obj.duration,
            tags=list(obj.tags),
            url=obj.url,
            image_url=obj.image_url,
        )

    def to_domain(self) -> FlowStop:
        return FlowStop(
            id=self.id,
            name=self.name,
            category=self.category,
            rating=self.rating,
            price=self.price,
            reason=self.reason,
            time=self.time,
            duration=self.duration,
            tags=list(self.tags),
            url=self.url,
            image_url=self.image_url,
        )


class FlowSchema(CamelModel):
    id: str = "flow"
    stops: List[FlowStopSchema]
    total_duration: int = 0
    budget_range: str = ""

    @field_validator("stops")
    @classmethod
    def stop_ids_unique(cls, stops: List[FlowStopSchema]) -> List[FlowStopSchema]:
        ids = [s.id for s in stops]
        if len(ids) != len(set(ids)):
            raise ValueError("stop ids must be unique within a flow")
        return stops

    @classmethod
    def from_domain(cls, obj: Flow) -> "FlowSchema":
        return cls(
            id=obj.id,
            stops=[FlowStopSchema.from_domain(s) for s in obj.stops],
            total_duration=obj.total_duration,
            budget_range=obj.budget_range,
        )

    def to_domain(self) -> Flow:
        # Clients may send a stale total; it is always recomputed.
        return Flow.create(
            flow_id=self.id,
            stops=[s.to_domain() for s in self.stops],
            budget_range=self.budget_range,
        )


class StopPatchSchema(CamelModel):
    name: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    price: Optional[str] = None
    reason: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0)
    tags: Optional[List[str]] = None
    url: Optional[str] = Field(
        None, validation_alias=AliasChoices("url", "yelpUrl")
    )
    image_url: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class StopSwapSchema(CamelModel):
    stop_index: int
    new_stop: StopPatchSchema = Field(default_factory=StopPatchSchema)


class FlowChangesSchema(CamelModel):
    swap: List[StopSwapSchema] = Field(default_factory=list)
    remove: List[int] = Field(default_factory=list)


class EditInstructionSchema(CamelModel):
    action: str
    changes: FlowChangesSchema = Field(default_factory=FlowChangesSchema)

    @classmethod
    def from_domain(cls, obj: EditInstruction) -> "EditInstructionSchema":
        return cls(
            action=obj.action,
            changes=FlowChangesSchema(
                swap=[
                    StopSwapSchema(
                        stop_index=s.index, new_stop=StopPatchSchema(**s.changes)
                    )
                    for s in obj.swaps
                ],
                remove=sorted(obj.removals),
            ),
        )

    def to_domain(self) -> EditInstruction:
        return EditInstruction(
            action=self.action,
            swaps=[
                StopSwap(index=s.stop_index, changes=s.new_stop.changes())
                for s in self.changes.swap
            ],
            removals=frozenset(self.changes.remove),
        )


class ChatMessageSchema(CamelModel):
    role: Literal["user", "assistant"]
    content: str

    def to_domain(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content)


class ChatRequest(CamelModel):
    message: str = Field(min_length=1)
    flow: Optional[FlowSchema] = None
    conversation_history: List[ChatMessageSchema] = Field(default_factory=list)


class ChatResponse(CamelModel):
    message: str
    flow_changes: Optional[EditInstructionSchema] = None


class FlowEditRequest(CamelModel):
    flow: FlowSchema
    action: Literal["moveUp", "moveDown", "remove", "swap", "applyChanges"]
    stop_id: Optional[str] = None
    stop_index: Optional[int] = None
    new_stop: Optional[StopPatchSchema] = None
    flow_changes: Optional[EditInstructionSchema] = None
    retime: bool = False


class ErrorResponse(BaseModel):
    error: str

