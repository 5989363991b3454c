import json
import logging
import re
from typing import List, Optional, Sequence

from pydantic import ValidationError

from flowplanner.core.config import Settings
from flowplanner.llm.client import LLMClient, build_llm_client
from flowplanner.llm.prompts import (
    CHAT_SYSTEM_PROMPT,
    EDIT_INSTRUCTION_SCHEMA,
    NO_FLOW_CONTEXT,
)
from flowplanner.models.domain import (
    ChatMessage,
    ChatReply,
    EditInstruction,
    Flow,
    InstructionOutcome,
    MalformedInstruction,
    NoInstruction,
    ParsedInstruction,
)
from flowplanner.models.schemas import EditInstructionSchema
from flowplanner.services import itinerary

logger = logging.getLogger(__name__)

FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
EMPTY_REPLY = "I apologize, but I couldn't generate a response. Please try again."


def render_flow(flow: Optional[Flow]) -> str:
    if flow is None or not flow.stops:
        return NO_FLOW_CONTEXT
    lines = [f"CURRENT ITINERARY ({len(flow.stops)} stops):"]
    for i, stop in enumerate(flow.stops):
        tags = ", ".join(stop.tags) or "none"
        lines.append(
            f"[{i}] {stop.name} ({stop.category}) - {stop.time}, {stop.duration} min, "
            f"{stop.price}, {stop.rating}★ - \"{stop.reason}\" - tags: {tags}"
        )
    lines.append(f"Total duration: {flow.total_duration} minutes")
    lines.append(f"Budget range: {flow.budget_range}")
    return "\n".join(lines)


def parse_instruction(text: str) -> InstructionOutcome:
    match = FENCED_JSON.search(text or "")
    if not match:
        return NoInstruction()
    raw = match.group(1)
    try:
        data = json.loads(raw)
        schema = EditInstructionSchema.model_validate(data)
    except (ValueError, ValidationError) as exc:
        logger.error("Failed to parse flow changes JSON: %s", exc)
        return MalformedInstruction(raw=raw, error=str(exc))
    return ParsedInstruction(instruction=schema.to_domain())


def strip_instruction(text: str) -> str:
    return FENCED_JSON.sub("", text or "").strip()


class FlowEditor:
    """
    Conversational refinement of a flow. The model answers in prose and, when
    it wants to change the itinerary, appends one fenced JSON edit instruction.
    Only a fully valid instruction is ever applied.
    """

    def __init__(self, client: LLMClient, temperature: float = 0.7, max_tokens: int = 1024):
        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "FlowEditor":
        return cls(client=build_llm_client(settings, required=True))

    def build_system_prompt(self, flow: Optional[Flow]) -> str:
        return CHAT_SYSTEM_PROMPT.format(
            flow_context=render_flow(flow), schema=EDIT_INSTRUCTION_SCHEMA
        )

    def build_messages(
        self, message: str, flow: Optional[Flow], history: Sequence[ChatMessage]
    ) -> List[ChatMessage]:
        messages = [ChatMessage(role="system", content=self.build_system_prompt(flow))]
        messages.extend(m for m in history if m.role in ("user", "assistant"))
        messages.append(ChatMessage(role="user", content=message))
        return messages

    def respond(
        self, message: str, flow: Optional[Flow], history: Sequence[ChatMessage]
    ) -> ChatReply:
        content = self.client.complete(
            self.build_messages(message, flow, history),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not content or not content.strip():
            return ChatReply(text=EMPTY_REPLY, outcome=NoInstruction())

        outcome = parse_instruction(content)
        text = strip_instruction(content)
        if not text:
            text = (
                "I've updated your flow."
                if isinstance(outcome, ParsedInstruction)
                else EMPTY_REPLY
            )
        return ChatReply(text=text, outcome=outcome)

    @staticmethod
    def apply(flow: Flow, instruction: EditInstruction) -> Flow:
        return itinerary.apply_instruction(flow, instruction)
