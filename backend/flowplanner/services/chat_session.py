"""
Session-local conversation state for a single planner user.

This is the client-side helper for embedding the planner in-process: the HTTP
endpoints are stateless, and a caller that keeps a conversation going (a UI
backend, a CLI) holds one ChatSession per user and drives it with ``send``.

Holds the transcript and the current flow, turns provider failures into
assistant apologies, and applies replies in the order their requests were
issued: once a later turn has been applied, an earlier reply that arrives
afterwards is dropped.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from flowplanner.core.errors import (
    CompletionError,
    QuotaExhaustedError,
    RateLimitedError,
)
from flowplanner.models.domain import ChatMessage, ChatReply, Flow, NoInstruction
from flowplanner.services.flow_editor import FlowEditor

logger = logging.getLogger(__name__)

WELCOME_WITH_FLOW = (
    "Your flow is ready! Ask me to refine it - swap stops, change the vibe, "
    "adjust timing, or add more options."
)
WELCOME_WITHOUT_FLOW = (
    "Hi! Describe your ideal outing and I'll create a personalized flow for you. "
    "Or use the form on the left to get started."
)
RATE_LIMITED_REPLY = (
    "I'm getting too many requests right now. Please wait a moment and try again."
)
QUOTA_EXHAUSTED_REPLY = (
    "I've run out of AI credits for now, so I can't refine your flow until more are added."
)
GENERIC_FAILURE_REPLY = "Sorry, something went wrong on my end. Please try again."


def apology_for(exc: CompletionError) -> str:
    if isinstance(exc, RateLimitedError):
        return RATE_LIMITED_REPLY
    if isinstance(exc, QuotaExhaustedError):
        return QUOTA_EXHAUSTED_REPLY
    return GENERIC_FAILURE_REPLY


@dataclass
class PendingTurn:
    seq: int
    epoch: int
    message: str
    flow: Optional[Flow]
    history: List[ChatMessage] = field(default_factory=list)


class ChatSession:
    def __init__(self, editor: FlowEditor, flow: Optional[Flow] = None):
        self.editor = editor
        self.flow = flow
        self.welcome = ChatMessage(
            role="assistant", content=WELCOME_WITH_FLOW if flow else WELCOME_WITHOUT_FLOW
        )
        self.transcript: List[ChatMessage] = [self.welcome]
        self._issued = 0
        self._applied = 0
        self._epoch = 0

    def history(self) -> List[ChatMessage]:
        """Prior turns sent to the model; the welcome message is not one of them."""
        return [m for m in self.transcript if m is not self.welcome]

    def set_flow(self, flow: Optional[Flow]) -> None:
        self.flow = flow

    def start_over(self) -> None:
        self.flow = None
        # Replies to turns issued before this point are no longer relevant.
        self._epoch += 1

    def begin_turn(self, message: str) -> PendingTurn:
        self._issued += 1
        turn = PendingTurn(
            seq=self._issued,
            epoch=self._epoch,
            message=message,
            flow=self.flow,
            history=self.history(),
        )
        self.transcript.append(ChatMessage(role="user", content=message))
        return turn

    def run_turn(self, turn: PendingTurn) -> ChatReply:
        try:
            return self.editor.respond(turn.message, turn.flow, turn.history)
        except CompletionError as exc:
            logger.warning("Chat turn %d failed: %s", turn.seq, exc)
            return ChatReply(text=apology_for(exc), outcome=NoInstruction())

    def complete_turn(self, turn: PendingTurn, reply: ChatReply) -> bool:
        """Record a reply. Returns False when the reply was superseded and dropped."""
        if turn.epoch != self._epoch or turn.seq <= self._applied:
            logger.info("Discarding stale reply for turn %d", turn.seq)
            return False
        self._applied = turn.seq
        self.transcript.append(ChatMessage(role="assistant", content=reply.text))

        changes = reply.flow_changes
        if changes is not None and turn.flow is not None:
            # Indices in the instruction refer to the flow the model was shown.
            self.flow = self.editor.apply(turn.flow, changes)
        return True

    def send(self, message: str) -> str:
        turn = self.begin_turn(message)
        reply = self.run_turn(turn)
        self.complete_turn(turn, reply)
        return reply.text
