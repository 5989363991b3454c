from fastapi import APIRouter, Depends

from flowplanner.api import get_flow_editor
from flowplanner.models.schemas import ChatRequest, ChatResponse, EditInstructionSchema
from flowplanner.services.flow_editor import FlowEditor

router = APIRouter()


@router.post("/chat-assistant", response_model=ChatResponse)
def chat_assistant(
    request: ChatRequest,
    editor: FlowEditor = Depends(get_flow_editor),
) -> ChatResponse:
    flow = request.flow.to_domain() if request.flow else None
    history = [m.to_domain() for m in request.conversation_history]
    reply = editor.respond(request.message, flow, history)

    changes = reply.flow_changes
    return ChatResponse(
        message=reply.text,
        flow_changes=EditInstructionSchema.from_domain(changes) if changes else None,
    )
