import logging

from fastapi import APIRouter, Depends, HTTPException

from flowplanner.api import get_planning_service
from flowplanner.models.schemas import FlowEditRequest, FlowSchema, ScenarioRequest
from flowplanner.services import itinerary
from flowplanner.services.planning_service import PlanningService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-flow", response_model=FlowSchema)
def generate_flow(
    scenario: ScenarioRequest,
    service: PlanningService = Depends(get_planning_service),
) -> FlowSchema:
    flow = service.generate_flow(scenario.to_domain())
    return FlowSchema.from_domain(flow)


@router.post("/flow/edit", response_model=FlowSchema)
def edit_flow(request: FlowEditRequest) -> FlowSchema:
    flow = request.flow.to_domain()

    if request.action in ("moveUp", "moveDown", "remove"):
        if not request.stop_id:
            raise HTTPException(status_code=422, detail=f"{request.action} requires stopId")
        if request.action == "moveUp":
            flow = itinerary.move_up(flow, request.stop_id, retime_stops=request.retime)
        elif request.action == "moveDown":
            flow = itinerary.move_down(flow, request.stop_id, retime_stops=request.retime)
        else:
            flow = itinerary.remove(flow, request.stop_id)
    elif request.action == "swap":
        if request.stop_index is None or request.new_stop is None:
            raise HTTPException(status_code=422, detail="swap requires stopIndex and newStop")
        flow = itinerary.apply_swap(flow, request.stop_index, request.new_stop.changes())
    else:
        if request.flow_changes is None:
            raise HTTPException(status_code=422, detail="applyChanges requires flowChanges")
        flow = itinerary.apply_instruction(flow, request.flow_changes.to_domain())

    logger.info("Applied %s to flow %s", request.action, flow.id)
    return FlowSchema.from_domain(flow)
