from fastapi import Depends
from starlette.requests import Request

from flowplanner.core.config import Settings, get_settings
from flowplanner.services.flow_editor import FlowEditor
from flowplanner.services.planning_service import PlanningService


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_planning_service(
    settings: Settings = Depends(get_app_settings),
) -> PlanningService:
    return PlanningService.from_settings(settings)


def get_flow_editor(settings: Settings = Depends(get_app_settings)) -> FlowEditor:
    return FlowEditor.from_settings(settings)
