import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from flowplanner.api import routes_chat, routes_flow, routes_health
from flowplanner.core.config import Settings, settings as default_settings
from flowplanner.core.errors import FlowPlannerError
from flowplanner.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def flow_planner_error_handler(request: Request, exc: FlowPlannerError) -> JSONResponse:
    logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        # loc starts with the request part ("body", "query").
        field = ".".join(str(p) for p in err.get("loc", ())[1:])
        problems.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return JSONResponse(status_code=422, content={"error": "; ".join(problems) or "Invalid request"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)
    app = FastAPI(title="Flow Planner", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FlowPlannerError, flow_planner_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(routes_flow.router, tags=["flow"])
    app.include_router(routes_chat.router, tags=["chat"])

    app.state.settings = settings
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
