from fastapi import APIRouter, FastAPI, HTTPException, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from typing import Optional
from sqlalchemy.orm import sessionmaker
import logging

from config import Settings, load_settings
from database import build_engine, build_session_factory
import schemas
from auth.gate import AccessGateMiddleware
from auth.routes import router as auth_router
from auth.dependencies import PageRedirect, get_settings, require_manager
from auth.route_policy import CRON_GENERATE_TASKS_PATH
from auth.security import Identity, cron_request_authorized
from pages import router as pages_router
from recurrence import (
    RecurrenceGenerationError,
    RecurrenceGenerator,
    get_recurrence_generator,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
) -> FastAPI:
    """
    Build the PMOS application.

    Args:
        settings: Application settings, loaded from the environment if omitted
        session_factory: Database session factory, built from
            settings.database_url if omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or load_settings()
    logging.getLogger().setLevel(settings.log_level)

    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings.database_url))

    app = FastAPI(
        title="PMOS API",
        description="Access control and recurring task endpoints for the Personal Management Operating System",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.session_factory = session_factory

    # Gate runs inside CORS so preflight requests are answered before it
    app.add_middleware(AccessGateMiddleware, settings=settings, session_factory=session_factory)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PageRedirect)
    async def page_redirect_handler(request: Request, exc: PageRedirect):
        logger.debug(f"Page guard redirecting {request.url.path} to {exc.location}")
        return RedirectResponse(url=exc.location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    app.include_router(auth_router)
    app.include_router(api_router)
    app.include_router(pages_router)

    logger.info(f"PMOS application created (environment: {settings.environment})")
    return app


# ============== Health & Recurring Tasks ==============

api_router = APIRouter()


@api_router.get("/health")
def health_check():
    return {"status": "healthy"}


@api_router.api_route(
    CRON_GENERATE_TASKS_PATH,
    methods=["GET", "POST"],
    response_model=schemas.GenerationResult,
    responses={
        401: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
)
def cron_generate_tasks(
    request: Request,
    settings: Settings = Depends(get_settings),
    generate: RecurrenceGenerator = Depends(get_recurrence_generator),
):
    """
    Generate tasks from recurring templates.

    Called by the host scheduler or an external cron service. Accepts GET and
    POST. See cron_request_authorized() for the shared-secret rules.
    """
    authorized = cron_request_authorized(
        request.headers.get("authorization"),
        request.headers.get(settings.scheduler_signature_header),
        settings,
    )
    if not authorized:
        logger.info("Rejected cron request: bad or missing bearer token")
        return JSONResponse({"error": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        data = generate()
    except RecurrenceGenerationError as e:
        return JSONResponse({"error": str(e)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception:
        logger.exception("Unexpected error during recurring task generation")
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return schemas.GenerationResult(
        success=True,
        message="Recurring tasks generated successfully",
        data=data,
    ).model_dump(mode="json")


@api_router.post("/api/recurring-tasks/generate", response_model=schemas.GenerationResult)
def trigger_recurring_tasks(
    identity: Identity = Depends(require_manager),
    generate: RecurrenceGenerator = Depends(get_recurrence_generator),
):
    """Manually run recurring task generation from the recurring tasks page."""
    logger.debug(f"Manager {identity.user_id} triggering recurring task generation")
    try:
        data = generate()
    except RecurrenceGenerationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    logger.info(f"Recurring tasks generated on demand by user {identity.user_id}")
    return schemas.GenerationResult(message="Recurring tasks generated successfully", data=data)


app = create_app()
