import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from message_store.config import settings
from message_store.logging_utils import setup_logging, RequestLoggingMiddleware, log_message_operation
from message_store.logic import MessageLogic
from message_store.metrics import record_message_operation, get_metrics, get_metrics_content_type
from message_store.results import BadRequest, Conflict, NotFound, Result, Success, ValidationFailed
from message_store.schemas import (
    CreateMessageRequest,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    UpdateMessageRequest,
    ValidationErrorResponse,
)
from message_store.storage import InMemoryMessageRepository


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: build an empty repository and the logic layer over it
    - Shutdown: drop them; nothing is persisted
    """
    repository = InMemoryMessageRepository()
    app.state.message_repository = repository
    app.state.message_logic = MessageLogic(repository)
    logger.info("Message store initialized")
    yield
    del app.state.message_logic
    del app.state.message_repository


app = FastAPI(
    title="Message Store API",
    description="Organization-scoped message store",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


def get_message_logic(request: Request) -> MessageLogic:
    """Dependency returning the logic layer bound to this application."""
    return request.app.state.message_logic


# =============================================================================
# Result Mapping
# =============================================================================

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing identifier or body"},
    404: {"model": ErrorResponse, "description": "Message not found"},
    409: {"model": ErrorResponse, "description": "Duplicate title"},
    422: {"model": ValidationErrorResponse, "description": "Validation error"},
}


def _error_response(result: Result) -> JSONResponse:
    """Translate a non-success result to its HTTP response."""
    if isinstance(result, ValidationFailed):
        return JSONResponse(
            status_code=422,
            content=ValidationErrorResponse(errors=result.errors).model_dump(),
        )
    if isinstance(result, BadRequest):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(result, NotFound):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(result, Conflict):
        status_code = status.HTTP_409_CONFLICT
    else:
        raise TypeError(f"Unexpected result type: {type(result).__name__}")
    return JSONResponse(status_code=status_code, content={"detail": result.detail})


def _track(
    request: Request,
    operation: str,
    result: str,
    organization_id: uuid.UUID,
    message_id: Optional[uuid.UUID] = None,
) -> None:
    record_message_operation(operation, result)
    log_message_operation(
        request=request,
        operation=operation,
        result=result,
        organization_id=organization_id,
        message_id=message_id,
    )


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(request: Request, response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 once the repository is attached to the app,
    otherwise 503 (Service Unavailable).
    """
    repository = getattr(request.app.state, "message_repository", None)
    if repository is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="Message store not initialized")

    logger.debug(f"Readiness check: {repository.count()} messages stored")
    return HealthResponse(status="ready")


# =============================================================================
# Message Routes
# =============================================================================
# Handlers are plain functions: FastAPI runs them in its threadpool, where
# the repository and organization locks may block.

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/organizations/{{organization_id}}/messages",
    tags=["messages"],
)


@router.get("", response_model=list[MessageResponse])
def list_messages(
    organization_id: uuid.UUID,
    request: Request,
    logic: MessageLogic = Depends(get_message_logic),
) -> list[MessageResponse]:
    """List every message of the organization, newest first."""
    messages = logic.get_all_messages(organization_id)
    _track(request, "list", "success", organization_id)
    return [MessageResponse.from_message(m) for m in messages]


@router.get(
    "/{message_id}",
    response_model=MessageResponse,
    responses={404: ERROR_RESPONSES[404]},
)
def get_message(
    organization_id: uuid.UUID,
    message_id: uuid.UUID,
    request: Request,
    logic: MessageLogic = Depends(get_message_logic),
):
    """Fetch one message of the organization."""
    message = logic.get_message(organization_id, message_id)
    if message is None:
        _track(request, "get", "not_found", organization_id, message_id)
        return _error_response(NotFound(detail="Message not found."))

    _track(request, "get", "success", organization_id, message_id)
    return MessageResponse.from_message(message)


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={code: ERROR_RESPONSES[code] for code in (400, 409, 422)},
)
def create_message(
    organization_id: uuid.UUID,
    request: Request,
    response: Response,
    body: Optional[CreateMessageRequest] = None,
    logic: MessageLogic = Depends(get_message_logic),
):
    """
    Create a message.

    Returns 201 with a Location header pointing at the new message.
    """
    result = logic.create_message(organization_id, body)

    if not isinstance(result, Success):
        _track(request, "create", result.kind, organization_id)
        return _error_response(result)

    message = result.message
    _track(request, "create", result.kind, organization_id, message.id)
    response.headers["Location"] = str(
        request.url_for("get_message", organization_id=organization_id, message_id=message.id)
    )
    return MessageResponse.from_message(message)


@router.put(
    "/{message_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
)
def update_message(
    organization_id: uuid.UUID,
    message_id: uuid.UUID,
    request: Request,
    body: Optional[UpdateMessageRequest] = None,
    logic: MessageLogic = Depends(get_message_logic),
):
    """Replace title and content of an active message, optionally deactivating it."""
    result = logic.update_message(organization_id, message_id, body)
    _track(request, "update", result.kind, organization_id, message_id)

    if not isinstance(result, Success):
        return _error_response(result)
    return MessageResponse.from_message(result.message)


@router.delete(
    "/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={code: ERROR_RESPONSES[code] for code in (400, 404)},
)
def delete_message(
    organization_id: uuid.UUID,
    message_id: uuid.UUID,
    request: Request,
    logic: MessageLogic = Depends(get_message_logic),
):
    """Delete a message (active or inactive)."""
    result = logic.delete_message(organization_id, message_id)
    _track(request, "delete", result.kind, organization_id, message_id)

    if not isinstance(result, Success):
        return _error_response(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


app.include_router(router)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    - http_requests_total: Total HTTP requests by method, path, status
    - message_operations_total: Message operation outcomes
    - request_latency_seconds: Request latency histogram
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
