import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .discovery import DialogueSessionManager, run_discovery_turn
from .errors import BadRequestError, NotFoundError, WorkflowSageError
from .guidance import GuidanceExpander, load_workflow_context
from .llm import LLMGateway
from .models import (
    DiscoveryRequest,
    DiscoveryResponse,
    ErrorBody,
    ErrorResponse,
    GuidanceRequest,
    GuidanceResponse,
    HealthResponse,
    IdentifyOpportunitiesRequest,
    IdentifyOpportunitiesResponse,
    SuggestAutomationRequest,
    SuggestAutomationResponse,
    WebSearchResponse,
)
from .observability import configure_logging
from .opportunities import OpportunityGenerator
from .prompts import get_prompts
from .storage import WorkflowStore
from .tools import ToolRegistry, WebSearchClient, create_web_search_tool

load_dotenv()

settings = get_settings()
configure_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Workflow-Sage API",
    description="Discover business workflows through conversation and find automation opportunities",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ROOT_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = settings.data_dir or ROOT_DIR / "data"

prompts = get_prompts()
store = WorkflowStore(DATA_DIR / "workflow_sage.db")
gateway = LLMGateway.from_settings(settings)
search_client = WebSearchClient.from_settings(settings)
sessions = DialogueSessionManager(store, prompts)

# Server errors are reported with a fixed message per endpoint; details go to the log.
GENERIC_ERROR_MESSAGES = {
    "/api/workflow-discovery": "Failed to process workflow discovery request",
    "/api/suggest-automation": "Failed to generate suggestions",
    "/api/identify-opportunities": "Failed to identify opportunities",
    "/api/implementation-guidance": "Failed to generate implementation guidance",
    "/api/web-search": "Failed to perform search",
}


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(WorkflowSageError)
async def workflow_sage_error_handler(request: Request, exc: WorkflowSageError):
    path = request.url.path
    if exc.is_client_error:
        logger.info(
            "Request rejected: %s",
            exc.message,
            extra={"path": path, "status": exc.status_code, "error_code": exc.code},
        )
        return _error_response(exc.status_code, exc.code, exc.message)

    logger.error(
        "Request failed: %s",
        exc.message,
        exc_info=exc,
        extra={"path": path, "status": exc.status_code, "error_code": exc.code},
    )
    message = GENERIC_ERROR_MESSAGES.get(path, "Internal server error")
    return _error_response(exc.status_code, exc.code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error_response(400, BadRequestError.code, message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    path = request.url.path
    logger.error(
        "Unhandled error: %s",
        exc,
        exc_info=exc,
        extra={"path": path, "status": 500, "error_code": WorkflowSageError.code},
    )
    message = GENERIC_ERROR_MESSAGES.get(path, "Internal server error")
    return _error_response(500, WorkflowSageError.code, message)


def build_opportunity_generator() -> OpportunityGenerator:
    tools = ToolRegistry(
        [create_web_search_tool(search_client, num_results=settings.search_num_results)]
    )
    return OpportunityGenerator(
        gateway, tools, prompts, max_tool_rounds=settings.max_tool_rounds
    )


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


# --- Discovery ---

@app.post("/api/workflow-discovery", response_model=DiscoveryResponse)
async def workflow_discovery(request: DiscoveryRequest):
    """Run one turn of the discovery interview."""
    result = await run_discovery_turn(
        sessions=sessions,
        gateway=gateway,
        message=request.message,
        conversation_id=request.conversation_id,
        workflow_id=request.workflow_id,
        user_id=request.user_id,
    )
    return DiscoveryResponse(
        message=result.message,
        conversation_id=result.conversation_id,
        workflow_id=result.workflow_id,
        is_complete=result.is_complete,
    )


# --- Opportunities ---

@app.post("/api/suggest-automation", response_model=SuggestAutomationResponse)
async def suggest_automation(request: SuggestAutomationRequest):
    if not request.workflow_id or not request.conversation_id:
        raise BadRequestError("Workflow ID and conversation ID are required")
    suggestions = await build_opportunity_generator().suggest_for_workflow(
        store, request.workflow_id, request.conversation_id
    )
    return SuggestAutomationResponse(suggestions=suggestions)


@app.post("/api/identify-opportunities", response_model=IdentifyOpportunitiesResponse)
async def identify_opportunities(request: IdentifyOpportunitiesRequest):
    if not request.workflow_data:
        raise BadRequestError("Workflow data is required")
    opportunities = await build_opportunity_generator().identify(request.workflow_data)
    return IdentifyOpportunitiesResponse(opportunities=opportunities)


@app.post("/api/implementation-guidance", response_model=GuidanceResponse)
async def implementation_guidance(request: GuidanceRequest):
    context = load_workflow_context(store, request.workflow_id)
    guidance = await GuidanceExpander(gateway, prompts).expand(request.opportunity, context)
    return GuidanceResponse(guidance=guidance)


@app.get("/api/web-search", response_model=WebSearchResponse)
async def web_search(
    q: Optional[str] = None,
    num_results: Optional[int] = Query(None, ge=1, le=20),
):
    if not q or not q.strip():
        raise BadRequestError("Search query is required")
    results = await search_client.search(
        q.strip(), num_results=num_results or settings.search_num_results
    )
    return WebSearchResponse(results=[r.to_dict() for r in results])


# --- Stored workflows and transcripts ---

@app.get("/api/workflows")
def list_workflows(user_id: Optional[str] = None):
    if not user_id:
        raise BadRequestError("User ID is required")
    return [w.model_dump(mode="json") for w in store.list_workflows(user_id)]


@app.get("/api/workflows/{workflow_id}")
def get_workflow(workflow_id: str):
    workflow = store.load_workflow(workflow_id)
    if workflow is None:
        raise NotFoundError("Workflow", workflow_id)
    return workflow.model_dump(mode="json")


@app.get("/api/conversations/{conversation_id}/messages")
def get_conversation_messages(conversation_id: str):
    """Replay a discovery transcript for the chat history view."""
    conversation = store.load_conversation(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation", conversation_id)
    return [
        {"role": m.role, "content": m.content}
        for m in conversation.messages
        if m.role != "system"
    ]
