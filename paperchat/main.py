from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from pathlib import Path
from typing import Any, Dict, List, Optional

from paperchat.config import AVAILABLE_MODELS, DATABASE_URL, GEMINI_API_BASE, INDEX_CACHE_DIR, LIBRARY_DIR, LOG_FILE, LOG_LEVEL
from paperchat.db.database import make_engine, make_session_factory
from paperchat.db.init_db import init_db
from paperchat.db.kv_store import SqlKeyValueStore
from paperchat.host.local import LocalFullTextIndex, LocalPdfLibrary, LocalViewerBridge
from paperchat.ingestion.pdf_extractor import PDFExtractor
from paperchat.logging_config import setup_logging, get_logger
from paperchat.models import ImageAttachment, TurnResult
from paperchat.preferences import Preferences
from paperchat.rag.context_set import SessionContext, resolve_selection
from paperchat.rag.conversation_store import ConversationStore
from paperchat.rag.gateway import GeminiGateway
from paperchat.rag.navigation import PageNavigator
from paperchat.rag.orchestrator import ChatOrchestrator
from paperchat.rag.references import fragment_to_dicts, reference_shortcuts

# Configure logging on startup
setup_logging(level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="PaperChat API", version="0.1.0")

# Configure CORS to allow requests from the chat panel frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_orchestrator: Optional[ChatOrchestrator] = None


def build_orchestrator() -> ChatOrchestrator:
    """Wire the default stack: SQL-backed preferences, the local PDF library, Gemini."""
    engine = init_db(make_engine(DATABASE_URL))
    store = SqlKeyValueStore(make_session_factory(engine))
    preferences = Preferences(store)
    session = SessionContext()

    library = LocalPdfLibrary(Path(LIBRARY_DIR))
    index = LocalFullTextIndex(library, Path(INDEX_CACHE_DIR))
    viewer_bridge = LocalViewerBridge(library)

    return ChatOrchestrator(
        session=session,
        preferences=preferences,
        conversation_store=ConversationStore(store, preferences, cache=session.conversation_cache),
        extractor=PDFExtractor(library, viewer_bridge, index),
        gateway=GeminiGateway(GEMINI_API_BASE),
        documents=library,
        navigator=PageNavigator(viewer_bridge)
    )


def get_orchestrator() -> ChatOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


class MessageResponse(BaseModel):
    role: str
    content: str
    timestamp: int

class DocumentResponse(BaseModel):
    document_id: str
    title: str
    has_extractable_text: bool
    attachment_id: Optional[str] = None

class TurnResponse(BaseModel):
    accepted: bool
    messages: List[MessageResponse]
    status: str
    error: Optional[str] = None
    references: List[int] = []
    shortcuts: List[int] = []
    linked_reply: Optional[List[Dict[str, Any]]] = None
    conversation_id: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None

class ContextRequest(BaseModel):
    item_ids: List[str]

class AddDocumentRequest(BaseModel):
    item_id: str

class ImagePayload(BaseModel):
    data: str  # base64
    mime_type: str = "image/png"

class ChatRequest(BaseModel):
    message: str
    images: List[ImagePayload] = []

class QuickActionRequest(BaseModel):
    action: str

class ModelRequest(BaseModel):
    model: str

class NavigateRequest(BaseModel):
    document_id: str
    page: int

class ConversationResponse(BaseModel):
    conversation_id: str
    documents: List[DocumentResponse]
    messages: List[MessageResponse]

class SettingsResponse(BaseModel):
    model: str
    available_models: List[str]
    max_history_length: int
    has_api_key: bool

class StatsResponse(BaseModel):
    conversation_id: str
    message_count: int
    user_messages: int
    assistant_messages: int
    first_message: Optional[int] = None
    last_message: Optional[int] = None


def to_turn_response(orchestrator: ChatOrchestrator, result: TurnResult) -> TurnResponse:
    """Convert a TurnResult, linkifying the last assistant message."""
    linked_reply = None
    if result.error is None and result.messages and result.messages[-1].role == "assistant":
        fragment = orchestrator.linkify_reply(result.messages[-1].content)
        if fragment is not None:
            linked_reply = fragment_to_dicts(fragment)

    return TurnResponse(
        accepted=result.accepted,
        messages=[MessageResponse(**m.to_dict()) for m in result.messages],
        status=result.status,
        error=result.error,
        references=result.references,
        shortcuts=reference_shortcuts(result.references),
        linked_reply=linked_reply,
        conversation_id=result.conversation_id,
        usage=result.usage
    )


def require_conversation(orchestrator: ChatOrchestrator) -> str:
    conversation_id = orchestrator.conversation_id
    if not conversation_id:
        raise HTTPException(status_code=404, detail="No papers selected")
    return conversation_id


@app.on_event("startup")
async def startup_event():
    logger.info("Starting PaperChat API")
    logger.info(f"Library: {LIBRARY_DIR}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down PaperChat API")
    if _orchestrator is not None:
        _orchestrator.close()

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "PaperChat API is running"}

@app.post("/context", response_model=TurnResponse)
def select_context(request: ContextRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Replace the papers in scope and return their conversation (or a greeting)"""
    # Resolve before replacing, so an all-unknown selection leaves the current papers in scope
    refs = resolve_selection(orchestrator.documents, request.item_ids)
    if request.item_ids and not refs:
        raise HTTPException(status_code=404, detail="None of the selected items were found")
    return to_turn_response(orchestrator, orchestrator.select_documents(refs))

@app.post("/context/documents", response_model=TurnResponse)
def add_document(request: AddDocumentRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Add a paper to the running conversation"""
    result = orchestrator.add_item(request.item_id)
    if not result.accepted and result.status == "Paper not found":
        raise HTTPException(status_code=404, detail=f"Item {request.item_id} not found")
    return to_turn_response(orchestrator, result)

@app.post("/chat", response_model=TurnResponse)
def send_message(request: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Run one chat turn against the papers in scope"""
    logger.info(f"Received question: {request.message[:100]}...")
    images = [ImageAttachment(data=i.data, mime_type=i.mime_type) for i in request.images]

    try:
        result = orchestrator.submit(request.message, images)
    except Exception as e:
        logger.error(f"Error running chat turn: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error running chat turn: {str(e)}")

    return to_turn_response(orchestrator, result)

@app.post("/chat/quick-action", response_model=TurnResponse)
def quick_action(request: QuickActionRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Run a canned prompt (summarize, findings, ...) or clear the conversation"""
    try:
        result = orchestrator.run_quick_action(request.action)
    except Exception as e:
        logger.error(f"Error running quick action {request.action}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error running quick action: {str(e)}")

    return to_turn_response(orchestrator, result)

@app.get("/conversation", response_model=ConversationResponse)
def get_conversation(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Get the stored history for the papers in scope"""
    conversation_id = require_conversation(orchestrator)
    history = orchestrator.conversation_store.get_history(conversation_id)
    return ConversationResponse(
        conversation_id=conversation_id,
        documents=[DocumentResponse(**vars(d)) for d in orchestrator.context_set.documents],
        messages=[MessageResponse(**m.to_dict()) for m in history]
    )

@app.delete("/conversation", response_model=TurnResponse)
def clear_conversation(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    require_conversation(orchestrator)
    return to_turn_response(orchestrator, orchestrator.clear_conversation())

@app.get("/conversation/export", response_class=PlainTextResponse)
def export_conversation(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Plain-text transcript of the conversation"""
    require_conversation(orchestrator)
    return orchestrator.export_conversation()

@app.get("/conversation/stats", response_model=StatsResponse)
def conversation_stats(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    conversation_id = require_conversation(orchestrator)
    stats = orchestrator.conversation_store.get_stats(conversation_id)
    return StatsResponse(conversation_id=conversation_id, **stats)

@app.get("/settings", response_model=SettingsResponse)
def get_settings(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    preferences = orchestrator.preferences
    return SettingsResponse(
        model=preferences.model,
        available_models=AVAILABLE_MODELS,
        max_history_length=preferences.max_history_length,
        has_api_key=bool(preferences.api_key)
    )

@app.post("/settings/test-connection")
def test_connection(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Check the stored API key against the Gemini models list"""
    success, error = orchestrator.gateway.test_connection(orchestrator.preferences.api_key)
    return {"success": success, "error": error}

@app.put("/settings/model", response_model=TurnResponse)
def set_model(request: ModelRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    try:
        result = orchestrator.set_model(request.model)
    except Exception as e:
        logger.error(f"Error saving model preference: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error saving model preference: {str(e)}")
    return to_turn_response(orchestrator, result)

@app.post("/navigate")
def navigate(request: NavigateRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Jump to a page cited in an answer"""
    moved = orchestrator.navigate(request.document_id, request.page)
    return {"document_id": request.document_id, "page": request.page, "in_viewer": moved}

@app.get("/")
async def root():
    return {"message": "PaperChat API", "docs": "/docs"}
