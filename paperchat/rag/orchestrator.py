"""
Chat orchestration for PaperChat.

Drives one chat turn end to end: input guards, paper extraction on first use
(or after the paper selection changes), the Gemini call, reference parsing
and history persistence.
"""
from typing import Callable, List, Optional, Sequence
import threading
import time

from paperchat.config import MAX_TOKENS_PER_DOCUMENT
from paperchat.errors import AuthError, ExtractionFailed, MissingCredential, NoDocuments, StorageError
from paperchat.host.interfaces import HostDocumentStore
from paperchat.ingestion.pdf_extractor import PDFExtractor
from paperchat.logging_config import get_logger
from paperchat.models import DocumentRef, ImageAttachment, Message, TurnResult, TurnState
from paperchat.preferences import Preferences
from paperchat.rag.context_builder import build_contents
from paperchat.rag.context_set import SessionContext, resolve_selection
from paperchat.rag.conversation_store import ConversationStore
from paperchat.rag.gateway import GeminiGateway
from paperchat.rag.navigation import PageNavigator
from paperchat.rag.prompts import get_quick_action_prompt, welcome_message
from paperchat.rag.references import FragmentNode, linkify

logger = get_logger(__name__)

# A message pasted while no key is configured is taken as the key if it looks like one
API_KEY_PREFIX = "AI"
API_KEY_MIN_LENGTH = 30
MASKED_KEY = "********"


def looks_like_api_key(text: str) -> bool:
    return text.startswith(API_KEY_PREFIX) and len(text) > API_KEY_MIN_LENGTH


def classify_error(error: Exception) -> str:
    """'auth' when the key was rejected, 'model' for every other model-call failure."""
    message = str(error)
    if isinstance(error, AuthError) or "403" in message or "API key" in message:
        return "auth"
    return "model"


class ChatOrchestrator:
    """
    Runs chat turns for one session.

    One turn at a time: a submit that arrives while another turn is extracting
    or querying is dropped, not queued. Every turn, including failed ones,
    ends back in TurnState.IDLE. A failed model call persists nothing.
    """

    def __init__(
        self,
        session: SessionContext,
        preferences: Preferences,
        conversation_store: ConversationStore,
        extractor: PDFExtractor,
        gateway: GeminiGateway,
        documents: Optional[HostDocumentStore] = None,
        navigator: Optional[PageNavigator] = None,
        max_tokens_per_document: int = MAX_TOKENS_PER_DOCUMENT,
        on_status: Optional[Callable[[str], None]] = None
    ):
        self.session = session
        self.preferences = preferences
        self.conversation_store = conversation_store
        self.extractor = extractor
        self.gateway = gateway
        self.documents = documents
        self.navigator = navigator
        self.max_tokens_per_document = max_tokens_per_document
        self.on_status = on_status

        self.state = TurnState.IDLE
        self.status = ""
        self._turn_lock = threading.Lock()

    @property
    def context_set(self):
        return self.session.context_set

    @property
    def conversation_id(self) -> str:
        return self.session.context_set.conversation_id

    def _set_status(self, status: str) -> None:
        self.status = status
        if self.on_status is not None:
            self.on_status(status)

    # ===== Selection =====

    def select_documents(self, documents: Sequence[DocumentRef]) -> TurnResult:
        """Replace the papers in scope and show their existing conversation (or a greeting)."""
        self.session.context_set.replace(documents)
        self.session.invalidate_content()

        pdf_count = len(self.context_set.extractable)
        self._set_status(f"Chatting with {pdf_count} paper(s)" if pdf_count > 0 else "No PDFs found")
        logger.info(f"Selected {len(self.context_set)} item(s), conversation {self.conversation_id}")

        return TurnResult(
            accepted=True,
            messages=self.load_existing_conversation(),
            status=self.status,
            conversation_id=self.conversation_id
        )

    def select_items(self, item_ids: Sequence[str]) -> TurnResult:
        """Resolve host item IDs to documents, then select them."""
        if self.documents is None:
            raise RuntimeError("No host document store configured")
        return self.select_documents(resolve_selection(self.documents, item_ids))

    def load_existing_conversation(self) -> List[Message]:
        history = self.conversation_store.get_history(self.conversation_id)
        if history:
            return history
        return [Message(role="assistant", content=welcome_message(len(self.context_set)))]

    def add_document(self, document: DocumentRef) -> TurnResult:
        """
        Add a paper to the running conversation.

        The conversation ID changes with the new member set, and cached paper
        text is dropped so the next turn re-reads every paper. Messages stored
        under the previous ID are left as they are.
        """
        if not self.session.context_set.append(document):
            self._set_status("Paper already in chat")
            return TurnResult(accepted=False, status=self.status, conversation_id=self.conversation_id)

        self.session.invalidate_content()
        pdf_count = len(self.context_set.extractable)
        self._set_status(f"Added paper. Now chatting with {pdf_count} papers.")
        logger.info(f"Added {document.document_id}; conversation is now {self.conversation_id}")

        return TurnResult(
            accepted=True,
            messages=[Message(role="system", content=f"Added \"{document.title}\" to conversation.")],
            status=self.status,
            conversation_id=self.conversation_id
        )

    def add_item(self, item_id: str) -> TurnResult:
        if self.documents is None:
            raise RuntimeError("No host document store configured")
        refs = resolve_selection(self.documents, [item_id])
        if not refs:
            self._set_status("Paper not found")
            return TurnResult(accepted=False, status=self.status, conversation_id=self.conversation_id)
        return self.add_document(refs[0])

    # ===== Turns =====

    def submit(self, text: str, images: Sequence[ImageAttachment] = ()) -> TurnResult:
        """Run one chat turn for the user's input."""
        message = (text or "").strip()
        if not message:
            return TurnResult(accepted=False, status=self.status)

        if not self._turn_lock.acquire(blocking=False):
            logger.info("Turn already in progress; dropping submit")
            return TurnResult(accepted=False, status=self.status, conversation_id=self.conversation_id)

        try:
            return self._run_turn(message, images)
        finally:
            self.state = TurnState.IDLE
            self._turn_lock.release()

    def run_quick_action(self, action: str) -> TurnResult:
        if action == "clear":
            return self.clear_conversation()
        return self.submit(get_quick_action_prompt(action))

    def _run_turn(self, message: str, images: Sequence[ImageAttachment]) -> TurnResult:
        api_key = self.preferences.api_key

        if not api_key and looks_like_api_key(message):
            return self._save_api_key(message)

        if not api_key:
            logger.info(f"Turn rejected: {MissingCredential()}")
            return self._rejected("missing_credential", "Please enter API key",
                                  "Please enter your Gemini API key below.")

        documents = self.context_set.extractable
        if not documents:
            logger.info(f"Turn rejected: {NoDocuments()}")
            return self._rejected("no_documents", "No PDFs to read",
                                  "No PDF attachments found in selection.")

        conversation_id = self.conversation_id
        ui_messages = [Message(role="user", content=message)]

        self.state = TurnState.EXTRACTING
        self._set_status(f"Reading {len(documents)} paper(s)...")
        combined_text = self._get_combined_text(conversation_id, documents)

        history = self.conversation_store.get_history(conversation_id)

        self.state = TurnState.QUERYING
        self._set_status("Thinking...")
        contents = build_contents(message, combined_text, history, self.preferences.system_prompt, images)

        start = time.time()
        try:
            response = self.gateway.send(contents, api_key=api_key, model=self.preferences.model)
        except Exception as e:
            self.state = TurnState.ERROR
            category = classify_error(e)
            logger.error(f"Error sending message: {e}", exc_info=True)
            content = "API Key Error. Check your Gemini API key." if category == "auth" else f"Error: {e}"
            ui_messages.append(Message(role="assistant", content=content))
            self._set_status("Error occurred")
            return TurnResult(
                accepted=True,
                messages=ui_messages,
                status=self.status,
                error=category,
                conversation_id=conversation_id
            )

        if self.session.closed:
            logger.info(f"Session closed during turn for {conversation_id}; discarding reply")
            return TurnResult(accepted=True, status="Session closed", conversation_id=conversation_id)

        generation_time_ms = (time.time() - start) * 1000
        logger.info(f"Turn for {conversation_id} answered in {generation_time_ms:.0f}ms")

        self.conversation_store.add_message(conversation_id, "user", message)
        self.conversation_store.add_message(conversation_id, "assistant", response.text)

        ui_messages.append(Message(role="assistant", content=response.text))
        self._set_status("Ready")
        return TurnResult(
            accepted=True,
            messages=ui_messages,
            status=self.status,
            references=response.references,
            conversation_id=conversation_id,
            usage=response.usage
        )

    def _rejected(self, category: str, status: str, content: str) -> TurnResult:
        self._set_status(status)
        return TurnResult(
            accepted=True,
            messages=[Message(role="assistant", content=content)],
            status=status,
            error=category,
            conversation_id=self.conversation_id
        )

    def _save_api_key(self, key: str) -> TurnResult:
        try:
            self.preferences.api_key = key
        except StorageError as e:
            logger.error(f"Failed to save API key: {e}")
            return self._rejected("storage", "Error occurred", "Could not save the API key.")

        logger.info("API key saved from chat input")
        self._set_status("Ready")
        return TurnResult(
            accepted=True,
            messages=[
                Message(role="user", content=MASKED_KEY),
                Message(role="assistant", content="API key saved!"),
            ],
            status=self.status,
            conversation_id=self.conversation_id
        )

    def _get_combined_text(self, conversation_id: str, documents: List[DocumentRef]) -> str:
        """Combined paper text for the current selection, extracted once per selection."""
        cached = self.session.content_cache.get(conversation_id)
        if cached is not None:
            return cached

        combined_text = ""
        for document in documents:
            title = document.title or "Untitled"
            try:
                self._set_status(f"Reading: {title[:20]}...")
                content = self.extractor.extract(document.source_id)
                text = self.extractor.truncate(content.text, self.max_tokens_per_document)
                combined_text += f"\n\n--- Start of Paper: {title} ---\n{text}\n--- End of Paper ---\n"
            except ExtractionFailed as e:
                logger.warning(f"Failed to read {title}: {e}")
                combined_text += f"\n\n--- Error Reading Paper: {title} ---\n"

        self.session.content_cache[conversation_id] = combined_text
        return combined_text

    # ===== Conversation management =====

    def clear_conversation(self) -> TurnResult:
        self.conversation_store.clear_history(self.conversation_id)
        self.session.invalidate_content()
        self._set_status("Conversation cleared")
        return TurnResult(
            accepted=True,
            messages=self.load_existing_conversation(),
            status=self.status,
            conversation_id=self.conversation_id
        )

    def set_model(self, model: str) -> TurnResult:
        model = (model or "").strip()
        if not model:
            return TurnResult(accepted=False, status=self.status)

        self.preferences.model = model
        self._set_status(f"Model switched to {model}")
        return TurnResult(
            accepted=True,
            messages=[Message(role="system", content=f"Active model changed to **{model}**.")],
            status=self.status,
            conversation_id=self.conversation_id
        )

    def export_conversation(self) -> str:
        return self.conversation_store.export_as_text(self.conversation_id)

    # ===== References =====

    @property
    def link_target(self) -> Optional[str]:
        """Document page links point at; only defined when exactly one paper is in scope."""
        documents = self.context_set.extractable
        if len(documents) != 1:
            return None
        return documents[0].source_id

    def linkify_reply(self, text: str) -> Optional[List[FragmentNode]]:
        target = self.link_target
        if target is None:
            return None
        return linkify(text, target, on_click=self.navigate)

    def navigate(self, document_id: str, page_number: int) -> bool:
        if self.navigator is None:
            return False
        return self.navigator.navigate_to_page(document_id, page_number)

    def close(self) -> None:
        """Tear down the session. A reply still in flight will not be applied."""
        self.session.close()
        logger.info("Chat session closed")
