"""
Prompt assembly for the Gemini generateContent API.

Turns the paper text, chat history and the new question into the ordered
"contents" list the model expects.
"""
import base64
from typing import List, Optional, Sequence

from paperchat.models import ImageAttachment, Message

PAPER_CONTENT_START = "--- PAPER CONTENT ---"
PAPER_CONTENT_END = "--- END PAPER CONTENT ---"
CITATION_INSTRUCTION = (
    "Please analyze this paper and respond to user queries. When referencing specific parts, "
    "mention page numbers like \"On page X...\" or \"(page X)\"."
)
ACKNOWLEDGEMENT = (
    "I have analyzed the paper. I'm ready to help you understand its content. "
    "Feel free to ask any questions about it."
)


def _image_part(image: ImageAttachment) -> dict:
    data = image.data
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("ascii")
    return {"inlineData": {"mimeType": image.mime_type or "image/png", "data": data}}


def build_context_turn(combined_text: str, system_prompt: str, images: Sequence[ImageAttachment] = ()) -> dict:
    """First turn: system prompt, delimited paper text, page-citation instruction, then any images."""
    parts = [{
        "text": (
            f"{system_prompt}\n\n"
            f"{PAPER_CONTENT_START}\n{combined_text}\n{PAPER_CONTENT_END}\n\n"
            f"{CITATION_INSTRUCTION}"
        )
    }]
    for image in images:
        parts.append(_image_part(image))
    return {"role": "user", "parts": parts}


def build_contents(
    user_message: str,
    combined_text: str,
    history: Optional[List[Message]],
    system_prompt: str,
    images: Sequence[ImageAttachment] = ()
) -> List[dict]:
    """
    Build the contents list for one turn.

    Order is fixed:
    1. Context turn (system prompt + paper text + images), role "user" since
       Gemini has no system role in contents
    2. Canned model acknowledgement, regenerated every call and never stored
    3. History replayed in order; any non-user role is sent as "model"
    4. The new user message
    """
    contents = [build_context_turn(combined_text, system_prompt, images)]

    contents.append({"role": "model", "parts": [{"text": ACKNOWLEDGEMENT}]})

    for msg in history or []:
        contents.append({
            "role": "user" if msg.role == "user" else "model",
            "parts": [{"text": msg.content}]
        })

    contents.append({"role": "user", "parts": [{"text": user_message}]})

    return contents
