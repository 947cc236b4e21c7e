"""
Canned prompts for the chat panel's quick-action buttons and greetings.
"""

QUICK_ACTION_PROMPTS = {
    "summarize": "Please provide a concise summary of this paper, including the main research question, methodology, key findings, and conclusions. Keep it to about 3-4 paragraphs.",
    "findings": "What are the key findings and results of this paper? Please list them with their significance and the page numbers where they are discussed.",
    "methodology": "Explain the methodology used in this paper. What approach did the researchers take, what data did they use, and how did they analyze it?",
    "conclusions": "What are the main conclusions of this paper? What do the authors suggest for future research?",
    "contributions": "What are the main contributions of this paper to its field? Why is this research significant?",
    "limitations": "What are the limitations of this study as discussed in the paper?",
    "related": "What related work and prior research does this paper build upon?",
}


def get_quick_action_prompt(action: str) -> str:
    """Prompt for a quick action; unknown actions are sent as typed."""
    return QUICK_ACTION_PROMPTS.get(action, action)


def welcome_message(document_count: int) -> str:
    if document_count > 1:
        return f"Hello! I'm ready to compare {document_count} papers. Ask me anything about them!"
    return "Hello! I'm your paper assistant. Select a paper with a PDF attachment, and I'll help you understand it."
