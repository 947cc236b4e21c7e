"""
PaperChat: chat with the PDFs in a reference library through Gemini.
"""
