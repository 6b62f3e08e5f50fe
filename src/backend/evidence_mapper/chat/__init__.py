"""Copilot chat grounded on the FAISS policy index."""

from .rag_chat import CopilotContext, GroundedChat

__all__ = ["CopilotContext", "GroundedChat"]
