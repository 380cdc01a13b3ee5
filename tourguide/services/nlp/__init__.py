"""Chat input handling: keyword intent inference and the chat responder interface."""
from .intent_parser import ChatIntent, ChatIntentParser, ChatResponder

__all__ = ["ChatIntent", "ChatIntentParser", "ChatResponder"]
