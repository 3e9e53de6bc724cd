from .conversation_store import ConversationStore, SessionStore

__all__ = ["ConversationStore", "SessionStore"]
