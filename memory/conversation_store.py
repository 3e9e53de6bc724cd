from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, List, Optional

from models.schemas import Conversation, utcnow
from settings import SETTINGS

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Keyed dialogue state shared by every command request.

    The bundled implementation lives in process memory, so each worker process
    sees (and reaps) only its own conversations. Multi-worker deployments need
    an implementation backed by a shared cache.
    """

    ttl_seconds: int

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[Conversation]:
        raise NotImplementedError

    @abstractmethod
    def set(self, conversation_id: str, conversation: Conversation) -> Conversation:
        raise NotImplementedError

    @abstractmethod
    def delete(self, conversation_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: datetime | None = None) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def snapshot(self) -> List[Conversation]:
        raise NotImplementedError

    def generate_id(self) -> str:
        return f"conv_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"

    def is_expired(self, conversation: Conversation, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return now - conversation.created_at > timedelta(seconds=self.ttl_seconds)


class ConversationStore(SessionStore):
    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = SETTINGS.conversation_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._conversations: Dict[str, Conversation] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)

    def get(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return None
            if self.is_expired(conversation):
                # Past its TTL but not swept yet.
                self._conversations.pop(conversation_id, None)
                logger.info("conversation_expired_on_read", extra={"conversation_id": conversation_id})
                return None
            return conversation.model_copy(deep=True)

    def set(self, conversation_id: str, conversation: Conversation) -> Conversation:
        stored = conversation.model_copy(update={"id": conversation_id, "last_touched_at": utcnow()}, deep=True)
        with self._lock:
            self._conversations[conversation_id] = stored
        return stored.model_copy(deep=True)

    def delete(self, conversation_id: str) -> bool:
        with self._lock:
            return self._conversations.pop(conversation_id, None) is not None

    def sweep(self, now: datetime | None = None) -> List[str]:
        now = now or utcnow()
        with self._lock:
            expired = [cid for cid, conv in self._conversations.items() if self.is_expired(conv, now)]
            for conversation_id in expired:
                self._conversations.pop(conversation_id, None)
        return expired

    def snapshot(self) -> List[Conversation]:
        with self._lock:
            return [conv.model_copy(deep=True) for conv in self._conversations.values()]
