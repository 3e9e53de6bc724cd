from __future__ import annotations

from typing import Any, Dict, List


class CommandError(RuntimeError):
    pass


class CommandValidationError(CommandError):
    def __init__(self, message: str, details: List[Dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class ConversationExpiredError(CommandValidationError):
    def __init__(self, conversation_id: str) -> None:
        super().__init__(
            "Conversation expired or not found. Please start over.",
            [{"field": "conversationId", "message": f"unknown conversation {conversation_id}"}],
        )
        self.conversation_id = conversation_id


class CustomerNotFoundError(CommandError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f"customer_not_found: {identifier}")
        self.identifier = identifier


class DuplicateCustomerError(CommandError):
    def __init__(self, name: str, existing_id: str) -> None:
        super().__init__(f"customer_exists: {existing_id}")
        self.name = name
        self.existing_id = existing_id
