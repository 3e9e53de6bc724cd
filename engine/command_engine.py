from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from compliance.audit_logger import AuditLogger
from engine import replies
from engine.errors import (
    CommandValidationError,
    ConversationExpiredError,
    CustomerNotFoundError,
    DuplicateCustomerError,
)
from engine.intent_parser import IntentParser
from memory.conversation_store import ConversationStore, SessionStore
from models.schemas import (
    CONFIRMATION_STATES,
    CommandResponse,
    ConfirmResponse,
    Conversation,
    Customer,
    CustomerData,
    IntentType,
    Plan,
    utcnow,
)
from tools.customer_repository import CustomerRepository, JsonCustomerRepository, generate_next_customer_id

logger = logging.getLogger(__name__)

# Short replies that answer the pending question rather than start a new command.
# "c1" as free text is ambiguous (continuation token vs. customer id) and is left as is.
CONTINUATION_RE = re.compile(
    r"^(skip|yes|no|cancel|name|email|phone|\d+|[^@\s]+@[^@\s]+\.[^@\s]+)$",
    re.IGNORECASE,
)

AUDIT_FIELDS = {"id", "name", "email", "phone"}


def _dump(model: Any) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class CommandEngine:
    def __init__(
        self,
        customers: CustomerRepository | None = None,
        conversations: SessionStore | None = None,
        parser: IntentParser | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self.customers = customers if customers is not None else JsonCustomerRepository()
        self.conversations = conversations if conversations is not None else ConversationStore()
        self.parser = parser if parser is not None else IntentParser()
        self.audit = audit_logger if audit_logger is not None else AuditLogger()

    @staticmethod
    def is_continuation(text: str, context: Conversation) -> bool:
        return bool(CONTINUATION_RE.match(text.strip())) or context.flow_state.is_edit_flow

    async def handle_command(self, text: str, conversation_id: str | None = None) -> CommandResponse:
        context = self.conversations.get(conversation_id) if conversation_id else None
        if context is not None and not self.is_continuation(text, context):
            self.conversations.delete(context.id)
            logger.info(
                "conversation_cleared_for_new_command",
                extra={"conversation_id": context.id, "flow_state": context.flow_state.value},
            )
            context = None

        plan = self.parser.parse(text, context)
        logger.info(
            "command_parsed",
            extra={
                "conversation_id": conversation_id,
                "intent": plan.intent.value,
                "flow_state": plan.flow_state.value if plan.flow_state else None,
                "continuing": context is not None,
            },
        )
        if plan.intent == IntentType.CREATE_CUSTOMER:
            return self._continue_create(plan, context, conversation_id)
        if plan.intent == IntentType.EDIT_CUSTOMER:
            return await self._continue_edit(plan, context, conversation_id)
        if plan.intent == IntentType.DELETE_CUSTOMER:
            return await self._continue_delete(plan, context, conversation_id)
        if plan.intent == IntentType.LIST_CUSTOMERS:
            return await self._list_customers()
        if plan.intent == IntentType.VIEW_CUSTOMER:
            return await self._view_customer(plan)

        if context is not None:
            # The dialogue reached a dead end; drop it so the next message starts clean.
            self.conversations.delete(context.id)
        return CommandResponse(response=plan.response, action_type=IntentType.UNKNOWN)

    async def resolve_customer(self, identifier: str | None) -> Optional[Customer]:
        if not identifier:
            return None
        customer = await self.customers.find_by_id(identifier)
        if customer is None:
            customer = await self.customers.find_by_name_case_insensitive(identifier)
        return customer

    def _save(
        self,
        plan: Plan,
        context: Conversation | None,
        conversation_id: str | None,
        customer_data: CustomerData,
        original: CustomerData | None = None,
    ) -> Conversation:
        conversation_id = conversation_id or self.conversations.generate_id()
        conversation = Conversation(
            id=conversation_id,
            flow_state=plan.flow_state,
            intent=plan.intent,
            action_type=plan.action_type,
            customer_data=customer_data,
            original_customer_data=original,
            field_to_edit=plan.field_to_edit,
            created_at=context.created_at if context is not None else utcnow(),
        )
        return self.conversations.set(conversation_id, conversation)

    def _dialogue_response(self, plan: Plan, conversation: Conversation) -> CommandResponse:
        return CommandResponse(
            response=plan.response,
            action_type=plan.action_type,
            needs_confirmation=plan.needs_confirmation,
            conversation_id=conversation.id,
            customer_data=conversation.customer_data,
            field_to_edit=conversation.field_to_edit,
        )

    def _continue_create(self, plan: Plan, context: Conversation | None, conversation_id: str | None) -> CommandResponse:
        customer_data = plan.customer_data or (context.customer_data if context else CustomerData())
        conversation = self._save(plan, context, conversation_id, customer_data)
        return self._dialogue_response(plan, conversation)

    async def _continue_edit(self, plan: Plan, context: Conversation | None, conversation_id: str | None) -> CommandResponse:
        if context is not None:
            customer_data = plan.customer_data or context.customer_data
            original = context.original_customer_data or context.customer_data
        else:
            customer = await self.resolve_customer(plan.customer_identifier)
            if customer is None:
                return CommandResponse(
                    response=replies.customer_not_found(plan.customer_identifier or ""),
                    action_type=IntentType.EDIT_CUSTOMER,
                )
            customer_data = customer.to_customer_data()
            original = customer_data
        conversation = self._save(plan, context, conversation_id, customer_data, original)
        return self._dialogue_response(plan, conversation)

    async def _continue_delete(self, plan: Plan, context: Conversation | None, conversation_id: str | None) -> CommandResponse:
        if context is not None:
            customer_data = context.customer_data
        else:
            customer = await self.resolve_customer(plan.customer_identifier)
            if customer is None:
                return CommandResponse(
                    response=replies.customer_not_found(plan.customer_identifier or ""),
                    action_type=IntentType.DELETE_CUSTOMER,
                )
            customer_data = customer.to_customer_data()
        conversation = self._save(plan, context, conversation_id, customer_data)
        response = self._dialogue_response(plan, conversation)
        response.needs_confirmation = True
        return response

    async def _list_customers(self) -> CommandResponse:
        rows = await self.customers.list_all_with_order_counts()
        return CommandResponse(
            response=replies.customer_list(rows),
            action_type=IntentType.LIST_CUSTOMERS,
            data={"customers": [_dump(row) for row in rows]},
        )

    async def _view_customer(self, plan: Plan) -> CommandResponse:
        customer = await self.resolve_customer(plan.customer_identifier)
        if customer is None:
            return CommandResponse(
                response=replies.customer_not_found(plan.customer_identifier or ""),
                action_type=IntentType.VIEW_CUSTOMER,
            )
        orders = await self.customers.find_orders_by_customer_id(customer.id)
        return CommandResponse(
            response=replies.customer_view(customer, orders),
            action_type=IntentType.VIEW_CUSTOMER,
            data={"customer": _dump(customer), "orders": [_dump(o) for o in orders]},
        )

    async def confirm_command(
        self,
        conversation_id: str,
        confirmed: bool,
        action_type: str | None = None,
        customer_data: CustomerData | None = None,
        field_to_edit: str | None = None,
    ) -> ConfirmResponse:
        # customer_data and field_to_edit from the caller are never applied; the
        # dialogue's own accumulated values are authoritative.
        context = self.conversations.get(conversation_id)
        if context is None:
            raise ConversationExpiredError(conversation_id)

        if not confirmed:
            self.conversations.delete(conversation_id)
            logger.info("conversation_cancelled", extra={"conversation_id": conversation_id})
            return ConfirmResponse(response=replies.CANCELLED)

        if action_type is not None and action_type != context.action_type.value:
            raise CommandValidationError(
                "Action does not match the pending conversation.",
                [{"field": "actionType", "message": f"expected {context.action_type.value}"}],
            )
        if CONFIRMATION_STATES.get(context.flow_state) != context.action_type:
            raise CommandValidationError(
                "This conversation is not waiting for confirmation yet.",
                [{"field": "conversationId", "message": f"conversation is in state {context.flow_state.value}"}],
            )

        try:
            if context.action_type == IntentType.CREATE_CUSTOMER:
                result = await self._confirm_create(context)
            elif context.action_type == IntentType.EDIT_CUSTOMER:
                result = await self._confirm_edit(context)
            else:
                result = await self._confirm_delete(context)
        except DuplicateCustomerError as exc:
            logger.info("customer_create_conflict", extra={"conversation_id": conversation_id, "existing_id": exc.existing_id})
            result = ConfirmResponse(
                response=replies.already_exists(exc.name, exc.existing_id),
                data={"existingCustomerId": exc.existing_id},
            )
        except CustomerNotFoundError as exc:
            logger.info("customer_vanished_before_confirm", extra={"conversation_id": conversation_id, "customer_id": exc.identifier})
            result = ConfirmResponse(response=replies.no_longer_exists(context.customer_data))

        self.conversations.delete(conversation_id)
        return result

    async def _confirm_create(self, context: Conversation) -> ConfirmResponse:
        data = context.customer_data
        name = (data.name or "").strip()
        # Checked again here: another dialogue may have created the same name meanwhile.
        existing = await self.customers.find_by_name_case_insensitive(name)
        if existing is not None:
            raise DuplicateCustomerError(name, existing.id)
        customer_id = await generate_next_customer_id(self.customers)
        created = await self.customers.create(
            Customer(id=customer_id, name=name, email=data.email or None, phone=data.phone or None)
        )
        self.audit.log_customer_change(
            "CREATE", created.id, None, created.model_dump(mode="json", include=AUDIT_FIELDS), context.id
        )
        logger.info("customer_created", extra={"customer_id": created.id, "conversation_id": context.id})
        return ConfirmResponse(
            response=replies.customer_details(created, "✅ Customer created successfully!"),
            data={"customer": _dump(created)},
        )

    async def _confirm_edit(self, context: Conversation) -> ConfirmResponse:
        field = context.field_to_edit
        customer_id = context.customer_data.id
        if field is None or not customer_id:
            raise CommandValidationError(
                "Nothing to update for this conversation.",
                [{"field": "fieldToEdit", "message": "no field selected"}],
            )
        before = await self.customers.find_by_id(customer_id)
        if before is None:
            raise CustomerNotFoundError(customer_id)
        new_value = context.customer_data.value_of(field) or None
        updated = await self.customers.update(customer_id, {field.value: new_value})
        self.audit.log_customer_change(
            "UPDATE",
            updated.id,
            {field.value: getattr(before, field.value)},
            {field.value: new_value},
            context.id,
        )
        logger.info("customer_updated", extra={"customer_id": updated.id, "field": field.value, "conversation_id": context.id})
        return ConfirmResponse(
            response=replies.customer_details(updated, "✅ Customer updated successfully!", section="Updated Details"),
            data={"customer": _dump(updated)},
        )

    async def _confirm_delete(self, context: Conversation) -> ConfirmResponse:
        customer_id = context.customer_data.id
        if not customer_id:
            raise CommandValidationError(
                "Nothing to delete for this conversation.",
                [{"field": "customerData.id", "message": "no customer selected"}],
            )
        deleted = await self.customers.delete(customer_id)
        self.audit.log_customer_change(
            "DELETE", deleted.id, deleted.model_dump(mode="json", include=AUDIT_FIELDS), None, context.id
        )
        logger.info("customer_deleted", extra={"customer_id": deleted.id, "conversation_id": context.id})
        return ConfirmResponse(
            response=replies.deleted(deleted.to_customer_data()),
            data={"deletedCustomer": _dump(deleted)},
        )

    def health(self) -> Dict[str, Any]:
        now = utcnow()
        # Past-TTL entries awaiting the next sweep are already unreachable through get().
        conversations = [c for c in self.conversations.snapshot() if not self.conversations.is_expired(c, now)]
        return {
            "status": "ok",
            "activeConversations": [
                {
                    "id": conv.id,
                    "flowState": conv.flow_state.value,
                    "actionType": conv.action_type.value,
                    "customerName": conv.customer_data.name,
                    "createdAt": conv.created_at.isoformat(),
                }
                for conv in conversations
            ],
            "totalConversations": len(conversations),
            "message": "Customer management service is running",
        }
