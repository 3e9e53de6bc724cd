from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Optional, Tuple

from engine import replies
from models.schemas import (
    CONFIRMATION_STATES,
    Conversation,
    CustomerData,
    EditableField,
    FlowState,
    IntentType,
    Plan,
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SKIP_EMAIL_RE = re.compile(r"^(skip|no email|none)$", re.IGNORECASE)
SKIP_PHONE_RE = re.compile(r"^(skip|no phone|none)$", re.IGNORECASE)


class FlowInput(str, Enum):
    SKIP = "skip"
    EMAIL = "email"
    FIELD = "field"
    VALUE = "value"
    INVALID = "invalid"


# Every free-text step a dialogue can take. Anything missing here is a dead end.
TRANSITIONS: Dict[Tuple[FlowState, FlowInput], FlowState] = {
    (FlowState.CREATE_ASK_EMAIL, FlowInput.SKIP): FlowState.CREATE_ASK_PHONE,
    (FlowState.CREATE_ASK_EMAIL, FlowInput.EMAIL): FlowState.CREATE_ASK_PHONE,
    (FlowState.CREATE_ASK_EMAIL, FlowInput.INVALID): FlowState.CREATE_ASK_EMAIL,
    (FlowState.CREATE_ASK_PHONE, FlowInput.SKIP): FlowState.CREATE_CONFIRM_DETAILS,
    (FlowState.CREATE_ASK_PHONE, FlowInput.VALUE): FlowState.CREATE_CONFIRM_DETAILS,
    (FlowState.CREATE_ASK_PHONE, FlowInput.INVALID): FlowState.CREATE_ASK_PHONE,
    (FlowState.EDIT_SELECT_FIELD, FlowInput.FIELD): FlowState.EDIT_ENTER_NEW_VALUE,
    (FlowState.EDIT_SELECT_FIELD, FlowInput.INVALID): FlowState.EDIT_SELECT_FIELD,
    (FlowState.EDIT_ENTER_NEW_VALUE, FlowInput.VALUE): FlowState.EDIT_CONFIRM_CHANGE,
    (FlowState.EDIT_ENTER_NEW_VALUE, FlowInput.INVALID): FlowState.EDIT_ENTER_NEW_VALUE,
}


def classify_input(state: FlowState, text: str) -> Optional[FlowInput]:
    value = text.strip()
    if state == FlowState.CREATE_ASK_EMAIL:
        if SKIP_EMAIL_RE.match(value):
            return FlowInput.SKIP
        return FlowInput.EMAIL if EMAIL_RE.match(value) else FlowInput.INVALID
    if state == FlowState.CREATE_ASK_PHONE:
        if SKIP_PHONE_RE.match(value):
            return FlowInput.SKIP
        return FlowInput.VALUE if value else FlowInput.INVALID
    if state == FlowState.EDIT_SELECT_FIELD:
        return FlowInput.FIELD if value.lower() in {f.value for f in EditableField} else FlowInput.INVALID
    if state == FlowState.EDIT_ENTER_NEW_VALUE:
        return FlowInput.VALUE if value else FlowInput.INVALID
    return None


class FlowStateMachine:
    def step(self, text: str, context: Conversation) -> Plan:
        state = context.flow_state
        if state in CONFIRMATION_STATES:
            # Only the confirm endpoint resolves these.
            return Plan(
                intent=context.intent,
                action_type=context.action_type,
                response=replies.AWAITING_CONFIRMATION,
                flow_state=state,
                needs_confirmation=True,
                customer_data=context.customer_data,
                field_to_edit=context.field_to_edit,
            )
        flow_input = classify_input(state, text)
        next_state = TRANSITIONS.get((state, flow_input)) if flow_input else None
        if next_state is None:
            return self.start_over()

        value = text.strip()
        if state == FlowState.CREATE_ASK_EMAIL:
            return self._after_email(context, flow_input, next_state, value)
        if state == FlowState.CREATE_ASK_PHONE:
            return self._after_phone(context, flow_input, next_state, value)
        if state == FlowState.EDIT_SELECT_FIELD:
            return self._after_field(context, flow_input, next_state, value)
        return self._after_new_value(context, flow_input, next_state, value)

    @staticmethod
    def start_over() -> Plan:
        return Plan(intent=IntentType.UNKNOWN, action_type=IntentType.UNKNOWN, response=replies.START_OVER)

    def _after_email(self, context: Conversation, flow_input: FlowInput, next_state: FlowState, value: str) -> Plan:
        data = context.customer_data
        if flow_input == FlowInput.SKIP:
            data, response = data.merged(email=None), replies.email_skipped()
        elif flow_input == FlowInput.EMAIL:
            data, response = data.merged(email=value), replies.email_set(value)
        else:
            response = replies.email_invalid()
        return self._create_plan(next_state, data, response)

    def _after_phone(self, context: Conversation, flow_input: FlowInput, next_state: FlowState, value: str) -> Plan:
        data = context.customer_data
        if flow_input == FlowInput.SKIP:
            data = data.merged(phone=None)
            response = replies.create_summary(data)
        elif flow_input == FlowInput.VALUE:
            data = data.merged(phone=value)
            response = replies.phone_set(value, data)
        else:
            response = replies.phone_missing()
        return self._create_plan(next_state, data, response)

    def _create_plan(self, next_state: FlowState, data: CustomerData, response: str) -> Plan:
        return Plan(
            intent=IntentType.CREATE_CUSTOMER,
            action_type=IntentType.CREATE_CUSTOMER,
            response=response,
            flow_state=next_state,
            needs_confirmation=next_state in CONFIRMATION_STATES,
            customer_data=data,
        )

    def _after_field(self, context: Conversation, flow_input: FlowInput, next_state: FlowState, value: str) -> Plan:
        field = EditableField(value.lower()) if flow_input == FlowInput.FIELD else None
        response = replies.ask_new_value(field.value, context.customer_data.name) if field else replies.field_invalid()
        return Plan(
            intent=IntentType.EDIT_CUSTOMER,
            action_type=IntentType.EDIT_CUSTOMER,
            response=response,
            flow_state=next_state,
            customer_data=context.customer_data,
            field_to_edit=field,
        )

    def _after_new_value(self, context: Conversation, flow_input: FlowInput, next_state: FlowState, value: str) -> Plan:
        field = context.field_to_edit
        if field is None:
            return self.start_over()
        if flow_input == FlowInput.INVALID:
            return Plan(
                intent=IntentType.EDIT_CUSTOMER,
                action_type=IntentType.EDIT_CUSTOMER,
                response=replies.value_missing(field.value),
                flow_state=next_state,
                customer_data=context.customer_data,
                field_to_edit=field,
            )
        old_value = context.customer_data.value_of(field)
        return Plan(
            intent=IntentType.EDIT_CUSTOMER,
            action_type=IntentType.EDIT_CUSTOMER,
            response=replies.edit_diff(field.value, old_value, value),
            flow_state=next_state,
            needs_confirmation=True,
            customer_data=context.customer_data.merged(**{field.value: value}),
            field_to_edit=field,
            old_value=old_value,
            new_value=value,
        )
