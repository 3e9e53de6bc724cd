from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntentType(str, Enum):
    CREATE_CUSTOMER = "create_customer"
    EDIT_CUSTOMER = "edit_customer"
    DELETE_CUSTOMER = "delete_customer"
    LIST_CUSTOMERS = "list_customers"
    VIEW_CUSTOMER = "view_customer"
    UNKNOWN = "unknown"


class FlowState(str, Enum):
    CREATE_START = "create_start"
    CREATE_ASK_EMAIL = "create_ask_email"
    CREATE_ASK_PHONE = "create_ask_phone"
    CREATE_CONFIRM_DETAILS = "create_confirm_details"

    EDIT_SELECT_CUSTOMER = "edit_select_customer"
    EDIT_SELECT_FIELD = "edit_select_field"
    EDIT_ENTER_NEW_VALUE = "edit_enter_new_value"
    EDIT_CONFIRM_CHANGE = "edit_confirm_change"

    DELETE_SELECT_CUSTOMER = "delete_select_customer"
    DELETE_CONFIRM = "delete_confirm"

    # Never stored: a finished conversation is deleted instead.
    COMPLETED = "completed"

    @property
    def is_edit_flow(self) -> bool:
        return self.value.startswith("edit_")


# Confirmation states and the only action each one can be confirmed as.
CONFIRMATION_STATES: Dict[FlowState, IntentType] = {
    FlowState.CREATE_CONFIRM_DETAILS: IntentType.CREATE_CUSTOMER,
    FlowState.EDIT_CONFIRM_CHANGE: IntentType.EDIT_CUSTOMER,
    FlowState.DELETE_CONFIRM: IntentType.DELETE_CUSTOMER,
}


class EditableField(str, Enum):
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CustomerData(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def merged(self, **changes: Optional[str]) -> "CustomerData":
        return self.model_copy(update=changes)

    def value_of(self, field: EditableField) -> Optional[str]:
        return getattr(self, field.value)


class OrderItem(CamelModel):
    product_id: str
    qty: int = Field(ge=1)
    price: float = 0.0


class Order(CamelModel):
    id: str
    customer_id: Optional[str] = None
    total: float = 0.0
    items: List[OrderItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class Customer(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    def to_customer_data(self) -> CustomerData:
        return CustomerData(id=self.id, name=self.name, email=self.email, phone=self.phone)


class CustomerWithOrderCount(Customer):
    order_count: int = 0


class Conversation(CamelModel):
    id: str
    flow_state: FlowState
    intent: IntentType
    action_type: IntentType
    customer_data: CustomerData = Field(default_factory=CustomerData)
    original_customer_data: Optional[CustomerData] = None
    field_to_edit: Optional[EditableField] = None
    created_at: datetime = Field(default_factory=utcnow)
    last_touched_at: datetime = Field(default_factory=utcnow)


class Plan(BaseModel):
    intent: IntentType
    response: str
    action_type: IntentType
    flow_state: Optional[FlowState] = None
    needs_confirmation: bool = False
    customer_identifier: Optional[str] = None
    customer_data: Optional[CustomerData] = None
    field_to_edit: Optional[EditableField] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None


class CommandRequest(CamelModel):
    text: str = Field(min_length=1)
    conversation_id: Optional[str] = None


class ConfirmRequest(CamelModel):
    conversation_id: str
    confirmed: StrictBool
    action_type: Optional[str] = None
    customer_data: Optional[CustomerData] = None
    field_to_edit: Optional[str] = None


class CommandResponse(CamelModel):
    response: str
    action_type: IntentType
    needs_confirmation: Optional[bool] = None
    conversation_id: Optional[str] = None
    customer_data: Optional[CustomerData] = None
    field_to_edit: Optional[EditableField] = None
    data: Optional[Dict[str, Any]] = None


class ConfirmResponse(CamelModel):
    response: str
    data: Dict[str, Any] = Field(default_factory=dict)
