from .schemas import (
    CONFIRMATION_STATES,
    CommandRequest,
    CommandResponse,
    ConfirmRequest,
    ConfirmResponse,
    Conversation,
    Customer,
    CustomerData,
    CustomerWithOrderCount,
    EditableField,
    FlowState,
    IntentType,
    Order,
    OrderItem,
    Plan,
)

__all__ = [
    "CONFIRMATION_STATES",
    "CommandRequest",
    "CommandResponse",
    "ConfirmRequest",
    "ConfirmResponse",
    "Conversation",
    "Customer",
    "CustomerData",
    "CustomerWithOrderCount",
    "EditableField",
    "FlowState",
    "IntentType",
    "Order",
    "OrderItem",
    "Plan",
]
