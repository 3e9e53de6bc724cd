from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Pattern, Tuple

from engine import replies
from engine.flow_state_machine import FlowStateMachine
from models.schemas import Conversation, CustomerData, FlowState, IntentType, Plan
from tools.customer_repository import CUSTOMER_ID_RE


def normalize_identifier(identifier: str) -> str:
    identifier = identifier.strip()
    return identifier.lower() if CUSTOMER_ID_RE.match(identifier) else identifier


def _delete(ident: str) -> Plan:
    return Plan(
        intent=IntentType.DELETE_CUSTOMER,
        action_type=IntentType.DELETE_CUSTOMER,
        response=replies.delete_prompt(ident),
        flow_state=FlowState.DELETE_CONFIRM,
        needs_confirmation=True,
        customer_identifier=normalize_identifier(ident),
    )


def _edit(ident: str) -> Plan:
    return Plan(
        intent=IntentType.EDIT_CUSTOMER,
        action_type=IntentType.EDIT_CUSTOMER,
        response=replies.edit_prompt(ident),
        flow_state=FlowState.EDIT_SELECT_FIELD,
        customer_identifier=normalize_identifier(ident),
    )


def _create(name: str) -> Plan:
    if CUSTOMER_ID_RE.match(name):
        # "create customer c1" is almost always a misdirected edit or delete.
        return Plan(intent=IntentType.UNKNOWN, action_type=IntentType.UNKNOWN, response=replies.looks_like_id(name))
    return Plan(
        intent=IntentType.CREATE_CUSTOMER,
        action_type=IntentType.CREATE_CUSTOMER,
        response=replies.create_prompt(name),
        flow_state=FlowState.CREATE_ASK_EMAIL,
        customer_data=CustomerData(name=name),
    )


def _list(_: str) -> Plan:
    return Plan(
        intent=IntentType.LIST_CUSTOMERS,
        action_type=IntentType.LIST_CUSTOMERS,
        response=replies.fetching_customers(),
    )


def _view(ident: str) -> Plan:
    return Plan(
        intent=IntentType.VIEW_CUSTOMER,
        action_type=IntentType.VIEW_CUSTOMER,
        response=replies.looking_up(ident),
        customer_identifier=normalize_identifier(ident),
    )


def _unknown(_: str) -> Plan:
    return Plan(intent=IntentType.UNKNOWN, action_type=IntentType.UNKNOWN, response=replies.HELP_TEXT)


@dataclass(frozen=True)
class IntentRule:
    order: int
    name: str
    patterns: Tuple[Pattern[str], ...]
    build: Callable[[str], Plan]

    def apply(self, text: str) -> Optional[Plan]:
        for pattern in self.patterns:
            match = pattern.match(text)
            if match:
                captured = match.group(1) if match.groups() else ""
                return self.build(captured.strip())
        return None


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# Most specific first; the first rule that matches wins.
INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(1, "delete_customer", (_rx(r"^(?:delete|remove)\s+customer\s+(.+)$"),), _delete),
    IntentRule(2, "edit_customer", (_rx(r"^(?:edit|update|modify|change)\s+customer\s+(.+)$"),), _edit),
    IntentRule(
        3,
        "create_customer",
        (
            _rx(r"^(?:create|add|make)\s+(?:a\s+)?customer\s+(.+)$"),
            _rx(r"^(?:new\s+)?customer\s+(.+)$"),
        ),
        _create,
    ),
    IntentRule(4, "list_customers", (_rx(r"^(?:list|show|view)\s+customers$"),), _list),
    IntentRule(5, "view_customer", (_rx(r"^(?:view|show|get)\s+customer\s+(.+)$"),), _view),
)


class IntentParser:
    def __init__(self, flow: FlowStateMachine | None = None) -> None:
        self.flow = flow or FlowStateMachine()

    def parse(self, text: str, context: Conversation | None = None) -> Plan:
        if context is not None:
            return self.flow.step(text, context)
        return self.classify(text)

    def classify(self, text: str) -> Plan:
        cleaned = text.strip()
        for rule in INTENT_RULES:
            plan = rule.apply(cleaned)
            if plan is not None:
                return plan
        return _unknown(cleaned)
