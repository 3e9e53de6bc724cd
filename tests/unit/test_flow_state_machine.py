from __future__ import annotations

from engine.flow_state_machine import TRANSITIONS, FlowInput, FlowStateMachine, classify_input
from models.schemas import Conversation, CustomerData, EditableField, FlowState, IntentType


def _conversation(state: FlowState, intent: IntentType, **kwargs) -> Conversation:
    return Conversation(id="conv_1_abc", flow_state=state, intent=intent, action_type=intent, **kwargs)


def test_create_email_skip_variants():
    flow = FlowStateMachine()
    ctx = _conversation(FlowState.CREATE_ASK_EMAIL, IntentType.CREATE_CUSTOMER, customer_data=CustomerData(name="Jane"))
    for text in ["skip", "No Email", "NONE"]:
        plan = flow.step(text, ctx)
        assert plan.flow_state == FlowState.CREATE_ASK_PHONE
        assert plan.customer_data.email is None
        assert plan.customer_data.name == "Jane"


def test_create_email_valid_and_invalid():
    flow = FlowStateMachine()
    ctx = _conversation(FlowState.CREATE_ASK_EMAIL, IntentType.CREATE_CUSTOMER, customer_data=CustomerData(name="Jane"))
    ok = flow.step("jane@example.com", ctx)
    assert ok.flow_state == FlowState.CREATE_ASK_PHONE
    assert ok.customer_data.email == "jane@example.com"
    assert "Email set to: jane@example.com" in ok.response

    bad = flow.step("jane at example", ctx)
    assert bad.flow_state == FlowState.CREATE_ASK_EMAIL
    assert bad.intent == IntentType.CREATE_CUSTOMER
    assert "valid email" in bad.response
    assert bad.customer_data.name == "Jane"


def test_create_phone_is_taken_verbatim_and_summarised():
    flow = FlowStateMachine()
    ctx = _conversation(
        FlowState.CREATE_ASK_PHONE,
        IntentType.CREATE_CUSTOMER,
        customer_data=CustomerData(name="Jane", email="jane@example.com"),
    )
    plan = flow.step("call me maybe", ctx)
    assert plan.flow_state == FlowState.CREATE_CONFIRM_DETAILS
    assert plan.needs_confirmation is True
    assert plan.customer_data.phone == "call me maybe"
    assert "• Email: jane@example.com" in plan.response

    skipped = flow.step("no phone", ctx)
    assert skipped.customer_data.phone is None
    assert "• Phone: Not provided" in skipped.response
    assert "Should I create this customer?" in skipped.response


def test_edit_field_selection():
    flow = FlowStateMachine()
    ctx = _conversation(
        FlowState.EDIT_SELECT_FIELD,
        IntentType.EDIT_CUSTOMER,
        customer_data=CustomerData(id="c1", name="Bob", email="bob@example.com"),
    )
    plan = flow.step("EMAIL", ctx)
    assert plan.flow_state == FlowState.EDIT_ENTER_NEW_VALUE
    assert plan.field_to_edit == EditableField.EMAIL
    assert plan.response == "What's the new email for customer Bob?"

    again = flow.step("address", ctx)
    assert again.flow_state == FlowState.EDIT_SELECT_FIELD
    assert again.field_to_edit is None
    assert "name, email, or phone" in again.response


def test_edit_new_value_records_old_and_new():
    flow = FlowStateMachine()
    ctx = _conversation(
        FlowState.EDIT_ENTER_NEW_VALUE,
        IntentType.EDIT_CUSTOMER,
        customer_data=CustomerData(id="c1", name="Bob", phone=None),
        field_to_edit=EditableField.PHONE,
    )
    plan = flow.step(" 555-9999 ", ctx)
    assert plan.flow_state == FlowState.EDIT_CONFIRM_CHANGE
    assert plan.needs_confirmation is True
    assert plan.old_value is None
    assert plan.new_value == "555-9999"
    assert plan.customer_data.phone == "555-9999"
    assert plan.customer_data.id == "c1"
    assert 'phone: "Not set" → "555-9999"' in plan.response


def test_confirmation_states_wait_for_confirm_endpoint():
    flow = FlowStateMachine()
    ctx = _conversation(FlowState.DELETE_CONFIRM, IntentType.DELETE_CUSTOMER, customer_data=CustomerData(id="c2", name="Alice"))
    plan = flow.step("yes", ctx)
    assert plan.intent == IntentType.DELETE_CUSTOMER
    assert plan.flow_state == FlowState.DELETE_CONFIRM
    assert plan.needs_confirmation is True
    assert plan.customer_data.id == "c2"


def test_states_without_transitions_start_over():
    flow = FlowStateMachine()
    for state in [FlowState.CREATE_START, FlowState.EDIT_SELECT_CUSTOMER, FlowState.DELETE_SELECT_CUSTOMER, FlowState.COMPLETED]:
        plan = flow.step("anything", _conversation(state, IntentType.CREATE_CUSTOMER))
        assert plan.intent == IntentType.UNKNOWN
        assert "start over" in plan.response


def test_transition_table_never_leaves_its_intent():
    for state, target in TRANSITIONS.items():
        assert state[0].value.split("_")[0] == target.value.split("_")[0]


def test_every_transition_is_reachable_from_text():
    samples = {
        FlowInput.SKIP: "skip",
        FlowInput.EMAIL: "a@b.co",
        FlowInput.FIELD: "name",
        FlowInput.VALUE: "anything",
        FlowInput.INVALID: "",
    }
    for state, flow_input in TRANSITIONS:
        text = samples[flow_input]
        if state == FlowState.CREATE_ASK_EMAIL and flow_input == FlowInput.INVALID:
            text = "not-an-email"
        if state == FlowState.EDIT_SELECT_FIELD and flow_input == FlowInput.INVALID:
            text = "address"
        assert classify_input(state, text) == flow_input


def test_blank_new_value_is_asked_again():
    flow = FlowStateMachine()
    ctx = _conversation(
        FlowState.EDIT_ENTER_NEW_VALUE,
        IntentType.EDIT_CUSTOMER,
        customer_data=CustomerData(id="c1", name="Bob"),
        field_to_edit=EditableField.NAME,
    )
    plan = flow.step("   ", ctx)
    assert plan.flow_state == FlowState.EDIT_ENTER_NEW_VALUE
    assert plan.needs_confirmation is False
    assert plan.customer_data.name == "Bob"
    assert plan.response == "Please type the new name."
