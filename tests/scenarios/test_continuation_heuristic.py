from __future__ import annotations

import asyncio

from models.schemas import FlowState, IntentType


def test_field_name_continues_edit_dialogue(engine, store):
    async def _run():
        cid = (await engine.handle_command("edit customer c1")).conversation_id
        assert store.get(cid).flow_state == FlowState.EDIT_SELECT_FIELD
        response = await engine.handle_command("email", cid)
        assert response.conversation_id == cid
        assert store.get(cid).flow_state == FlowState.EDIT_ENTER_NEW_VALUE

    asyncio.run(_run())


def test_new_command_discards_pending_create(engine, store):
    async def _run():
        cid = (await engine.handle_command("create customer Jane")).conversation_id
        await engine.handle_command("skip", cid)
        await engine.handle_command("skip", cid)
        assert store.get(cid).flow_state == FlowState.CREATE_CONFIRM_DETAILS

        response = await engine.handle_command("list customers", cid)
        assert response.action_type == IntentType.LIST_CUSTOMERS
        assert response.conversation_id is None
        assert store.get(cid) is None

    asyncio.run(_run())


def test_new_multi_turn_command_reuses_the_conversation_id(engine, store):
    async def _run():
        cid = (await engine.handle_command("create customer Jane")).conversation_id
        replaced = await engine.handle_command("delete customer c2", cid)
        assert replaced.conversation_id == cid
        assert store.get(cid).action_type == IntentType.DELETE_CUSTOMER
        assert store.get(cid).customer_data.name == "Alice Jones"

    asyncio.run(_run())


def test_ambiguous_short_reply_clears_create_dialogue(engine, store):
    async def _run():
        cid = (await engine.handle_command("create customer Jane")).conversation_id
        # "none" is a valid skip answer for the flow but not on the continuation allow-list.
        response = await engine.handle_command("none", cid)
        assert response.action_type == IntentType.UNKNOWN
        assert store.get(cid) is None

    asyncio.run(_run())
