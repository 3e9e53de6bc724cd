from __future__ import annotations

import asyncio
import os
import tempfile

# Settings are read at import time; keep tests off the real data directory.
_AUDIT_DIR = tempfile.mkdtemp(prefix="command-audit-")
os.environ["CUSTOMER_STORE_PATH"] = ""
os.environ["AUDIT_LOG_PATH"] = os.path.join(_AUDIT_DIR, "audit.log.jsonl")
os.environ["CONVERSATION_REAPER_ENABLED"] = "false"
os.environ["SEED_DEMO_CUSTOMERS"] = "false"

import pytest  # noqa: E402

from compliance.audit_logger import AuditLogger  # noqa: E402
from engine.command_engine import CommandEngine  # noqa: E402
from memory.conversation_store import ConversationStore  # noqa: E402
from models.schemas import Customer, Order, OrderItem  # noqa: E402
from tools.customer_repository import JsonCustomerRepository  # noqa: E402


@pytest.fixture
def repository() -> JsonCustomerRepository:
    repo = JsonCustomerRepository(path="")

    async def _seed():
        await repo.create(Customer(id="c1", name="Bob Smith", email="bob@example.com", phone="555-0101"))
        await repo.create(Customer(id="c2", name="Alice Jones", email=None, phone=None))
        await repo.add_order(
            Order(id="o1", customer_id="c1", total=30.0, items=[OrderItem(product_id="p1", qty=3, price=10.0)])
        )

    asyncio.run(_seed())
    return repo


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore(ttl_seconds=3600)


@pytest.fixture
def audit_path(tmp_path) -> str:
    return str(tmp_path / "audit.log.jsonl")


@pytest.fixture
def engine(repository, store, audit_path) -> CommandEngine:
    return CommandEngine(customers=repository, conversations=store, audit_logger=AuditLogger(path=audit_path))
