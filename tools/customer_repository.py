from __future__ import annotations

import json
import logging
import os
import re
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, List, Optional

from engine.errors import CustomerNotFoundError
from models.schemas import Customer, CustomerWithOrderCount, Order, OrderItem, utcnow
from settings import SETTINGS

logger = logging.getLogger(__name__)

CUSTOMER_ID_PREFIX = "c"
CUSTOMER_ID_RE = re.compile(r"^c(\d+)$", re.IGNORECASE)
UPDATABLE_FIELDS = {"name", "email", "phone"}


class CustomerRepository(ABC):
    @abstractmethod
    async def find_by_id(self, customer_id: str) -> Optional[Customer]:
        raise NotImplementedError

    @abstractmethod
    async def find_by_name_case_insensitive(self, name: str) -> Optional[Customer]:
        raise NotImplementedError

    @abstractmethod
    async def create(self, customer: Customer) -> Customer:
        raise NotImplementedError

    @abstractmethod
    async def update(self, customer_id: str, fields: Dict[str, Optional[str]]) -> Customer:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, customer_id: str) -> Customer:
        raise NotImplementedError

    @abstractmethod
    async def list_all_with_order_counts(self) -> List[CustomerWithOrderCount]:
        raise NotImplementedError

    @abstractmethod
    async def find_orders_by_customer_id(self, customer_id: str) -> List[Order]:
        raise NotImplementedError

    @abstractmethod
    async def list_customer_ids(self) -> List[str]:
        raise NotImplementedError


class JsonCustomerRepository(CustomerRepository):
    def __init__(self, path: str | None = None) -> None:
        self.path = SETTINGS.customer_store_path if path is None else path
        self._customers: Dict[str, Customer] = {}
        self._orders: Dict[str, Order] = {}
        self._lock = Lock()
        self._load()

    def _load(self) -> None:
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, ValueError):
            logger.warning("customer_store_load_failed", extra={"path": self.path}, exc_info=True)
            return
        for customer_id, raw in dict(payload.get("customers", {})).items():
            try:
                self._customers[str(customer_id)] = Customer.model_validate(raw)
            except ValueError:
                continue
        for order_id, raw in dict(payload.get("orders", {})).items():
            try:
                self._orders[str(order_id)] = Order.model_validate(raw)
            except ValueError:
                continue

    def _persist(self) -> None:
        if not self.path:
            return
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        payload = {
            "customers": {cid: c.model_dump(mode="json", by_alias=True) for cid, c in self._customers.items()},
            "orders": {oid: o.model_dump(mode="json", by_alias=True) for oid, o in self._orders.items()},
        }
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=True)
        os.replace(tmp, self.path)

    async def find_by_id(self, customer_id: str) -> Optional[Customer]:
        with self._lock:
            customer = self._customers.get(customer_id)
            return customer.model_copy() if customer else None

    async def find_by_name_case_insensitive(self, name: str) -> Optional[Customer]:
        wanted = name.strip().casefold()
        with self._lock:
            for customer in self._customers.values():
                if customer.name.casefold() == wanted:
                    return customer.model_copy()
        return None

    async def create(self, customer: Customer) -> Customer:
        with self._lock:
            if customer.id in self._customers:
                raise ValueError(f"customer_id_taken: {customer.id}")
            self._customers[customer.id] = customer.model_copy()
            self._persist()
            return customer.model_copy()

    async def update(self, customer_id: str, fields: Dict[str, Optional[str]]) -> Customer:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"unsupported_customer_fields: {sorted(unknown)}")
        with self._lock:
            existing = self._customers.get(customer_id)
            if existing is None:
                raise CustomerNotFoundError(customer_id)
            updated = existing.model_copy(update={**fields, "updated_at": utcnow()})
            self._customers[customer_id] = updated
            self._persist()
            return updated.model_copy()

    async def delete(self, customer_id: str) -> Customer:
        with self._lock:
            existing = self._customers.pop(customer_id, None)
            if existing is None:
                raise CustomerNotFoundError(customer_id)
            for order_id in [oid for oid, o in self._orders.items() if o.customer_id == customer_id]:
                self._orders.pop(order_id, None)
            self._persist()
            return existing

    async def list_all_with_order_counts(self) -> List[CustomerWithOrderCount]:
        with self._lock:
            counts: Dict[str, int] = {}
            for order in self._orders.values():
                if order.customer_id:
                    counts[order.customer_id] = counts.get(order.customer_id, 0) + 1
            rows = [
                CustomerWithOrderCount(**c.model_dump(), order_count=counts.get(c.id, 0))
                for c in self._customers.values()
            ]
        rows.sort(key=lambda c: c.name.casefold())
        return rows

    async def find_orders_by_customer_id(self, customer_id: str) -> List[Order]:
        with self._lock:
            orders = [o.model_copy() for o in self._orders.values() if o.customer_id == customer_id]
        orders.sort(key=lambda o: o.created_at)
        return orders

    async def list_customer_ids(self) -> List[str]:
        with self._lock:
            return list(self._customers)

    async def add_order(self, order: Order) -> Order:
        with self._lock:
            self._orders[order.id] = order.model_copy()
            self._persist()
            return order

    async def seed_demo_data(self) -> int:
        if await self.list_customer_ids():
            return 0
        demo = [
            Customer(id="c1", name="Ava Thompson", email="ava@example.com", phone="0412 555 010"),
            Customer(id="c2", name="Noah Patel", email=None, phone="0412 555 011"),
            Customer(id="c3", name="Mia Chen", email="mia.chen@example.com", phone=None),
        ]
        for customer in demo:
            await self.create(customer)
        await self.add_order(Order(id="o1", customer_id="c1", total=42.5, items=[OrderItem(product_id="p1", qty=2, price=21.25)]))
        await self.add_order(Order(id="o2", customer_id="c1", total=12.0, items=[OrderItem(product_id="p2", qty=1, price=12.0)]))
        logger.info("customer_store_seeded", extra={"customers": len(demo)})
        return len(demo)


async def generate_next_customer_id(repository: CustomerRepository) -> str:
    try:
        existing = await repository.list_customer_ids()
    except Exception:
        # Best effort: a timestamp id keeps the dialogue from dead-ending.
        logger.warning("customer_id_scan_failed", exc_info=True)
        return f"{CUSTOMER_ID_PREFIX}{int(time.time() * 1000)}"
    highest = 0
    for customer_id in existing:
        match = CUSTOMER_ID_RE.match(customer_id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{CUSTOMER_ID_PREFIX}{highest + 1}"
