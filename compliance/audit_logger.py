from __future__ import annotations

import json
import logging
import os
from threading import Lock
from typing import Any, Dict, Optional

from models.schemas import utcnow
from settings import SETTINGS

logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, path: str | None = None) -> None:
        self.path = path or SETTINGS.audit_log_path
        self._lock = Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def log_customer_change(
        self,
        action: str,
        customer_id: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
        conversation_id: str | None = None,
    ) -> None:
        self.log_json(
            {
                "ts": utcnow().isoformat(),
                "action": action,
                "entity": "CUSTOMER",
                "entity_id": customer_id,
                "old_values": old_values,
                "new_values": new_values,
                "conversation_id": conversation_id,
            }
        )

    def log_json(self, payload: Dict[str, Any]) -> None:
        line = json.dumps(payload, ensure_ascii=True, default=str)
        try:
            with self._lock:
                with open(self.path, "a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
        except OSError:
            # Audit write failures never fail the mutation.
            logger.warning("audit_log_write_failed", extra={"path": self.path}, exc_info=True)
