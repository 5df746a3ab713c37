"""
app/clients/payment_store.py — Payment record storage collaborator
Records are keyed by the provider order id (razorpay_id). A status update is
a plain overwrite, so replaying the same provider event is harmless.

Two implementations of the same contract:
  • InMemoryPaymentStore: default; process lifetime only.
  • JsonFilePaymentStore: single JSON file, for deployments without a DB.
"""
from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

from loguru import logger

from app.core.exceptions import StorageError
from app.models import PaymentRecord, PaymentStatus


class PaymentStore(Protocol):
    def get_by_order_id(self, order_id: str) -> Optional[PaymentRecord]: ...

    def update_payment_status(self, order_id: str, status: PaymentStatus) -> None: ...

    def add(self, record: PaymentRecord) -> PaymentRecord: ...


class InMemoryPaymentStore:
    def __init__(self, records: Optional[list[PaymentRecord]] = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, PaymentRecord] = {}
        for record in records or []:
            self._records[record.razorpay_id] = record

    def get_by_order_id(self, order_id: str) -> Optional[PaymentRecord]:
        with self._lock:
            record = self._records.get(order_id)
            return record.model_copy() if record else None

    def update_payment_status(self, order_id: str, status: PaymentStatus) -> None:
        with self._lock:
            record = self._records.get(order_id)
            if record is None:
                # Same as an UPDATE ... WHERE matching zero rows
                logger.warning(f"No payment record for order {order_id}; status {status.value} not applied.")
                return
            record.status = status
            record.updated_at = datetime.now(timezone.utc)

    def add(self, record: PaymentRecord) -> PaymentRecord:
        with self._lock:
            self._records[record.razorpay_id] = record
        return record


class JsonFilePaymentStore:
    """
    Whole-file read/modify/write under a lock. File layout:
    {"payments": {"<order_id>": {...PaymentRecord...}}}
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {"payments": {}}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Failed to read payment store {self._path}: {exc}") from exc
        data.setdefault("payments", {})
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, default=str, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            raise StorageError(f"Failed to write payment store {self._path}: {exc}") from exc

    def get_by_order_id(self, order_id: str) -> Optional[PaymentRecord]:
        with self._lock:
            raw = self._read()["payments"].get(order_id)
        return PaymentRecord(**raw) if raw else None

    def update_payment_status(self, order_id: str, status: PaymentStatus) -> None:
        with self._lock:
            data = self._read()
            raw = data["payments"].get(order_id)
            if raw is None:
                logger.warning(f"No payment record for order {order_id}; status {status.value} not applied.")
                return
            record = PaymentRecord(**raw)
            record.status = status
            record.updated_at = datetime.now(timezone.utc)
            data["payments"][order_id] = record.model_dump(mode="json")
            self._write(data)

    def add(self, record: PaymentRecord) -> PaymentRecord:
        with self._lock:
            data = self._read()
            data["payments"][record.razorpay_id] = record.model_dump(mode="json")
            self._write(data)
        return record


def build_payment_store(path: str = "") -> PaymentStore:
    if path:
        logger.info(f"Using JSON file payment store at {path}.")
        return JsonFilePaymentStore(path)
    logger.info("Using in-memory payment store.")
    return InMemoryPaymentStore()
