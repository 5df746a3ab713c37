"""
tests/test_webhook_reconciler.py — Unit tests for webhook verification and dispatch
"""
from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from app.core.auth import compute_signature, verify_checkout_signature, verify_webhook_signature
from app.core.exceptions import AuthenticationError, MalformedPayloadError, StorageError
from app.models import PaymentStatus
from app.services.webhook_reconciler import handle_webhook, parse_envelope

SECRET = b"whsec_unit"


def _store() -> MagicMock:
    return MagicMock(spec=["update_payment_status", "get_by_order_id", "add"])


def test_signature_is_hex_hmac_sha256():
    body = b"The quick brown fox jumps over the lazy dog"
    assert compute_signature(body, b"key") == (
        "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
    )


def test_valid_signature_accepted():
    body = b'{"event":"payment.captured"}'
    verify_webhook_signature(body, compute_signature(body, SECRET), SECRET)


def test_signature_accepts_str_secret():
    body = b"{}"
    verify_webhook_signature(body, compute_signature(body, "abc"), b"abc")


@pytest.mark.parametrize("position", [0, 5, -1])
def test_single_byte_body_mutation_rejected(position):
    body = bytearray(b'{"event":"payment.captured","payload":{}}')
    signature = compute_signature(bytes(body), SECRET)
    body[position] ^= 0x01
    with pytest.raises(AuthenticationError):
        verify_webhook_signature(bytes(body), signature, SECRET)


def test_single_char_signature_mutation_rejected():
    body = b'{"event":"payment.captured"}'
    signature = compute_signature(body, SECRET)
    tampered = ("0" if signature[0] != "0" else "1") + signature[1:]
    with pytest.raises(AuthenticationError):
        verify_webhook_signature(body, tampered, SECRET)


@pytest.mark.parametrize("signature", ["", None])
def test_missing_signature_rejected(signature):
    with pytest.raises(AuthenticationError):
        verify_webhook_signature(b"{}", signature, SECRET)


def test_checkout_signature_covers_order_and_payment():
    signature = compute_signature(b"order_1|pay_1", SECRET)
    verify_checkout_signature("order_1", "pay_1", signature, SECRET)
    with pytest.raises(AuthenticationError):
        verify_checkout_signature("order_1", "pay_2", signature, SECRET)


# ── handle_webhook ────────────────────────────────────────────────────────────

def test_payment_failed_updates_store_once(webhook_body):
    body = webhook_body("payment.failed", "order_abc")
    store = _store()
    outcome = handle_webhook(body, compute_signature(body, SECRET), SECRET, store)

    store.update_payment_status.assert_called_once_with("order_abc", PaymentStatus.FAILED)
    assert outcome.acknowledged
    assert outcome.status_applied == PaymentStatus.FAILED
    assert outcome.order_id == "order_abc"


def test_payment_captured_sets_success(webhook_body):
    body = webhook_body("payment.captured", "order_xyz")
    store = _store()
    outcome = handle_webhook(body, compute_signature(body, SECRET), SECRET, store)

    store.update_payment_status.assert_called_once_with("order_xyz", PaymentStatus.SUCCESS)
    assert outcome.status_applied == PaymentStatus.SUCCESS


def test_tampered_signature_never_touches_store(webhook_body):
    body = webhook_body("payment.captured")
    store = _store()
    with pytest.raises(AuthenticationError):
        handle_webhook(body, "deadbeef", SECRET, store)
    assert store.mock_calls == []


def test_unknown_event_acknowledged_without_change(webhook_body):
    body = webhook_body("refund.processed")
    store = _store()
    outcome = handle_webhook(body, compute_signature(body, SECRET), SECRET, store)

    assert outcome.acknowledged
    assert outcome.status_applied is None
    assert outcome.event == "refund.processed"
    store.update_payment_status.assert_not_called()


def test_unknown_event_without_payment_payload_acknowledged():
    body = json.dumps({"event": "order.paid", "payload": {"order": {"entity": {}}}}).encode()
    store = _store()
    outcome = handle_webhook(body, compute_signature(body, SECRET), SECRET, store)
    assert outcome.acknowledged
    assert outcome.order_id is None


@pytest.mark.parametrize("payload", [
    None,
    [],
    "x",
    {"payment": None},
    {"payment": "x"},
    {"payment": {"entity": None}},
    {"payment": {"entity": "x"}},
])
def test_unknown_event_acknowledged_for_any_payload_shape(payload):
    body = json.dumps({"event": "refund.processed", "payload": payload}).encode()
    store = _store()
    outcome = handle_webhook(body, compute_signature(body, SECRET), SECRET, store)
    assert outcome.acknowledged
    assert outcome.event == "refund.processed"
    assert outcome.status_applied is None
    store.update_payment_status.assert_not_called()


@pytest.mark.parametrize("payload", [None, [], {"payment": "x"}, {"payment": {"entity": None}}])
def test_handled_event_with_bad_payload_shape_is_malformed(payload):
    body = json.dumps({"event": "payment.captured", "payload": payload}).encode()
    store = _store()
    with pytest.raises(MalformedPayloadError):
        handle_webhook(body, compute_signature(body, SECRET), SECRET, store)
    assert store.mock_calls == []


@pytest.mark.parametrize("body", [
    b"not json",
    b"",
    b"[1, 2, 3]",
    b'{"payload": {}}',
    b'{"event": 42}',
])
def test_malformed_body_rejected_before_storage(body):
    store = _store()
    with pytest.raises(MalformedPayloadError):
        handle_webhook(body, compute_signature(body, SECRET), SECRET, store)
    assert store.mock_calls == []


def test_handled_event_without_order_id_is_malformed(webhook_body):
    body = webhook_body("payment.captured", order_id=None)
    store = _store()
    with pytest.raises(MalformedPayloadError):
        handle_webhook(body, compute_signature(body, SECRET), SECRET, store)
    store.update_payment_status.assert_not_called()


def test_malformed_error_carries_bounded_excerpt():
    body = b"x" * 5000
    with pytest.raises(MalformedPayloadError) as exc_info:
        parse_envelope(body)
    assert 0 < len(exc_info.value.body_excerpt) <= 200


def test_storage_failure_surfaces_as_storage_error(webhook_body):
    body = webhook_body("payment.captured")
    store = _store()
    store.update_payment_status.side_effect = ConnectionError("db down")
    with pytest.raises(StorageError) as exc_info:
        handle_webhook(body, compute_signature(body, SECRET), SECRET, store)
    assert isinstance(exc_info.value.__cause__, ConnectionError)


def test_storage_error_passes_through_unwrapped(webhook_body):
    body = webhook_body("payment.failed")
    store = _store()
    original = StorageError("disk full")
    store.update_payment_status.side_effect = original
    with pytest.raises(StorageError) as exc_info:
        handle_webhook(body, compute_signature(body, SECRET), SECRET, store)
    assert exc_info.value is original


# ── Idempotence against a real store ─────────────────────────────────────────

def test_replayed_capture_is_idempotent(payment_store, webhook_body):
    body = webhook_body("payment.captured", "order_abc")
    signature = compute_signature(body, SECRET)

    handle_webhook(body, signature, SECRET, payment_store)
    assert payment_store.get_by_order_id("order_abc").status == PaymentStatus.SUCCESS

    outcome = handle_webhook(body, signature, SECRET, payment_store)
    assert outcome.acknowledged
    assert payment_store.get_by_order_id("order_abc").status == PaymentStatus.SUCCESS
    assert payment_store.get_by_order_id("order_xyz").status == PaymentStatus.PENDING


def test_capture_for_unknown_order_is_acknowledged(payment_store, webhook_body):
    body = webhook_body("payment.captured", "order_missing")
    outcome = handle_webhook(body, compute_signature(body, SECRET), SECRET, payment_store)
    assert outcome.acknowledged
    assert payment_store.get_by_order_id("order_missing") is None
