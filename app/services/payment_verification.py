"""
app/services/payment_verification.py — Checkout callback verification
After Razorpay Checkout completes in the browser, the client posts back
order id, payment id and signature. A valid signature marks the payment
successful; enrollment is handled by the course service.
"""
from __future__ import annotations

from typing import Union

from loguru import logger

from app.clients.payment_store import PaymentStore
from app.core.auth import verify_checkout_signature
from app.core.exceptions import PaymentNotFoundError, StorageError
from app.models import PaymentRecord, PaymentStatus


def verify_payment(
    order_id: str,
    payment_id: str,
    signature: str,
    secret: Union[str, bytes],
    store: PaymentStore,
) -> PaymentRecord:
    """
    Verify the checkout signature and mark the payment as success.
    Raises AuthenticationError, PaymentNotFoundError or StorageError.
    Calling it again for an already successful payment is a no-op in effect.
    """
    verify_checkout_signature(order_id, payment_id, signature, secret)

    try:
        record = store.get_by_order_id(order_id)
        if record is None:
            raise PaymentNotFoundError(order_id)
        if record.status != PaymentStatus.SUCCESS:
            store.update_payment_status(order_id, PaymentStatus.SUCCESS)
            record = store.get_by_order_id(order_id) or record
    except (PaymentNotFoundError, StorageError):
        raise
    except Exception as exc:
        raise StorageError(f"Failed to verify payment {order_id}: {exc}") from exc

    logger.info(f"Payment verified: order={order_id} payment={payment_id}")
    return record
