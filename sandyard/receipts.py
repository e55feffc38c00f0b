"""Tamper-evidence fingerprints for issued receipts.

A receipt hash is a SHA-256 digest over a canonical JSON rendering of the
fields printed on the receipt. Recomputing it from the stored transaction
and comparing with the digest captured at issuance reveals records that were
edited afterwards.

No secret key is involved. Anyone who can change the stored transaction can
also compute a matching digest, so this detects accidental or casual edits
only and must not be presented as authentication or a signature.

Canonical form (keys always in this order)::

    id, entryTime, exitTime, sandWeight, totalWeight,
    truck{licensePlate, emptyWeight, driverName},
    client{name, company},
    payment{amount, method, status, bankReference}

* timestamps: ISO-8601 truncated to milliseconds; aware values in UTC with a
  ``Z`` suffix, naive values as given
* weights: plain decimal strings with trailing zeros dropped (``"8"``)
* amount: decimal string rounded half-up to two places (``"1200.00"``)
* enums: their value
* missing values and blank strings: ``null``
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from .utils import Number, clean_optional, to_decimal

CENT = Decimal("0.01")


@dataclass(frozen=True)
class ReceiptFields:
    transaction_id: Any
    entry_time: datetime
    exit_time: Optional[datetime]
    sand_weight: Optional[Number]
    total_weight: Optional[Number]
    license_plate: str
    empty_weight: Number
    driver_name: str
    client_name: str
    client_company: Optional[str] = None
    amount: Optional[Number] = None
    payment_method: Any = None
    payment_status: Any = None
    bank_reference: Optional[str] = None

    @classmethod
    def from_transaction(cls, transaction: Any) -> "ReceiptFields":
        """Collect receipt fields from a transaction with its relations loaded."""
        truck = transaction.truck
        payment = transaction.payment
        return cls(
            transaction_id=transaction.id,
            entry_time=transaction.entry_time,
            exit_time=transaction.exit_time,
            sand_weight=transaction.sand_weight,
            total_weight=transaction.total_weight,
            license_plate=truck.license_plate,
            empty_weight=truck.empty_weight,
            driver_name=truck.driver.name,
            client_name=transaction.client.name,
            client_company=transaction.client.company,
            amount=payment.amount if payment else None,
            payment_method=payment.method if payment else None,
            payment_status=payment.status if payment else None,
            bank_reference=payment.bank_reference if payment else None,
        )


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        utc = value.astimezone(timezone.utc).replace(tzinfo=None)
        return utc.isoformat(timespec="milliseconds") + "Z"
    return value.isoformat(timespec="milliseconds")


def _weight(value: Optional[Number]) -> Optional[str]:
    if value is None:
        return None
    return format(to_decimal(value).normalize(), "f")


def _money(value: Optional[Number]) -> Optional[str]:
    if value is None:
        return None
    return format(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP), "f")


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        value = value.value
    return clean_optional(str(value))


def canonical_payload(fields: ReceiptFields) -> str:
    """Serialize *fields* into the exact string that gets hashed."""
    payload = {
        "id": _text(fields.transaction_id),
        "entryTime": _timestamp(fields.entry_time),
        "exitTime": _timestamp(fields.exit_time),
        "sandWeight": _weight(fields.sand_weight),
        "totalWeight": _weight(fields.total_weight),
        "truck": {
            "licensePlate": _text(fields.license_plate),
            "emptyWeight": _weight(fields.empty_weight),
            "driverName": _text(fields.driver_name),
        },
        "client": {
            "name": _text(fields.client_name),
            "company": _text(fields.client_company),
        },
        "payment": {
            "amount": _money(fields.amount),
            "method": _text(fields.payment_method),
            "status": _text(fields.payment_status),
            "bankReference": _text(fields.bank_reference),
        },
    }
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def receipt_hash(fields: ReceiptFields) -> str:
    return hashlib.sha256(canonical_payload(fields).encode("utf-8")).hexdigest()


def verify_receipt(fields: ReceiptFields, stored_hash: Optional[str]) -> bool:
    """True only when *stored_hash* equals the digest recomputed from *fields*."""
    if not stored_hash:
        return False
    current = receipt_hash(fields)
    return hmac.compare_digest(current.encode("utf-8"), stored_hash.encode("utf-8"))


__all__ = ["ReceiptFields", "canonical_payload", "receipt_hash", "verify_receipt"]
