"""Weigh-bridge tracking, pricing and receipts for a sand yard."""

from .pricing import compute_final_price, tier_info
from .receipts import ReceiptFields, receipt_hash, verify_receipt
from .validation import TransactionCandidate, validate_transaction

__all__ = [
    "ReceiptFields",
    "TransactionCandidate",
    "compute_final_price",
    "receipt_hash",
    "tier_info",
    "validate_transaction",
    "verify_receipt",
]
