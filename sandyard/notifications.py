"""Printable receipts and their delivery to clients."""

from __future__ import annotations

import logging
from typing import List

from .models import Transaction

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y %H:%M"


def _tons(value) -> str:
    return f"{float(value):.2f} T" if value is not None else "-"


def render_receipt(transaction: Transaction, digest: str) -> str:
    """Render the plain-text receipt handed to the printer or mailer."""
    truck = transaction.truck
    client = transaction.client
    payment = transaction.payment

    lines: List[str] = [
        f"RECEIPT #{transaction.id}",
        "",
        f"Entry:        {transaction.entry_time.strftime(DATE_FORMAT)}",
        f"Exit:         {transaction.exit_time.strftime(DATE_FORMAT) if transaction.exit_time else '-'}",
        f"Truck:        {truck.license_plate} (driver: {truck.driver.name})",
        f"Client:       {client.name}" + (f" / {client.company}" if client.company else ""),
        f"Empty weight: {_tons(truck.empty_weight)}",
        f"Total weight: {_tons(transaction.total_weight)}",
        f"Sand weight:  {_tons(transaction.sand_weight)}",
    ]
    if payment is not None:
        lines.append(f"Amount:       {float(payment.amount):.2f} DH")
        lines.append(f"Method:       {payment.method.value}")
        if payment.bank_reference:
            lines.append(f"Bank ref:     {payment.bank_reference}")
        if payment.received_amount is not None:
            lines.append(f"Received:     {float(payment.received_amount):.2f} DH")
            lines.append(f"Change:       {float(payment.change_amount or 0):.2f} DH")
        lines.append(f"Status:       {payment.status.value}")
    lines.extend(["", f"Fingerprint:  {digest}"])
    return "\n".join(lines) + "\n"


def send_receipt(recipient: str, transaction: Transaction, digest: str) -> None:
    """Hand a receipt to the outgoing mail channel.

    No mail transport is wired in; the dispatch is recorded in the log so an
    operator can follow up.
    """
    body = render_receipt(transaction, digest)
    logger.info(
        "Sending receipt for transaction %s to %s (%d bytes)",
        transaction.id,
        recipient,
        len(body.encode("utf-8")),
    )
