"""Mock Lightning — an in-memory LND stand-in for invoices and node balances.

Invariants:
    - Invoices are keyed by hex r_hash; lookups also accept the base64 form
    - Settling is idempotent and credits the channel balance once
    - Balances start at 1,000,000 sats (channel) and 50,000,000 sats (on-chain)
    - Payment requests look like lnbc<amount><unit>1mock<ts36><rand16>

Design Decisions:
    - Auto-settle rides the running event loop (call_later) instead of a thread,
      so it only fires inside the server process that created the invoice
"""

import asyncio
import base64
import binascii
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

INITIAL_CHANNEL_BALANCE = 1_000_000
INITIAL_BLOCKCHAIN_BALANCE = 50_000_000
PAYMENT_REQUEST_PREFIXES = ("lnbc", "lntb")


@dataclass
class MockInvoice:
    r_hash: str
    r_hash_base64: str
    payment_request: str
    value: int
    memo: str
    preimage: str
    add_index: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    settled: bool = False
    settled_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "rHash": self.r_hash,
            "rHashBase64": self.r_hash_base64,
            "paymentRequest": self.payment_request,
            "value": self.value,
            "memo": self.memo,
            "addIndex": self.add_index,
            "createdAt": self.created_at.isoformat(),
            "settled": self.settled,
            "settledAt": self.settled_at.isoformat() if self.settled_at else None,
        }


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def bolt11_amount(sats: int) -> str:
    """Human-readable BOLT11 amount: whole BTC, then m/u/n multipliers."""
    if sats <= 0:
        return ""
    if sats >= 100_000_000:
        return _number(sats / 100_000_000)
    if sats >= 100_000:
        return _number(sats / 100_000) + "m"
    if sats >= 100:
        return _number(sats / 100) + "u"
    return _number(sats * 10) + "n"


def mock_payment_request(sats: int) -> str:
    timestamp = _base36(int(time.time()))
    return f"lnbc{bolt11_amount(sats)}1mock{timestamp}{secrets.token_hex(8)}"


class MockLightningStore:
    def __init__(self):
        self._invoices: dict[str, MockInvoice] = {}
        self._add_index = 1
        self.channel_balance = INITIAL_CHANNEL_BALANCE
        self.blockchain_balance = INITIAL_BLOCKCHAIN_BALANCE

    def create_invoice(self, value: int, memo: str = "") -> MockInvoice:
        r_hash = secrets.token_hex(32)
        invoice = MockInvoice(
            r_hash=r_hash,
            r_hash_base64=base64.b64encode(bytes.fromhex(r_hash)).decode("ascii"),
            payment_request=mock_payment_request(value),
            value=value,
            memo=memo,
            preimage=secrets.token_hex(32),
            add_index=str(self._add_index),
        )
        self._add_index += 1
        self._invoices[r_hash] = invoice
        return invoice

    def get_invoice(self, r_hash: str) -> MockInvoice | None:
        invoice = self._invoices.get(r_hash)
        if invoice is not None:
            return invoice
        try:
            hex_hash = base64.b64decode(r_hash, validate=True).hex()
        except (binascii.Error, ValueError):
            return None
        return self._invoices.get(hex_hash)

    def find_by_payment_request(self, payment_request: str) -> MockInvoice | None:
        for invoice in self._invoices.values():
            if invoice.payment_request == payment_request:
                return invoice
        return None

    def settle_invoice(self, r_hash: str) -> bool:
        invoice = self.get_invoice(r_hash)
        if invoice is None:
            return False
        if not invoice.settled:
            invoice.settled = True
            invoice.settled_at = datetime.now(timezone.utc)
            self.channel_balance += invoice.value
            logger.info(f"Mock invoice settled for {invoice.value} sats")
        return True

    def schedule_auto_settle(self, r_hash: str, delay_ms: int) -> None:
        """Settle after delay_ms on the running loop. Call from async code only."""
        if delay_ms <= 0:
            return
        asyncio.get_running_loop().call_later(
            delay_ms / 1000, self.settle_invoice, r_hash,
        )

    def invoices(self) -> list[MockInvoice]:
        return list(self._invoices.values())

    def reset(self) -> None:
        self._invoices.clear()
        self._add_index = 1
        self.channel_balance = INITIAL_CHANNEL_BALANCE
        self.blockchain_balance = INITIAL_BLOCKCHAIN_BALANCE


mock_lightning_store = MockLightningStore()
