"""Mock Service Schemas — request bodies that mirror the simulated upstream APIs.

LND and Sphinx speak snake_case on the wire, so those models use plain
BaseModel; only the settle helper follows the app's camelCase convention.
"""

from typing import Any

from pydantic import BaseModel

from ganamos.schemas.base import CamelModel


class GroqChatRequest(BaseModel):
    model: str | None = None
    messages: list[dict[str, Any]] = []


class SphinxActionRequest(BaseModel):
    chat_pubkey: str | None = None
    bot_id: str | None = None
    bot_secret: str | None = None
    content: str | None = None
    action: str | None = None


class CreateInvoiceRequest(BaseModel):
    value: int = 0
    memo: str = ""


class SendPaymentRequest(BaseModel):
    payment_request: str | None = None
    amt: int | None = None


class SettleInvoiceRequest(CamelModel):
    r_hash: str | None = None
