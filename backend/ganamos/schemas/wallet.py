"""Wallet Schemas — transfer and child-account bodies from the web app.

Invariants:
    - Recipient and amount stay loosely typed: the service owns the
      "Invalid recipient username" / "Invalid amount" messages
"""

from typing import Any

from ganamos.schemas.base import CamelModel


class TransferRequest(CamelModel):
    from_user_id: str | None = None
    to_username: Any = None
    amount: Any = None
    memo: str | None = None


class ChildAccountRequest(CamelModel):
    username: Any = None
    avatar_url: str | None = None
