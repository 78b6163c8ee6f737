"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Profile is the owner of devices, posts, transactions, and linked accounts

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references and Base.metadata is complete before create_all/autogenerate
"""

from ganamos.models.profile import Profile  # noqa: F401
from ganamos.models.connected_account import ConnectedAccount  # noqa: F401
from ganamos.models.device import Device  # noqa: F401
from ganamos.models.group import Group, GroupMember  # noqa: F401
from ganamos.models.post import Post  # noqa: F401
from ganamos.models.transaction import Transaction  # noqa: F401
from ganamos.models.activity import Activity  # noqa: F401
from ganamos.models.pending_spend import PendingSpend  # noqa: F401
from ganamos.models.game_score import GameScore  # noqa: F401
from ganamos.models.pickleball_game import PickleballGame  # noqa: F401
from ganamos.models.bitcoin_price import BitcoinPrice  # noqa: F401
from ganamos.models.alexa import AlexaAuthCode, AlexaLinkedAccount  # noqa: F401
from ganamos.models.notification import NotificationQueue  # noqa: F401
