"""Device Messages — pure formatting rules for what a pet device displays.

Invariants:
    - Fix rewards carry memo "Fix reward earned: <title>"; transfers "Transfer from <name>"
    - Rejection messages are formatted '"<title>" was rejected'
    - Device screens fit DEVICE_TITLE_LIMIT characters; longer titles end in ".."
"""

import re
from dataclasses import dataclass

FIX_REWARD_PREFIX = "Fix reward earned:"
TRANSFER_PREFIX = "Transfer from"
DEVICE_TITLE_LIMIT = 25

_REJECTION_RE = re.compile(r'^"(.+)" was rejected$')

# Economy parameters pushed to firmware with every config poll
PET_ECONOMY = {
    "petFeedCost": 100,
    "petHealCost": 200,
    "gameCost": 100,
    "gameReward": 15,
    "hungerDecayPer24h": 40.0,
    "happinessDecayPer24h": 25.0,
}
POLL_INTERVAL_SECONDS = 30


@dataclass(frozen=True)
class LastMessage:
    message: str = ""
    message_type: str = ""
    post_title: str = ""
    sender_name: str = ""


def parse_memo(memo: str | None) -> LastMessage:
    """Classify the newest incoming transaction memo for the device banner."""
    if not memo:
        return LastMessage()
    if memo.startswith(FIX_REWARD_PREFIX):
        return LastMessage(
            message=memo, message_type="fix",
            post_title=memo[len(FIX_REWARD_PREFIX):].strip(),
        )
    if memo.startswith(TRANSFER_PREFIX):
        return LastMessage(
            message=memo, message_type="transfer",
            sender_name=memo[len(TRANSFER_PREFIX):].strip(),
        )
    return LastMessage(message=memo)


def rejection_post_title(rejection_message: str | None) -> str:
    if not rejection_message:
        return ""
    match = _REJECTION_RE.match(rejection_message)
    return match.group(1) if match else ""


def truncate_for_device(title: str) -> str:
    if len(title) > DEVICE_TITLE_LIMIT:
        return title[:DEVICE_TITLE_LIMIT - 2] + ".."
    return title
