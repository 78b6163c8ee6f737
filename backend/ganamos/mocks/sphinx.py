"""Mock Sphinx Chat — records tribe broadcasts in memory."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

SPHINX_ACTIONS = ("broadcast", "message")


@dataclass
class MockSphinxMessage:
    message_id: str
    chat_id: str
    chat_pubkey: str
    bot_id: str
    content: str
    action: str = "broadcast"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MockSphinxStore:
    def __init__(self):
        self._messages: dict[str, MockSphinxMessage] = {}
        self._counter = 1

    def broadcast(
        self, chat_pubkey: str, bot_id: str, content: str, action: str = "broadcast",
    ) -> MockSphinxMessage:
        message = MockSphinxMessage(
            message_id=f"sphinx-msg-{self._counter}",
            chat_id=f"sphinx-chat-{chat_pubkey[:8]}",
            chat_pubkey=chat_pubkey,
            bot_id=bot_id,
            content=content,
            action=action,
        )
        self._counter += 1
        self._messages[message.message_id] = message
        return message

    def __len__(self) -> int:
        return len(self._messages)

    def reset(self) -> None:
        self._messages.clear()
        self._counter = 1


mock_sphinx_store = MockSphinxStore()
