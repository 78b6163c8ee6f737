"""Device Messages — memo classification and device-screen truncation."""

from ganamos.core.device_messages import (
    LastMessage, parse_memo, rejection_post_title, truncate_for_device,
)


def test_fix_reward_memo():
    msg = parse_memo("Fix reward earned: Pothole on Main")
    assert msg.message_type == "fix"
    assert msg.post_title == "Pothole on Main"


def test_transfer_memo():
    msg = parse_memo("Transfer from Dana")
    assert msg.message_type == "transfer"
    assert msg.sender_name == "Dana"


def test_other_and_empty_memos():
    assert parse_memo("Deposit").message == "Deposit"
    assert parse_memo("Deposit").message_type == ""
    assert parse_memo(None) == LastMessage()


def test_rejection_title():
    assert rejection_post_title('"Broken bench" was rejected') == "Broken bench"
    assert rejection_post_title("something else") == ""
    assert rejection_post_title(None) == ""


def test_truncate_for_device():
    assert truncate_for_device("short") == "short"
    long_title = "A" * 30
    assert truncate_for_device(long_title) == "A" * 23 + ".."
    assert len(truncate_for_device(long_title)) == 25
