"""
Tests for the chat maintenance command-line scripts
"""
import pytest


@pytest.fixture(scope="module")
def check_script(load_backend_module):
    return load_backend_module("scripts/check_chat_messages_sender.py", "check_chat_messages_sender")


@pytest.fixture(scope="module")
def fix_one_script(load_backend_module):
    return load_backend_module("scripts/fix_one_chat_participants.py", "fix_one_chat_participants")


@pytest.fixture(scope="module")
def fix_all_script(load_backend_module):
    return load_backend_module("scripts/fix_chat_participants.py", "fix_chat_participants")


class BrokenFirestore:
    def collection(self, name):
        raise ConnectionError("firestore unavailable")


def test_check_requires_chat_id(check_script, capsys):
    assert check_script.main([], db=object()) == 1
    assert "Usage:" in capsys.readouterr().err


def test_check_chat_not_found(check_script, firestore_db, capsys):
    assert check_script.main(["nope"], db=firestore_db) == 1
    assert "Chat not found: nope" in capsys.readouterr().err


def test_check_reports_each_bad_message(check_script, firestore_db, capsys):
    firestore_db.add_chat(
        "chat-1",
        {"participants": ["u1", "u2"]},
        messages={"m1": {"senderId": "u3"}, "m2": {}},
    )

    assert check_script.main(["chat-1"], db=firestore_db) == 0

    out = capsys.readouterr().out
    assert "Message m1 has senderId u3 NOT in participants: [u1, u2]" in out
    assert "Message m2 is missing senderId" in out
    assert check_script.ALL_VALID_MESSAGE not in out


def test_check_all_valid(check_script, firestore_db, capsys):
    firestore_db.add_chat("chat-1", {"participants": ["u1", "u2"]}, messages={"m1": {"senderId": "u2"}})

    assert check_script.main(["chat-1"], db=firestore_db) == 0

    out = capsys.readouterr().out
    assert "All messages have valid senderId matching chat participants." in out
    assert "NOT in participants" not in out


def test_check_unexpected_error(check_script, capsys):
    assert check_script.main(["chat-1"], db=BrokenFirestore()) == 1
    assert "firestore unavailable" in capsys.readouterr().err


def test_fix_one_requires_chat_id(fix_one_script, capsys):
    assert fix_one_script.main([], db=object()) == 1
    assert "Usage:" in capsys.readouterr().err


def test_fix_one_chat(fix_one_script, firestore_db, capsys):
    doc = firestore_db.add_chat("chat-1", {"participants": ["u2", "u1", "u2"], "participantsKey": "x"})

    assert fix_one_script.main(["chat-1"], db=firestore_db) == 0

    out = capsys.readouterr().out
    assert "Fixed chat chat-1: participants = [u2, u1], participantsKey = u1:u2" in out
    assert doc.data["participantsKey"] == "u1:u2"


def test_fix_one_chat_not_found(fix_one_script, firestore_db, capsys):
    assert fix_one_script.main(["nope"], db=firestore_db) == 1
    assert "Chat not found: nope" in capsys.readouterr().err


def test_fix_one_warns_on_single_participant(fix_one_script, firestore_db, capsys):
    firestore_db.add_chat("chat-1", {"participants": ["u1"]})

    assert fix_one_script.main(["chat-1"], db=firestore_db) == 0
    assert "fewer than two participants" in capsys.readouterr().err


def test_fix_all_chats(fix_all_script, firestore_db, capsys):
    firestore_db.add_chat("clean", {"participants": ["a", "b"], "participantsKey": "a:b"})
    firestore_db.add_chat("broken", {"participantsKey": "b:a"})

    assert fix_all_script.main([], db=firestore_db) == 0

    out = capsys.readouterr().out
    assert "Fixed chat broken: participants = [b, a], participantsKey = a:b" in out
    assert "Fixed chat clean" not in out
    assert "Done. Fixed 1 chat(s)." in out


def test_fix_all_chats_error(fix_all_script, capsys):
    assert fix_all_script.main([], db=BrokenFirestore()) == 1
    assert "Error fixing chats" in capsys.readouterr().err
