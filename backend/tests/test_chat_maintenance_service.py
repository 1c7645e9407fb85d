"""
Tests for ChatMaintenanceService
"""
import pytest

from rentat.models.chat import MessageIssueType
from rentat.services.chat_maintenance_service import (ChatMaintenanceService,
                                                      ChatNotFoundError,
                                                      build_participants_key,
                                                      normalize_participants)


@pytest.fixture
def service(firestore_db):
    return ChatMaintenanceService(firestore_db)


def test_build_participants_key():
    assert build_participants_key(["uid-b", "uid-a"]) == "uid-a:uid-b"
    assert build_participants_key([]) == ""


@pytest.mark.parametrize("participants,key,expected", [
    (["b", "a"], "a:b", (["b", "a"], "a:b")),
    (["b", "a", "b", ""], None, (["b", "a"], "a:b")),
    (["a"], "a:c", (["a", "c"], "a:c")),
    (None, "c:a", (["c", "a"], "a:c")),
    ("not-a-list", None, ([], "")),
    ([], "", ([], "")),
    (["x", None, "y", "x"], "stale", (["x", "y"], "x:y")),
])
def test_normalize_participants(participants, key, expected):
    assert normalize_participants(participants, key) == expected


@pytest.mark.parametrize("participants,key", [
    (["b", "a", "b"], "wrong"),
    (["a"], "a:c:c"),
    (None, ""),
    (["solo"], None),
])
def test_normalize_participants_is_idempotent(participants, key):
    once = normalize_participants(participants, key)
    twice = normalize_participants(*once)
    assert once == twice
    assert once[1] == ":".join(sorted(set(once[0])))


def test_repair_chat_not_found(service):
    with pytest.raises(ChatNotFoundError) as exc_info:
        service.repair_chat("missing")
    assert str(exc_info.value) == "Chat not found: missing"


def test_repair_chat_rebuilds_from_key(service, firestore_db):
    doc = firestore_db.add_chat("chat-1", {"participants": ["u2"], "participantsKey": "u1:u2"})

    result = service.repair_chat("chat-1")

    assert result.participants == ["u1", "u2"]
    assert result.participants_key == "u1:u2"
    assert result.changed is True
    assert result.updated is True
    assert doc.data["participants"] == ["u1", "u2"]
    assert doc.data["participantsKey"] == "u1:u2"


def test_repair_chat_writes_even_when_unchanged(service, firestore_db):
    doc = firestore_db.add_chat("chat-1", {"participants": ["u1", "u2"], "participantsKey": "u1:u2"})

    result = service.repair_chat("chat-1")

    assert result.changed is False
    assert result.updated is True
    assert len(doc.updates) == 1
    assert doc.updates[0]["option"] == {"last_update_time": 1}


def test_repair_chat_without_force_skips_clean_chat(service, firestore_db):
    doc = firestore_db.add_chat("chat-1", {"participants": ["u1", "u2"], "participantsKey": "u1:u2"})

    result = service.repair_chat("chat-1", force=False)

    assert result.updated is False
    assert doc.updates == []


def test_repair_chat_detects_concurrent_write(firestore_db):
    """A write made after the read makes the repair fail instead of overwriting"""
    doc = firestore_db.add_chat("chat-1", {"participants": ["u1"], "participantsKey": "u1:u2"})
    service = ChatMaintenanceService(firestore_db)
    snapshot = doc.get()
    doc.set({"participants": ["u1", "u3"], "participantsKey": "u1:u3"})

    with pytest.raises(RuntimeError):
        service._repair_snapshot("chat-1", snapshot, force=True)
    assert doc.data["participants"] == ["u1", "u3"]


def test_repair_all_chats_only_writes_broken_chats(service, firestore_db):
    clean = firestore_db.add_chat("clean", {"participants": ["a", "b"], "participantsKey": "a:b"})
    broken = firestore_db.add_chat("broken", {"participants": ["b", "a", "a"]})

    repaired = service.repair_all_chats()

    assert [r.chat_id for r in repaired] == ["broken"]
    assert clean.updates == []
    assert broken.data == {"participants": ["b", "a"], "participantsKey": "a:b"}
    assert service.repair_all_chats() == []


def test_audit_flags_invalid_senders(service, firestore_db):
    firestore_db.add_chat(
        "chat-1",
        {"participants": ["u1", "u2"], "participantsKey": "u1:u2"},
        messages={
            "m1": {"senderId": "u1", "text": "hi"},
            "m2": {"senderId": "intruder", "text": "hello"},
            "m3": {"text": "no sender"},
            "m4": {"senderId": "", "text": "empty sender"},
        },
    )

    report = service.audit_chat_messages("chat-1")

    assert report.message_count == 4
    assert report.is_valid is False
    issues = {issue.message_id: issue for issue in report.issues}
    assert set(issues) == {"m2", "m3", "m4"}
    assert issues["m2"].issue == MessageIssueType.SENDER_NOT_PARTICIPANT
    assert issues["m2"].sender_id == "intruder"
    assert issues["m3"].issue == MessageIssueType.MISSING_SENDER
    assert issues["m4"].issue == MessageIssueType.MISSING_SENDER


def test_audit_valid_chat_does_not_write(service, firestore_db):
    doc = firestore_db.add_chat(
        "chat-1",
        {"participants": ["u1", "u2"]},
        messages={"m1": {"senderId": "u1"}, "m2": {"senderId": "u2"}},
    )

    report = service.audit_chat_messages("chat-1")

    assert report.is_valid is True
    assert report.issues == []
    assert doc.updates == []


def test_audit_chat_not_found(service):
    with pytest.raises(ChatNotFoundError):
        service.audit_chat_messages("missing")


def test_audit_treats_non_list_participants_as_empty(service, firestore_db):
    """A participants string must not match senders by substring"""
    firestore_db.add_chat(
        "chat-1",
        {"participants": "abc:def"},
        messages={"m1": {"senderId": "abc"}},
    )

    report = service.audit_chat_messages("chat-1")

    assert report.participants == []
    assert [issue.issue for issue in report.issues] == [MessageIssueType.SENDER_NOT_PARTICIPANT]
