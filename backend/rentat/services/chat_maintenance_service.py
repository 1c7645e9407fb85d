"""
Chat maintenance: participants repair and message sender audit
"""
from typing import Any, Iterable, List, Optional, Tuple

from rentat.core.firestore import COLLECTION_CHATS, COLLECTION_MESSAGES
from rentat.core.logging_config import LoggingConfig
from rentat.models.chat import (ChatAuditReport, ChatRepairResult,
                                MessageIssue, MessageIssueType)

logger = LoggingConfig.get_logger(__name__)


class ChatNotFoundError(Exception):
    """Raised when a chat document does not exist"""

    def __init__(self, chat_id: str):
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id


def build_participants_key(uids: Iterable[str]) -> str:
    """Sorted, colon-joined participant ids"""
    return ":".join(sorted(uids))


def normalize_participants(participants: Any, participants_key: Any) -> Tuple[List[str], str]:
    """
    Normalize a chat's participants fields

    When participants is not a list or has fewer than two entries, it is
    rebuilt from the legacy participantsKey. Duplicates (first occurrence
    wins) and falsy entries are dropped, and the key is recomputed.
    Applying this to its own output returns the same values.

    Returns:
        (participants, participants_key)
    """
    if not isinstance(participants, list):
        participants = []

    if len(participants) < 2 and isinstance(participants_key, str) and participants_key:
        participants = participants_key.split(":")

    normalized = [uid for uid in dict.fromkeys(participants) if uid]
    return normalized, build_participants_key(normalized)


class ChatMaintenanceService:
    """Audit and repair chat documents with a Firestore client"""

    def __init__(self, db):
        self.db = db

    def _chat_ref(self, chat_id: str):
        return self.db.collection(COLLECTION_CHATS).document(chat_id)

    def _get_chat(self, chat_id: str):
        snapshot = self._chat_ref(chat_id).get()
        if not snapshot.exists:
            raise ChatNotFoundError(chat_id)
        return snapshot

    def _repair_snapshot(self, chat_id: str, snapshot, force: bool) -> ChatRepairResult:
        data = snapshot.to_dict() or {}
        participants, participants_key = normalize_participants(
            data.get("participants"), data.get("participantsKey")
        )
        changed = (
            participants != data.get("participants")
            or participants_key != data.get("participantsKey")
        )

        updated = False
        if changed or force:
            fields = {"participants": participants, "participantsKey": participants_key}
            # Fails if the chat was written after we read it
            option = self._write_option(snapshot)
            if option is not None:
                snapshot.reference.update(fields, option=option)
            else:
                snapshot.reference.update(fields)
            updated = True
            logger.info(
                f"Updated participants of chat {chat_id}",
                extra={"chat_id": chat_id, "changed": changed, "participants_count": len(participants)}
            )

        return ChatRepairResult(
            chat_id=chat_id,
            participants=participants,
            participants_key=participants_key,
            changed=changed,
            updated=updated,
        )

    def _write_option(self, snapshot) -> Optional[Any]:
        update_time = getattr(snapshot, "update_time", None)
        if update_time is None:
            return None
        return self.db.write_option(last_update_time=update_time)

    def repair_chat(self, chat_id: str, force: bool = True) -> ChatRepairResult:
        """
        Normalize participants and participantsKey of one chat

        Args:
            chat_id: Chat document id
            force: Write both fields even when nothing changed

        Raises:
            ChatNotFoundError: If the chat does not exist
        """
        snapshot = self._get_chat(chat_id)
        return self._repair_snapshot(chat_id, snapshot, force=force)

    def repair_all_chats(self) -> List[ChatRepairResult]:
        """Repair every chat whose stored fields are not normalized"""
        repaired = []
        for snapshot in self.db.collection(COLLECTION_CHATS).stream():
            result = self._repair_snapshot(snapshot.id, snapshot, force=False)
            if result.updated:
                repaired.append(result)
        logger.info(f"Repaired {len(repaired)} chat(s)")
        return repaired

    def audit_chat_messages(self, chat_id: str) -> ChatAuditReport:
        """
        Check that every message sender belongs to the chat

        Read-only. A message with no senderId is reported as missing_sender,
        otherwise a sender outside participants as sender_not_participant.
        A participants field that is not a list counts as empty.

        Raises:
            ChatNotFoundError: If the chat does not exist
        """
        snapshot = self._get_chat(chat_id)
        participants = (snapshot.to_dict() or {}).get("participants")
        if not isinstance(participants, list):
            participants = []

        issues = []
        message_count = 0
        for message in snapshot.reference.collection(COLLECTION_MESSAGES).stream():
            message_count += 1
            sender_id = (message.to_dict() or {}).get("senderId")
            if not sender_id:
                issues.append(MessageIssue(
                    message_id=message.id,
                    sender_id=None,
                    issue=MessageIssueType.MISSING_SENDER,
                ))
            elif sender_id not in participants:
                issues.append(MessageIssue(
                    message_id=message.id,
                    sender_id=sender_id,
                    issue=MessageIssueType.SENDER_NOT_PARTICIPANT,
                ))

        logger.info(
            f"Audited {message_count} message(s) of chat {chat_id}",
            extra={"chat_id": chat_id, "issues": len(issues)}
        )
        return ChatAuditReport(
            chat_id=chat_id,
            participants=list(participants),
            message_count=message_count,
            issues=issues,
        )
