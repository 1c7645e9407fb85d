"""
Check that every message in a chat was sent by one of its participants.

Usage: python scripts/check_chat_messages_sender.py <chatId>

Read-only: nothing is written back to Firestore.
"""
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from rentat.core.logging_config import LoggingConfig
from rentat.models.chat import MessageIssueType
from rentat.services.chat_maintenance_service import (ChatMaintenanceService,
                                                      ChatNotFoundError)

logger = LoggingConfig.get_logger(__name__)

ALL_VALID_MESSAGE = "All messages have valid senderId matching chat participants."


def main(argv=None, db=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: python scripts/check_chat_messages_sender.py <chatId>", file=sys.stderr)
        return 1
    chat_id = argv[0]

    try:
        if db is None:
            from rentat.core.firestore import get_firestore_client
            db = get_firestore_client()
        report = ChatMaintenanceService(db).audit_chat_messages(chat_id)
    except ChatNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"Error checking messages of chat {chat_id}: {e}", exc_info=True)
        print(f"Error checking messages: {e}", file=sys.stderr)
        return 1

    participants = ", ".join(report.participants)
    for issue in report.issues:
        if issue.issue == MessageIssueType.MISSING_SENDER:
            print(f"Message {issue.message_id} is missing senderId")
        else:
            print(f"Message {issue.message_id} has senderId {issue.sender_id} NOT in participants: [{participants}]")

    if report.is_valid:
        print(ALL_VALID_MESSAGE)
    return 0


if __name__ == "__main__":
    sys.exit(main())
