"""
Repair participants and participantsKey of a single chat.

Usage: python scripts/fix_one_chat_participants.py <chatId>

Both fields are always written back, even when they were already correct.
The write fails instead of overwriting if the chat changed after it was read.
"""
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from rentat.core.logging_config import LoggingConfig
from rentat.services.chat_maintenance_service import (ChatMaintenanceService,
                                                      ChatNotFoundError)

logger = LoggingConfig.get_logger(__name__)


def main(argv=None, db=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: python scripts/fix_one_chat_participants.py <chatId>", file=sys.stderr)
        return 1
    chat_id = argv[0]

    try:
        if db is None:
            from rentat.core.firestore import get_firestore_client
            db = get_firestore_client()
        result = ChatMaintenanceService(db).repair_chat(chat_id, force=True)
    except ChatNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"Error fixing chat {chat_id}: {e}", exc_info=True)
        print(f"Error fixing chat: {e}", file=sys.stderr)
        return 1

    print(
        f"Fixed chat {chat_id}: participants = [{', '.join(result.participants)}], "
        f"participantsKey = {result.participants_key}"
    )
    if not result.has_enough_participants:
        print(f"Warning: chat {chat_id} has fewer than two participants", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
