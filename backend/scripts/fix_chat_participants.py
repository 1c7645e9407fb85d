"""
Repair participants and participantsKey of every chat.

Usage: python scripts/fix_chat_participants.py

Only chats whose stored fields differ from the normalized values are written.
"""
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from rentat.core.logging_config import LoggingConfig
from rentat.services.chat_maintenance_service import ChatMaintenanceService

logger = LoggingConfig.get_logger(__name__)


def main(argv=None, db=None) -> int:
    try:
        if db is None:
            from rentat.core.firestore import get_firestore_client
            db = get_firestore_client()
        repaired = ChatMaintenanceService(db).repair_all_chats()
    except Exception as e:
        logger.error(f"Error fixing chats: {e}", exc_info=True)
        print(f"Error fixing chats: {e}", file=sys.stderr)
        return 1

    for result in repaired:
        print(
            f"Fixed chat {result.chat_id}: participants = [{', '.join(result.participants)}], "
            f"participantsKey = {result.participants_key}"
        )
    print(f"Done. Fixed {len(repaired)} chat(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
