"""
Chat maintenance results
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MessageIssueType(str, Enum):
    MISSING_SENDER = "missing_sender"
    SENDER_NOT_PARTICIPANT = "sender_not_participant"


class MessageIssue(BaseModel):
    message_id: str
    sender_id: Optional[str] = None
    issue: MessageIssueType


class ChatAuditReport(BaseModel):
    """Sender check of every message in a chat"""
    chat_id: str
    participants: List[str] = Field(default_factory=list)
    message_count: int = 0
    issues: List[MessageIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


class ChatRepairResult(BaseModel):
    """Outcome of normalizing a chat's participants fields"""
    chat_id: str
    participants: List[str]
    participants_key: str
    changed: bool = Field(..., description="Stored values differed from the normalized ones")
    updated: bool = Field(..., description="A write was issued")

    @property
    def has_enough_participants(self) -> bool:
        return len(self.participants) >= 2
