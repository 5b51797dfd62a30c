"""Database models."""

from models.block import UserBlock
from models.chat import ChatSession
from models.chat_request import ChatRequest, RequestStatus
from models.user import User

__all__ = [
    "User",
    "ChatSession",
    "ChatRequest",
    "RequestStatus",
    "UserBlock",
]
