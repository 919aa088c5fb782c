from .base import Base
from .email_message import EmailMessage, EmailPriority
from .user import User

__all__ = [
    "Base",
    "EmailMessage",
    "EmailPriority",
    "User",
]
