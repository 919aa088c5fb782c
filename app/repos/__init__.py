from .email_message import EmailMessageRepo
from .user import UserRepo

__all__ = [
    "EmailMessageRepo",
    "UserRepo",
]
