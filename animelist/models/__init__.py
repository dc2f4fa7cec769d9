from animelist.models.anime import AnimeEntry
from animelist.models.password_reset import PasswordResetToken
from animelist.models.session import UserSession
from animelist.models.user import User

__all__ = [
    "User",
    "UserSession",
    "PasswordResetToken",
    "AnimeEntry",
]
