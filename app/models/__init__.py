from app.models.database import Base, Database
from app.models.user import User
from app.models.auth_token import EmailVerificationToken, UserSession

__all__ = ["Base", "Database", "User", "EmailVerificationToken", "UserSession"]
