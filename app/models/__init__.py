from app.models.role import Role, RoleType
from app.models.user import User
from app.models.invitation import Invitation
from app.models.otp import Otp, OtpType
from app.models.game import Game
from app.models.analytics import Analytics
from app.models.signup_analytics import SignupAnalytics

__all__ = [
    "Role",
    "RoleType",
    "User",
    "Invitation",
    "Otp",
    "OtpType",
    "Game",
    "Analytics",
    "SignupAnalytics",
]
