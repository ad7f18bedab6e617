from tokenauth.models.refresh_token import RefreshToken
from tokenauth.models.role import Role, user_roles
from tokenauth.models.user import User

__all__ = [
    "RefreshToken",
    "Role",
    "User",
    "user_roles",
]
