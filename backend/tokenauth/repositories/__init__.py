from tokenauth.repositories.refresh_token import RefreshTokenRepository
from tokenauth.repositories.role import RoleRepository
from tokenauth.repositories.user import UserRepository

__all__ = [
    "RefreshTokenRepository",
    "RoleRepository",
    "UserRepository",
]
