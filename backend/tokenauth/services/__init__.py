"""Service layer public API.

Re-exports
----------
- Base primitives (from ``tokenauth.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Token core
    * :class:`TokenLifecycleManager`, :class:`TokenPair`, :class:`TokenLifecycleConfig`
    * :class:`RequestThrottle`
    * :func:`check_password`

- Auth service (from ``tokenauth.services.auth``)
    * :class:`AuthService`
"""

from tokenauth.services._shared.base import BaseService, ServiceContext
from tokenauth.services.auth.service import AuthService
from tokenauth.services.password_policy import check_password, is_acceptable
from tokenauth.services.throttle import RequestThrottle
from tokenauth.services.tokens.dto import TokenLifecycleConfig, TokenPair
from tokenauth.services.tokens.lifecycle import TokenLifecycleManager

__all__ = [
    "AuthService",
    "BaseService",
    "RequestThrottle",
    "ServiceContext",
    "TokenLifecycleConfig",
    "TokenLifecycleManager",
    "TokenPair",
    "check_password",
    "is_acceptable",
]
