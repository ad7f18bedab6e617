# tokenauth/services/auth/service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from tokenauth.models.user import User
from tokenauth.services._shared.base import BaseService, ServiceContext
from tokenauth.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    RegistrationError,
    UserNotFoundError,
)
from tokenauth.services._shared.ports.user_directory import (
    CredentialVerifier,
    UserDirectory,
    UserIdentity,
)
from tokenauth.services.auth.dto import (
    AuthResultOut,
    LoginIn,
    LogoutIn,
    LogoutOut,
    RefreshIn,
    RegisterIn,
    WhoAmIOut,
)
from tokenauth.services.password_policy import check_password
from tokenauth.services.tokens.dto import TokenPair
from tokenauth.services.tokens.lifecycle import TokenLifecycleManager

log = logging.getLogger(__name__)

HR_ROLE = "ROLE_HR"


class AuthService(BaseService):
    """
    Authentication use-cases (register / register_hr / login / refresh / logout / whoami).

    Token issuance, rotation and revocation are delegated to the
    :class:`TokenLifecycleManager`; this service only resolves identities and
    shapes the results.
    """

    def __init__(
        self,
        *,
        lifecycle: TokenLifecycleManager,
        users: UserDirectory,
        credentials: CredentialVerifier,
        default_role: str = "ROLE_USER",
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param lifecycle: Token issuance/rotation/revocation.
        :param users: Identity lookup by id.
        :param credentials: Username/password verification.
        :param default_role: Role granted on registration.
        """
        super().__init__(ctx=ctx)
        self.lifecycle = lifecycle
        self.users = users
        self.credentials = credentials
        self.default_role = default_role

    @classmethod
    def from_components(cls, components, *, default_role: str, ctx=None) -> AuthService:
        return cls(
            lifecycle=components.lifecycle,
            users=components.users,
            credentials=components.credentials,
            default_role=default_role,
            ctx=ctx,
        )

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthResultOut:
        """
        Create a user with the default role and sign them in.

        :raises RegistrationError: Password violates the policy.
        :raises ConflictError: Username or email already taken.
        """
        return self._register(dto, self.default_role)

    def register_hr(self, dto: RegisterIn) -> AuthResultOut:
        """Create a user holding only ``ROLE_HR`` and sign them in."""
        return self._register(dto, HR_ROLE)

    def _register(self, dto: RegisterIn, role_name: str) -> AuthResultOut:
        violations = check_password(dto.password)
        if violations:
            raise RegistrationError("Password does not meet the policy", violations)

        try:
            with self.rw_uow() as uow:
                if uow.users.exists_by_username(dto.username):
                    raise ConflictError("User", "username already taken")
                if uow.users.exists_by_email(dto.email):
                    raise ConflictError("User", "email already registered")
                role, _ = uow.roles.get_or_create(role_name)
                user = User(username=dto.username, email=dto.email)
                user.password = dto.password
                user.roles.append(role)
                uow.users.add(user)
                user_id = str(user.id)
        except IntegrityError as exc:
            # lost a race with a concurrent registration
            raise ConflictError("User", "username or email already taken") from exc

        identity = self.users.find_by_id(user_id)
        if identity is None:
            raise UserNotFoundError()
        log.info(
            "auth.registered sub=%s role=%s", user_id, role_name, extra={"subject": user_id}
        )
        return self._result(self.lifecycle.issue_pair(identity))

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthResultOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :raises AuthenticationError: If credentials are invalid.
        """
        identity = self.credentials.verify(dto.username, dto.password)
        if identity is None:
            log.warning("auth.login_failed username=%s", dto.username)
            raise AuthenticationError()
        log.info("auth.login sub=%s", identity.id, extra={"subject": identity.id})
        return self._result(self.lifecycle.issue_pair(identity))

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> AuthResultOut:
        """Rotate a refresh token and emit a new token pair."""
        return self._result(self.lifecycle.rotate(dto.refresh_token))

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> LogoutOut:
        """
        Revoke the provided refresh token. Optionally revoke all of the owner's sessions.

        Signing out everywhere requires a refresh token the ledger still
        honours; a leaked access token or a stale refresh token cannot end
        other sessions.

        :raises InvalidTokenError: The token does not verify.
        :raises NotARefreshTokenError: ``all_sessions`` with an access token.
        :raises TokenExpiredError: ``all_sessions`` with an expired refresh token.
        :raises TokenRevokedError: ``all_sessions`` with a rotated or revoked refresh token.
        """
        if not dto.all_sessions:
            self.lifecycle.revoke(dto.token)
            return LogoutOut()
        claims = self.lifecycle.verify_refresh_token(dto.token)
        self.lifecycle.revoke(dto.token)
        return LogoutOut(revoked_sessions=self.lifecycle.revoke_all_for_subject(claims.subject))

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def whoami(self, subject: str) -> WhoAmIOut:
        """
        Return the profile referenced by a verified access-token subject.

        :raises UserNotFoundError: The user was deleted after issuance.
        """
        identity = self.users.find_by_id(str(subject))
        if identity is None:
            raise UserNotFoundError()
        return WhoAmIOut(
            id=identity.id,
            username=identity.username,
            email=identity.email,
            roles=identity.roles,
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _result(self, pair: TokenPair) -> AuthResultOut:
        identity: UserIdentity = pair.identity
        return AuthResultOut(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=int(self.lifecycle.cfg.access_expires.total_seconds()),
            username=identity.username,
            email=identity.email,
            roles=identity.roles,
        )
