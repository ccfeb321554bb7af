# authgate/services/auth/service.py
from __future__ import annotations

from authgate.services._shared.base import BaseService, Clock, mask_phone
from authgate.services._shared.errors import SubjectNotFoundError, TokenError
from authgate.services._shared.ports.user_directory import User, UserDirectory
from authgate.services.auth.dto import LoginResult, LogoutIn, SmsLoginIn
from authgate.services.tokens.dto import TokenKind, TokenPair
from authgate.services.tokens.manager import TokenManager
from authgate.services.verification.dto import Purpose
from authgate.services.verification.service import VerificationCodeService


class AuthService(BaseService):
    """
    Authentication flow (SMS login / refresh / logout).

    Combines the verification code service (to authenticate a login
    attempt) with the token manager (to mint session tokens) and the user
    directory (to find or auto-register the account).
    """

    def __init__(
        self,
        *,
        verification: VerificationCodeService,
        tokens: TokenManager,
        users: UserDirectory,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param verification: Issues and checks one-time codes.
        :param tokens: Mints, rotates and revokes token pairs.
        :param users: User lookup and auto-registration.
        """
        super().__init__(clock=clock)
        self.verification = verification
        self.tokens = tokens
        self.users = users

    # ------------------------------------------------------------------ #
    # Codes
    # ------------------------------------------------------------------ #

    async def send_code(self, purpose: Purpose | str, phone: str) -> None:
        """Send a verification code (thin delegate for the API layer)."""
        await self.verification.send_code(purpose, phone)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    async def sms_login(self, dto: SmsLoginIn) -> LoginResult:
        """
        Authenticate with an SMS code, registering unknown phones.

        :param dto: Login input.
        :returns: User, token pair and whether the user is new.
        :raises CodeInvalidError: Code missing, expired or wrong.
        :raises VerifyTooManyError: Verification locked out.
        """
        await self.verification.verify_code(Purpose.LOGIN, dto.phone_number, dto.sms_code)

        is_new = False
        user = await self.users.find_by_phone(dto.phone_number)
        if user is None:
            user = await self.users.create_for_phone(dto.phone_number)
            is_new = True
            self.log.info(
                "auth.user_registered user_id=%s phone=%s",
                user.user_id,
                mask_phone(dto.phone_number),
            )

        tokens = self.tokens.generate_token_pair(user.user_id)
        return LoginResult(user=user, tokens=tokens, is_new=is_new)

    # ------------------------------------------------------------------ #
    # Refresh / logout
    # ------------------------------------------------------------------ #

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate ``refresh_token`` (see :meth:`TokenManager.refresh_token`)."""
        return await self.tokens.refresh_token(refresh_token)

    async def logout(self, dto: LogoutIn) -> None:
        """
        Revoke whatever presented tokens still parse.

        Never raises for bad tokens or cache failures: logging out must
        always let the caller clear its credentials.
        """
        access_id = self._token_id(dto.access_token, TokenKind.ACCESS)
        refresh_id = self._token_id(dto.refresh_token, TokenKind.REFRESH)
        await self.tokens.logout(access_id, refresh_id)

    def _token_id(self, token: str | None, kind: TokenKind) -> str | None:
        if not token:
            return None
        try:
            return self.tokens.parse_token(token, kind).token_id
        except TokenError:
            self.log.debug("auth.logout_token_unparseable kind=%s", kind.value)
            return None

    # ------------------------------------------------------------------ #
    # Current user
    # ------------------------------------------------------------------ #

    async def get_user(self, user_id: str) -> User:
        """
        Load the user behind a token subject.

        :raises SubjectNotFoundError: The user no longer exists.
        """
        user = await self.users.get(user_id)
        if user is None:
            raise SubjectNotFoundError()
        return user
