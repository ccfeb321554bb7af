# authgate/services/tokens/manager.py
from __future__ import annotations

import math
import uuid
from datetime import timedelta
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from authgate.services._shared.base import BaseService, Clock
from authgate.services._shared.errors import (
    MalformedTokenError,
    SigningError,
    SubjectNotFoundError,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    WrongTokenKindError,
)
from authgate.services._shared.ports.denylist_store import TokenDenylistStore
from authgate.services._shared.ports.user_directory import UserLookup
from authgate.services.tokens.dto import TokenClaims, TokenConfig, TokenKind, TokenPair

REQUIRED_CLAIMS = ["sub", "jti", "iat", "exp", "token_type"]


def ttl_seconds(ttl: timedelta | int) -> int:
    """Convert a TTL to whole seconds, rounding partial seconds up."""
    if isinstance(ttl, timedelta):
        return math.ceil(ttl.total_seconds())
    return int(ttl)


class TokenManager(BaseService):
    """
    Token lifecycle: mint, parse, revoke and rotate access/refresh pairs.

    Tokens are self-contained JWTs; nothing is stored at mint time. The only
    server-side state is the revocation denylist.

    Failure semantics
    -----------------
    - Malformed, expired and wrong-kind tokens raise :class:`TokenError`
      subclasses (client errors, never retried).
    - Denylist failures raise ``CacheUnavailableError`` and are never
      mapped to "not revoked"; the caller decides whether to fail closed.
    """

    def __init__(
        self,
        *,
        config: TokenConfig,
        denylist: TokenDenylistStore,
        user_lookup: UserLookup,
        clock: Clock | None = None,
    ) -> None:
        """
        :param config: Signing key, pinned algorithm and lifetimes.
        :param denylist: Revocation store.
        :param user_lookup: Confirms a subject still exists during refresh.
        """
        super().__init__(clock=clock)
        self.cfg = config
        self.denylist = denylist
        self.users = user_lookup

    @property
    def access_expires(self) -> timedelta:
        return self.cfg.access_expires

    @property
    def refresh_expires(self) -> timedelta:
        return self.cfg.refresh_expires

    # ------------------------------------------------------------------ #
    # Mint / parse
    # ------------------------------------------------------------------ #

    def _claims(self, subject: str, kind: TokenKind) -> TokenClaims:
        # JWT timestamps are whole seconds; keep the in-memory claims identical.
        now = self.now_utc().replace(microsecond=0)
        return TokenClaims(
            subject=subject,
            kind=kind,
            token_id=str(uuid.uuid4()),
            issued_at=now,
            expires_at=now + self.cfg.lifetime(kind),
        )

    def _sign(self, claims: TokenClaims) -> str:
        try:
            return jwt.encode(claims.to_payload(), self.cfg.secret, algorithm=self.cfg.algorithm)
        except (PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
            self.log.error("token.sign_failed kind=%s", claims.kind.value, exc_info=True)
            raise SigningError() from exc

    def generate_token_pair(self, subject: str) -> TokenPair:
        """
        Mint an access/refresh pair for ``subject``.

        :raises SigningError: If either token cannot be signed.
        """
        access = self._claims(subject, TokenKind.ACCESS)
        refresh = self._claims(subject, TokenKind.REFRESH)
        return TokenPair(
            access_token=self._sign(access),
            refresh_token=self._sign(refresh),
            access=access,
            refresh=refresh,
        )

    def parse_token(self, token: str, expected_kind: TokenKind | str) -> TokenClaims:
        """
        Verify the signature and decode ``token``.

        Only the configured algorithm is accepted; the token header never
        chooses it.

        :raises MalformedTokenError: Undecodable, bad signature, missing claims.
        :raises TokenExpiredError: Expiry is in the past.
        :raises WrongTokenKindError: Token is of the other kind.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.cfg.secret,
                algorithms=[self.cfg.algorithm],
                # expiry is checked below against the injected clock
                options={"require": REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
            claims = TokenClaims.from_payload(payload)
        except (PyJWTError, KeyError, TypeError, ValueError) as exc:
            raise MalformedTokenError() from exc

        expected_kind = TokenKind(expected_kind)
        if self.now_utc() > claims.expires_at:
            raise TokenExpiredError()
        if claims.kind != expected_kind:
            raise WrongTokenKindError(
                f"Expected {expected_kind.value} token, got {claims.kind.value}"
            )
        return claims

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    async def is_revoked(self, token_id: str) -> bool:
        """Return whether ``token_id`` is on the denylist."""
        return await self.denylist.is_revoked(token_id)

    async def revoke(self, token_id: str, ttl: timedelta | int) -> None:
        """Add ``token_id`` to the denylist for ``ttl``."""
        await self.denylist.revoke(token_id, ttl_seconds(ttl))

    async def revoke_claims(self, claims: TokenClaims) -> None:
        """Revoke a parsed token for exactly its remaining lifetime."""
        await self.revoke(claims.token_id, claims.remaining(self.now_utc()))

    async def authenticate(self, access_token: str) -> TokenClaims:
        """
        Validate an access token presented on a protected request.

        :raises TokenError: Invalid, expired, wrong kind or revoked.
        :raises CacheUnavailableError: The denylist could not be consulted.
        """
        claims = self.parse_token(access_token, TokenKind.ACCESS)
        if await self.is_revoked(claims.token_id):
            raise TokenInvalidError("Token has been revoked")
        return claims

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """
        Rotate a refresh token and emit a new pair.

        Ordering
        --------
        1. Parse as refresh (any failure -> :class:`TokenInvalidError`).
        2. Reject revoked ids; a failed lookup propagates.
        3. Confirm the subject still exists.
        4. Revoke the old refresh id **before** minting, so a stolen copy
           cannot be replayed alongside the new pair. If this write fails
           nothing is minted.
        5. Mint the new pair.

        :raises TokenInvalidError: Unparseable, expired, wrong kind or revoked.
        :raises SubjectNotFoundError: The subject no longer exists.
        :raises CacheUnavailableError: Denylist read or write failed.
        """
        try:
            claims = self.parse_token(refresh_token, TokenKind.REFRESH)
        except TokenError as exc:
            raise TokenInvalidError("Refresh token is invalid") from exc

        if await self.is_revoked(claims.token_id):
            raise TokenInvalidError("Refresh token has been revoked")

        if not await self.users.exists(claims.subject):
            raise SubjectNotFoundError()

        await self.revoke_claims(claims)
        self.log.info("token.rotated jti=%s", claims.token_id)
        return self.generate_token_pair(claims.subject)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    async def logout(self, access_id: str | None, refresh_id: str | None) -> None:
        """
        Revoke both ids, best-effort.

        Only ids are known here, so each entry lives for the full lifetime of
        its kind. Failures are logged; the caller clears credentials anyway.
        """
        if access_id:
            await self.best_effort(
                lambda: self.revoke(access_id, self.cfg.access_expires),
                "token.logout_revoke_access_failed",
                jti=access_id,
            )
        if refresh_id:
            await self.best_effort(
                lambda: self.revoke(refresh_id, self.cfg.refresh_expires),
                "token.logout_revoke_refresh_failed",
                jti=refresh_id,
            )
