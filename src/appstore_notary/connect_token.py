"""ES256 JWTs for the App Store Connect API.

See https://developer.apple.com/documentation/appstoreconnectapi/generating_tokens_for_api_requests.
A token is derived from three values issued by Apple:

* a key identifier, a short alphanumeric string like ``DEADBEEF42``,
* an issuer id, usually a UUID,
* an ECDSA P-256 private key, distributed as ``AuthKey_<key id>.p8``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import jwt
from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey,
    EllipticCurvePublicKey,
)

from appstore_notary.errors import TokenEncodingError
from appstore_notary.key_store import (
    ensure_p256_key,
    find_api_key_path,
    load_ecdsa_der,
    load_ecdsa_pem,
    load_ecdsa_pem_path,
)
from appstore_notary.types import AppStoreConnectToken, SigningIdentity, VerifyTokenResult

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "ES256"
TOKEN_AUDIENCE = "appstoreconnect-v1"


def unix_now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def _validate_duration(duration: int) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValueError("Token duration must be an integer number of seconds")
    if duration < 0:
        raise ValueError("Token duration must not be negative")
    return duration


class ConnectTokenEncoder:
    """Issues App Store Connect API tokens for one signing identity.

    Instances hold only immutable state, so new_token() may be called from
    any number of threads. All alternate constructors end up in __init__.
    """

    def __init__(self, identity: SigningIdentity):
        if not identity.key_id:
            raise ValueError("API key id is required")
        if not identity.issuer_id:
            raise ValueError("API issuer id is required")
        ensure_p256_key(identity.private_key)
        self._identity = identity

    @classmethod
    def from_signing_key(
        cls,
        key_id: str,
        issuer_id: str,
        private_key: EllipticCurvePrivateKey,
    ) -> ConnectTokenEncoder:
        return cls(SigningIdentity(key_id=key_id, issuer_id=issuer_id, private_key=private_key))

    @classmethod
    def from_ecdsa_der(cls, key_id: str, issuer_id: str, der_data: bytes) -> ConnectTokenEncoder:
        return cls.from_signing_key(key_id, issuer_id, load_ecdsa_der(der_data))

    @classmethod
    def from_ecdsa_pem(cls, key_id: str, issuer_id: str, pem_data: bytes | str) -> ConnectTokenEncoder:
        return cls.from_signing_key(key_id, issuer_id, load_ecdsa_pem(pem_data))

    @classmethod
    def from_ecdsa_pem_path(cls, key_id: str, issuer_id: str, path: str | Path) -> ConnectTokenEncoder:
        return cls.from_signing_key(key_id, issuer_id, load_ecdsa_pem_path(path))

    @classmethod
    def from_api_key_id(
        cls,
        key_id: str,
        issuer_id: str,
        search_paths: list[Path] | None = None,
    ) -> ConnectTokenEncoder:
        """Load ``AuthKey_<key_id>.p8`` from the conventional key directories."""
        path = find_api_key_path(key_id, search_paths)
        return cls.from_ecdsa_pem_path(key_id, issuer_id, path)

    @property
    def key_id(self) -> str:
        return self._identity.key_id

    @property
    def issuer_id(self) -> str:
        return self._identity.issuer_id

    @property
    def public_key(self) -> EllipticCurvePublicKey:
        return self._identity.private_key.public_key()

    def new_token(self, duration: int, now: int | None = None) -> AppStoreConnectToken:
        """Mint a token valid for ``duration`` seconds from ``now``."""
        duration = _validate_duration(duration)
        issued_at = now if now is not None else unix_now()

        claims = {
            "iss": self._identity.issuer_id,
            "iat": issued_at,
            "exp": issued_at + duration,
            "aud": TOKEN_AUDIENCE,
        }

        try:
            token = jwt.encode(
                claims,
                self._identity.private_key,
                algorithm=TOKEN_ALGORITHM,
                headers={"kid": self._identity.key_id},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as error:
            raise TokenEncodingError(f"Failed to sign App Store Connect token: {error}") from error

        logger.debug(
            "minted App Store Connect token kid=%s iat=%d exp=%d",
            self._identity.key_id,
            issued_at,
            issued_at + duration,
        )
        return token


def verify_token(
    token: str,
    public_key: EllipticCurvePublicKey,
    *,
    expected_key_id: str | None = None,
    now: int | None = None,
) -> VerifyTokenResult:
    """Check a token's signature, audience and expiry. Never raises for bad tokens."""
    try:
        header = jwt.get_unverified_header(token)
        if header.get("alg") != TOKEN_ALGORITHM:
            return VerifyTokenResult(valid=False, reason="Unsupported token algorithm")

        key_id = header.get("kid")
        if not key_id:
            return VerifyTokenResult(valid=False, reason="Missing kid header")
        if expected_key_id and key_id != expected_key_id:
            return VerifyTokenResult(
                valid=False,
                key_id=key_id,
                reason=f"kid mismatch: expected {expected_key_id}, got {key_id}",
            )

        claims = jwt.decode(
            token,
            public_key,
            algorithms=[TOKEN_ALGORITHM],
            audience=TOKEN_AUDIENCE,
            options={"require": ["iss", "iat", "exp", "aud"], "verify_exp": False, "verify_iat": False},
        )

        issued_at = int(claims["iat"])
        expires_at = int(claims["exp"])
        now_value = now if now is not None else unix_now()
        if now_value >= expires_at:
            return VerifyTokenResult(
                valid=False,
                key_id=key_id,
                issuer_id=str(claims["iss"]),
                issued_at=issued_at,
                expires_at=expires_at,
                reason="Token expired",
            )

        return VerifyTokenResult(
            valid=True,
            key_id=key_id,
            issuer_id=str(claims["iss"]),
            issued_at=issued_at,
            expires_at=expires_at,
        )
    except Exception as error:
        return VerifyTokenResult(valid=False, reason=str(error))
