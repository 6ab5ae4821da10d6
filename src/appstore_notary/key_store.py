"""Locating and loading App Store Connect API private keys."""

from __future__ import annotations

import logging
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from appstore_notary.errors import ApiKeyNotFoundError, TokenEncodingError

logger = logging.getLogger(__name__)

PRIVATE_KEYS_DIR = "private_keys"


def api_key_filename(key_id: str) -> str:
    return f"AuthKey_{key_id}.p8"


def default_key_search_paths(cwd: Path | None = None, home: Path | None = None) -> list[Path]:
    """Directories searched for AuthKey_<id>.p8 files, in priority order."""
    cwd = cwd if cwd is not None else Path.cwd()
    home = home if home is not None else Path.home()
    return [
        cwd / PRIVATE_KEYS_DIR,
        home / PRIVATE_KEYS_DIR,
        home / f".{PRIVATE_KEYS_DIR}",
        home / ".appstoreconnect" / PRIVATE_KEYS_DIR,
    ]


def find_api_key_path(key_id: str, search_paths: list[Path] | None = None) -> Path:
    if not key_id:
        raise ValueError("API key id is required")

    paths = search_paths if search_paths is not None else default_key_search_paths()
    filename = api_key_filename(key_id)

    for directory in paths:
        candidate = Path(directory) / filename
        if candidate.exists():
            logger.debug("found API key %s at %s", key_id, candidate)
            return candidate

    raise ApiKeyNotFoundError(key_id, [str(Path(directory) / filename) for directory in paths])


def ensure_p256_key(key: object) -> ec.EllipticCurvePrivateKey:
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise TokenEncodingError("App Store Connect keys must be ECDSA private keys")
    if not isinstance(key.curve, ec.SECP256R1):
        raise TokenEncodingError(f"App Store Connect keys must use P-256, got {key.curve.name}")
    return key


def load_ecdsa_pem(pem_data: bytes | str) -> ec.EllipticCurvePrivateKey:
    if isinstance(pem_data, str):
        pem_data = pem_data.encode("utf-8")
    try:
        key = serialization.load_pem_private_key(pem_data, password=None)
    except (ValueError, TypeError) as error:
        raise TokenEncodingError(f"Failed to parse PEM private key: {error}") from error
    return ensure_p256_key(key)


def load_ecdsa_der(der_data: bytes) -> ec.EllipticCurvePrivateKey:
    try:
        key = serialization.load_der_private_key(der_data, password=None)
    except (ValueError, TypeError) as error:
        raise TokenEncodingError(f"Failed to parse DER private key: {error}") from error
    return ensure_p256_key(key)


def load_ecdsa_pem_path(path: str | Path) -> ec.EllipticCurvePrivateKey:
    return load_ecdsa_pem(Path(path).read_bytes())
