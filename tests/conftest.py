from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from appstore_notary.connect_token import ConnectTokenEncoder
from tests.helpers import ISSUER_ID, KEY_ID


@pytest.fixture
def signing_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def encoder(signing_key: ec.EllipticCurvePrivateKey) -> ConnectTokenEncoder:
    return ConnectTokenEncoder.from_signing_key(KEY_ID, ISSUER_ID, signing_key)
