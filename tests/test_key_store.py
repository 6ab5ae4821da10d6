from __future__ import annotations

from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from appstore_notary.connect_token import ConnectTokenEncoder
from appstore_notary.errors import ApiKeyNotFoundError
from appstore_notary.key_store import (
    api_key_filename,
    default_key_search_paths,
    find_api_key_path,
)
from tests.helpers import ISSUER_ID, pem_bytes


@pytest.fixture
def fake_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> tuple[Path, Path]:
    cwd = tmp_path / "work"
    home = tmp_path / "home"
    cwd.mkdir()
    home.mkdir()
    monkeypatch.chdir(cwd)
    monkeypatch.setenv("HOME", str(home))
    return cwd, home


def test_api_key_filename() -> None:
    assert api_key_filename("ABC123") == "AuthKey_ABC123.p8"


def test_default_search_order(fake_dirs: tuple[Path, Path]) -> None:
    cwd, home = fake_dirs

    assert default_key_search_paths() == [
        cwd / "private_keys",
        home / "private_keys",
        home / ".private_keys",
        home / ".appstoreconnect" / "private_keys",
    ]


def test_not_found_after_checking_all_locations(fake_dirs: tuple[Path, Path]) -> None:
    cwd, home = fake_dirs

    with pytest.raises(ApiKeyNotFoundError) as excinfo:
        find_api_key_path("ABC123")

    assert excinfo.value.key_id == "ABC123"
    assert excinfo.value.searched == [
        str(cwd / "private_keys" / "AuthKey_ABC123.p8"),
        str(home / "private_keys" / "AuthKey_ABC123.p8"),
        str(home / ".private_keys" / "AuthKey_ABC123.p8"),
        str(home / ".appstoreconnect" / "private_keys" / "AuthKey_ABC123.p8"),
    ]


def test_first_match_wins(fake_dirs: tuple[Path, Path]) -> None:
    cwd, home = fake_dirs
    for directory in (home / ".private_keys", home / ".appstoreconnect" / "private_keys"):
        directory.mkdir(parents=True)
        (directory / "AuthKey_ABC123.p8").write_text("placeholder", encoding="utf-8")

    assert find_api_key_path("ABC123") == home / ".private_keys" / "AuthKey_ABC123.p8"

    (cwd / "private_keys").mkdir()
    (cwd / "private_keys" / "AuthKey_ABC123.p8").write_text("placeholder", encoding="utf-8")

    assert find_api_key_path("ABC123") == cwd / "private_keys" / "AuthKey_ABC123.p8"


def test_other_key_ids_do_not_match(fake_dirs: tuple[Path, Path]) -> None:
    _, home = fake_dirs
    (home / "private_keys").mkdir()
    (home / "private_keys" / "AuthKey_OTHER.p8").write_text("placeholder", encoding="utf-8")

    with pytest.raises(ApiKeyNotFoundError):
        find_api_key_path("ABC123")


def test_encoder_from_api_key_id_uses_default_locations(fake_dirs: tuple[Path, Path]) -> None:
    _, home = fake_dirs
    key = ec.generate_private_key(ec.SECP256R1())
    key_dir = home / ".appstoreconnect" / "private_keys"
    key_dir.mkdir(parents=True)
    (key_dir / "AuthKey_ABC123.p8").write_bytes(pem_bytes(key))

    encoder = ConnectTokenEncoder.from_api_key_id("ABC123", ISSUER_ID)

    assert encoder.key_id == "ABC123"
    assert encoder.public_key.public_numbers() == key.public_key().public_numbers()


def test_encoder_from_api_key_id_not_found(fake_dirs: tuple[Path, Path]) -> None:
    with pytest.raises(ApiKeyNotFoundError):
        ConnectTokenEncoder.from_api_key_id("ABC123", ISSUER_ID)


def test_key_id_is_required() -> None:
    with pytest.raises(ValueError):
        find_api_key_path("")
