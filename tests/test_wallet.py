"""
Tests for payer keypair loading.
"""

import json

import pytest
from solders.keypair import Keypair

from core.errors import ConfigurationError
from wallet import load_keypair, load_keypair_from_base58, load_keypair_from_file


def test_load_from_base58():
    keypair = Keypair()

    loaded = load_keypair_from_base58(str(keypair))

    assert loaded.pubkey() == keypair.pubkey()


def test_load_from_keyfile(tmp_path):
    keypair = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))))

    loaded = load_keypair_from_file(str(path))

    assert loaded.pubkey() == keypair.pubkey()


def test_base58_takes_precedence(tmp_path):
    keypair = Keypair()

    loaded = load_keypair(private_key=str(keypair), keypair_path=str(tmp_path / "missing.json"))

    assert loaded.pubkey() == keypair.pubkey()


@pytest.mark.parametrize("secret", ["", "   ", "not-base58-0OIl"])
def test_invalid_base58(secret):
    with pytest.raises(ConfigurationError):
        load_keypair_from_base58(secret)


def test_missing_keyfile(tmp_path):
    with pytest.raises(ConfigurationError):
        load_keypair_from_file(str(tmp_path / "missing.json"))


def test_malformed_keyfile(tmp_path):
    path = tmp_path / "id.json"
    path.write_text("[1, 2, 3]")

    with pytest.raises(ConfigurationError):
        load_keypair_from_file(str(path))


def test_no_source():
    with pytest.raises(ConfigurationError):
        load_keypair()
