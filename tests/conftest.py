"""
Shared fixtures for the bridge client tests.
"""

import pytest
from solders.keypair import Keypair

from tests.fakes import FakeLedger


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def bridge_program_id():
    return Keypair().pubkey()


@pytest.fixture
def light_client_program_id():
    return Keypair().pubkey()


@pytest.fixture
def payer():
    return Keypair()
