"""Shared fixtures: an in-memory stand-in for the access node connection."""

import threading

import pytest

from flowpool.errors import RemoteError, WorkerConnectionError
from flowpool.signer import SigningIdentity
from flowpool.types import Account, AccountKey, Block, BlockHeader

SERVICE = "f8d6e0586b0a20c7"
OTHER = "01cf0e2f2f715450"
BLOCK_ID = "ab" * 32

# Key from the emulator's default flow.json.
EMULATOR_PRIVATE_KEY = "324db577a741a9b7a2eb6cef4e37e72ff01a554bdbe4bd77ef9afe1cb00d3cec"


def make_account(address, identities, sequence_number=7, revoked=()):
    keys = [
        AccountKey(
            id=ident.key_index,
            public_key=ident.public_key_bytes,
            sign_algo="ECDSA_P256",
            hash_algo="SHA3_256",
            weight=1000,
            sequence_number=sequence_number,
            revoked=ident.key_index in revoked,
        )
        for ident in identities
    ]
    return Account(address=address, balance=100, keys=keys)


class FakeConnection:
    """Records calls; answers from canned accounts and a fixed block."""

    def __init__(self, endpoint="fake:0", identity=None, timeout=1.0):
        self.endpoint = endpoint
        self.identity = identity or SigningIdentity.generate(0)
        self.timeout = timeout
        self.calls = []
        self.accounts = {SERVICE: make_account(SERVICE, [self.identity])}
        self.block = Block(BlockHeader(BLOCK_ID, "00" * 32, 42, "2024-01-01T00:00:00Z"))
        self.fail_on = set()
        self.fail_open = False
        self.opened = False
        self.sent = []
        self.gate = None
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def _call(self, name, *args):
        with self._lock:
            self.calls.append((name, args))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                self.gate.wait(5)
            if name in self.fail_on:
                raise RemoteError(f"{name} failed", 500)
        finally:
            with self._lock:
                self.active -= 1

    def open(self):
        if self.fail_open:
            raise WorkerConnectionError(f"Could not establish connection to {self.endpoint}")
        self.opened = True

    def close(self):
        self.opened = False

    def get_account(self, address, height=None):
        self._call("get_account", address, height)
        return self.accounts[address]

    def get_latest_block(self, sealed=False, header_only=False):
        self._call("get_latest_block", sealed, header_only)
        return self.block.header if header_only else self.block

    def get_block_by_id(self, block_id, header_only=False):
        self._call("get_block_by_id", block_id, header_only)
        return self.block

    def get_block_by_height(self, height, header_only=False):
        self._call("get_block_by_height", height, header_only)
        return self.block

    def get_collection(self, collection_id):
        self._call("get_collection", collection_id)
        return {"id": collection_id}

    def get_transaction(self, transaction_id):
        self._call("get_transaction", transaction_id)
        return {"id": transaction_id}

    def get_transaction_result(self, transaction_id):
        self._call("get_transaction_result", transaction_id)
        return {"status": "Sealed"}

    def get_events(self, event_type, start_height, end_height):
        self._call("get_events", event_type, start_height, end_height)
        return []

    def execute_script(self, script, arguments, height=None):
        self._call("execute_script", script, arguments)
        return 1

    def send_transaction(self, tx):
        self._call("send_transaction", tx)
        self.sent.append(tx)
        return {"id": "cd" * 32}


@pytest.fixture
def identity():
    return SigningIdentity.generate(0)


@pytest.fixture
def connection(identity):
    return FakeConnection(identity=identity)
