"""Tests for the HTTP Access API adapter, with the session patched out."""

import base64
import json

import pytest
import requests

from flowpool.connection import Connection, normalize_endpoint, transaction_to_json
from flowpool.errors import RemoteError, RemoteTimeoutError, WorkerConnectionError
from flowpool.signer import SigningIdentity
from flowpool.types import ProposalKey, Transaction, TransactionSignature, TransactionStatus

from conftest import BLOCK_ID, SERVICE


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.text = json.dumps(body)

    def json(self):
        return self._body


class HtmlResponse(FakeResponse):
    """A 200 reply whose body is not JSON, as from the wrong port."""

    def __init__(self):
        super().__init__(200, None)
        self.text = "<html>not an access node</html>"

    def json(self):
        raise requests.exceptions.JSONDecodeError("Expecting value", self.text, 0)


class FakeSession:
    def __init__(self, responses=None, exc=None):
        self.responses = list(responses or [])
        self.exc = exc
        self.requests = []
        self.closed = False

    def request(self, method, url, timeout=None, **kwargs):
        self.requests.append((method, url, timeout, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.responses.pop(0)

    def close(self):
        self.closed = True


def make_connection(session):
    return Connection("127.0.0.1:8888", SigningIdentity.generate(0), timeout=2.5, session=session)


ACCOUNT_JSON = {
    "address": "0x" + SERVICE,
    "balance": "100000",
    "keys": [
        {
            "index": "0",
            "public_key": "0x" + "11" * 64,
            "signing_algorithm": "ECDSA_P256",
            "hashing_algorithm": "SHA3_256",
            "sequence_number": "3",
            "weight": "1000",
            "revoked": False,
        }
    ],
    "contracts": {},
}

BLOCK_JSON = {
    "header": {
        "id": BLOCK_ID,
        "parent_id": "00" * 32,
        "height": "42",
        "timestamp": "2024-01-01T00:00:00Z",
    },
    "payload": {"collection_guarantees": [{"collection_id": "01"}], "block_seals": []},
}


class TestEndpoint:
    def test_host_port_gets_scheme(self):
        assert normalize_endpoint("127.0.0.1:8888") == "http://127.0.0.1:8888"

    def test_url_kept(self):
        assert normalize_endpoint("https://rest-testnet.onflow.org/") == "https://rest-testnet.onflow.org"


class TestCalls:
    def test_get_account_parses_keys(self):
        session = FakeSession([FakeResponse(200, ACCOUNT_JSON)])
        account = make_connection(session).get_account("0x" + SERVICE)
        assert account.address == SERVICE
        assert account.balance == 100000
        assert account.keys[0].sequence_number == 3
        assert account.keys[0].public_key == b"\x11" * 64
        method, url, timeout, kwargs = session.requests[0]
        assert url == f"http://127.0.0.1:8888/v1/accounts/{SERVICE}"
        assert timeout == 2.5
        assert kwargs["params"]["block_height"] == "sealed"

    def test_get_account_at_height(self):
        session = FakeSession([FakeResponse(200, ACCOUNT_JSON)])
        make_connection(session).get_account(SERVICE, 7)
        assert session.requests[0][3]["params"]["block_height"] == "7"

    def test_latest_block_takes_first(self):
        session = FakeSession([FakeResponse(200, [BLOCK_JSON])])
        block = make_connection(session).get_latest_block(sealed=True)
        assert block.id == BLOCK_ID
        assert block.height == 42
        assert len(block.collection_guarantees) == 1
        assert session.requests[0][3]["params"] == {"height": "sealed", "expand": "payload"}

    def test_header_only(self):
        session = FakeSession([FakeResponse(200, [BLOCK_JSON])])
        header = make_connection(session).get_block_by_height(42, header_only=True)
        assert header.height == 42
        assert "expand" not in session.requests[0][3]["params"]

    def test_execute_script_decodes_result(self):
        encoded = base64.b64encode(b'{"type":"Int","value":"7"}').decode()
        session = FakeSession([FakeResponse(200, encoded)])
        result = make_connection(session).execute_script(b"access(all) fun main(): Int { return 7 }", [])
        assert result == 7
        body = session.requests[0][3]["json"]
        assert base64.b64decode(body["script"]).startswith(b"access(all)")

    def test_error_status_maps_to_remote_error(self):
        session = FakeSession([FakeResponse(400, {"code": 400, "message": "invalid address"})])
        with pytest.raises(RemoteError, match="invalid address") as info:
            make_connection(session).get_transaction("xx")
        assert info.value.status_code == 400

    def test_timeout_maps_to_timeout_error(self):
        session = FakeSession(exc=requests.Timeout("slow"))
        with pytest.raises(TimeoutError):
            make_connection(session).get_collection("01")
        with pytest.raises(RemoteTimeoutError):
            make_connection(session).get_collection("01")

    def test_transport_failure_maps_to_remote_error(self):
        session = FakeSession(exc=requests.ConnectionError("refused"))
        with pytest.raises(RemoteError, match="failed"):
            make_connection(session).get_events("A.1.C.E", 1, 2)

    def test_closed_connection_refuses_calls(self):
        conn = make_connection(FakeSession())
        conn.close()
        with pytest.raises(RemoteError, match="not open"):
            conn.ping()

    def test_non_json_reply_maps_to_remote_error(self):
        session = FakeSession([HtmlResponse()])
        with pytest.raises(RemoteError, match="invalid JSON") as info:
            make_connection(session).get_transaction("ab")
        assert info.value.status_code == 200

    def test_script_result_must_be_base64(self):
        session = FakeSession([FakeResponse(200, {"unexpected": "shape"})])
        with pytest.raises(RemoteError, match="base64"):
            make_connection(session).execute_script(b"access(all) fun main() {}", [])

    def test_transaction_result_status_parsed(self):
        body = {"status": "Sealed", "status_code": 0, "error_message": "", "events": []}
        session = FakeSession([FakeResponse(200, body)])
        result = make_connection(session).get_transaction_result("ab")
        assert result["status"] is TransactionStatus.SEALED
        assert session.requests[0][1].endswith("/v1/transaction_results/ab")

    def test_unknown_transaction_status(self):
        session = FakeSession([FakeResponse(200, {"status": "Lost"})])
        assert make_connection(session).get_transaction_result("ab")["status"] is TransactionStatus.UNKNOWN


class TestOpen:
    def test_open_pings(self):
        session = FakeSession([FakeResponse(200, [BLOCK_JSON])])
        make_connection(session).open()
        assert session.requests[0][1].endswith("/v1/blocks")

    def test_failed_ping_is_connection_error(self):
        session = FakeSession(exc=requests.ConnectionError("refused"))
        with pytest.raises(WorkerConnectionError, match="Could not establish"):
            make_connection(session).open()

    def test_non_json_ping_is_connection_error(self):
        session = FakeSession([HtmlResponse()])
        with pytest.raises(WorkerConnectionError, match="invalid JSON"):
            make_connection(session).open()


class TestTransactionJson:
    def test_body_shape(self):
        tx = Transaction(
            script=b"transaction {}",
            arguments=[b'{"type":"Int","value":"1"}'],
            reference_block_id=BLOCK_ID,
            gas_limit=9999,
            proposal_key=ProposalKey(SERVICE, 0, 5),
            payer=SERVICE,
            authorizers=[SERVICE],
            envelope_signatures=[TransactionSignature(SERVICE, 0, b"\x01" * 64)],
        )
        body = transaction_to_json(tx)
        assert body["gas_limit"] == "9999"
        assert body["proposal_key"] == {"address": SERVICE, "key_index": "0", "sequence_number": "5"}
        assert body["payload_signatures"] == []
        assert base64.b64decode(body["envelope_signatures"][0]["signature"]) == b"\x01" * 64
        assert base64.b64decode(body["arguments"][0]) == b'{"type":"Int","value":"1"}'
