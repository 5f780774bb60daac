"""One HTTP channel to a Flow access node, bound to one signing identity."""

from __future__ import annotations

import base64
import logging
from typing import Any

import requests

from . import cadence
from .errors import RemoteError, RemoteTimeoutError, WorkerConnectionError
from .signer import SigningIdentity
from .types import Account, Block, BlockHeader, Transaction, TransactionStatus, normalize_address

_LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def normalize_endpoint(endpoint: str) -> str:
    """Turn ``host:port`` or a URL into a base URL without trailing slash."""
    endpoint = endpoint.strip().rstrip("/")
    if "://" not in endpoint:
        endpoint = f"http://{endpoint}"
    return endpoint


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _height(sealed: bool) -> str:
    return "sealed" if sealed else "final"


def transaction_to_json(tx: Transaction) -> dict:
    """Access API request body for a signed transaction."""

    def sig(s) -> dict:
        return {
            "address": normalize_address(s.address),
            "key_index": str(s.key_id),
            "signature": _b64(s.signature),
        }

    return {
        "script": _b64(tx.script),
        "arguments": [_b64(a) for a in tx.arguments],
        "reference_block_id": tx.reference_block_id,
        "gas_limit": str(tx.gas_limit),
        "payer": normalize_address(tx.payer),
        "proposal_key": {
            "address": normalize_address(tx.proposal_key.address),
            "key_index": str(tx.proposal_key.key_id),
            "sequence_number": str(tx.proposal_key.sequence_number),
        },
        "authorizers": [normalize_address(a) for a in tx.authorizers],
        "payload_signatures": [sig(s) for s in tx.payload_signatures],
        "envelope_signatures": [sig(s) for s in tx.envelope_signatures],
    }


class Connection:
    """Blocking client for the access node's HTTP Access API.

    Every call is bounded by *timeout* seconds.

    Args:
        endpoint: ``host:port`` or base URL of the access node.
        identity: The signing identity this channel is bound to.
        timeout: Per-call deadline in seconds.
        session: Optional pre-built ``requests.Session``.
    """

    def __init__(
        self,
        endpoint: str,
        identity: SigningIdentity,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.endpoint = normalize_endpoint(endpoint)
        self.identity = identity
        self.timeout = timeout
        self._session = session

    @property
    def connected(self) -> bool:
        return self._session is not None

    def open(self) -> None:
        """Create the session and probe liveness.

        Raises:
            WorkerConnectionError: If the access node does not answer.
        """
        if self._session is None:
            self._session = requests.Session()
        try:
            self.ping()
        except (RemoteError, RemoteTimeoutError) as e:
            raise WorkerConnectionError(
                f"Could not establish connection to {self.endpoint}: {e}"
            ) from e

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    # -- remote calls --

    def ping(self) -> None:
        self._request("GET", "/v1/blocks", params={"height": "final"})

    def get_account(self, address: str, height: int | None = None) -> Account:
        params = {
            "block_height": "sealed" if height is None else str(height),
            "expand": "keys,contracts",
        }
        data = self._request("GET", f"/v1/accounts/{normalize_address(address)}", params=params)
        return Account.from_json(data)

    def get_latest_block(self, sealed: bool = False, header_only: bool = False):
        return self._get_block({"height": _height(sealed)}, "/v1/blocks", header_only)

    def get_block_by_id(self, block_id: str, header_only: bool = False):
        return self._get_block({}, f"/v1/blocks/{block_id}", header_only)

    def get_block_by_height(self, height: int, header_only: bool = False):
        return self._get_block({"height": str(height)}, "/v1/blocks", header_only)

    def get_collection(self, collection_id: str) -> dict:
        return self._request("GET", f"/v1/collections/{collection_id}")

    def get_transaction(self, transaction_id: str) -> dict:
        return self._request("GET", f"/v1/transactions/{transaction_id}")

    def get_transaction_result(self, transaction_id: str) -> dict:
        """Fetch a transaction's result; ``status`` is parsed to ``TransactionStatus``."""
        data = self._request("GET", f"/v1/transaction_results/{transaction_id}")
        data["status"] = TransactionStatus.parse(data.get("status"))
        return data

    def get_events(self, event_type: str, start_height: int, end_height: int) -> list:
        params = {
            "type": event_type,
            "start_height": str(start_height),
            "end_height": str(end_height),
        }
        return self._request("GET", "/v1/events", params=params)

    def execute_script(self, script: bytes, arguments: list[bytes], height: int | None = None) -> Any:
        """Run a read-only script and decode its JSON-Cadence result."""
        body = {"script": _b64(script), "arguments": [_b64(a) for a in arguments]}
        params = {"block_height": "sealed" if height is None else str(height)}
        raw = self._request("POST", "/v1/scripts", params=params, json=body)
        try:
            value = base64.b64decode(raw)
        except (TypeError, ValueError) as e:
            raise RemoteError(f"Script result is not base64: {e}") from e
        return cadence.decode_result(value)

    def send_transaction(self, tx: Transaction) -> dict:
        return self._request("POST", "/v1/transactions", json=transaction_to_json(tx))

    # -- internal helpers --

    def _get_block(self, params: dict, path: str, header_only: bool):
        if not header_only:
            params = {**params, "expand": "payload"}
        data = self._request("GET", path, params=params)
        if isinstance(data, list):
            if not data:
                raise RemoteError(f"No block returned for {path}", 404)
            data = data[0]
        return BlockHeader.from_json(data) if header_only else Block.from_json(data)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        if self._session is None:
            raise RemoteError(f"Connection to {self.endpoint} is not open")
        url = f"{self.endpoint}{path}"
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise RemoteTimeoutError(
                f"{method} {url} exceeded {self.timeout}s deadline"
            ) from e
        except requests.RequestException as e:
            raise RemoteError(f"{method} {url} failed: {e}") from e

        if resp.status_code in (200, 201):
            try:
                return resp.json()
            except ValueError as e:
                raise RemoteError(f"{method} {url} returned invalid JSON", resp.status_code) from e

        try:
            msg = resp.json().get("message", resp.text)
        except Exception:
            msg = resp.text
        _LOG.debug("%s %s -> %s", method, url, resp.status_code)
        raise RemoteError(
            f"Access node rejected request ({resp.status_code}): {msg}",
            resp.status_code,
        )
