"""Client configuration: network presets, service account, keys.

Environment variables (all overridable via constructor args):
    FLOW_ACCESS_NODE      – preset name (emulator, testnet, mainnet), host:port or URL
    FLOW_SERVICE_ADDRESS  – service account address (default emulator service account)
    FLOW_PRIVATE_KEY      – hex-encoded P-256 private key
    FLOW_KEY_INDEX        – key index of FLOW_PRIVATE_KEY on the account (default 0)
    FLOW_TICK             – scheduler tick in seconds (default 0.02)
    FLOW_TIMEOUT          – per-call deadline in seconds (default 30)
    FLOW_MAX_QUEUE        – pending-queue capacity, 0 for unbounded (default 10000)
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field

from .connection import DEFAULT_TIMEOUT
from .dispatcher import DEFAULT_MAX_QUEUE, DEFAULT_TICK
from .transaction import DEFAULT_GAS_LIMIT
from .types import FlowKey, normalize_address

EMULATOR_SERVICE_ADDRESS = "f8d6e0586b0a20c7"


class FlowNetwork(enum.Enum):
    """HTTP Access API endpoints of the public networks and a local emulator.

    These are the REST ports (``/v1/...``), not the gRPC ports.
    """

    EMULATOR = "http://127.0.0.1:8888"
    TESTNET = "https://rest-testnet.onflow.org"
    MAINNET = "https://rest-mainnet.onflow.org"


def resolve_network(network: FlowNetwork | str) -> str:
    """Map a preset (enum or its name) to an endpoint; pass anything else through."""
    if isinstance(network, FlowNetwork):
        return network.value
    try:
        return FlowNetwork[network.strip().upper()].value
    except KeyError:
        return network


@dataclass
class FlowConfig:
    network: FlowNetwork | str = FlowNetwork.EMULATOR
    service_address: str = EMULATOR_SERVICE_ADDRESS
    keys: list[FlowKey] = field(default_factory=list)
    tick: float = DEFAULT_TICK
    timeout: float = DEFAULT_TIMEOUT
    max_queue: int | None = DEFAULT_MAX_QUEUE
    gas_limit: int = DEFAULT_GAS_LIMIT

    def __post_init__(self):
        self.service_address = normalize_address(self.service_address)

    @property
    def endpoint(self) -> str:
        return resolve_network(self.network)

    @classmethod
    def from_env(cls) -> "FlowConfig":
        """Build a config from environment variables."""
        keys = []
        private_key = os.environ.get("FLOW_PRIVATE_KEY")
        if private_key:
            keys.append(FlowKey(int(os.environ.get("FLOW_KEY_INDEX", "0")), private_key))
        max_queue = int(os.environ.get("FLOW_MAX_QUEUE", str(DEFAULT_MAX_QUEUE)))
        return cls(
            network=os.environ.get("FLOW_ACCESS_NODE", FlowNetwork.EMULATOR.name),
            service_address=os.environ.get("FLOW_SERVICE_ADDRESS", EMULATOR_SERVICE_ADDRESS),
            keys=keys,
            tick=float(os.environ.get("FLOW_TICK", str(DEFAULT_TICK))),
            timeout=float(os.environ.get("FLOW_TIMEOUT", str(DEFAULT_TIMEOUT))),
            max_queue=max_queue or None,
        )
