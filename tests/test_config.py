"""Tests for network presets and environment configuration."""

from flowpool.config import FlowConfig, FlowNetwork, resolve_network


class TestResolveNetwork:
    def test_presets(self):
        assert resolve_network(FlowNetwork.EMULATOR) == "http://127.0.0.1:8888"
        assert resolve_network("testnet") == FlowNetwork.TESTNET.value
        assert resolve_network("MAINNET") == FlowNetwork.MAINNET.value

    def test_arbitrary_endpoint_passes_through(self):
        assert resolve_network("10.0.0.5:8070") == "10.0.0.5:8070"


class TestFromEnv:
    def test_defaults(self, monkeypatch):
        for name in ("FLOW_ACCESS_NODE", "FLOW_SERVICE_ADDRESS", "FLOW_PRIVATE_KEY", "FLOW_MAX_QUEUE"):
            monkeypatch.delenv(name, raising=False)
        config = FlowConfig.from_env()
        assert config.endpoint == FlowNetwork.EMULATOR.value
        assert config.service_address == "f8d6e0586b0a20c7"
        assert config.keys == []
        assert config.max_queue == 10_000

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("FLOW_ACCESS_NODE", "testnet")
        monkeypatch.setenv("FLOW_SERVICE_ADDRESS", "0x01cf0e2f2f715450")
        monkeypatch.setenv("FLOW_PRIVATE_KEY", "ab" * 32)
        monkeypatch.setenv("FLOW_KEY_INDEX", "2")
        monkeypatch.setenv("FLOW_TICK", "0.5")
        monkeypatch.setenv("FLOW_TIMEOUT", "5")
        monkeypatch.setenv("FLOW_MAX_QUEUE", "0")
        config = FlowConfig.from_env()
        assert config.endpoint == FlowNetwork.TESTNET.value
        assert config.service_address == "01cf0e2f2f715450"
        assert config.keys[0].key_id == 2
        assert config.tick == 0.5
        assert config.timeout == 5.0
        assert config.max_queue is None
