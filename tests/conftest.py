"""
Shared fixtures: an in-memory node stand-in and a small test ABI.
"""

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from monitorchain.abi import ContractHandle
from monitorchain.config import CoordinatorConfig
from monitorchain.coordination import TransactionCoordinator

# =============================================================================
# Test Constants
# =============================================================================

WALLET = "0x1234567890123456789012345678901234567890"
OTHER_WALLET = "0x2222222222222222222222222222222222222222"
CONTRACT_ADDRESS = "0x9876543210987654321098765432109876543210"
DEPLOYED_ADDRESS = "0x3333333333333333333333333333333333333333"

TEST_ABI: List[dict] = [
    {"type": "constructor", "stateMutability": "nonpayable", "inputs": [{"name": "supply", "type": "uint256"}]},
    {"type": "function", "name": "totalSupply", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "uint256"}]},
    {"type": "function", "name": "balanceOf", "stateMutability": "view", "inputs": [{"name": "owner", "type": "address"}], "outputs": [{"name": "", "type": "uint256"}]},
    {"type": "function", "name": "transfer", "stateMutability": "nonpayable", "inputs": [{"name": "to", "type": "address"}, {"name": "value", "type": "uint256"}], "outputs": [{"name": "", "type": "bool"}]},
    {"type": "function", "name": "deposit", "stateMutability": "payable", "inputs": [], "outputs": []},
    {"type": "event", "name": "Transfer", "inputs": [{"name": "from", "type": "address", "indexed": True}, {"name": "to", "type": "address", "indexed": True}, {"name": "value", "type": "uint256", "indexed": False}]},
]


class StubFilter:
    """Log filter returning queued batches of entries."""

    def __init__(self) -> None:
        self.batches: List[Any] = []

    async def get_new_entries(self) -> List[Any]:
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch


class StubNode:
    """
    In-memory stand-in for NodeClient.

    ``send`` waits on ``release_sends`` when ``hold_sends`` is set, so
    tests can keep transactions in flight.
    """

    protocol = "ws"

    def __init__(self, network_nonce: int = 0, gas_price: int = 10, accounts: Optional[List[str]] = None) -> None:
        self.network_nonce = network_nonce
        self.gas_price = gas_price
        self.accounts = accounts if accounts is not None else [WALLET, OTHER_WALLET]
        self.local_accounts: List[str] = []
        self.block_number = 100
        self.sent: List[Dict[str, Any]] = []
        self.calls: List[Dict[str, Any]] = []
        self.call_results: Dict[str, Any] = {}
        self.send_error: Optional[Exception] = None
        self.nonce_error: Optional[Exception] = None
        self.hold_sends = False
        self._release_sends: Optional[asyncio.Event] = None
        self.past_events: List[Any] = []
        self.filters: Dict[str, StubFilter] = {}
        self.disconnected = False

    @property
    def release_sends(self) -> asyncio.Event:
        # Created on first use so it binds to the running test loop.
        if self._release_sends is None:
            self._release_sends = asyncio.Event()
        return self._release_sends

    def contract(self, abi, address=None, bytecode=None) -> ContractHandle:
        return ContractHandle(contract=SimpleNamespace(address=address), abi=abi, bytecode=bytecode)

    async def get_block(self, tag="latest"):
        return {"number": self.block_number}

    async def get_transaction_count(self, address, block_identifier="latest"):
        if self.nonce_error is not None:
            raise self.nonce_error
        return self.network_nonce

    async def get_gas_price(self):
        return self.gas_price

    async def get_accounts(self):
        return list(self.accounts)

    async def call(self, handle, method, args=(), options=None, block_identifier=None):
        self.calls.append(
            {"method": method, "args": tuple(args), "options": dict(options or {}), "block": block_identifier}
        )
        result = self.call_results.get(method)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(*args)
        return result

    async def send(self, handle, method, args=(), options=None, on_transaction_hash=None):
        options = dict(options or {})
        self.sent.append({"method": method, "args": tuple(args), "options": options})
        if self.hold_sends:
            await self.release_sends.wait()
        if self.send_error is not None:
            raise self.send_error
        receipt = {
            "status": 1,
            "gasUsed": 21000,
            "effectiveGasPrice": options.get("gasPrice"),
            "transactionHash": bytes([len(self.sent)]) * 32,
        }
        if method == "constructor":
            receipt["contractAddress"] = DEPLOYED_ADDRESS
        return receipt

    async def get_past_events(self, handle, event_names, from_block, to_block):
        return [e for e in self.past_events if e["event"] in list(event_names)]

    async def create_event_filter(self, handle, event_name):
        return self.filters.setdefault(event_name, StubFilter())

    async def disconnect(self):
        self.disconnected = True


class YieldingNode(StubNode):
    """StubNode whose chain queries suspend like a real transport."""

    async def get_block(self, tag="latest"):
        await asyncio.sleep(0)
        return await super().get_block(tag)

    async def get_transaction_count(self, address, block_identifier="latest"):
        await asyncio.sleep(0)
        return await super().get_transaction_count(address, block_identifier)


@pytest.fixture
def node() -> StubNode:
    return StubNode()


@pytest.fixture
def config() -> CoordinatorConfig:
    return CoordinatorConfig(backpressure_poll_interval=0.01, event_poll_interval=0.01)


@pytest.fixture
def coordinator(node: StubNode, config: CoordinatorConfig) -> TransactionCoordinator:
    return TransactionCoordinator(node, config)


@pytest.fixture
def handle(node: StubNode) -> ContractHandle:
    return node.contract(TEST_ABI, CONTRACT_ADDRESS)
