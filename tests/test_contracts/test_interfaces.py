"""
Tests for the contract interfaces.

Tests cover:
- Construction and configuration errors
- Wallet selection and gas price handling
- Deployment, latest block, block events
- Event subscriptions and close()
- ERC-20 and access contract helpers
"""

import asyncio
from typing import Any, List

import pytest

from monitorchain.config import CoordinatorConfig
from monitorchain.contracts import AccessInterface, ContractInterface, ERC20Interface, TokenInfo
from monitorchain.coordination import TransactionCoordinator
from monitorchain.errors import ConfigurationError, RpcError, ValidationError

from conftest import CONTRACT_ADDRESS, DEPLOYED_ADDRESS, OTHER_WALLET, TEST_ABI, WALLET

TOKEN_A = "0x4444444444444444444444444444444444444444"
TOKEN_B = "0x5555555555555555555555555555555555555555"


async def _until(predicate, timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def contract(coordinator) -> ContractInterface:
    return ContractInterface(contract_address=CONTRACT_ADDRESS, abi=TEST_ABI, coordinator=coordinator)


# =============================================================================
# ContractInterface
# =============================================================================


class TestConstruction:
    """Tests for constructor validation."""

    def test_requires_node_or_web3(self) -> None:
        with pytest.raises(ConfigurationError, match="not defined"):
            ContractInterface(abi=TEST_ABI)

    def test_requires_contract_address_with_node_address(self) -> None:
        with pytest.raises(ConfigurationError):
            ContractInterface("http://localhost:8545", abi=TEST_ABI)

    def test_unsupported_protocol(self) -> None:
        with pytest.raises(ConfigurationError, match="not supported"):
            ContractInterface("ftp://localhost", CONTRACT_ADDRESS, abi=TEST_ABI)

    def test_http_node(self) -> None:
        contract = ContractInterface("http://localhost:8545", CONTRACT_ADDRESS, abi=TEST_ABI)
        assert contract.protocol == "http"
        assert contract.address == CONTRACT_ADDRESS

    def test_requires_abi(self, coordinator) -> None:
        with pytest.raises(ConfigurationError, match="ABI"):
            ContractInterface(contract_address=CONTRACT_ADDRESS, coordinator=coordinator)

    def test_interfaces_share_coordinator(self, coordinator) -> None:
        token = ERC20Interface(contract_address=CONTRACT_ADDRESS, coordinator=coordinator)
        access = AccessInterface(contract_address=TOKEN_A, coordinator=coordinator)
        assert token.coordinator is access.coordinator
        assert token.node is access.node


class TestWallet:
    """Tests for wallet selection."""

    def test_wallet_before_init(self, contract) -> None:
        with pytest.raises(ConfigurationError, match="init"):
            contract.wallet

    @pytest.mark.asyncio
    async def test_init_loads_accounts(self, contract) -> None:
        accounts = await contract.init()
        assert accounts == [WALLET, OTHER_WALLET]
        assert contract.wallet == WALLET

    @pytest.mark.asyncio
    async def test_select_wallet(self, contract) -> None:
        await contract.init()

        contract.wallet_index = 1
        assert contract.wallet == OTHER_WALLET

        contract.wallet = WALLET
        assert contract.wallet_index == 0

    @pytest.mark.asyncio
    async def test_invalid_wallet_selection(self, contract) -> None:
        await contract.init()
        with pytest.raises(ValidationError):
            contract.wallet_index = 5
        with pytest.raises(ValidationError):
            contract.wallet = TOKEN_A


class TestGasSettings:
    """Tests for gas price and limit."""

    def test_gas_price_set_in_gwei(self, contract) -> None:
        contract.gas_price = "1.5"
        assert contract.gas_price == 1_500_000_000
        contract.gas_price = None
        assert contract.gas_price is None

    def test_defaults_from_config(self, node) -> None:
        config = CoordinatorConfig(default_gas_price_gwei="2", gas_limit="300000")
        contract = ContractInterface(
            contract_address=CONTRACT_ADDRESS,
            abi=TEST_ABI,
            coordinator=TransactionCoordinator(node, config),
        )
        assert contract.gas_price == 2_000_000_000
        assert contract.gas_limit == "300000"

    @pytest.mark.asyncio
    async def test_fixed_gas_price_sent(self, contract, node) -> None:
        contract.gas_price = 3
        contract.gas_limit = "90000"
        await contract.transfer(OTHER_WALLET, 1)

        options = node.sent[0]["options"]
        assert options["gasPrice"] == 3_000_000_000
        assert options["gas"] == 90000


class TestOperations:
    """Tests for deploy, latest and events_at_block."""

    @pytest.mark.asyncio
    async def test_deploy_attaches(self, coordinator, node) -> None:
        contract = ContractInterface(abi=TEST_ABI, coordinator=coordinator)
        assert contract.address is None

        receipt = await contract.deploy("0x6080", 1000)

        assert receipt["contractAddress"] == DEPLOYED_ADDRESS
        assert contract.address == DEPLOYED_ADDRESS
        assert node.sent[0]["method"] == "constructor"
        assert node.sent[0]["args"] == (1000,)
        assert coordinator.stats().confirmed == 1

    @pytest.mark.asyncio
    async def test_deploy_failure(self, coordinator, node) -> None:
        contract = ContractInterface(abi=TEST_ABI, coordinator=coordinator)
        node.send_error = RpcError("out of gas")

        with pytest.raises(RpcError):
            await contract.deploy("0x6080", 1000)
        assert contract.address is None

    @pytest.mark.asyncio
    async def test_latest(self, contract) -> None:
        assert await contract.latest() == 100

    @pytest.mark.asyncio
    async def test_events_at_block(self, contract, node) -> None:
        node.past_events = [{"event": "Transfer", "blockNumber": 100, "logIndex": 0}]
        seen: List[Any] = []

        await contract.events_at_block("0x64", lambda err, events: seen.append(events))

        assert seen == [node.past_events]


class TestEvents:
    """Tests for event subscriptions."""

    @pytest.mark.asyncio
    async def test_events_forwarded_until_close(self, contract, node) -> None:
        seen: List[Any] = []
        subscription = await contract.on_event("Transfer", lambda err, event: seen.append((err, event)))
        assert subscription.active

        node.filters["Transfer"].batches.append([{"event": "Transfer", "logIndex": 0}])
        await _until(lambda: len(seen) == 1)
        assert seen[0] == (None, {"event": "Transfer", "logIndex": 0})

        await contract.close()
        assert not subscription.active
        assert node.disconnected

    @pytest.mark.asyncio
    async def test_polling_error_delivered(self, contract, node) -> None:
        seen: List[Any] = []
        subscription = await contract.methods.Transfer(lambda err, event: seen.append((err, event)))

        node.filters["Transfer"].batches.append(ConnectionError("filter gone"))
        await _until(lambda: len(seen) == 1)
        assert isinstance(seen[0][0], ConnectionError)
        assert subscription.active

        await subscription.stop()

    @pytest.mark.asyncio
    async def test_unknown_event(self, contract) -> None:
        with pytest.raises(ValidationError):
            await contract.on_event("Minted", lambda err, event: None)


# =============================================================================
# ERC20Interface
# =============================================================================


@pytest.fixture
def token(coordinator) -> ERC20Interface:
    return ERC20Interface(contract_address=CONTRACT_ADDRESS, coordinator=coordinator)


class TestERC20:
    """Tests for the ERC-20 helpers."""

    @pytest.mark.asyncio
    async def test_token_info(self, token, node) -> None:
        node.call_results.update(
            {"totalSupply": 10**21, "name": "Monitor", "symbol": "MON", "decimals": 18, "paused": RpcError("no")}
        )

        info = await token.token_info()

        assert isinstance(info, TokenInfo)
        assert info.total_supply == 10**21
        assert info.symbol == "MON"
        assert info.decimals == 18
        assert info.paused is None
        assert token.info is info

    @pytest.mark.asyncio
    async def test_token_info_error(self, token, node) -> None:
        node.call_results["totalSupply"] = RpcError("not a token")
        seen: List[Any] = []

        await token.token_info(lambda err, info: seen.append((err, info)))

        assert isinstance(seen[0][0], RpcError)
        assert token.info is None

    @pytest.mark.asyncio
    async def test_balance_of_at_block(self, token, node) -> None:
        node.call_results["balanceOf"] = 7

        assert await token.balance_of_at_block(OTHER_WALLET, "0x10") == 7
        assert node.calls[-1]["block"] == 16
        assert node.calls[-1]["args"] == (OTHER_WALLET,)

    @pytest.mark.asyncio
    async def test_value_of_at_block_wraps_single_param(self, token, node) -> None:
        node.call_results["balanceOf"] = 1
        await token.value_of_at_block("balanceOf", 5, WALLET)
        assert node.calls[-1]["args"] == (WALLET,)

    @pytest.mark.asyncio
    async def test_value_of_at_block_rejects_writes(self, token) -> None:
        with pytest.raises(ValidationError):
            await token.value_of_at_block("transfer", 5, [WALLET, 1])

    @pytest.mark.asyncio
    async def test_send_method(self, token, node) -> None:
        await token.send_method("approve", [OTHER_WALLET, 100])
        assert node.sent[0]["method"] == "approve"
        assert node.sent[0]["args"] == (OTHER_WALLET, 100)

    @pytest.mark.asyncio
    async def test_on_transfer(self, token, node) -> None:
        subscription = await token.on_transfer(lambda err, event: None)
        assert subscription.event_name == "Transfer"
        await token.close()


# =============================================================================
# AccessInterface
# =============================================================================


@pytest.fixture
def access(coordinator, node) -> AccessInterface:
    node.call_results.update(
        {
            "minDays": 30,
            "isExistingSubscriber": False,
            "calculatePrice": lambda days, tokens: days * max(tokens, 5) * 10,
            "getAllSupportedTokens": [TOKEN_A, TOKEN_B],
            "isSubscribedToToken": lambda token: token == TOKEN_A,
        }
    )
    return AccessInterface(contract_address=DEPLOYED_ADDRESS, coordinator=coordinator)


class TestAccess:
    """Tests for the access contract helpers."""

    @pytest.mark.asyncio
    async def test_reads_sent_from_wallet(self, access, node) -> None:
        await access.minDays()
        assert node.calls[-1]["options"] == {"from": WALLET}

    @pytest.mark.asyncio
    async def test_subscribe_defaults(self, access, node) -> None:
        await access.subscribe([TOKEN_A, TOKEN_B.lower()])

        sent = node.sent[0]
        assert sent["method"] == "subscribe"
        assert sent["args"] == (WALLET, 30, [TOKEN_A, TOKEN_B])
        assert sent["options"]["value"] == 30 * 5 * 10

    @pytest.mark.asyncio
    async def test_subscribe_requires_tokens(self, access) -> None:
        with pytest.raises(ValidationError):
            await access.subscribe([])

    @pytest.mark.asyncio
    async def test_subscribe_minimum_days_for_new_subscriber(self, access) -> None:
        with pytest.raises(ValidationError, match="minimum number of days"):
            await access.subscribe([TOKEN_A], number_of_days=10)

    @pytest.mark.asyncio
    async def test_existing_subscriber_may_extend_briefly(self, access, node) -> None:
        node.call_results["isExistingSubscriber"] = True
        await access.subscribe([TOKEN_A], number_of_days=10)
        assert node.sent[0]["args"][1] == 10

    @pytest.mark.asyncio
    async def test_subscribe_insufficient_payment(self, access, node) -> None:
        with pytest.raises(ValidationError, match="Not enough wei"):
            await access.subscribe([TOKEN_A], wei_amount=1)
        assert node.sent == []

    @pytest.mark.asyncio
    async def test_subscribe_node_error_to_callback(self, access, node) -> None:
        node.call_results["minDays"] = RpcError("node down")
        seen: List[Any] = []

        await access.subscribe([TOKEN_A], callback=lambda err, receipt: seen.append(err))

        assert isinstance(seen[0], RpcError)

    @pytest.mark.asyncio
    async def test_subscribe_all(self, access, node) -> None:
        await access.subscribe_all(number_of_days=60, access_address=OTHER_WALLET)

        sent = node.sent[0]
        assert sent["method"] == "subscribeAll"
        assert sent["args"] == (OTHER_WALLET, 60)
        assert sent["options"]["value"] == 60 * 5 * 10

    @pytest.mark.asyncio
    async def test_get_tokens_subscribed_to(self, access) -> None:
        assert await access.get_tokens_subscribed_to() == [TOKEN_A]

    @pytest.mark.asyncio
    async def test_add_token_to_subscription(self, access, node) -> None:
        await access.add_token_to_subscription(TOKEN_B)
        assert node.sent[0]["args"][2] == [TOKEN_A, TOKEN_B]

    @pytest.mark.asyncio
    async def test_on_status_changed(self, access) -> None:
        subscription = await access.on_status_changed(lambda err, event: None)
        assert subscription.event_name == "TokenStatusChanged"
        await access.close()
