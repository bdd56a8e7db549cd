"""
Base contract interface.

ContractInterface binds one contract ABI to a node connection and a
transaction coordinator. It owns the wallet selection and default send
options, exposes the ABI as a dispatcher under ``methods`` and forwards
unknown attributes to it, so ``await contract.totalSupply()`` and
``await contract.methods.totalSupply()`` are the same call.

Interfaces sharing a coordinator draw nonces from one ledger:

    >>> token = ERC20Interface("wss://node.example.org", token_address, mnemonic=words)
    >>> access = AccessInterface(contract_address=access_address, coordinator=token.coordinator)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from web3 import AsyncWeb3

from monitorchain.abi import ContractHandle, load_abi
from monitorchain.config import CoordinatorConfig
from monitorchain.constants import CONSTRUCTOR_METHOD
from monitorchain.contracts.dispatcher import ContractDispatcher
from monitorchain.contracts.events import EventSubscription
from monitorchain.coordination import TransactionCoordinator
from monitorchain.errors import ConfigurationError, ValidationError
from monitorchain.models import LedgerStats, TransactionIntent, TxType
from monitorchain.node import NodeClient, create_node
from monitorchain.utils.callbacks import Callback, capture, ensure_callback, settle
from monitorchain.utils.logging import get_logger
from monitorchain.utils.validation import gwei_to_wei, to_block_number, to_checksum

__all__ = ["ContractInterface"]

_logger = get_logger(__name__)


class ContractInterface:
    """
    Generic client for one deployed (or to-be-deployed) contract.

    Args:
        node_address: ``http(s)://``, ``ws(s)://`` URL or ``.ipc`` path
        contract_address: Address of the deployed contract
        abi: Contract ABI; subclasses fall back to ``default_abi``
        mnemonic: Derive signing accounts from this mnemonic
        web3: Use an existing ``AsyncWeb3`` instead of ``node_address``
        private_keys: Signing accounts from raw private keys
        coordinator: Share an existing coordinator (and its node)
        config: Coordinator settings when a new coordinator is created

    Raises:
        ConfigurationError: If neither a node nor a usable contract
            address is given, or the ABI is missing
    """

    # Bundled ABI filename used when no ``abi`` is passed.
    default_abi: Optional[str] = None

    def __init__(
        self,
        node_address: Optional[str] = None,
        contract_address: Optional[str] = None,
        abi: Optional[List[dict]] = None,
        mnemonic: Optional[str] = None,
        web3: Optional[AsyncWeb3] = None,
        *,
        private_keys: Optional[Sequence[str]] = None,
        coordinator: Optional[TransactionCoordinator] = None,
        config: Optional[CoordinatorConfig] = None,
    ) -> None:
        if coordinator is not None:
            self.config = config or coordinator.config
            node = coordinator.node
        else:
            self.config = config or CoordinatorConfig()
            node = self._create_node(node_address, contract_address, mnemonic, web3, private_keys)
            coordinator = TransactionCoordinator(node, self.config)

        self.node: NodeClient = node
        self.coordinator = coordinator
        self.protocol = node.protocol

        if abi is None and self.default_abi is not None:
            abi = load_abi(self.default_abi)
        if abi is None:
            raise ConfigurationError("contract ABI is not defined")
        self.abi = abi

        self.handle: ContractHandle
        self.methods: ContractDispatcher
        self._attach(contract_address)

        self.accounts: Optional[List[str]] = node.local_accounts or None
        self._wallet_index = 0
        self._gas_price: Optional[int] = None
        if self.config.default_gas_price_gwei is not None:
            self.gas_price = self.config.default_gas_price_gwei
        self.gas_limit: str = self.config.gas_limit
        self._subscriptions: List[EventSubscription] = []

    def _create_node(
        self,
        node_address: Optional[str],
        contract_address: Optional[str],
        mnemonic: Optional[str],
        web3: Optional[AsyncWeb3],
        private_keys: Optional[Sequence[str]],
    ) -> NodeClient:
        if web3 is not None:
            return NodeClient(web3, retry=self.config.rpc_retry)
        if not node_address or not contract_address:
            raise ConfigurationError(
                "The node address and/or the contract's address is/are not defined"
            )
        return create_node(
            node_address,
            mnemonic,
            private_keys,
            timeout=self.config.rpc_timeout,
            retry=self.config.rpc_retry,
        )

    def _attach(self, address: Optional[str], bytecode: Optional[str] = None) -> None:
        self.handle = self.node.contract(self.abi, address, bytecode)
        self.methods = ContractDispatcher(self, self.handle)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names not found normally.
        methods = self.__dict__.get("methods")
        if methods is None or name.startswith("_"):
            raise AttributeError(name)
        try:
            return methods[name]
        except AttributeError:
            raise AttributeError(
                f"{type(self).__name__!s} has no attribute or contract member {name!r}"
            ) from None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self.address!r}, protocol={self.protocol!r})"

    # ------------------------------------------------------------------
    # Wallet and send options
    # ------------------------------------------------------------------

    @property
    def address(self) -> Optional[str]:
        return self.handle.address

    @property
    def wallet(self) -> str:
        """The account transactions are sent from."""
        if not self.accounts:
            raise ConfigurationError(
                "The wallet has not been initialized yet. Call 'init' to set up the wallet"
            )
        return self.accounts[self._wallet_index]

    @wallet.setter
    def wallet(self, value: Union[int, str]) -> None:
        if isinstance(value, int):
            self.wallet_index = value
            return
        if not self.accounts:
            raise ConfigurationError("The wallet has not been initialized yet")
        address = to_checksum(value, "wallet")
        try:
            self._wallet_index = [to_checksum(a) for a in self.accounts].index(address)
        except ValueError:
            raise ValidationError(f"{address} is not one of the available accounts") from None

    @property
    def wallet_index(self) -> int:
        return self._wallet_index

    @wallet_index.setter
    def wallet_index(self, index: int) -> None:
        if index < 0 or (self.accounts and index >= len(self.accounts)):
            raise ValidationError(f"wallet index {index} is out of range")
        self._wallet_index = index

    @property
    def gas_price(self) -> Optional[int]:
        """Fixed gas price in wei, or None to follow the node's price."""
        return self._gas_price

    @gas_price.setter
    def gas_price(self, gwei: Optional[Union[int, float, str, Decimal]]) -> None:
        self._gas_price = None if gwei is None else gwei_to_wei(gwei)

    async def init(self) -> List[str]:
        """Load the account list (local signers, else the node's accounts)."""
        if not self.accounts:
            self.accounts = await self.node.get_accounts()
            _logger.debug("Accounts loaded", extra={"accounts": len(self.accounts)})
        return self.accounts

    async def read_options(self) -> Dict[str, Any]:
        """Options passed with every read-only call."""
        return {}

    async def write_options(
        self,
        value: Optional[int] = None,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Options for a state-changing call.

        ``gas_price`` overrides are in wei; None falls back to the
        interface's ``gas_price``, then to the submitter's node-based price.
        """
        await self.init()
        return {
            "from": self.wallet,
            "gas": int(gas if gas is not None else self.gas_limit),
            "gasPrice": gas_price if gas_price is not None else self._gas_price,
            "value": value,
        }

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def deploy(
        self,
        bytecode: str,
        *args: Any,
        callback: Optional[Callback] = None,
        value: Optional[int] = None,
    ) -> Any:
        """
        Deploy the contract and attach this interface to the new address.

        Returns:
            The deployment receipt (or the callback's return value)
        """
        if not bytecode:
            raise ValidationError("bytecode is required to deploy a contract")
        handle = self.node.contract(self.abi, bytecode=bytecode)
        options = await self.write_options(value=value)
        intent = TransactionIntent(
            address=options["from"],
            method=CONSTRUCTOR_METHOD,
            method_args=args,
            options=options,
            tx_type=TxType.SEND,
        )
        error, receipt = await self.coordinator.submit(handle, intent)
        if error is None:
            self._attach(receipt["contractAddress"], bytecode)
            _logger.info("Contract deployed", extra={"contract": self.address})
        return await settle(error, receipt, callback)

    async def latest(self, callback: Optional[Callback] = None) -> Any:
        """Latest block number."""

        async def _number() -> int:
            return to_block_number((await self.node.get_block("latest"))["number"])

        error, number = await capture(_number())
        return await settle(error, number, callback)

    async def events_at_block(self, block: Union[int, str], callback: Optional[Callback] = None) -> Any:
        """All of this contract's events emitted in one block, in log order."""
        number = to_block_number(block)
        error, events = await capture(
            self.node.get_past_events(self.handle, self.handle.events(), number, number)
        )
        return await settle(error, events, callback)

    async def on_event(self, event_name: str, callback: Callback) -> EventSubscription:
        """Forward new ``event_name`` logs to ``callback(error, event)``."""
        ensure_callback(callback)
        if event_name not in self.handle.events():
            raise ValidationError(
                f"contract has no event named {event_name!r}",
                details={"events": self.handle.events()},
            )
        subscription = EventSubscription(
            self.node,
            self.handle,
            event_name,
            callback,
            poll_interval=self.config.event_poll_interval,
        )
        await subscription.start()
        self._subscriptions.append(subscription)
        return subscription

    def stats(self, label: Optional[str] = None) -> LedgerStats:
        return self.coordinator.stats(label)

    async def close(self) -> None:
        """Stop event subscriptions and close persistent connections."""
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.stop()
        await self.node.disconnect()
