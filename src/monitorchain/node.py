"""
Node RPC access.

NodeClient is the SDK's only path to the node. It wraps a
``web3.AsyncWeb3`` instance and provides exactly what the coordination
layer and the contract interfaces consume: block and nonce queries, gas
price, accounts, contract reads, transaction dispatch and event access.

Transactions from local accounts (mnemonic or private keys) are signed
in-process and sent raw; any other sender is left to the node's own
account management via ``eth_sendTransaction``.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncIPCProvider, AsyncWeb3, WebSocketProvider
from web3.exceptions import ContractLogicError, Web3RPCError
from web3.providers.persistent import PersistentConnectionProvider

from monitorchain.abi import ContractHandle
from monitorchain.constants import (
    CONSTRUCTOR_METHOD,
    HD_WALLET_COUNT,
    HD_WALLET_PATH,
    PROVIDER_TIMEOUT_SECONDS,
    SUPPORTED_PROTOCOLS,
)
from monitorchain.errors import ConfigurationError, MonitorChainError, RpcError, TransactionError
from monitorchain.utils.logging import get_logger
from monitorchain.utils.retry import RetryConfig, retry_async
from monitorchain.utils.validation import decode_revert_reason, to_checksum

__all__ = [
    "NodeClient",
    "connect",
    "create_node",
    "detect_protocol",
    "build_provider",
    "derive_accounts",
]

T = TypeVar("T")

_logger = get_logger(__name__)

# Send options that must be integers on the wire.
_INT_OPTIONS = ("gas", "gasPrice", "value", "nonce", "maxFeePerGas", "maxPriorityFeePerGas")


def detect_protocol(node_address: str) -> str:
    """
    Determine the transport for a node address.

    Raises:
        ConfigurationError: If the address is empty or the scheme unsupported
    """
    if not node_address:
        raise ConfigurationError("the node address is not defined")
    if node_address.endswith(".ipc"):
        return "ipc"
    protocol = node_address.split(":")[0]
    if protocol not in SUPPORTED_PROTOCOLS:
        raise ConfigurationError(
            f'"{protocol}" protocol is not supported! '
            f"Supported protocols: {list(SUPPORTED_PROTOCOLS)}",
            details={"node_address": node_address},
        )
    return protocol


def build_provider(node_address: str, timeout: int = PROVIDER_TIMEOUT_SECONDS) -> Any:
    """Create the async web3 provider matching the address scheme."""
    protocol = detect_protocol(node_address)
    if protocol in ("http", "https"):
        return AsyncHTTPProvider(node_address, request_kwargs={"timeout": timeout})
    if protocol in ("ws", "wss"):
        return WebSocketProvider(node_address)
    return AsyncIPCProvider(node_address)


def derive_accounts(mnemonic: str, count: int = HD_WALLET_COUNT) -> List[LocalAccount]:
    """Derive ``count`` accounts from a BIP-39 mnemonic on m/44'/60'/0'/0/i."""
    Account.enable_unaudited_hdwallet_features()
    try:
        return [
            Account.from_mnemonic(mnemonic, account_path=HD_WALLET_PATH.format(index=i))
            for i in range(count)
        ]
    except Exception:
        # Do not echo the mnemonic back through the exception message.
        raise ConfigurationError("Invalid mnemonic (not shown for security)") from None


def _translate(error: Exception) -> Exception:
    if isinstance(error, ContractLogicError):
        reason = error.message or str(error)
        if isinstance(error.data, str):
            reason = decode_revert_reason(error.data) or reason
        return RpcError(reason, code="CONTRACT_REVERT")
    if isinstance(error, Web3RPCError):
        payload = (error.rpc_response or {}).get("error") or {}
        reason = payload.get("message") if isinstance(payload, dict) else None
        return RpcError(reason or error.message, details={"rpc": payload})
    if isinstance(error, ValueError) and error.args and isinstance(error.args[0], dict):
        payload = error.args[0]
        reason = payload.get("message") or payload.get("reason")
        data = payload.get("data")
        if isinstance(data, str):
            reason = decode_revert_reason(data) or reason
        return RpcError(reason or str(error), details={"rpc": payload})
    return RpcError(str(error) or error.__class__.__name__)


class NodeClient:
    """
    Async adapter over a web3 node connection.

    Example:
        >>> node = await connect("wss://node.example.org", mnemonic="...")
        >>> block = await node.get_block("latest")
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        signers: Optional[Iterable[LocalAccount]] = None,
        retry: Optional[RetryConfig] = None,
        protocol: Optional[str] = None,
    ) -> None:
        self.w3 = w3
        self.protocol = protocol
        self._retry = retry or RetryConfig()
        self._signers: Dict[str, LocalAccount] = {
            acct.address: acct for acct in (signers or [])
        }

    @property
    def local_accounts(self) -> List[str]:
        return list(self._signers)

    async def connect(self) -> "NodeClient":
        """Open persistent (websocket/IPC) connections; no-op for HTTP."""
        provider = self.w3.provider
        if isinstance(provider, PersistentConnectionProvider):
            await provider.connect()
        return self

    async def disconnect(self) -> None:
        provider = self.w3.provider
        if isinstance(provider, PersistentConnectionProvider):
            await provider.disconnect()

    def contract(self, abi: List[dict], address: Optional[str] = None, bytecode: Optional[str] = None) -> ContractHandle:
        """Bind an ABI (and optionally an address/bytecode) to this node."""
        kwargs: Dict[str, Any] = {"abi": abi}
        if address is not None:
            kwargs["address"] = to_checksum(address, "contract address")
        if bytecode is not None:
            kwargs["bytecode"] = bytecode
        return ContractHandle(contract=self.w3.eth.contract(**kwargs), abi=abi, bytecode=bytecode)

    # ------------------------------------------------------------------
    # Read-only queries (retried on transient transport errors)
    # ------------------------------------------------------------------

    async def _query(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await retry_async(fn, self._retry, operation=operation)
        except MonitorChainError:
            raise
        except Exception as e:
            raise _translate(e) from e

    async def get_block(self, tag: Any = "latest") -> Mapping[str, Any]:
        return await self._query("get_block", lambda: self.w3.eth.get_block(tag))

    async def get_block_number(self) -> int:
        block = await self.get_block("latest")
        return int(block["number"])

    async def get_transaction_count(self, address: str, block_identifier: Any = "latest") -> int:
        return await self._query(
            "get_transaction_count",
            lambda: self.w3.eth.get_transaction_count(address, block_identifier),
        )

    async def get_gas_price(self) -> int:
        async def _price() -> int:
            return await self.w3.eth.gas_price

        return await self._query("get_gas_price", _price)

    async def get_accounts(self) -> List[str]:
        """Local signer addresses when configured, otherwise the node's accounts."""
        if self._signers:
            return list(self._signers)

        async def _accounts() -> List[str]:
            return list(await self.w3.eth.accounts)

        return await self._query("get_accounts", _accounts)

    # ------------------------------------------------------------------
    # Contract calls
    # ------------------------------------------------------------------

    async def call(
        self,
        handle: ContractHandle,
        method: str,
        args: Sequence[Any] = (),
        options: Optional[Mapping[str, Any]] = None,
        block_identifier: Any = None,
    ) -> Any:
        """Execute a read-only contract call (``eth_call``)."""
        tx = _normalize_options(options or {}, keep=("from", "value", "gas"))
        try:
            fn = handle.contract.functions[method](*args)
            if block_identifier is None:
                return await fn.call(tx)
            return await fn.call(tx, block_identifier=block_identifier)
        except MonitorChainError:
            raise
        except Exception as e:
            raise _translate(e) from e

    async def send(
        self,
        handle: ContractHandle,
        method: str,
        args: Sequence[Any] = (),
        options: Optional[Mapping[str, Any]] = None,
        on_transaction_hash: Optional[Callable[[str], Any]] = None,
    ) -> Mapping[str, Any]:
        """
        Dispatch a state-changing call and wait for its receipt.

        ``method == "constructor"`` deploys the handle's bytecode.

        Returns:
            Transaction receipt

        Raises:
            TransactionError: If the receipt status is not 1
            RpcError: If the node rejects or reverts the transaction
        """
        tx = _normalize_options(options or {})
        try:
            if method == CONSTRUCTOR_METHOD:
                fn = handle.contract.constructor(*args)
            else:
                fn = handle.contract.functions[method](*args)

            signer = self._signers.get(tx.get("from", ""))
            if signer is not None:
                built = await fn.build_transaction(tx)
                signed = signer.sign_transaction(built)
                tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = await fn.transact(tx)

            hash_hex = self.w3.to_hex(tx_hash)
            _logger.debug("Transaction sent", extra={"method": method, "tx_hash": hash_hex})
            if on_transaction_hash is not None:
                on_transaction_hash(hash_hex)

            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
            if receipt["status"] != 1:
                raise TransactionError(
                    f"Transaction failed: {hash_hex}",
                    tx_hash=hash_hex,
                    details={"gas_used": receipt.get("gasUsed")},
                )
            return receipt
        except MonitorChainError:
            raise
        except Exception as e:
            raise _translate(e) from e

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def get_past_events(
        self,
        handle: ContractHandle,
        event_names: Iterable[str],
        from_block: Any,
        to_block: Any,
    ) -> List[Any]:
        """Logs for ``event_names`` between two blocks, sorted by position."""
        events: List[Any] = []
        try:
            for name in event_names:
                event = getattr(handle.contract.events, name)
                events.extend(await event.get_logs(from_block=from_block, to_block=to_block))
        except MonitorChainError:
            raise
        except Exception as e:
            raise _translate(e) from e
        return sorted(events, key=lambda e: (e["blockNumber"], e["logIndex"]))

    async def create_event_filter(self, handle: ContractHandle, event_name: str) -> Any:
        event = getattr(handle.contract.events, event_name)
        return await event.create_filter(from_block="latest")


def _normalize_options(options: Mapping[str, Any], keep: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    tx: Dict[str, Any] = {}
    for key, value in options.items():
        if value is None or (keep is not None and key not in keep):
            continue
        tx[key] = int(value) if key in _INT_OPTIONS else value
    return tx


async def connect(
    node_address: str,
    mnemonic: Optional[str] = None,
    private_keys: Optional[Sequence[str]] = None,
    timeout: int = PROVIDER_TIMEOUT_SECONDS,
    retry: Optional[RetryConfig] = None,
) -> NodeClient:
    """
    Connect to a node.

    Args:
        node_address: ``http(s)://``, ``ws(s)://`` URL or path to a ``.ipc`` socket
        mnemonic: Derive local signing accounts from this mnemonic
        private_keys: Local signing accounts from raw keys
        timeout: HTTP request timeout in seconds
        retry: Retry policy for read-only queries

    Raises:
        ConfigurationError: On unsupported scheme or bad key material
    """
    return await create_node(node_address, mnemonic, private_keys, timeout, retry).connect()


def create_node(
    node_address: str,
    mnemonic: Optional[str] = None,
    private_keys: Optional[Sequence[str]] = None,
    timeout: int = PROVIDER_TIMEOUT_SECONDS,
    retry: Optional[RetryConfig] = None,
) -> NodeClient:
    """Build a NodeClient without opening persistent connections."""
    protocol = detect_protocol(node_address)
    signers: List[LocalAccount] = []
    if mnemonic and protocol != "ipc":
        signers.extend(derive_accounts(mnemonic))
    for key in private_keys or ():
        try:
            signers.append(Account.from_key(key))
        except Exception:
            raise ConfigurationError("Invalid private key format (key not shown for security)") from None
    w3 = AsyncWeb3(build_provider(node_address, timeout))
    return NodeClient(w3, signers=signers, retry=retry, protocol=protocol)
