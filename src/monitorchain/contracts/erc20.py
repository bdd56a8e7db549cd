"""ERC-20 token interface."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from web3 import AsyncWeb3

from monitorchain.abi import MethodKind
from monitorchain.contracts.base import ContractInterface
from monitorchain.contracts.events import EventSubscription
from monitorchain.errors import ValidationError
from monitorchain.utils.callbacks import Callback, capture, settle
from monitorchain.utils.logging import get_logger
from monitorchain.utils.validation import to_block_number

__all__ = ["ERC20Interface", "TokenInfo"]

_logger = get_logger(__name__)


@dataclass
class TokenInfo:
    """Token metadata; fields the token does not implement are None."""

    address: Optional[str]
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: int = 0
    total_supply: int = 0
    paused: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ERC20Interface(ContractInterface):
    """
    Client for an ERC-20 token using the bundled ABI.

    Example:
        >>> token = ERC20Interface("https://node.example.org", token_address)
        >>> info = await token.token_info()
        >>> balance = await token.balance_of_at_block(holder, 1_200_000)
    """

    default_abi = "erc20.json"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.info: Optional[TokenInfo] = None

    @classmethod
    def from_web3(
        cls,
        web3: AsyncWeb3,
        contract_address: Optional[str] = None,
        abi: Optional[List[dict]] = None,
        **kwargs: Any,
    ) -> "ERC20Interface":
        """Build an interface on an existing ``AsyncWeb3`` connection."""
        return cls(contract_address=contract_address, abi=abi, web3=web3, **kwargs)

    async def token_info(self, callback: Optional[Callback] = None) -> Any:
        """
        Read and cache the token's metadata.

        Optional members (``name``, ``symbol``, ``decimals``, ``paused``)
        that fail or are missing are left unset; a failing
        ``totalSupply`` is reported as the error.
        """
        error, total_supply = await capture(self.methods.totalSupply())
        if error is not None:
            return await settle(error, None, callback)

        info = TokenInfo(address=self.address, total_supply=int(total_supply or 0))
        info.name = await self._optional("name")
        info.symbol = await self._optional("symbol")
        info.decimals = int(await self._optional("decimals") or 0)
        info.paused = await self._optional("paused")
        self.info = info
        _logger.debug("Token info loaded", extra={"contract": self.address, "symbol": info.symbol})
        return await settle(None, info, callback)

    async def _optional(self, name: str) -> Any:
        if name not in self.methods:
            return None
        error, value = await capture(self.methods[name]())
        if error is not None:
            _logger.debug("Optional token field unavailable", extra={"field": name, "error": str(error)})
            return None
        return value

    async def balance_of_at_block(
        self,
        holder: str,
        block: Union[int, str],
        callback: Optional[Callback] = None,
    ) -> Any:
        """``holder``'s balance as of ``block``."""
        return await self.value_of_at_block("balanceOf", block, [holder], callback)

    async def total_supply_at_block(self, block: Union[int, str], callback: Optional[Callback] = None) -> Any:
        return await self.value_of_at_block("totalSupply", block, None, callback)

    async def value_of_at_block(
        self,
        name: str,
        block: Union[int, str],
        params: Union[None, Any, Sequence[Any]] = None,
        callback: Optional[Callback] = None,
    ) -> Any:
        """
        Call any read-only member as of a historical block.

        Args:
            name: Read-only member name
            block: Block number (int, decimal or hex string)
            params: Argument list; a single non-list value is wrapped
        """
        method = self._read_method(name)
        args = _as_args(params)
        return await method(*args, callback=callback, block_identifier=to_block_number(block))

    async def send_method(
        self,
        name: str,
        params: Union[None, Any, Sequence[Any]] = None,
        callback: Optional[Callback] = None,
        **overrides: Any,
    ) -> Any:
        """Submit any state-changing member by name."""
        if name not in self.methods:
            raise ValidationError(f"token has no method named {name!r}")
        return await self.methods[name](*_as_args(params), callback=callback, **overrides)

    async def on_transfer(self, callback: Callback) -> EventSubscription:
        return await self.on_event("Transfer", callback)

    async def on_approval(self, callback: Callback) -> EventSubscription:
        return await self.on_event("Approval", callback)

    def _read_method(self, name: str) -> Any:
        if name not in self.methods or self.methods[name].kind is not MethodKind.READ:
            raise ValidationError(f"token has no read-only method named {name!r}")
        return self.methods[name]


def _as_args(params: Union[None, Any, Sequence[Any]]) -> tuple:
    if params is None:
        return ()
    if isinstance(params, (list, tuple)):
        return tuple(params)
    return (params,)
