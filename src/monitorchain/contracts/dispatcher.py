"""
Contract call dispatch.

The dispatcher turns a contract's ABI into a table of awaitable
callables, one per function or event name. What a callable does depends
on the member kind:

- READ (view/pure): a direct ``eth_call`` against the node
- WRITE: a transaction intent submitted through the coordinator
- EVENT: a background subscription forwarding new logs to a callback

Every callable accepts an optional completion callback, either as the
``callback`` keyword or as the last positional argument. With a callback
the outcome is delivered as ``callback(error, result)``; without one the
result is returned and node errors are raised.

Example:
    >>> balance = await token.methods.balanceOf(holder)
    >>> await token.methods.transfer(to, 10, lambda err, receipt: ...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence

from monitorchain.abi import AbiMember, ContractHandle, MethodKind
from monitorchain.constants import CONSTRUCTOR_METHOD
from monitorchain.errors import ValidationError
from monitorchain.models import TransactionIntent, TxType
from monitorchain.utils.callbacks import Callback, capture, ensure_callback, settle, split_callback
from monitorchain.utils.logging import get_logger
from monitorchain.utils.validation import to_checksum

if TYPE_CHECKING:
    from monitorchain.contracts.base import ContractInterface

__all__ = ["ContractMethod", "ContractDispatcher", "normalize_args"]

_logger = get_logger(__name__)

_READ_OVERRIDES = frozenset({"block_identifier"})
_WRITE_OVERRIDES = frozenset({"value", "gas", "gas_price", "exclusive_lock"})


def normalize_args(member: AbiMember, args: Sequence[Any]) -> tuple:
    """
    Check the argument count and checksum address-typed arguments.

    Raises:
        ValidationError: On a count mismatch or an invalid address
    """
    if len(args) != len(member.input_types):
        raise ValidationError(
            f"{member.name} expects {len(member.input_types)} argument(s), got {len(args)}",
            details={"method": member.name, "inputs": list(member.input_types)},
        )

    normalized: List[Any] = []
    for name, abi_type, value in zip(member.input_names, member.input_types, args):
        field_name = name or member.name
        if abi_type == "address":
            value = to_checksum(value, field_name)
        elif abi_type == "address[]":
            if isinstance(value, str) or not isinstance(value, (list, tuple)):
                raise ValidationError(f"{field_name} must be a list of addresses")
            value = [to_checksum(v, field_name) for v in value]
        normalized.append(value)
    return tuple(normalized)


class ContractMethod:
    """Awaitable proxy for one ABI member of an attached contract."""

    def __init__(self, owner: "ContractInterface", member: AbiMember) -> None:
        self._owner = owner
        self.member = member

    @property
    def name(self) -> str:
        return self.member.name

    @property
    def kind(self) -> MethodKind:
        return self.member.kind

    def __repr__(self) -> str:
        return f"ContractMethod({self.name!r}, kind={self.kind.value})"

    async def __call__(self, *args: Any, callback: Optional[Callback] = None, **overrides: Any) -> Any:
        args, callback = split_callback(args, callback)

        if self.kind is MethodKind.EVENT:
            if args or overrides:
                raise ValidationError(f"event {self.name} takes only a callback")
            return await self._owner.on_event(self.name, ensure_callback(callback))

        if callback is not None:
            ensure_callback(callback)
        allowed = _READ_OVERRIDES if self.kind is MethodKind.READ else _WRITE_OVERRIDES
        unknown = set(overrides) - allowed
        if unknown:
            raise ValidationError(
                f"unexpected option(s) for {self.name}: {sorted(unknown)}",
                details={"allowed": sorted(allowed)},
            )
        args = normalize_args(self.member, args)

        if self.kind is MethodKind.READ:
            return await self._read(args, callback, **overrides)
        return await self._write(args, callback, **overrides)

    async def _read(
        self,
        args: tuple,
        callback: Optional[Callback],
        block_identifier: Any = None,
    ) -> Any:
        options = await self._owner.read_options()
        error, result = await capture(
            self._owner.node.call(
                self._owner.handle,
                self.name,
                args,
                options,
                block_identifier=block_identifier,
            )
        )
        return await settle(error, result, callback)

    async def _write(
        self,
        args: tuple,
        callback: Optional[Callback],
        value: Optional[int] = None,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
        exclusive_lock: bool = False,
    ) -> Any:
        if value and not self.member.payable:
            raise ValidationError(f"{self.name} is not payable")
        options = await self._owner.write_options(value=value, gas=gas, gas_price=gas_price)
        intent = TransactionIntent(
            address=options["from"],
            method=self.name,
            method_args=args,
            options=options,
            tx_type=TxType.SEND,
        )
        error, receipt = await self._owner.coordinator.submit(
            self._owner.handle, intent, exclusive_lock=exclusive_lock
        )
        return await settle(error, receipt, callback)


class ContractDispatcher:
    """
    Name-to-callable table built when a contract is attached.

    Members are reachable as attributes or by subscript:

        >>> await contract.methods.totalSupply()
        >>> await contract.methods["totalSupply"]()
    """

    def __init__(self, owner: "ContractInterface", handle: ContractHandle) -> None:
        self._table: Dict[str, ContractMethod] = {
            name: ContractMethod(owner, member)
            for name, member in handle.members.items()
            if name != CONSTRUCTOR_METHOD
        }
        _logger.debug(
            "Contract methods attached",
            extra={"contract": handle.address, "methods": len(self._table)},
        )

    def __getattr__(self, name: str) -> ContractMethod:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._table[name]
        except KeyError:
            raise AttributeError(f"contract has no method or event named {name!r}") from None

    def __getitem__(self, name: str) -> ContractMethod:
        return self.__getattr__(name)

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def names(self, kind: Optional[MethodKind] = None) -> List[str]:
        """Member names, optionally restricted to one kind."""
        return [name for name, method in self._table.items() if kind is None or method.kind is kind]
