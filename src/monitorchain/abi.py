"""
ABI loading and classification.

Only the parts of an ABI the SDK acts on are interpreted: member names,
kinds (function, constructor, event), input types and state mutability.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from monitorchain.constants import CONSTRUCTOR_METHOD
from monitorchain.errors import ConfigurationError
from monitorchain.models import TxType

__all__ = [
    "ABI_DIR",
    "MethodKind",
    "AbiMember",
    "ContractHandle",
    "load_abi",
    "parse_abi",
]

# Bundled ABI directory
ABI_DIR = Path(__file__).parent / "abis"

_ABI_CACHE: Dict[str, List[dict]] = {}

READ_MUTABILITIES = frozenset({"view", "pure"})


class MethodKind(str, Enum):
    READ = "read"
    WRITE = "write"
    EVENT = "event"


@dataclass(frozen=True)
class AbiMember:
    """One ABI declaration the dispatcher can expose."""

    name: str
    kind: MethodKind
    input_names: Tuple[str, ...] = ()
    input_types: Tuple[str, ...] = ()
    output_types: Tuple[str, ...] = ()
    mutability: str = "nonpayable"

    @property
    def payable(self) -> bool:
        return self.mutability == "payable"

    @property
    def tx_type(self) -> Optional[TxType]:
        if self.kind is MethodKind.READ:
            return TxType.CALL
        if self.kind is MethodKind.WRITE:
            return TxType.SEND
        return None


def load_abi(name: str) -> List[dict]:
    """Load a bundled ABI JSON file with caching.

    Args:
        name: ABI filename (e.g., "erc20.json")

    Returns:
        Parsed ABI list
    """
    if name not in _ABI_CACHE:
        _ABI_CACHE[name] = json.loads((ABI_DIR / name).read_text())
    return _ABI_CACHE[name]


def _mutability(entry: Mapping[str, Any]) -> str:
    # Pre-0.4.16 compilers emit constant/payable flags instead.
    if "stateMutability" in entry:
        return entry["stateMutability"]
    if entry.get("constant"):
        return "view"
    if entry.get("payable"):
        return "payable"
    return "nonpayable"


def parse_abi(abi: Sequence[Mapping[str, Any]]) -> Dict[str, AbiMember]:
    """
    Classify ABI entries by name.

    Functions become READ (view/pure) or WRITE members, events become
    EVENT members and the constructor is registered under
    ``"constructor"``. For overloaded names the first declaration wins.

    Raises:
        ConfigurationError: If the ABI is not a list of entries
    """
    if not isinstance(abi, (list, tuple)):
        raise ConfigurationError("contract ABI must be a list of entries")

    members: Dict[str, AbiMember] = {}
    for entry in abi:
        entry_type = entry.get("type", "function")
        inputs = entry.get("inputs") or []
        names = tuple(i.get("name", "") for i in inputs)
        types = tuple(i.get("type", "") for i in inputs)

        if entry_type == "function":
            name = entry.get("name")
            mutability = _mutability(entry)
            kind = MethodKind.READ if mutability in READ_MUTABILITIES else MethodKind.WRITE
            outputs = tuple(o.get("type", "") for o in entry.get("outputs") or [])
        elif entry_type == "event":
            name = entry.get("name")
            mutability = "view"
            kind = MethodKind.EVENT
            outputs = ()
        elif entry_type == "constructor":
            name = CONSTRUCTOR_METHOD
            mutability = _mutability(entry)
            kind = MethodKind.WRITE
            outputs = ()
        else:
            continue

        if not name or name in members:
            continue
        members[name] = AbiMember(
            name=name,
            kind=kind,
            input_names=names,
            input_types=types,
            output_types=outputs,
            mutability=mutability,
        )

    if CONSTRUCTOR_METHOD not in members:
        members[CONSTRUCTOR_METHOD] = AbiMember(name=CONSTRUCTOR_METHOD, kind=MethodKind.WRITE)
    return members


@dataclass
class ContractHandle:
    """
    A web3 contract object paired with its classified ABI.

    Attributes:
        contract: ``web3`` AsyncContract (or a stand-in with the same shape)
        abi: Raw ABI list
        members: Classified ABI members by name
        bytecode: Deployment bytecode, when known
    """

    contract: Any
    abi: List[dict]
    members: Dict[str, AbiMember] = field(default_factory=dict)
    bytecode: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.members:
            self.members = parse_abi(self.abi)

    @property
    def address(self) -> Optional[str]:
        return getattr(self.contract, "address", None)

    def member(self, name: str) -> Optional[AbiMember]:
        member = self.members.get(name)
        if member is None or member.kind is MethodKind.EVENT:
            return None
        return member

    def classify(self, name: str) -> Optional[TxType]:
        """CALL for view/pure functions, SEND for other functions, None if unknown."""
        member = self.member(name)
        return member.tx_type if member else None

    def events(self) -> List[str]:
        return [m.name for m in self.members.values() if m.kind is MethodKind.EVENT]
