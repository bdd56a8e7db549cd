"""
Contract interfaces: ABI dispatch, event subscriptions and the bundled
ERC-20 and access contract clients.
"""

from monitorchain.contracts.access import AccessInterface
from monitorchain.contracts.base import ContractInterface
from monitorchain.contracts.dispatcher import ContractDispatcher, ContractMethod
from monitorchain.contracts.erc20 import ERC20Interface, TokenInfo
from monitorchain.contracts.events import EventSubscription

__all__ = [
    "ContractInterface",
    "ERC20Interface",
    "TokenInfo",
    "AccessInterface",
    "ContractDispatcher",
    "ContractMethod",
    "EventSubscription",
]
