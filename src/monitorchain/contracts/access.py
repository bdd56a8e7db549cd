"""
Access contract interface.

The access contract sells time-limited subscriptions to token status
feeds. Its read-only members answer for the caller, so every read is
sent with ``from`` set to the interface's wallet.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from monitorchain.contracts.base import ContractInterface
from monitorchain.contracts.events import EventSubscription
from monitorchain.errors import ValidationError
from monitorchain.utils.callbacks import Callback, capture, settle
from monitorchain.utils.logging import get_logger
from monitorchain.utils.validation import to_checksum, validate_amount

__all__ = ["AccessInterface"]

_logger = get_logger(__name__)

STATUS_CHANGED_EVENT = "TokenStatusChanged"


class AccessInterface(ContractInterface):
    """
    Client for the access (subscription) contract.

    Example:
        >>> access = AccessInterface("wss://node.example.org", access_address, mnemonic=words)
        >>> await access.subscribe([token_a, token_b], number_of_days=30)
        >>> await access.on_status_changed(handle_status)
    """

    default_abi = "access_interface.json"

    async def read_options(self) -> Dict[str, Any]:
        await self.init()
        return {"from": self.wallet}

    async def subscribe(
        self,
        token_addresses: Sequence[str],
        number_of_days: Optional[int] = None,
        access_address: Optional[str] = None,
        wei_amount: Optional[Union[int, str]] = None,
        callback: Optional[Callback] = None,
    ) -> Any:
        """
        Subscribe to status feeds for ``token_addresses``.

        Args:
            token_addresses: Non-empty list of token addresses
            number_of_days: Subscription length; defaults to ``minDays``
            access_address: Account granted access; defaults to the wallet
            wei_amount: Payment in wei; defaults to ``calculatePrice``

        Returns:
            The transaction receipt (or the callback's return value)

        Raises:
            ValidationError: On an empty token list, too few days for a new
                subscriber or a payment below the price
        """
        if isinstance(token_addresses, str) or not token_addresses:
            raise ValidationError("token_addresses must be a non-empty list of addresses")
        tokens = [to_checksum(t, "token address") for t in token_addresses]

        terms = await self._terms(number_of_days, access_address, wei_amount, len(tokens))
        if isinstance(terms, Exception):
            return await settle(terms, None, callback)
        address, days, amount = terms

        _logger.info(
            "Subscribing to tokens",
            extra={"access_address": address, "days": days, "tokens": len(tokens), "wei": amount},
        )
        return await self.methods.subscribe(address, days, tokens, value=amount, callback=callback)

    async def subscribe_all(
        self,
        number_of_days: Optional[int] = None,
        access_address: Optional[str] = None,
        wei_amount: Optional[Union[int, str]] = None,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Subscribe to every supported token."""
        terms = await self._terms(number_of_days, access_address, wei_amount, 0)
        if isinstance(terms, Exception):
            return await settle(terms, None, callback)
        address, days, amount = terms

        _logger.info(
            "Subscribing to all tokens",
            extra={"access_address": address, "days": days, "wei": amount},
        )
        return await self.methods.subscribeAll(address, days, value=amount, callback=callback)

    async def _terms(
        self,
        number_of_days: Optional[int],
        access_address: Optional[str],
        wei_amount: Optional[Union[int, str]],
        token_count: int,
    ) -> Union[Exception, tuple]:
        # Node errors are returned; argument errors raise.
        await self.init()
        address = to_checksum(access_address or self.wallet, "access_address")

        error, min_days = await capture(self.methods.minDays())
        if error is not None:
            return error
        min_days = int(min_days)
        days = int(number_of_days) if number_of_days else min_days

        error, existing = await capture(self.methods.isExistingSubscriber())
        if error is not None:
            return error
        if not existing and days < min_days:
            raise ValidationError(
                f"The minimum number of days for a new subscription is {min_days}",
                details={"number_of_days": days},
            )

        error, price = await capture(self.methods.calculatePrice(days, token_count))
        if error is not None:
            return error
        price = int(price)
        amount = price if wei_amount is None else validate_amount(wei_amount, "wei_amount")
        if amount < price:
            raise ValidationError(
                f"Not enough wei to pay. The minimum required amount is {price}",
                details={"wei_amount": amount, "price": price},
            )
        return address, days, amount

    async def get_tokens_subscribed_to(self, callback: Optional[Callback] = None) -> Any:
        """Supported tokens the wallet is currently subscribed to."""

        async def _subscribed() -> List[str]:
            tokens = await self.methods.getAllSupportedTokens()
            return [t for t in tokens if await self.methods.isSubscribedToToken(t)]

        error, tokens = await capture(_subscribed())
        return await settle(error, tokens, callback)

    async def add_token_to_subscription(
        self,
        token_address: str,
        number_of_days: Optional[int] = None,
        access_address: Optional[str] = None,
        wei_amount: Optional[Union[int, str]] = None,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Re-subscribe with the current tokens plus ``token_address``."""
        token = to_checksum(token_address, "token_address")
        error, current = await capture(self.get_tokens_subscribed_to())
        if error is not None:
            return await settle(error, None, callback)
        tokens = [t for t in current if to_checksum(t) != token] + [token]
        return await self.subscribe(tokens, number_of_days, access_address, wei_amount, callback)

    async def on_status_changed(self, callback: Callback) -> EventSubscription:
        return await self.on_event(STATUS_CHANGED_EVENT, callback)
