"""
Billing Provider Base Classes
=============================

Defines the interface every billing backend implements so the entitlement
gate can stay backend-agnostic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Union


@dataclass
class EntitlementState:
    """Billing state for a set of plans, re-derived on every request."""
    has_active_payment: bool
    purchases: List[Dict[str, Any]] = field(default_factory=list)


class BillingProvider(ABC):
    """
    Abstract billing backend.

    Implementations must raise BillingError for every failure they can
    observe (network, malformed responses, rejected requests).
    """

    BACKEND_ID: str = "base"

    @abstractmethod
    async def check(self, plans: List[str]) -> EntitlementState:
        """Report whether any of ``plans`` has an active one-time payment."""
        pass

    @abstractmethod
    async def request(self, plan: str, is_test: bool, return_url: str) -> str:
        """
        Start a payment for ``plan``.

        Returns:
            Provider-issued confirmation URL the merchant must visit
        """
        pass

    async def require(
        self,
        plans: List[str],
        on_failure: Callable[[], Awaitable[Any]],
    ) -> Union[EntitlementState, Any]:
        """Return the active state, or the result of ``on_failure`` when none is active."""
        state = await self.check(plans)
        if state.has_active_payment:
            return state
        return await on_failure()
