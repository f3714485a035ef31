from __future__ import annotations

import logging
from typing import Callable, Optional

from agri_resolver.price.models import BRIDGE_CURRENCY, is_usable_price, make_pair, normalize_asset, price_key
from agri_resolver.resolver.errors import SourceUnavailable
from agri_resolver.resolver.models import ResolutionPlan, ResolutionResult, worse_tier
from agri_resolver.resolver.orchestrator import FallbackOrchestrator

logger = logging.getLogger(__name__)

PlanLookup = Callable[[str], Optional[ResolutionPlan[float]]]
MockLookup = Callable[[str], Optional[float]]


class CrossRateBridge:
    """
    Exchange rates between any two supported assets.

    A pair with its own plan is resolved directly. Any other pair is composed
    from the two legs against the bridge currency, `rate(A, B) = A/USD / B/USD`,
    and carries the worse tier of its legs. Computation keeps full float
    precision; rounding is left to whoever presents the number.
    """

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        *,
        plan_for: PlanLookup,
        mock_for: MockLookup,
        bridge_currency: str = BRIDGE_CURRENCY,
    ) -> None:
        self._orchestrator = orchestrator
        self._plan_for = plan_for
        self._mock_for = mock_for
        self._bridge = normalize_asset(bridge_currency)

    @property
    def bridge_currency(self) -> str:
        return self._bridge

    async def rate(self, base: str, quote: str) -> ResolutionResult[float]:
        base = normalize_asset(base)
        quote = normalize_asset(quote)
        if base == quote:
            return self._identity()

        pair = make_pair(base, quote)
        plan = self._plan_for(pair)
        if plan is not None:
            return await self._orchestrator.resolve_plan(price_key(pair), plan, self._mock_for(pair), params=pair)

        base_leg = await self._leg(base)
        quote_leg = await self._leg(quote)
        try:
            value = self._compose(pair, base_leg.value, quote_leg.value)
        except SourceUnavailable as e:
            logger.warning("Bridged rate unusable, serving static cross rate. pair=%s reason=%s", pair, e.reason)
            return ResolutionResult(value=self._mock_for(pair), tier="mock", as_of=None)

        tier = worse_tier(base_leg.tier, quote_leg.tier)
        as_of = None
        if tier != "mock":
            as_of = min(base_leg.as_of, quote_leg.as_of)
        logger.debug(
            "Bridged rate resolved. pair=%s tier=%s legs=%s,%s",
            pair,
            tier,
            base_leg.tier,
            quote_leg.tier,
        )
        return ResolutionResult(value=value, tier=tier, as_of=as_of)

    def _identity(self) -> ResolutionResult[float]:
        return ResolutionResult(value=1.0, tier="live", as_of=self._orchestrator.cache.now_ms())

    async def _leg(self, asset: str) -> ResolutionResult[float]:
        if asset == self._bridge:
            return self._identity()
        pair = make_pair(asset, self._bridge)
        plan = self._plan_for(pair)
        if plan is None:
            raise ValueError(f"Unsupported asset: {asset} has no {self._bridge} price sources")
        return await self._orchestrator.resolve_plan(price_key(pair), plan, self._mock_for(pair), params=pair)

    def _compose(self, pair: str, numerator: Optional[float], denominator: Optional[float]) -> float:
        if not is_usable_price(numerator):
            raise SourceUnavailable("bridge", f"missing or non-positive base price for {pair}")
        if not is_usable_price(denominator):
            raise SourceUnavailable("bridge", f"missing or zero quote price for {pair}")
        return numerator / denominator

