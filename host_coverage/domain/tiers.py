"""
Tier Resolver
=============

Maps the pair of coverage-track statuses to an earnings tier and the
platform commission rate.

=================  ==========  ==========  ==========
Commercial         P2P         Tier        Commission
=================  ==========  ==========  ==========
ACTIVE             (any)       PREMIUM     0.10
not ACTIVE         ACTIVE      STANDARD    0.25
not ACTIVE         not ACTIVE  BASIC       0.60
=================  ==========  ==========  ==========

Only ACTIVE vs. not-ACTIVE matters here; PENDING, INACTIVE, REJECTED and
NONE are indistinguishable to the resolver.

Complexity: O(1).
"""

from __future__ import annotations

from dataclasses import dataclass

from .enums import CoverageStatus, EarningsTier

COMMISSION_RATES: dict[EarningsTier, float] = {
    EarningsTier.PREMIUM: 0.10,
    EarningsTier.STANDARD: 0.25,
    EarningsTier.BASIC: 0.60,
}


@dataclass(frozen=True)
class TierQuote:
    tier: EarningsTier
    commission_rate: float

    @property
    def host_share(self) -> float:
        return round(1 - self.commission_rate, 2)

    @property
    def earnings_percent(self) -> str:
        return f"{round(self.host_share * 100)}%"


BASELINE = TierQuote(EarningsTier.BASIC, COMMISSION_RATES[EarningsTier.BASIC])


def quote_for(tier: EarningsTier) -> TierQuote:
    return TierQuote(tier, COMMISSION_RATES[tier])


def resolve_tier(
    p2p_status: CoverageStatus, commercial_status: CoverageStatus
) -> TierQuote:
    """Return the tier and commission rate derived from both track statuses."""
    if commercial_status == CoverageStatus.ACTIVE:
        return quote_for(EarningsTier.PREMIUM)
    if p2p_status == CoverageStatus.ACTIVE:
        return quote_for(EarningsTier.STANDARD)
    return BASELINE
