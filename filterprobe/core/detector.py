"""
Ensemble Detector

Decides whether a protective capability is active from a battery of
independent, individually unreliable boolean checks.

Every check in a battery runs concurrently; a check that raises counts as a
negative vote, so an inconclusive check defaults to "inactive" and nothing
propagates to the caller.  A quorum then turns the tally into one verdict:

    DNS filtering      ≥ 50 % of the checks   (homogeneous, reliable signals)
    browser ad-block   ≥ 1 check              (sparse, heuristic signals)
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Sequence

from .types import DetectionResult, Vote

if TYPE_CHECKING:
    from ..modules.base import BaseProbe

log = logging.getLogger(__name__)

Check = Callable[[], Awaitable[bool]]

NO_FILTERING_LABEL = "No DNS Filtering Detected"
GENERIC_PROVIDER_LABEL = "DNS Filtering Active (Pi-hole / AdGuard / NextDNS / Unbound)"


@dataclass(frozen=True)
class Quorum:
    """Minimum number of positive votes: a fraction of the battery or a fixed count."""
    fraction: Optional[float] = None
    minimum:  Optional[int] = None

    def required(self, total: int) -> int:
        if self.fraction is not None:
            return math.ceil(total * self.fraction)
        return self.minimum or 0


DNS_QUORUM     = Quorum(fraction=0.5)
BROWSER_QUORUM = Quorum(minimum=1)


async def _ask(check: Check) -> bool:
    return await check()


async def collect_votes(checks: Sequence[Check]) -> Vote:
    """Run every check concurrently and count the ones that returned True."""
    if not checks:
        return Vote()
    results = await asyncio.gather(*(_ask(c) for c in checks),
                                   return_exceptions=True)
    positive = 0
    for check, result in zip(checks, results):
        if isinstance(result, BaseException):
            log.debug("Check %s failed, counting as negative: %r",
                      getattr(check, "__name__", check), result)
            continue
        if result is True:
            positive += 1
    return Vote(positive=positive, total=len(checks))


async def ensemble_verdict(checks: Sequence[Check],
                           quorum: Quorum) -> tuple[bool, Vote]:
    vote = await collect_votes(checks)
    active = vote.total > 0 and vote.positive >= quorum.required(vote.total)
    return active, vote


async def infer_provider(dns_active: bool,
                         patterns: Sequence[tuple[str, Check]]) -> str:
    """
    Best-effort guess at which DNS filter is in use.

    Patterns are tried in order and the first positive one wins.  This is a
    behavioural hint, never an identification.
    """
    if not dns_active:
        return NO_FILTERING_LABEL
    for label, check in patterns:
        try:
            matched = await check()
        except Exception as exc:
            log.debug("Provider pattern %s failed: %r", label, exc)
            continue
        if matched is True:
            return f"DNS Filtering Active (likely {label})"
    return GENERIC_PROVIDER_LABEL


async def run_detection(probe: "BaseProbe") -> DetectionResult:
    """Run the DNS and browser ensembles, then infer the DNS provider."""
    dns_active, dns_votes = await ensemble_verdict(
        probe.dns_checks(), DNS_QUORUM)
    log.info("DNS filtering: %s (%d/%d checks positive)",
             "active" if dns_active else "inactive",
             dns_votes.positive, dns_votes.total)

    browser_active, browser_votes = await ensemble_verdict(
        probe.browser_checks(), BROWSER_QUORUM)
    log.info("Browser ad-block: %s (%d/%d checks positive)",
             "active" if browser_active else "inactive",
             browser_votes.positive, browser_votes.total)

    provider = await infer_provider(dns_active, probe.provider_patterns())

    return DetectionResult(
        dns_filtering_active=dns_active,
        browser_adblock_active=browser_active,
        dns_provider=provider,
        dns_votes=dns_votes,
        browser_votes=browser_votes,
    )
