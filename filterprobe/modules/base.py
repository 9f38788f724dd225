"""
BaseProbe — the interface every concrete probe must implement.

To add a new probe:

    1. Create filterprobe/modules/my_probe.py
    2. Define a class inheriting from BaseProbe
    3. Set the  name  class attribute
    4. Implement  handlers()  mapping each ProbeMethod it can run to an
       async  (target) -> ProbeOutcome  callable
    5. Optionally override  dns_checks() / browser_checks() /
       provider_patterns()  to take part in the detection phase
    6. Wire the probe up in __main__.py

A probe bounds the duration of its own checks.  The engine catches every
exception a handler raises and records it as BlockType.EXCEPTION, so
handlers may raise freely without breaking the run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Union

from ..core.config import Config
from ..core.detector import Check
from ..core.types import BlockType, ProbeMethod, ProbeOutcome

Handler = Callable[[str], Awaitable[ProbeOutcome]]


class BaseProbe(ABC):
    """Abstract base for all FilterProbe probes."""

    name: str = "unnamed"

    def __init__(self, config: Config) -> None:
        self.config = config

    @abstractmethod
    def handlers(self) -> dict[ProbeMethod, Handler]:
        """Return the capabilities this probe implements."""

    def supports(self, method: Union[ProbeMethod, str]) -> bool:
        return isinstance(method, ProbeMethod) and method in self.handlers()

    async def check(self, method: ProbeMethod, target: str) -> ProbeOutcome:
        """Run one check.  Unsupported methods are reported, not raised."""
        handler = self.handlers().get(method)
        if handler is None:
            return self._unsupported()
        return await handler(target)

    # ── detection phase hooks ─────────────────────────────────────────────────

    def dns_checks(self) -> list[Check]:
        """Checks voting on "is DNS-level filtering active"."""
        return []

    def browser_checks(self) -> list[Check]:
        """Checks voting on "is browser-level ad blocking active"."""
        return []

    def provider_patterns(self) -> list[tuple[str, Check]]:
        """(label, check) pairs used to guess the DNS filter in use."""
        return []

    # ── helpers available to every probe ──────────────────────────────────────

    @staticmethod
    def _blocked(block_type: BlockType, error: str = "",
                 detail: str = "") -> ProbeOutcome:
        return ProbeOutcome(blocked=True, block_type=block_type,
                            error=error, detail=detail)

    @staticmethod
    def _allowed(error: str = "", detail: str = "") -> ProbeOutcome:
        return ProbeOutcome(blocked=False, block_type=BlockType.NONE,
                            error=error, detail=detail)

    @staticmethod
    def _unsupported() -> ProbeOutcome:
        return ProbeOutcome(blocked=False, block_type=BlockType.UNSUPPORTED,
                            error="Method not implemented")
