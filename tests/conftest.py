"""Shared fixtures: a scripted probe and a small catalog."""

from __future__ import annotations

from functools import partial
from typing import Union

import pytest

from filterprobe.core.config import Config
from filterprobe.core.types import (Category, Layer, ProbeMethod, ProbeOutcome,
                                    TestDefinition)
from filterprobe.modules.base import BaseProbe

Scripted = Union[ProbeOutcome, Exception]


def const_check(value: Union[bool, Exception]):
    """An async check that returns *value*, or raises it if it is an exception."""
    async def _check() -> bool:
        if isinstance(value, Exception):
            raise value
        return value
    return _check


class ScriptedProbe(BaseProbe):
    """Probe answering from a target → outcome table.  Unknown targets are allowed."""

    name = "scripted"

    def __init__(self,
                 config: Config,
                 outcomes: dict[str, Scripted] | None = None,
                 dns_votes: tuple = (),
                 browser_votes: tuple = (),
                 patterns: tuple = (),
                 unsupported: tuple[ProbeMethod, ...] = (ProbeMethod.SCRIPT_INJECTION,)) -> None:
        super().__init__(config)
        self.outcomes = outcomes or {}
        self.dns_votes = dns_votes
        self.browser_votes = browser_votes
        self.patterns = patterns
        self.unsupported = unsupported
        self.calls: list[tuple[ProbeMethod, str]] = []

    def handlers(self):
        return {m: partial(self._answer, m)
                for m in ProbeMethod if m not in self.unsupported}

    async def _answer(self, method: ProbeMethod, target: str) -> ProbeOutcome:
        self.calls.append((method, target))
        outcome = self.outcomes.get(target, ProbeOutcome(blocked=False))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def dns_checks(self):
        return [const_check(v) for v in self.dns_votes]

    def browser_checks(self):
        return [const_check(v) for v in self.browser_votes]

    def provider_patterns(self):
        return [(label, const_check(v)) for label, v in self.patterns]


def _make_category(cat_id: str, layer: Layer, weight: float,
                  *tests: tuple[str, ProbeMethod | str]) -> Category:
    return Category(
        id=cat_id, title=cat_id.title(), icon="•", layer=layer, weight=weight,
        tests=tuple(TestDefinition(id=tid, name=f"Test {tid}", target=f"{tid}.example",
                                   method=method)
                    for tid, method in tests),
    )


@pytest.fixture
def make_category():
    """Build a Category from (test id, method) pairs."""
    return _make_category


@pytest.fixture
def config() -> Config:
    return Config(inter_test_delay=0)


@pytest.fixture
def small_catalog() -> tuple[Category, ...]:
    """One category per layer, two tests each."""
    return (
        _make_category("ads", Layer.DNS, 1.5,
                      ("d1", ProbeMethod.DNS), ("d2", ProbeMethod.DNS)),
        _make_category("dom", Layer.BROWSER, 1.3,
                      ("b1", ProbeMethod.DOM_BAIT), ("b2", ProbeMethod.SCRIPT_INJECTION)),
        _make_category("cloak", Layer.CNAME, 1.5,
                      ("c1", ProbeMethod.CNAME), ("c2", ProbeMethod.CNAME)),
        _make_category("fp", Layer.ADVANCED, 1.4,
                      ("f1", ProbeMethod.CANVAS), ("f2", ProbeMethod.WEBRTC)),
    )
