"""
Async Engine — drives one full test run end-to-end.

A run goes  idle → detection → executing → finalizing → idle.  Detection
runs the ensemble batteries concurrently; tests then run strictly one at a
time, in catalog order, so progress advances monotonically.  Progress is
reported through an optional callback so CLI and future GUI consumers can
both use it:

    engine = Engine(config, probe)
    report = await engine.run_all(progress=print)

All mutable run state lives in a RunContext created fresh for every
run_all() call.  Nothing a probe does can escape run_all(): errors become
TestResult fields.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .catalog import build_catalog, count_tests, iter_tests
from .config import Config
from .detector import run_detection
from .recommend import recommend, suggest_blocklists
from .scoring import compute_scores
from .types import (BlockType, Category, CategoryStat, DetectionResult,
                    EngineBusyError, ProbeMethod, ProbeOutcome, ProgressEvent,
                    Report, RunMetadata, RunState, RunSummary, Scores,
                    TestDefinition, TestResult, TestState, now_iso)
from ..modules.base import BaseProbe

log = logging.getLogger(__name__)

VERSION = "1.0"

ProgressFn = Callable[[ProgressEvent], None]


@dataclass
class RunContext:
    """Everything one run mutates.  Owned by the engine for the run's duration."""
    categories: tuple[Category, ...]
    stats:      dict[str, CategoryStat]
    states:     dict[str, TestState]
    total:      int
    metadata:   RunMetadata = field(default_factory=RunMetadata)
    results:    list[TestResult] = field(default_factory=list)
    detection:  DetectionResult = field(default_factory=DetectionResult)
    scores:     Scores = field(default_factory=Scores)
    state:      RunState = RunState.IDLE
    started:    float = field(default_factory=time.monotonic)
    timestamp:  str = field(default_factory=now_iso)

    @classmethod
    def fresh(cls, categories: Sequence[Category]) -> "RunContext":
        categories = tuple(categories)
        return cls(
            categories=categories,
            stats={c.id: CategoryStat.for_category(c) for c in categories},
            states={t.id: TestState.PENDING for _, t in iter_tests(categories)},
            total=count_tests(categories),
        )

    @property
    def blocked(self) -> int:
        return sum(s.blocked for s in self.stats.values())

    @property
    def allowed(self) -> int:
        return sum(s.allowed for s in self.stats.values())

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def record(self, category: Category, result: TestResult) -> None:
        stat = self.stats[category.id]
        if result.blocked:
            stat.blocked += 1
            self.states[result.id] = TestState.BLOCKED
        else:
            stat.allowed += 1
            self.states[result.id] = TestState.ALLOWED
        self.metadata.record(category.layer, result.id, result.blocked)
        self.results.append(result)
        self.scores = compute_scores(self.stats.values())

    def event(self, result: Optional[TestResult] = None) -> ProgressEvent:
        return ProgressEvent(
            state=self.state,
            completed=len(self.results),
            total=self.total,
            blocked=self.blocked,
            allowed=self.allowed,
            elapsed_s=round(self.elapsed, 3),
            scores=self.scores,
            result=result,
        )


class Engine:
    """
    Owns the catalog and the probe, and runs them:

        engine = Engine(config, probe)
        report = await engine.run_all(progress=callback)
    """

    def __init__(self,
                 config: Config,
                 probe: BaseProbe,
                 catalog: Optional[Sequence[Category]] = None) -> None:
        self.config  = config
        self.probe   = probe
        self.catalog = tuple(catalog) if catalog is not None else build_catalog()
        self._busy    = False
        self._current: Optional[RunContext] = None
        self._report:  Optional[Report] = None

    # ── caller surface ────────────────────────────────────────────────────────

    def is_busy(self) -> bool:
        return self._busy

    def get_scores(self) -> Scores:
        if self._current is not None:
            return self._current.scores
        if self._report is not None:
            return self._report.scores
        return Scores()

    def get_report(self) -> Optional[Report]:
        return self._report

    # ── execution ─────────────────────────────────────────────────────────────

    async def run_all(self, progress: Optional[ProgressFn] = None) -> Report:
        if self._busy:
            raise EngineBusyError("a run is already in progress")
        self._busy = True
        try:
            ctx = RunContext.fresh(self.catalog)
            self._current = ctx
            log.info("Starting run: %d test(s) in %d categories",
                     ctx.total, len(ctx.categories))

            def _emit(result: Optional[TestResult] = None) -> None:
                if progress:
                    progress(ctx.event(result))

            ctx.state = RunState.DETECTION
            _emit()
            ctx.detection = await run_detection(self.probe)

            ctx.state = RunState.EXECUTING
            _emit()
            pairs = list(iter_tests(ctx.categories))
            for index, (category, test) in enumerate(pairs):
                ctx.states[test.id] = TestState.RUNNING
                result = await self._execute(test, category)
                ctx.record(category, result)
                _emit(result)
                if self.config.inter_test_delay > 0 and index < len(pairs) - 1:
                    await asyncio.sleep(self.config.inter_test_delay)

            ctx.state = RunState.FINALIZING
            report = self._finalize(ctx)
            _emit()
            self._report = report
            log.info("Run finished in %.1fs: global score %d, %d/%d blocked",
                     report.duration_s, report.scores.overall,
                     report.summary.blocked, report.summary.total)
            return report
        finally:
            self._current = None
            self._busy = False

    async def _execute(self, test: TestDefinition,
                       category: Category) -> TestResult:
        start = time.monotonic()
        method = test.method
        if not self.probe.supports(method):
            outcome = ProbeOutcome(blocked=False,
                                   block_type=BlockType.UNSUPPORTED,
                                   error="Method not implemented")
        else:
            try:
                outcome = await self.probe.check(method, test.target)
            except Exception as exc:
                # an error talking to a tracker is evidence of blocking
                outcome = ProbeOutcome(blocked=True,
                                       block_type=BlockType.EXCEPTION,
                                       error=str(exc) or type(exc).__name__)
        elapsed = (time.monotonic() - start) * 1000

        log.debug("%s %s (%s) → %s [%s] %.0f ms",
                  test.id, test.name, test.target,
                  "blocked" if outcome.blocked else "allowed",
                  outcome.block_type.value, elapsed)

        return TestResult(
            id=test.id,
            category_id=category.id,
            name=test.name,
            target=test.target,
            method=method.value if isinstance(method, ProbeMethod) else str(method),
            layer=category.layer,
            blocked=outcome.blocked,
            block_type=outcome.block_type,
            error=outcome.error,
            execution_time_ms=round(elapsed, 1),
            critical=test.critical,
            detail=outcome.detail,
        )

    def _finalize(self, ctx: RunContext) -> Report:
        scores = compute_scores(ctx.stats.values())
        return Report(
            version=VERSION,
            timestamp=ctx.timestamp,
            duration_s=round(ctx.elapsed, 3),
            detection=ctx.detection,
            scores=scores,
            summary=RunSummary(total=ctx.total,
                               blocked=ctx.blocked,
                               allowed=ctx.allowed),
            metadata=ctx.metadata,
            category_stats=ctx.stats,
            categories={c.id: c for c in ctx.categories},
            test_results=list(ctx.results),
            recommendations=recommend(ctx.detection, scores),
            blocklists=suggest_blocklists(scores),
        )
