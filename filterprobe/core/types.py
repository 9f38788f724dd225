"""
Shared data types for the entire FilterProbe engine.

The catalog is described with immutable Category / TestDefinition objects.
Every probe call produces a ProbeOutcome, which the engine turns into an
immutable TestResult.  This single contract keeps the catalog, engine,
scoring and report layers decoupled from probe internals.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


# ── errors ────────────────────────────────────────────────────────────────────

class FilterProbeError(Exception):
    """Base class for errors raised by FilterProbe itself."""


class CatalogError(FilterProbeError, ValueError):
    """The test catalog is malformed (duplicate id, unknown layer, …)."""


class EngineBusyError(FilterProbeError, RuntimeError):
    """run_all() was called while another run was still outstanding."""


# ── closed vocabularies ───────────────────────────────────────────────────────

class Layer(str, Enum):
    """The four independent defensive layers, each scored on its own."""
    DNS      = "dns"
    BROWSER  = "browser"
    CNAME    = "cname"
    ADVANCED = "advanced"

    @property
    def label(self) -> str:
        return {
            Layer.DNS:      "DNS Level",
            Layer.BROWSER:  "Browser Level",
            Layer.CNAME:    "CNAME Protection",
            Layer.ADVANCED: "Advanced Tracking",
        }[self]


class ProbeMethod(str, Enum):
    """Every probe capability a test can ask for."""
    DNS              = "DNS"
    SCRIPT           = "Script"
    PIXEL            = "Pixel"
    API              = "API"
    CDN              = "CDN"
    DOM_BAIT         = "DOM Bait"
    SCRIPT_INJECTION = "Script Injection"
    CNAME            = "CNAME"
    CANVAS           = "Canvas API"
    WEBGL            = "WebGL API"
    AUDIO            = "Audio API"
    FONT             = "Font API"
    SCREEN           = "Screen API"
    NAVIGATOR        = "Navigator API"
    WEBRTC           = "WebRTC API"
    SERVICE_WORKER   = "Service Worker"
    WEBSOCKET        = "WebSocket"
    BEACON           = "Beacon API"
    INDEXEDDB        = "IndexedDB"
    LOCAL_STORAGE    = "LocalStorage"
    ETAGS            = "HTTP ETags"

    @classmethod
    def parse(cls, raw: str) -> Union["ProbeMethod", str]:
        """Return the matching member, or *raw* unchanged when unknown.

        Unknown methods are not a catalog error: the engine runs them as
        Unsupported so one bad entry never aborts a scan.
        """
        try:
            return cls(raw)
        except ValueError:
            return raw


class BlockType(str, Enum):
    """Why a test was (or was not) counted as blocked."""
    NONE            = "None"
    NETWORK         = "DNS/NetworkBlock"
    BROWSER_DOM     = "BrowserDOMBlock"
    API_UNAVAILABLE = "APIUnavailable"
    EXCEPTION       = "Exception"
    UNSUPPORTED     = "Unsupported"
    OTHER           = "Other"


class RunState(str, Enum):
    IDLE       = "idle"
    DETECTION  = "detection"
    EXECUTING  = "executing"
    FINALIZING = "finalizing"


class TestState(str, Enum):
    __test__ = False

    PENDING = "pending"
    RUNNING = "running"
    BLOCKED = "blocked"
    ALLOWED = "allowed"


class RecSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING  = "warning"
    INFO     = "info"

    @property
    def emoji(self) -> str:
        return {
            RecSeverity.CRITICAL: "🚨",
            RecSeverity.WARNING:  "⚠️",
            RecSeverity.INFO:     "💡",
        }[self]


# ── catalog ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TestDefinition:
    """
    One declarative test.

    Attributes:
        id       — globally unique across the whole catalog
        name     — display name
        target   — domain, URL, or a synthetic local identifier
        method   — which probe capability to invoke
        critical — importance hint; does not change the score
    """
    __test__ = False

    id:       str
    name:     str
    target:   str
    method:   Union[ProbeMethod, str]
    critical: bool = False


@dataclass(frozen=True)
class Category:
    id:     str
    title:  str
    icon:   str
    layer:  Layer
    weight: float
    tests:  tuple[TestDefinition, ...] = ()


# ── run state ─────────────────────────────────────────────────────────────────

@dataclass
class CategoryStat:
    """Running blocked/allowed counters for one category."""
    total:   int
    weight:  float
    layer:   Layer
    blocked: int = 0
    allowed: int = 0

    @classmethod
    def for_category(cls, category: Category) -> "CategoryStat":
        return cls(total=len(category.tests),
                   weight=category.weight,
                   layer=category.layer)

    @property
    def completed(self) -> int:
        return self.blocked + self.allowed

    @property
    def ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return self.blocked / self.total


@dataclass(frozen=True)
class ProbeOutcome:
    """What a probe reports back for a single (method, target) check."""
    blocked:    bool
    block_type: BlockType = BlockType.NONE
    error:      str = ""
    detail:     str = ""   # probe-specific text, mainly for BlockType.OTHER


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    id:                str
    category_id:       str
    name:              str
    target:            str
    method:            str
    layer:             Layer
    blocked:           bool
    block_type:        BlockType
    error:             str
    execution_time_ms: float
    critical:          bool
    detail:            str = ""


@dataclass(frozen=True)
class Vote:
    """Tally of one ensemble vote."""
    positive: int = 0
    total:    int = 0


@dataclass
class DetectionResult:
    """
    Outcome of the detection phase that precedes per-test execution.

    dns_provider is inference only.  It is never asserted with certainty.
    """
    dns_filtering_active:   bool = False
    browser_adblock_active: bool = False
    dns_provider:           str = "Unknown"
    dns_votes:              Vote = field(default_factory=Vote)
    browser_votes:          Vote = field(default_factory=Vote)


@dataclass(frozen=True)
class Scores:
    """Integer scores in [0, 100].  `overall` is serialized as "global"."""
    dns:      int = 0
    browser:  int = 0
    cname:    int = 0
    advanced: int = 0
    overall:  int = 0

    def for_layer(self, layer: Layer) -> int:
        return getattr(self, layer.value)

    def as_dict(self) -> dict[str, int]:
        return {
            "global":   self.overall,
            "dns":      self.dns,
            "browser":  self.browser,
            "cname":    self.cname,
            "advanced": self.advanced,
        }


@dataclass
class RunMetadata:
    """
    Test ids bucketed by outcome.

    A blocked test lands in the bucket of the layer that blocked it.
    allowed_through holds every test that was NOT blocked.
    """
    blocked_by_dns:         list[str] = field(default_factory=list)
    blocked_by_browser:     list[str] = field(default_factory=list)
    cname_detected:         list[str] = field(default_factory=list)
    fingerprinting_blocked: list[str] = field(default_factory=list)
    allowed_through:        list[str] = field(default_factory=list)

    def record(self, layer: Layer, test_id: str, blocked: bool) -> None:
        if not blocked:
            self.allowed_through.append(test_id)
            return
        {
            Layer.DNS:      self.blocked_by_dns,
            Layer.BROWSER:  self.blocked_by_browser,
            Layer.CNAME:    self.cname_detected,
            Layer.ADVANCED: self.fingerprinting_blocked,
        }[layer].append(test_id)


@dataclass(frozen=True)
class ProgressEvent:
    state:     RunState
    completed: int
    total:     int
    blocked:   int
    allowed:   int
    elapsed_s: float
    scores:    Scores
    result:    Optional[TestResult] = None

    @property
    def percent(self) -> float:
        if not self.total:
            return 0.0
        return 100.0 * self.completed / self.total


# ── recommendations & report ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Recommendation:
    severity:    RecSeverity
    title:       str
    description: str
    remediation: str
    layer:       Optional[Layer] = None


@dataclass(frozen=True)
class BlocklistSuggestion:
    name:        str
    description: str
    url:         str


@dataclass(frozen=True)
class RunSummary:
    total:   int
    blocked: int
    allowed: int

    @property
    def block_rate(self) -> float:
        if not self.total:
            return 0.0
        return round(100.0 * self.blocked / self.total, 2)


@dataclass
class Report:
    """Complete output of one full FilterProbe run."""
    version:         str
    timestamp:       str
    duration_s:      float
    detection:       DetectionResult
    scores:          Scores
    summary:         RunSummary
    metadata:        RunMetadata
    category_stats:  dict[str, CategoryStat]
    categories:      dict[str, Category]
    test_results:    list[TestResult] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    blocklists:      list[BlocklistSuggestion] = field(default_factory=list)


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S%z")
