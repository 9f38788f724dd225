"""
Central configuration dataclass.

One Config object is created from CLI arguments and passed to the engine
and to every probe.  Probes must not read sys.argv or environment variables
directly — they receive everything they need through Config.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .types import Layer


# Well-known ad endpoints used to decide whether DNS filtering is active.
DNS_DETECTION_TARGETS: list[tuple[str, str]] = [
    ("pagead2.googlesyndication.com", "/pagead/js/adsbygoogle.js"),
    ("doubleclick.net",               "/instream/ad_status.js"),
    ("static.criteo.net",             "/js/ld/ld.js"),
    ("googleads.g.doubleclick.net",   "/pagead/id"),
]

# Answers a filtering resolver hands out instead of the real address
SINKHOLE_ADDRESSES = [
    "0.0.0.0", "127.0.0.1", "::", "::1",
]

# Provider inference patterns (best effort only)
PIHOLE_PATTERN_DOMAIN = "doubleclick.net"
ADGUARD_PATTERN_DOMAINS = [
    "adservice.google.com",
    "pagead2.googlesyndication.com",
    "ads.youtube.com",
]


@dataclass
class Config:
    # ── catalog ──────────────────────────────────────────────────────────────
    catalog_path: Optional[Path] = None
    layers:       list[Layer] = field(default_factory=lambda: list(Layer))

    # ── engine options ───────────────────────────────────────────────────────
    inter_test_delay: float = 0.12   # seconds between tests, presentation only

    # ── probe options ────────────────────────────────────────────────────────
    probe_timeout:     float = 2.0   # per-test DNS/HTTP budget (seconds)
    detection_timeout: float = 3.0   # per-check budget in the detection phase
    resolver:          Optional[str] = None   # None = system resolver
    sinkhole_addresses: list[str] = field(
        default_factory=lambda: list(SINKHOLE_ADDRESSES))
    dns_detection_targets: list[tuple[str, str]] = field(
        default_factory=lambda: list(DNS_DETECTION_TARGETS))
    pihole_pattern_domain:   str = PIHOLE_PATTERN_DOMAIN
    adguard_pattern_domains: list[str] = field(
        default_factory=lambda: list(ADGUARD_PATTERN_DOMAINS))
    etag_url:   str = "https://example.com/"
    user_agent: str = "FilterProbe/1.0"

    # ── output ───────────────────────────────────────────────────────────────
    json_output: Optional[Path] = None
    text_output: Optional[Path] = None
    html_output: Path = field(default_factory=lambda: Path("index.html"))
    quiet:       bool = False
    verbosity:   int = 0

    @classmethod
    def from_args(cls, args) -> "Config":
        """Build a Config from parsed argparse Namespace."""
        cfg = cls()

        if getattr(args, "catalog", None):
            cfg.catalog_path = Path(args.catalog)
        if getattr(args, "layer", None):
            cfg.layers = [Layer(name) for name in args.layer]

        if getattr(args, "resolver", None):
            cfg.resolver = args.resolver
        if getattr(args, "timeout", None) is not None:
            cfg.probe_timeout = args.timeout
        if getattr(args, "delay", None) is not None:
            cfg.inter_test_delay = args.delay

        if getattr(args, "json", None):
            cfg.json_output = Path(args.json)
        if getattr(args, "txt", None):
            cfg.text_output = Path(args.txt)
        if getattr(args, "html", None):
            cfg.html_output = Path(args.html)

        cfg.quiet     = getattr(args, "quiet", False)
        cfg.verbosity = getattr(args, "verbose", 0) or 0
        return cfg
