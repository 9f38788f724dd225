"""
Test Catalog

The declarative registry of categories and tests every run walks through.
The catalog is static data: it is validated once, before a run starts, and
a malformed catalog (duplicate id, unknown layer, a weight that is not a
finite positive number) is the only fatal error in the system.

Custom catalogs can be loaded from a JSON file shaped like the built-in
one:

    [
      {"category": {"id": "...", "title": "...", "icon": "...",
                    "layer": "dns", "weight": 1.5},
       "tests": [{"id": "...", "name": "...", "target": "...",
                  "method": "DNS", "critical": true}]}
    ]
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .types import CatalogError, Category, Layer, ProbeMethod, TestDefinition

M = ProbeMethod


def _tests(*rows: tuple[str, str, str, ProbeMethod, bool]) -> tuple[TestDefinition, ...]:
    return tuple(
        TestDefinition(id=tid, name=name, target=target, method=method,
                       critical=critical)
        for tid, name, target, method, critical in rows
    )


_BUILTIN: tuple[Category, ...] = (
    # ── DNS level (network blocking) ─────────────────────────────────────────
    Category("dns-ads-core", "Core Ad Networks (DNS)", "🎯", Layer.DNS, 1.5, _tests(
        ("dns-001", "Google AdSense", "pagead2.googlesyndication.com", M.DNS, True),
        ("dns-002", "DoubleClick",    "doubleclick.net",               M.DNS, True),
        ("dns-003", "Google Ads",     "googleads.g.doubleclick.net",   M.DNS, True),
        ("dns-004", "AdColony",       "ads30.adcolony.com",            M.DNS, True),
        ("dns-005", "Criteo",         "static.criteo.net",             M.DNS, True),
        ("dns-006", "Taboola",        "cdn.taboola.com",               M.DNS, True),
        ("dns-007", "Outbrain",       "widgets.outbrain.com",          M.DNS, True),
    )),
    Category("dns-trackers-core", "Core Trackers (DNS)", "📡", Layer.DNS, 1.4, _tests(
        ("dns-101", "Google Analytics",   "google-analytics.com",  M.DNS, True),
        ("dns-102", "Google Tag Manager", "googletagmanager.com",  M.DNS, True),
        ("dns-103", "Facebook Pixel",     "connect.facebook.net",  M.DNS, True),
        ("dns-104", "Hotjar",             "static.hotjar.com",     M.DNS, True),
        ("dns-105", "Mixpanel",           "cdn.mxpnl.com",         M.DNS, True),
        ("dns-106", "Amplitude",          "cdn.amplitude.com",     M.DNS, False),
    )),
    Category("dns-social-trackers", "Social Media Trackers (DNS)", "🐦", Layer.DNS, 1.2, _tests(
        ("dns-201", "Twitter Analytics", "analytics.twitter.com", M.DNS, False),
        ("dns-202", "LinkedIn Insight",  "px.ads.linkedin.com",   M.DNS, False),
        ("dns-203", "TikTok Pixel",      "analytics.tiktok.com",  M.DNS, False),
        ("dns-204", "Pinterest Tag",     "ct.pinterest.com",      M.DNS, False),
        ("dns-205", "Reddit Pixel",      "alb.reddit.com",        M.DNS, False),
    )),

    # ── browser level (client-side blocking) ─────────────────────────────────
    Category("browser-dom-ads", "DOM-based Ads (Browser)", "🌐", Layer.BROWSER, 1.3, _tests(
        ("browser-001", "Ad Element Detection", "local-ad-element",     M.DOM_BAIT, True),
        ("browser-002", "Banner Ad Class",      "local-banner-class",   M.DOM_BAIT, True),
        ("browser-003", "Sponsored Content",    "local-sponsored",      M.DOM_BAIT, False),
        ("browser-004", "Ad Placeholder",       "local-ad-placeholder", M.DOM_BAIT, False),
    )),
    Category("browser-scripts", "Script-based Tracking (Browser)", "⚙️", Layer.BROWSER, 1.2, _tests(
        ("browser-101", "Inline Analytics Script", "local-analytics-inline", M.SCRIPT_INJECTION, False),
        ("browser-102", "Third-party Loader",      "local-3p-loader",        M.SCRIPT_INJECTION, False),
        ("browser-103", "Tracking Pixel Script",   "local-pixel-script",     M.SCRIPT_INJECTION, False),
    )),

    # ── CNAME cloaking ───────────────────────────────────────────────────────
    Category("cname-first-party", "CNAME Cloaking Detection", "🧬", Layer.CNAME, 1.5, _tests(
        ("cname-001", "First-party Analytics",     "analytics.example.com",  M.CNAME, True),
        ("cname-002", "Metrics Subdomain",         "metrics.website.com",    M.CNAME, True),
        ("cname-003", "Data Collection Subdomain", "data.domain.com",        M.CNAME, True),
        ("cname-004", "CDN-masked Tracker",        "cdn-analytics.site.com", M.CNAME, True),
        ("cname-005", "Tracking Subdomain",        "track.yoursite.com",     M.CNAME, False),
    )),

    # ── advanced tracking ────────────────────────────────────────────────────
    Category("fingerprinting", "Browser Fingerprinting", "🧩", Layer.ADVANCED, 1.4, _tests(
        ("fp-001", "Canvas Fingerprint",         "local-canvas-fp",   M.CANVAS,    True),
        ("fp-002", "WebGL Fingerprint",          "local-webgl-fp",    M.WEBGL,     True),
        ("fp-003", "Audio Context Fingerprint",  "local-audio-fp",    M.AUDIO,     True),
        ("fp-004", "Font Enumeration",           "local-font-fp",     M.FONT,      False),
        ("fp-005", "Screen Resolution Tracking", "local-screen-fp",   M.SCREEN,    False),
        ("fp-006", "Hardware Concurrency",       "local-hardware-fp", M.NAVIGATOR, False),
        ("fp-007", "WebRTC IP Leak",             "local-webrtc-fp",   M.WEBRTC,    True),
    )),
    Category("advanced-tracking", "Advanced Tracking Methods", "🎭", Layer.ADVANCED, 1.3, _tests(
        ("adv-001", "Service Worker Tracking",  "local-sw-track",          M.SERVICE_WORKER, True),
        ("adv-002", "WebSocket Tracker",        "wss://track.example.com", M.WEBSOCKET,      False),
        ("adv-003", "Beacon API",               "local-beacon-track",      M.BEACON,         False),
        ("adv-004", "IndexedDB Tracking",       "local-idb-track",         M.INDEXEDDB,      False),
        ("adv-005", "LocalStorage Fingerprint", "local-storage-fp",        M.LOCAL_STORAGE,  False),
        ("adv-006", "HTTP ETags",               "local-etag-track",        M.ETAGS,          False),
    )),

    # ── additional categories ────────────────────────────────────────────────
    Category("cdn-trackers", "CDN-based Trackers", "🌍", Layer.DNS, 1.0, _tests(
        ("cdn-001", "Cloudflare Insights", "static.cloudflareinsights.com", M.CDN, False),
        ("cdn-002", "Akamai Analytics",    "akamaihd.net",                  M.CDN, False),
    )),
    Category("email-trackers", "Email Tracking", "📧", Layer.DNS, 0.9, _tests(
        ("email-001", "Mailchimp Tracking", "mailchimp.com", M.PIXEL, False),
        ("email-002", "SendGrid Tracking",  "sendgrid.net",  M.PIXEL, False),
    )),
    Category("anti-adblock", "Anti-Adblock Detection", "🧱", Layer.BROWSER, 1.1, _tests(
        ("anti-001", "BlockAdBlock Script",  "blockadblock.js", M.SCRIPT, False),
        ("anti-002", "FuckAdBlock",          "fuckadblock.js",  M.SCRIPT, False),
        ("anti-003", "Admiral Anti-Adblock", "getadmiral.com",  M.SCRIPT, False),
    )),
)


def build_catalog() -> tuple[Category, ...]:
    """Return the built-in catalog, validated."""
    validate_catalog(_BUILTIN)
    return _BUILTIN


def validate_catalog(categories: Sequence[Category]) -> None:
    """Raise CatalogError if any id repeats or a category is malformed."""
    category_ids: set[str] = set()
    test_ids: set[str] = set()

    for cat in categories:
        if cat.id in category_ids:
            raise CatalogError(f"duplicate category id {cat.id!r}")
        category_ids.add(cat.id)

        if not isinstance(cat.layer, Layer):
            raise CatalogError(
                f"category {cat.id!r} has unknown layer {cat.layer!r}")
        if not (math.isfinite(cat.weight) and cat.weight > 0):
            raise CatalogError(
                f"category {cat.id!r} must have a finite positive weight, "
                f"got {cat.weight!r}")

        for test in cat.tests:
            if test.id in test_ids:
                raise CatalogError(
                    f"duplicate test id {test.id!r} in category {cat.id!r}")
            test_ids.add(test.id)


def load_catalog(path: str | Path) -> tuple[Category, ...]:
    """Load and validate a catalog from a JSON file."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path}: invalid JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise CatalogError(f"{path}: expected a list of categories")

    categories = tuple(_parse_category(entry) for entry in raw)
    validate_catalog(categories)
    return categories


def _parse_category(entry: dict) -> Category:
    try:
        meta = entry["category"]
        layer_name = meta["layer"]
        try:
            layer = Layer(layer_name)
        except ValueError:
            raise CatalogError(
                f"category {meta.get('id')!r} has unknown layer "
                f"{layer_name!r}") from None
        tests = tuple(
            TestDefinition(
                id=t["id"],
                name=t.get("name", t["id"]),
                # older catalogs call the target "domain"
                target=t.get("target", t.get("domain", "")),
                method=ProbeMethod.parse(t["method"]),
                critical=bool(t.get("critical", False)),
            )
            for t in entry.get("tests", [])
        )
        return Category(
            id=meta["id"],
            title=meta.get("title", meta["id"]),
            icon=meta.get("icon", ""),
            layer=layer,
            weight=float(meta["weight"]),
            tests=tests,
        )
    except CatalogError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogError(f"malformed catalog entry: {exc!r}") from exc


def select_layers(categories: Iterable[Category],
                  layers: Iterable[Layer]) -> tuple[Category, ...]:
    """Keep only the categories that belong to one of *layers*."""
    wanted = set(layers)
    return tuple(c for c in categories if c.layer in wanted)


def iter_tests(categories: Iterable[Category]) -> Iterator[tuple[Category, TestDefinition]]:
    for cat in categories:
        for test in cat.tests:
            yield cat, test


def count_tests(categories: Iterable[Category]) -> int:
    return sum(len(c.tests) for c in categories)
