"""
Reporting Module

Projects a finished Report into:

  report_to_dict()   — the lossless technical form (what --json writes and
                       what generate_report.build_html() renders)
  text_report()      — plain-text summary for sharing (what --txt writes)
  terminal_report()  — the coloured console summary printed after a run
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from ..core.scoring import score_label
from ..core.types import (BlockType, Category, CategoryStat, Layer, RecSeverity,
                          Report, TestResult)

SEPARATOR = "═" * 59
THIN_SEP  = "-" * 72

_ANSI = {
    "green":  "\033[32m",
    "yellow": "\033[33m",
    "red":    "\033[31m",
    "bold":   "\033[1m",
    "reset":  "\033[0m",
}


# ── technical form ────────────────────────────────────────────────────────────

def report_to_dict(report: Report) -> dict[str, Any]:
    """Every field of the report, JSON-ready."""
    return {
        "version":       report.version,
        "timestamp":     report.timestamp,
        "executionTime": report.duration_s,
        "detection": {
            "dnsFiltering":   report.detection.dns_filtering_active,
            "browserAdBlock": report.detection.browser_adblock_active,
            "dnsProvider":    report.detection.dns_provider,
            "dnsVotes":       asdict(report.detection.dns_votes),
            "browserVotes":   asdict(report.detection.browser_votes),
        },
        "scores": report.scores.as_dict(),
        "summary": {
            "total":     report.summary.total,
            "blocked":   report.summary.blocked,
            "allowed":   report.summary.allowed,
            "blockRate": f"{report.summary.block_rate:.2f}%",
        },
        "metadata": {
            "testsBlockedByDNS":     list(report.metadata.blocked_by_dns),
            "testsBlockedByBrowser": list(report.metadata.blocked_by_browser),
            "cnameDetected":         list(report.metadata.cname_detected),
            "fingerprintingBlocked": list(report.metadata.fingerprinting_blocked),
            "testsAllowedThrough":   list(report.metadata.allowed_through),
        },
        "categoryStats": {
            cat_id: _stat_dict(stat, report.categories.get(cat_id))
            for cat_id, stat in report.category_stats.items()
        },
        "tests": [_result_dict(r) for r in report.test_results],
        "recommendations": [
            {
                "severity":    rec.severity.value,
                "title":       rec.title,
                "description": rec.description,
                "remediation": rec.remediation,
                "layer":       rec.layer.value if rec.layer else None,
            }
            for rec in report.recommendations
        ],
        "blocklists": [asdict(bl) for bl in report.blocklists],
    }


def _stat_dict(stat: CategoryStat, cat: Optional[Category]) -> dict[str, Any]:
    return {
        "title":   cat.title if cat else "",
        "icon":    cat.icon if cat else "",
        "total":   stat.total,
        "blocked": stat.blocked,
        "allowed": stat.allowed,
        "weight":  stat.weight,
        "layer":   stat.layer.value,
    }


def _result_dict(r: TestResult) -> dict[str, Any]:
    return {
        "id":            r.id,
        "category":      r.category_id,
        "name":          r.name,
        "target":        r.target,
        "method":        r.method,
        "layer":         r.layer.value,
        "blocked":       r.blocked,
        "blockType":     r.block_type.value,
        "error":         r.error or "None",
        "detail":        r.detail,
        "executionTime": r.execution_time_ms,
        "critical":      r.critical,
    }


def save_json(report: Report, path: str | Path) -> Path:
    """Serialize the technical form to a JSON file for programmatic consumption."""
    out = Path(path)
    out.write_text(json.dumps(report_to_dict(report), indent=2,
                              ensure_ascii=False), encoding="utf-8")
    return out


# ── plain text ────────────────────────────────────────────────────────────────

def text_report(report: Report) -> str:
    det = report.detection
    sc  = report.scores
    sm  = report.summary
    lines = [
        SEPARATOR,
        "DNS FILTERING & ADBLOCK TEST REPORT",
        SEPARATOR,
        "",
        f"Generated: {report.timestamp}",
        f"Execution Time: {report.duration_s:.2f}s",
        "",
        "═══ DETECTION ═══",
        f"DNS Filtering: {'ACTIVE ✓' if det.dns_filtering_active else 'INACTIVE ✗'}",
        f"Provider: {det.dns_provider}",
        f"Browser AdBlock: {'ACTIVE ✓' if det.browser_adblock_active else 'INACTIVE ✗'}",
        "",
        "═══ SCORES ═══",
        f"Global Score: {sc.overall}/100 ({score_label(sc.overall)})",
    ]
    for layer in Layer:
        lines.append(f"{layer.label}: {sc.for_layer(layer)}/100")

    lines += [
        "",
        "═══ SUMMARY ═══",
        f"Total Tests: {sm.total}",
        f"Blocked: {sm.blocked} ({_pct(sm.blocked, sm.total)})",
        f"Allowed: {sm.allowed} ({_pct(sm.allowed, sm.total)})",
        "",
        "═══ RESULTS BY CATEGORY ═══",
    ]
    for cat_id, stat in report.category_stats.items():
        cat = report.categories.get(cat_id)
        if cat is None:
            continue
        lines.append(f"{cat.icon} {cat.title}: {stat.blocked}/{stat.total} blocked")

    lines += ["", "═══ ALLOWED THROUGH (Need Attention) ═══"]
    by_id = {r.id: r for r in report.test_results}
    for test_id in report.metadata.allowed_through:
        r = by_id.get(test_id)
        if r is not None:
            lines.append(f"✗ {r.name} ({r.target}) - {r.method}")

    if report.recommendations:
        lines += ["", "═══ RECOMMENDATIONS ═══"]
        for rec in report.recommendations:
            lines.append(f"[{rec.severity.value.upper()}] {rec.title}")
            lines.append(f"  {rec.description}")

    lines += ["", "═══ END OF REPORT ═══", ""]
    return "\n".join(lines)


def save_text(report: Report, path: str | Path) -> Path:
    out = Path(path)
    out.write_text(text_report(report), encoding="utf-8")
    return out


def _pct(part: int, total: int) -> str:
    if not total:
        return "0.0%"
    return f"{100 * part / total:.1f}%"


# ── terminal ──────────────────────────────────────────────────────────────────

def terminal_report(report: Report, use_colour: bool = True) -> str:
    """Return the human-readable console report as a string."""

    def paint(text: str, colour: str) -> str:
        if not use_colour:
            return text
        return f"{_ANSI[colour]}{text}{_ANSI['reset']}"

    def score_colour(score: int) -> str:
        if score >= 70:
            return "green"
        if score >= 50:
            return "yellow"
        return "red"

    def flag(ok: bool) -> str:
        return paint("[OK]", "green") if ok else paint("[!]", "red")

    det = report.detection
    sc  = report.scores
    parts = [
        f"\n{'#' * 72}",
        "  FilterProbe — Ad & Tracker Blocking Report",
        f"  Generated: {report.timestamp}  ({report.duration_s:.1f}s)",
        f"{'#' * 72}",
        "",
        f"  {flag(det.dns_filtering_active)} DNS filtering     "
        f"({det.dns_votes.positive}/{det.dns_votes.total} checks)  {det.dns_provider}",
        f"  {flag(det.browser_adblock_active)} Browser ad-block "
        f"({det.browser_votes.positive}/{det.browser_votes.total} checks)",
        "",
        "  " + paint(f"Global score: {sc.overall}/100  {score_label(sc.overall)}",
                     "bold"),
    ]
    for layer in Layer:
        score = sc.for_layer(layer)
        parts.append(f"    {layer.label:<20} "
                     + paint(f"{score:>3}/100  {score_label(score)}",
                             score_colour(score)))

    parts.append(f"\n{THIN_SEP}")
    for cat_id, stat in report.category_stats.items():
        cat = report.categories.get(cat_id)
        title = f"{cat.icon} {cat.title}" if cat else cat_id
        parts.append(f"  {title:<42} {stat.blocked:>3}/{stat.total:<3} blocked")

    allowed = [r for r in report.test_results if not r.blocked]
    if allowed:
        parts.append(f"\n{THIN_SEP}\n  Allowed through ({len(allowed)}):")
        for r in allowed:
            note = f"  [{r.block_type.value}]" if r.block_type is not BlockType.NONE else ""
            parts.append(f"    ✗ {r.name:<30} {r.target}{note}")

    if report.recommendations:
        parts.append(f"\n{THIN_SEP}\n  Recommendations:")
        for rec in report.recommendations:
            colour = "red" if rec.severity is RecSeverity.CRITICAL else "yellow"
            parts.append("  " + paint(f"{rec.severity.emoji} {rec.title}", colour))
            parts.append(f"      {rec.description}")
    else:
        parts.append("\n  All layers effective. Nothing to recommend.")

    if report.blocklists:
        parts.append(f"\n{THIN_SEP}\n  Suggested blocklists:")
        for bl in report.blocklists:
            parts.append(f"    • {bl.name:<22} {bl.url}")

    parts.append(f"\n{'=' * 72}\n")
    return "\n".join(parts)
