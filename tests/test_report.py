import json

import pytest

from filterprobe.core.engine import Engine
from filterprobe.core.scoring import score_label
from filterprobe.core.types import BlockType, ProbeOutcome
from filterprobe.modules.report import (report_to_dict, save_json, save_text,
                                        terminal_report, text_report)
from generate_report import _score_label, build_html

from conftest import ScriptedProbe


@pytest.fixture
async def report(config, small_catalog):
    probe = ScriptedProbe(
        config,
        outcomes={
            "d1.example": ProbeOutcome(blocked=True, block_type=BlockType.NETWORK,
                                       error="NXDOMAIN"),
            "c1.example": ProbeOutcome(blocked=True, block_type=BlockType.NETWORK,
                                       detail="c1.example → CNAME tracker.example"),
        },
        dns_votes=(True, False, False, False),
    )
    return await Engine(config, probe, catalog=small_catalog).run_all()


async def test_dict_has_every_section(report):
    """The technical form carries detection, scores, tests and advice."""
    data = report_to_dict(report)
    assert set(data) == {"version", "timestamp", "executionTime", "detection",
                         "scores", "summary", "metadata", "categoryStats",
                         "tests", "recommendations", "blocklists"}
    assert data["version"] == "1.0"
    assert set(data["scores"]) == {"global", "dns", "browser", "cname", "advanced"}
    assert data["detection"]["dnsVotes"] == {"positive": 1, "total": 4}
    assert data["summary"] == {"total": 8, "blocked": 2, "allowed": 6,
                               "blockRate": "25.00%"}


async def test_dict_tests_and_categories(report):
    """Enums are flattened to their values and empty errors read "None"."""
    data = report_to_dict(report)
    first = data["tests"][0]
    assert first["id"] == "d1"
    assert first["category"] == "ads"
    assert first["layer"] == "dns"
    assert first["blockType"] == "DNS/NetworkBlock"
    assert first["error"] == "NXDOMAIN"
    assert data["tests"][1]["error"] == "None"
    assert data["categoryStats"]["cloak"] == {
        "title": "Cloak", "icon": "•", "total": 2, "blocked": 1,
        "allowed": 1, "weight": 1.5, "layer": "cname"}
    assert data["metadata"]["cnameDetected"] == ["c1"]
    assert data["metadata"]["testsAllowedThrough"] == ["d2", "b1", "b2", "c2",
                                                       "f1", "f2"]


async def test_dict_recommendations(report):
    """Recommendations serialize with their severity and layer values."""
    recs = report_to_dict(report)["recommendations"]
    assert recs[0]["severity"] == "critical"
    assert recs[0]["layer"] == "dns"
    assert all(r["severity"] in ("critical", "warning") for r in recs)


async def test_save_json_round_trips(report, tmp_path):
    """The saved file is valid JSON equal to the technical form."""
    path = save_json(report, tmp_path / "report.json")
    assert json.loads(path.read_text(encoding="utf-8")) == report_to_dict(report)


async def test_text_report(report, tmp_path):
    """The plain-text summary lists scores and what got through."""
    text = text_report(report)
    assert "DNS FILTERING & ADBLOCK TEST REPORT" in text
    assert f"Global Score: {report.scores.overall}/100" in text
    assert "DNS Filtering: INACTIVE ✗" in text
    assert "✗ Test d2 (d2.example) - DNS" in text
    assert "[CRITICAL] No DNS filtering detected" in text
    assert text.rstrip().endswith("═══ END OF REPORT ═══")

    path = save_text(report, tmp_path / "report.txt")
    assert path.read_text(encoding="utf-8") == text


async def test_terminal_report_without_colour(report):
    """use_colour=False leaves no ANSI escapes behind."""
    out = terminal_report(report, use_colour=False)
    assert "\033[" not in out
    assert "Global score:" in out
    assert "Allowed through (6):" in out
    assert "Suggested blocklists:" in out


async def test_terminal_report_with_colour(report):
    """Scores are painted when colour is on."""
    assert "\033[" in terminal_report(report, use_colour=True)


async def test_html_report(report):
    """The HTML page renders every category and escapes the details."""
    html = build_html(report_to_dict(report))
    assert html.startswith("<!DOCTYPE html>")
    for title in ("Ads", "Dom", "Cloak", "Fp"):
        assert title in html
    assert "c1.example → CNAME tracker.example" in html
    assert "No DNS filtering detected" in html


def test_html_report_tolerates_sparse_input():
    """A minimal dict still renders a page."""
    html = build_html({"scores": {"global": 95}})
    assert "Excellent protection" in html


def test_html_score_labels_match_scoring():
    """The standalone generator labels every score the way the engine does."""
    assert [_score_label(s) for s in range(101)] == [score_label(s) for s in range(101)]
