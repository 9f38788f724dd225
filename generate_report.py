"""
FilterProbe — HTML Report Generator

Reads a technical report JSON file (produced by --json or save_json()) and
renders a self-contained, shareable HTML page suitable for non-technical
readers.

Usage:
    python generate_report.py <input.json> <output.html>

The __main__.py also calls build_html() directly after every run.
"""

from __future__ import annotations

import json
import sys
from html import escape
from pathlib import Path


LAYERS = [
    ("dns",      "DNS Level"),
    ("browser",  "Browser Level"),
    ("cname",    "CNAME Protection"),
    ("advanced", "Advanced Tracking"),
]


# ── score helpers ─────────────────────────────────────────────────────────────

def _score_colour(score: int) -> str:
    if score >= 90: return "#166534"
    if score >= 70: return "#0e7490"
    if score >= 50: return "#92400e"
    return "#991b1b"


def _score_bg(score: int) -> str:
    if score >= 90: return "#dcfce7"
    if score >= 70: return "#cffafe"
    if score >= 50: return "#fef3c7"
    return "#fee2e2"


def _score_label(score: int) -> str:
    # same bands as filterprobe.core.scoring.SCORE_BANDS; this script stays standalone
    if score >= 90: return "Excellent"
    if score >= 70: return "Good"
    if score >= 50: return "Medium"
    return "Weak"


def _badge(blocked: bool) -> str:
    if blocked:
        return '<span class="badge ok">✓ Blocked</span>'
    return '<span class="badge crit">✗ Allowed</span>'


def _bar(blocked: int, total: int) -> str:
    pct = round(100 * blocked / total) if total else 0
    c   = "#22c55e" if pct >= 70 else "#f97316" if pct >= 50 else "#ef4444"
    return (f'<div class="bar-wrap">'
            f'<div class="bar" style="width:{pct}%;background:{c}"></div>'
            f'<span class="bar-lbl">{blocked}/{total}</span>'
            f'</div>')


# ── building blocks ───────────────────────────────────────────────────────────

def _category_card(cat_id: str, stat: dict, tests: list[dict]) -> str:
    title = f"{stat.get('icon', '')} {stat.get('title', '') or cat_id}"
    layer = stat.get("layer", "")
    blocked = stat.get("blocked", 0)
    total   = stat.get("total", 0)
    pct     = round(100 * blocked / total) if total else 0

    rows = ""
    for t in tests:
        error = t.get("error", "None")
        note  = t.get("detail", "") or ("" if error == "None" else error)
        rows += f"""
        <tr class="{'' if t.get('blocked') else 'row-crit'}">
          <td><strong>{escape(t.get('name', ''))}</strong>{' ★' if t.get('critical') else ''}</td>
          <td>{_badge(bool(t.get('blocked')))}</td>
          <td><small>{escape(t.get('target', ''))}</small></td>
          <td><small>{escape(t.get('method', ''))}</small></td>
          <td><small>{escape(t.get('blockType', ''))}</small></td>
          <td><small>{escape(note)}</small></td>
          <td><small>{t.get('executionTime', 0):.0f} ms</small></td>
        </tr>"""

    if not rows:
        rows = '<tr><td colspan="7" style="color:#64748b;padding:16px 14px">No tests in this category.</td></tr>'

    return f"""
    <div class="section">
      <div class="section-header" style="border-left:5px solid {_score_colour(pct)}">
        <div>
          <h2>{escape(title)}</h2>
          <p style="color:#64748b;font-size:0.88rem;margin-top:4px">
            Layer: {escape(layer)} · weight {stat.get('weight', 0)}</p>
        </div>
        <div style="text-align:right;min-width:160px">
          {_bar(blocked, total)}
        </div>
      </div>
      <table>
        <thead>
          <tr>
            <th>Test</th><th>Result</th><th>Target</th><th>Method</th>
            <th>Block type</th><th>Detail</th><th>Time</th>
          </tr>
        </thead>
        <tbody>{rows}</tbody>
      </table>
    </div>"""


def _recommendations(recs: list[dict], blocklists: list[dict]) -> str:
    if not recs and not blocklists:
        return ""

    rows = ""
    for r in recs:
        sev = r.get("severity", "info")
        cls = "row-crit" if sev == "critical" else "row-warn" if sev == "warning" else ""
        remediation = escape(r.get("remediation", "")).replace("\n", "<br>")
        rows += (f'<tr class="{cls}"><td><strong>{escape(r.get("title", ""))}</strong>'
                 f'<br><small>{sev}</small></td>'
                 f'<td>{escape(r.get("description", ""))}'
                 f'<pre>{remediation}</pre></td></tr>')

    for bl in blocklists:
        rows += (f'<tr><td><strong>{escape(bl.get("name", ""))}</strong>'
                 f'<br><small>blocklist</small></td>'
                 f'<td>{escape(bl.get("description", ""))} '
                 f'<a href="{escape(bl.get("url", ""))}">{escape(bl.get("url", ""))}</a></td></tr>')

    return f"""
    <div class="section">
      <div class="section-header" style="border-left:5px solid #3b82f6">
        <div><h2>🛡️ What Can You Do?</h2></div>
      </div>
      <table>
        <thead><tr><th>Recommendation</th><th>Recommended action</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>"""


# ── main builder ──────────────────────────────────────────────────────────────

def build_html(data: dict) -> str:
    ts        = data.get("timestamp", "Unknown")
    dur       = data.get("executionTime", 0)
    detection = data.get("detection", {})
    scores    = data.get("scores", {})
    summary   = data.get("summary", {})
    stats     = data.get("categoryStats", {})
    tests     = data.get("tests", [])

    overall = scores.get("global", 0)
    if overall >= 90:
        v_icon = "✅"
        v_text = f"Excellent protection — global score {overall}/100."
        v_sub  = "Ads and trackers are blocked across every layer tested."
    elif overall >= 50:
        v_icon = "⚠️"
        v_text = f"Partial protection — global score {overall}/100."
        v_sub  = "Some layers let ads or trackers through. See the recommendations below."
    else:
        v_icon = "🚨"
        v_text = f"Weak protection — global score {overall}/100."
        v_sub  = "Most ads and trackers reach this device unhindered."
    v_bg, v_col = _score_bg(overall), _score_colour(overall)

    dns_on = detection.get("dnsFiltering", False)
    ab_on  = detection.get("browserAdBlock", False)

    tiles = ""
    for key, label in LAYERS:
        sc = scores.get(key, 0)
        tiles += f"""
        <div class="tile">
          <div class="num" style="color:{_score_colour(sc)}">{sc}</div>
          <strong>{label}</strong>
          <small>{_score_label(sc)}</small>
        </div>"""

    by_category: dict[str, list[dict]] = {}
    for t in tests:
        by_category.setdefault(t.get("category", ""), []).append(t)
    category_cards = "\n".join(
        _category_card(cat_id, stat, by_category.get(cat_id, []))
        for cat_id, stat in stats.items())

    recommendations = _recommendations(data.get("recommendations", []),
                                       data.get("blocklists", []))

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>FilterProbe — Ad &amp; Tracker Blocking Report</title>
<style>
  *, *::before, *::after {{ box-sizing: border-box; margin: 0; padding: 0; }}
  body {{
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto,
                 Helvetica, Arial, sans-serif;
    background: #f8fafc; color: #1e293b; line-height: 1.6;
  }}
  .header {{
    background: linear-gradient(135deg,#1e1b4b,#312e81 60%,#4338ca);
    color:#fff; padding:48px 32px 40px; text-align:center;
  }}
  .header h1 {{ font-size:2.2rem; font-weight:800; }}
  .header p  {{ opacity:.8; margin-top:8px; }}
  .header .meta {{ margin-top:16px; font-size:.82rem; opacity:.6; }}
  .container {{ max-width:980px; margin:0 auto; padding:32px 16px 64px; }}
  .verdict {{
    border-radius:12px; padding:28px 32px; margin-bottom:36px;
    background:{v_bg}; border-left:6px solid {v_col};
  }}
  .verdict .icon {{ font-size:2rem; }}
  .verdict h2 {{ font-size:1.4rem; color:{v_col}; margin:8px 0 4px; }}
  .verdict p  {{ color:{v_col}; opacity:.85; }}
  .tiles {{ display:flex; gap:16px; flex-wrap:wrap; margin-bottom:36px; }}
  .tile {{
    flex:1; min-width:150px; background:#fff;
    border-radius:10px; padding:20px 24px;
    box-shadow:0 1px 3px rgba(0,0,0,.08); text-align:center;
  }}
  .tile .num {{ font-size:2.4rem; font-weight:800; }}
  .tile small {{ color:#64748b; font-size:.82rem; display:block; margin-top:4px; }}
  .section {{
    background:#fff; border-radius:12px;
    box-shadow:0 1px 3px rgba(0,0,0,.08);
    margin-bottom:28px; overflow:hidden;
  }}
  .section-header {{
    padding:20px 24px; border-bottom:1px solid #e2e8f0;
    display:flex; align-items:flex-start; justify-content:space-between; gap:16px;
  }}
  .section-header h2 {{ font-size:1.1rem; font-weight:700; }}
  table {{ width:100%; border-collapse:collapse; font-size:.86rem; }}
  th {{
    background:#f8fafc; text-align:left; padding:10px 14px;
    font-weight:600; color:#475569; border-bottom:1px solid #e2e8f0;
    font-size:.78rem; text-transform:uppercase; letter-spacing:.04em;
  }}
  td {{ padding:11px 14px; border-bottom:1px solid #f1f5f9; vertical-align:top; }}
  td pre {{ margin-top:8px; font-size:.78rem; white-space:pre-wrap; color:#475569; }}
  tr:last-child td {{ border-bottom:none; }}
  .row-warn td {{ background:#fff7ed; }}
  .row-crit td {{ background:#fff1f2; }}
  .badge {{
    display:inline-block; padding:3px 10px; border-radius:999px;
    font-size:.76rem; font-weight:600;
  }}
  .badge.ok   {{ background:#dcfce7; color:#166534; }}
  .badge.crit {{ background:#fee2e2; color:#991b1b; }}
  .bar-wrap {{ display:flex; align-items:center; gap:8px; margin-bottom:4px; }}
  .bar {{ height:8px; border-radius:4px; min-width:4px; max-width:160px; }}
  .bar-lbl {{ font-size:.78rem; color:#64748b; }}
  .footer {{
    text-align:center; padding:32px;
    font-size:.8rem; color:#94a3b8;
  }}
  @media(max-width:600px) {{
    .header h1 {{ font-size:1.5rem; }}
    .tiles {{ flex-direction:column; }}
  }}
</style>
</head>
<body>

<div class="header">
  <h1>🛡️ Ad &amp; Tracker Blocking Report</h1>
  <p>DNS filtering, browser blocking, CNAME cloaking and fingerprinting — FilterProbe</p>
  <div class="meta">Generated: {escape(str(ts))} &nbsp;·&nbsp; Run duration: {dur:.1f} s</div>
</div>

<div class="container">

  <div class="verdict">
    <div class="icon">{v_icon}</div>
    <h2>{v_text}</h2>
    <p>{v_sub}</p>
    <p style="margin-top:12px">
      DNS filtering: <strong>{'active' if dns_on else 'inactive'}</strong>
      ({escape(detection.get('dnsProvider', 'Unknown'))}) &nbsp;·&nbsp;
      Browser ad-block: <strong>{'active' if ab_on else 'inactive'}</strong>
      &nbsp;·&nbsp; {summary.get('blocked', 0)}/{summary.get('total', 0)} blocked
      ({summary.get('blockRate', '0.00%')})
    </p>
  </div>

  <div class="tiles">{tiles}</div>

  {recommendations}

  {category_cards}

</div>

<div class="footer">
  Generated by <strong>FilterProbe</strong> — behavioural inference only; a
  specific blocking product is never identified with certainty.
</div>

</body>
</html>
"""


# ── entry point ───────────────────────────────────────────────────────────────

def main() -> None:
    if len(sys.argv) < 3:
        print("Usage: python generate_report.py <input.json> <output.html>")
        sys.exit(1)
    data = json.loads(Path(sys.argv[1]).read_text(encoding="utf-8"))
    html = build_html(data)
    out  = Path(sys.argv[2])
    out.write_text(html, encoding="utf-8")
    print(f"Report written to {out.resolve()}")


if __name__ == "__main__":
    main()
