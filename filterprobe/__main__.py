"""
FilterProbe — Async CLI

After every run the HTML report is written (or overwritten) to index.html in
the current working directory unless --html names another file.

Usage examples
--------------
    python -m filterprobe                         # full catalog, defaults
    python -m filterprobe --layer dns --layer cname
    python -m filterprobe --resolver 192.168.1.2  # ask the Pi-hole directly
    python -m filterprobe --json out.json --txt out.txt
    python -m filterprobe --catalog tests.json    # custom test catalog
    python -m filterprobe --list                  # show the catalog and exit
    python -m filterprobe --quiet --delay 0       # no progress, no pacing
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from generate_report import build_html

from .core.catalog import build_catalog, load_catalog, select_layers
from .core.config import Config
from .core.engine import Engine
from .core.types import CatalogError, Category, Layer, ProgressEvent, RunState
from .modules.network_probe import NetworkProbe
from .modules.report import report_to_dict, save_json, save_text, terminal_report


def _parse(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="filterprobe",
        description="Measure how well this network and machine block ads, "
                    "trackers, CNAME-cloaked trackers and fingerprinting.",
        formatter_class=argparse.RawTextHelpFormatter,
    )

    p.add_argument("--catalog",  metavar="FILE",
                   help="JSON test catalog to use instead of the built-in one.")
    p.add_argument("--layer",    action="append",
                   choices=[layer.value for layer in Layer],
                   help="Only run categories of this layer (repeatable).")
    p.add_argument("--resolver", metavar="IP",
                   help="DNS server to query (default: system resolver).")
    p.add_argument("--timeout",  type=float, metavar="S",
                   help="Per-test DNS/HTTP timeout in seconds (default: 2.0).")
    p.add_argument("--delay",    type=float, metavar="S",
                   help="Pause between tests in seconds (default: 0.12).")
    p.add_argument("--json",     metavar="FILE",
                   help="Also save the technical JSON report to FILE.")
    p.add_argument("--txt",      metavar="FILE",
                   help="Also save a plain-text summary to FILE.")
    p.add_argument("--html",     metavar="FILE",
                   help="HTML report path (default: index.html).")
    p.add_argument("--list",     action="store_true",
                   help="Print the test catalog and exit.")
    p.add_argument("--quiet",    action="store_true",
                   help="Suppress progress output; only print final report.")
    p.add_argument("--no-colour", action="store_true",
                   help="Disable terminal colour codes.")
    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="Log more (-v info, -vv debug).")

    return p.parse_args(argv)


def _setup_logging(verbosity: int) -> None:
    level = (logging.WARNING, logging.INFO, logging.DEBUG)[min(verbosity, 2)]
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config: Config) -> tuple[Category, ...]:
    if config.catalog_path:
        catalog = load_catalog(config.catalog_path)
    else:
        catalog = build_catalog()
    return select_layers(catalog, config.layers)


def _show_catalog(catalog: tuple[Category, ...]) -> None:
    print(f"\n{'─'*72}")
    for cat in catalog:
        print(f"  {cat.icon} {cat.title}  [{cat.layer.value}, weight {cat.weight}]")
        for t in cat.tests:
            method = getattr(t.method, "value", t.method)
            star   = "★" if t.critical else " "
            print(f"    {star} {t.id:<12} {t.name:<28} {method:<16} {t.target}")
    print(f"{'─'*72}\n")


def _progress(event: ProgressEvent) -> None:
    if event.state is RunState.DETECTION:
        print("▶  Detection phase: probing for DNS filtering and ad blockers…",
              flush=True)
    elif event.state is RunState.EXECUTING and event.result is None:
        print(f"▶  Running {event.total} test(s)", flush=True)
    elif event.result is not None:
        r = event.result
        mark = "✔ blocked" if r.blocked else "✗ allowed"
        print(f"  [{event.percent:5.1f}%] {mark:<10} {r.name:<30} "
              f"{r.execution_time_ms:>6.0f} ms  "
              f"(global {event.scores.overall})", flush=True)
    elif event.state is RunState.FINALIZING:
        print(f"✔  Done: {event.blocked}/{event.total} blocked "
              f"in {event.elapsed_s:.1f}s", flush=True)


async def _run(args: argparse.Namespace) -> int:
    config = Config.from_args(args)
    _setup_logging(config.verbosity)

    try:
        catalog = _load(config)
    except (CatalogError, OSError) as exc:
        print(f"  Catalog error: {exc}", file=sys.stderr)
        return 2

    if args.list:
        _show_catalog(catalog)
        return 0

    engine = Engine(config, NetworkProbe(config), catalog=catalog)
    report = await engine.run_all(
        progress=_progress if not config.quiet else None)

    # ── terminal report ───────────────────────────────────────────────────────
    use_colour = not args.no_colour and sys.stdout.isatty()
    print(terminal_report(report, use_colour=use_colour))

    # ── JSON / text export ────────────────────────────────────────────────────
    if config.json_output:
        out = save_json(report, config.json_output)
        print(f"  JSON saved to {out.resolve()}")
    if config.text_output:
        out = save_text(report, config.text_output)
        print(f"  Text report saved to {out.resolve()}")

    # ── HTML report (always written) ──────────────────────────────────────────
    html = build_html(report_to_dict(report))
    config.html_output.write_text(html, encoding="utf-8")
    print(f"  HTML report → {config.html_output.resolve()}")

    return 0


def main(argv=None) -> int:
    args = _parse(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
