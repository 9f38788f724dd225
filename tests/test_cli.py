import json
from pathlib import Path
from unittest.mock import patch

import pytest

from filterprobe.__main__ import _parse, main
from filterprobe.core.config import Config
from filterprobe.core.types import Layer, ProbeOutcome

from conftest import ScriptedProbe


def test_config_defaults_from_empty_args():
    """No flags yields the stock configuration."""
    cfg = Config.from_args(_parse([]))
    assert cfg.layers == list(Layer)
    assert cfg.inter_test_delay == 0.12
    assert cfg.probe_timeout == 2.0
    assert cfg.resolver is None
    assert cfg.html_output == Path("index.html")
    assert cfg.json_output is None
    assert cfg.quiet is False


def test_config_from_args():
    """Every flag lands on the matching Config field."""
    cfg = Config.from_args(_parse([
        "--layer", "dns", "--layer", "cname", "--resolver", "10.0.0.53",
        "--timeout", "0.5", "--delay", "0", "--json", "out.json",
        "--txt", "out.txt", "--html", "page.html", "--quiet", "-vv",
    ]))
    assert cfg.layers == [Layer.DNS, Layer.CNAME]
    assert cfg.resolver == "10.0.0.53"
    assert cfg.probe_timeout == 0.5
    assert cfg.inter_test_delay == 0
    assert cfg.json_output == Path("out.json")
    assert cfg.text_output == Path("out.txt")
    assert cfg.html_output == Path("page.html")
    assert cfg.quiet is True
    assert cfg.verbosity == 2


def test_unknown_layer_is_rejected_by_parser():
    """--layer only accepts the four layer names."""
    with pytest.raises(SystemExit):
        _parse(["--layer", "firewall"])


def test_list_prints_catalog(capsys):
    """--list shows the selected categories and exits cleanly."""
    assert main(["--list", "--layer", "cname"]) == 0
    out = capsys.readouterr().out
    assert "CNAME Cloaking Detection" in out
    assert "Core Ad Networks" not in out


def test_bad_catalog_exits_with_2(tmp_path, capsys):
    """A malformed catalog file aborts before any test runs."""
    path = tmp_path / "catalog.json"
    path.write_text('[{"category": {"id": "x", "layer": "firewall", "weight": 1}}]',
                    encoding="utf-8")
    assert main(["--catalog", str(path), "--list"]) == 2
    assert "Catalog error" in capsys.readouterr().err


def test_missing_catalog_exits_with_2(tmp_path, capsys):
    """A catalog path that does not exist is reported, not raised."""
    assert main(["--catalog", str(tmp_path / "nope.json")]) == 2
    assert "Catalog error" in capsys.readouterr().err


def test_full_run_writes_reports(tmp_path, capsys):
    """A run prints the summary and writes the HTML, JSON and text reports."""
    def fake_probe(config):
        return ScriptedProbe(config, outcomes={
            "doubleclick.net": ProbeOutcome(blocked=True)})

    html, js, txt = tmp_path / "r.html", tmp_path / "r.json", tmp_path / "r.txt"
    with patch("filterprobe.__main__.NetworkProbe", side_effect=fake_probe):
        code = main(["--layer", "dns", "--delay", "0", "--no-colour",
                     "--html", str(html), "--json", str(js), "--txt", str(txt)])

    assert code == 0
    out = capsys.readouterr().out
    assert "Detection phase" in out
    assert "Global score:" in out
    assert html.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")
    data = json.loads(js.read_text(encoding="utf-8"))
    assert {t["layer"] for t in data["tests"]} == {"dns"}
    assert "doubleclick.net" in [t["target"] for t in data["tests"] if t["blocked"]]
    assert "END OF REPORT" in txt.read_text(encoding="utf-8")
