"""
Scoring Aggregator

Turns the per-category blocked/total ratios into four integer layer scores
and one weighted global score.  Everything here is a pure function of the
CategoryStat set, so the engine simply recomputes after every test.

Layer score:   round(100 * Σ(blocked/total · w) / Σw)   over the layer's categories
Global score:  round(Σ(layer_score · W) / ΣW)           with the fixed W below
"""

from __future__ import annotations

import math
from typing import Iterable

from .types import CategoryStat, Layer, Scores

# DNS protects the whole network, fingerprinting resistance is the least
# standard; the global score leans accordingly.
LAYER_WEIGHTS: dict[Layer, float] = {
    Layer.DNS:      2.0,
    Layer.BROWSER:  1.5,
    Layer.CNAME:    1.5,
    Layer.ADVANCED: 1.0,
}

# (lower bound, label), checked top-down; bounds are inclusive
SCORE_BANDS: list[tuple[int, str]] = [
    (90, "Excellent"),
    (70, "Good"),
    (50, "Medium"),
]


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; scores round .5 upwards
    return int(math.floor(value + 0.5))


def layer_score(stats: Iterable[CategoryStat], layer: Layer) -> int:
    raw = 0.0
    weight_sum = 0.0
    for stat in stats:
        if stat.layer != layer:
            continue
        raw        += stat.ratio * stat.weight
        weight_sum += stat.weight
    if weight_sum <= 0:
        return 0
    return _clamp(round_half_up(100 * raw / weight_sum))


def compute_scores(stats: Iterable[CategoryStat]) -> Scores:
    """Compute all layer scores and the global score from *stats*."""
    stats = list(stats)
    per_layer = {layer: layer_score(stats, layer) for layer in Layer}

    weighted = sum(per_layer[layer] * w for layer, w in LAYER_WEIGHTS.items())
    overall  = round_half_up(weighted / sum(LAYER_WEIGHTS.values()))

    return Scores(
        dns=per_layer[Layer.DNS],
        browser=per_layer[Layer.BROWSER],
        cname=per_layer[Layer.CNAME],
        advanced=per_layer[Layer.ADVANCED],
        overall=_clamp(overall),
    )


def score_label(score: int) -> str:
    for bound, label in SCORE_BANDS:
        if score >= bound:
            return label
    return "Weak"


def _clamp(score: int) -> int:
    return max(0, min(100, score))
