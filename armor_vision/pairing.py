# pairing.py
"""Pair light bars into armor plates."""
from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from armor_vision.config import ArmorMatchParams
from armor_vision.geometry import Armor, LightBar


def pair(left: LightBar, right: LightBar) -> Armor:
    """Build an armor from two light bars. No acceptance test happens here."""
    return Armor(left, right)


def _pair_score(left: LightBar, right: LightBar, params: ArmorMatchParams) -> Optional[float]:
    """Deviation score for a candidate pair, None when it fails a gate."""
    tilt_diff = abs(left.tilt - right.tilt)
    if tilt_diff > params.max_tilt_diff_deg:
        return None

    long_len, short_len = max(left.length, right.length), min(left.length, right.length)
    length_ratio = long_len / short_len
    if length_ratio > params.max_length_ratio:
        return None

    mean_len = (left.length + right.length) / 2.0
    dx = right.center[0] - left.center[0]
    dy = right.center[1] - left.center[1]
    offset_ratio = abs(dy) / mean_len
    if offset_ratio > params.max_center_offset_ratio:
        return None

    spacing_ratio = math.hypot(dx, dy) / mean_len
    if not params.min_spacing_ratio <= spacing_ratio <= params.max_spacing_ratio:
        return None

    return (
        tilt_diff / max(params.max_tilt_diff_deg, 1e-6)
        + (length_ratio - 1.0)
        + offset_ratio
    )


def match_armors(light_bars: Sequence[LightBar], params: ArmorMatchParams) -> List[Armor]:
    """
    Enumerate light-bar pairs and keep the ones that look like an armor.

    Bars are ordered left to right; each bar ends up in at most one armor,
    best-scoring pairs first. The result is ordered by armor x.
    """
    bars = sorted(light_bars, key=lambda b: b.center[0])
    candidates: List[Tuple[float, int, int]] = []
    for i in range(len(bars)):
        for j in range(i + 1, len(bars)):
            score = _pair_score(bars[i], bars[j], params)
            if score is not None:
                candidates.append((score, i, j))

    candidates.sort()
    used = set()
    armors: List[Armor] = []
    for _, i, j in candidates:
        if i in used or j in used:
            continue
        used.update((i, j))
        armors.append(pair(bars[i], bars[j]))

    armors.sort(key=lambda a: a.center[0])
    return armors
