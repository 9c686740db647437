# nms.py
"""Greedy confidence-first non-maximum suppression."""
from __future__ import annotations

from typing import List, Sequence

from armor_vision.decoder import RawDetection


def iou(det1: RawDetection, det2: RawDetection) -> float:
    """Intersection-over-union of two center/size boxes."""
    left = max(det1.x_ctr - det1.w / 2.0, det2.x_ctr - det2.w / 2.0)
    right = min(det1.x_ctr + det1.w / 2.0, det2.x_ctr + det2.w / 2.0)
    top = max(det1.y_ctr - det1.h / 2.0, det2.y_ctr - det2.h / 2.0)
    bottom = min(det1.y_ctr + det1.h / 2.0, det2.y_ctr + det2.h / 2.0)

    # Touching edges pass this test and give a zero-area intersection.
    if top > bottom or left > right:
        return 0.0

    inter = (right - left) * (bottom - top)
    union = det1.w * det1.h + det2.w * det2.h - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def non_max_suppression(dets: Sequence[RawDetection], nms_thresh: float) -> List[RawDetection]:
    """
    Keep the most confident box of every overlapping cluster.

    A box is suppressed only when its IoU with a kept box is strictly greater
    than ``nms_thresh``. The input is left untouched; the result is ordered by
    descending confidence.
    """
    remaining = sorted(dets, key=lambda d: d.conf)
    keep: List[RawDetection] = []
    while remaining:
        highest = remaining.pop()
        keep.append(highest)
        remaining = [d for d in remaining if iou(highest, d) <= nms_thresh]
    return keep
