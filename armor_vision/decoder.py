# decoder.py
"""Turn a raw detector output tensor into per-anchor detections."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np


@dataclass(frozen=True)
class RawDetection:
    x_ctr: float
    y_ctr: float
    w: float
    h: float
    conf: float
    class_id: int

    @property
    def area(self) -> float:
        return self.w * self.h

    def to_xywh(self) -> tuple:
        """Top-left based (x, y, w, h)."""
        return (self.x_ctr - self.w / 2.0, self.y_ctr - self.h / 2.0, self.w, self.h)


def decode_detections(
    output: np.ndarray,
    conf_thresh: float,
    num_classes: Optional[int] = None,
) -> List[RawDetection]:
    """
    Decode rows of ``[x, y, w, h, objectness, class_0 .. class_{C-1}]``.

    ``output`` is either a flat buffer (``num_classes`` required) or any array
    whose last axis is ``5 + C``. Rows whose objectness does not exceed
    ``conf_thresh`` are dropped before any class score is looked at; the rest
    keep their anchor order.
    """
    arr = np.asarray(output, dtype=np.float32)
    if num_classes is not None:
        row = 5 + int(num_classes)
        if num_classes < 1 or arr.size % row:
            raise ValueError(f"Buffer of {arr.size} values does not hold rows of {row}")
    else:
        if arr.ndim < 2:
            raise ValueError("Flat buffers need num_classes")
        row = arr.shape[-1]
        if row < 6:
            raise ValueError(f"Rows of {row} values carry no class scores")
    rows = arr.reshape(-1, row)

    kept = rows[rows[:, 4] > conf_thresh]
    if kept.shape[0] == 0:
        return []

    class_scores = kept[:, 5:]
    class_ids = np.argmax(class_scores, axis=1)
    best = class_scores[np.arange(kept.shape[0]), class_ids]
    confs = kept[:, 4] * best

    return [
        RawDetection(
            x_ctr=float(r[0]),
            y_ctr=float(r[1]),
            w=float(r[2]),
            h=float(r[3]),
            conf=float(c),
            class_id=int(k),
        )
        for r, c, k in zip(kept, confs, class_ids)
    ]
