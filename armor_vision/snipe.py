# snipe.py
"""Light-bar armor detector used for sniping the outpost."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import cv2
import numpy as np

from armor_vision.common import Model, Team
from armor_vision.config import LightBarParams, SnipeConfig
from armor_vision.detector import Detector, as_bgr, team_mask
from armor_vision.geometry import Armor, LightBar
from armor_vision.pairing import match_armors

_DRAW_WORKERS = 4
_KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))


def is_light_bar(bar: LightBar, params: LightBarParams) -> bool:
    return (
        params.min_area <= bar.area <= params.max_area
        and params.min_aspect_ratio <= bar.aspect_ratio <= params.max_aspect_ratio
        and abs(bar.tilt) <= params.max_tilt_deg
    )


def find_light_bars(mask: np.ndarray, params: LightBarParams) -> List[LightBar]:
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE)
    bars = []
    for contour in contours:
        bar = LightBar.from_rect(cv2.minAreaRect(contour))
        if is_light_bar(bar, params):
            bars.append(bar)
    return bars


class SnipeDetector(Detector[Armor]):
    noun = "armors"

    def __init__(
        self,
        cfg: Optional[SnipeConfig] = None,
        enemy_team: Optional[Team] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger)
        self.cfg = cfg or SnipeConfig()
        self.enemy_team = Team.parse(enemy_team if enemy_team is not None else self.cfg.enemy_team)
        self.light_bars: List[LightBar] = []
        self._pool: Optional[ThreadPoolExecutor] = None
        self.logger.debug("[%s] Constructed, enemy=%s", self.name, self.enemy_team.value)

    def set_enemy_team(self, enemy_team: Team) -> None:
        self.enemy_team = Team.parse(enemy_team)
        self.logger.debug("[%s] Enemy team: %s", self.name, self.enemy_team.value)

    def apply_config(self, cfg: SnipeConfig) -> None:
        self.cfg = cfg
        self.set_enemy_team(Team.parse(cfg.enemy_team))

    def close(self) -> None:
        """Shut down the drawing pool. It is recreated on the next multi-armor draw."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def _find(self, frame: np.ndarray) -> List[Armor]:
        self.light_bars = []
        mask = team_mask(as_bgr(frame), self.enemy_team, self.cfg.light_bar.binary_threshold)
        if self.cfg.dilate_iterations > 0:
            mask = cv2.dilate(mask, _KERNEL, iterations=self.cfg.dilate_iterations)

        self.light_bars = find_light_bars(mask, self.cfg.light_bar)
        if not self.light_bars:
            return []

        armors = match_armors(self.light_bars, self.cfg.match)
        for armor in armors:
            armor.set_model(Model.OUTPOST)
        return armors

    def _primitives(self, verbose: int) -> List:
        targets = list(self.targets)
        if not targets:
            return []
        detail = verbose > 2
        if len(targets) == 1:
            return targets[0].visualize_object(detail)

        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=_DRAW_WORKERS, thread_name_prefix="snipe-draw")
        # Each armor builds its own list; merge after the join.
        per_armor = list(self._pool.map(lambda a: a.visualize_object(detail), targets))
        return [prim for prims in per_armor for prim in prims]
