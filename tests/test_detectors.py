"""
Tests for the detector orchestrators on synthetic frames.
"""
import logging

import cv2
import numpy as np
import pytest

from armor_vision.buff import BuffDetector, Direction
from armor_vision.common import Model, Team
from armor_vision.config import BlobParams, BuffConfig, OreCubeConfig, SnipeConfig
from armor_vision.detector import Detector, as_bgr, team_mask
from armor_vision.guiding_light import GuidingLightDetector
from armor_vision.ore_cube import OreCubeDetector
from armor_vision.snipe import SnipeDetector

H, W = 480, 640
RED = (0, 0, 255)
BLUE = (255, 0, 0)


def blank(value=0):
    return np.full((H, W, 3), value, dtype=np.uint8)


def fill_rect(img, rect, color):
    pts = cv2.boxPoints(rect).astype(np.int32)
    cv2.fillPoly(img, [pts], color)


# ------------------------------------------------------------------ #
#   S H A R E D
# ------------------------------------------------------------------ #
class TestTeamMask:
    def test_red_enemy(self):
        img = blank()
        img[10:20, 10:20] = RED
        img[30:40, 30:40] = BLUE
        mask = team_mask(img, Team.RED, 100)
        assert mask[15, 15] == 255
        assert mask[35, 35] == 0

    def test_blue_enemy(self):
        img = blank()
        img[10:20, 10:20] = RED
        img[30:40, 30:40] = BLUE
        mask = team_mask(img, Team.BLUE, 100)
        assert mask[15, 15] == 0
        assert mask[35, 35] == 255

    def test_as_bgr(self):
        assert as_bgr(np.zeros((4, 4), np.uint8)).shape == (4, 4, 3)
        assert as_bgr(np.zeros((4, 4, 4), np.uint8)).shape == (4, 4, 3)


class _Exploding(Detector[int]):
    def _find(self, frame):
        raise ValueError("boom")


class TestDetectorBase:
    def test_failure_is_contained(self, caplog):
        det = _Exploding()
        det.targets.append(1)
        with caplog.at_level(logging.ERROR):
            assert det.detect(blank()) == []
        assert "Detection failed" in caplog.text

    @pytest.mark.parametrize("frame", [None, np.zeros((0, 0, 3), np.uint8)])
    def test_empty_frame(self, frame):
        det = _Exploding()
        assert det.detect(frame) == []


# ------------------------------------------------------------------ #
#   G U I D I N G   L I G H T
# ------------------------------------------------------------------ #
class TestGuidingLightDetector:
    @pytest.fixture
    def frame(self):
        img = blank(255)
        cv2.circle(img, (200, 150), 15, (0, 0, 0), -1)
        return img

    def test_finds_dark_blob(self, frame):
        det = GuidingLightDetector()
        lights = det.detect(frame)
        assert len(lights) == 1
        assert lights[0].center == pytest.approx((200.0, 150.0), abs=1.5)
        assert lights[0].size > 20.0

    def test_nothing_on_plain_frame(self):
        assert GuidingLightDetector().detect(blank(255)) == []

    def test_reset_by_params(self, frame):
        det = GuidingLightDetector()
        det.reset_by_params(BlobParams(min_area=10.0, max_area=100.0))
        assert det.detect(frame) == []
        det.apply_config(BlobParams())
        assert len(det.detect(frame)) == 1

    def test_rejected_params_keep_old_detector(self, frame):
        det = GuidingLightDetector()
        old_params, old_detector = det.params, det.detector
        with pytest.raises(cv2.error):
            det.apply_config(BlobParams(min_area=500.0, max_area=100.0))
        assert det.params is old_params
        assert det.detector is old_detector
        assert len(det.detect(frame)) == 1

    def test_targets_cleared_each_frame(self, frame):
        det = GuidingLightDetector()
        det.detect(frame)
        det.detect(blank(255))
        assert det.targets == []

    def test_visualize(self, frame):
        det = GuidingLightDetector()
        det.detect(frame)
        out = frame.copy()
        det.visualize_result(out, 0)
        assert np.array_equal(out, frame)
        det.visualize_result(out, 3)
        assert not np.array_equal(out, frame)


# ------------------------------------------------------------------ #
#   S N I P E
# ------------------------------------------------------------------ #
class TestSnipeDetector:
    @pytest.fixture
    def frame(self):
        img = blank()
        fill_rect(img, ((280, 240), (8, 40), 0), RED)
        fill_rect(img, ((360, 240), (8, 40), 0), RED)
        return img

    def test_finds_outpost_armor(self, frame):
        det = SnipeDetector(enemy_team=Team.RED)
        armors = det.detect(frame)
        assert len(det.light_bars) == 2
        assert len(armors) == 1
        assert armors[0].center == pytest.approx((320.0, 240.0), abs=2.0)
        assert armors[0].model is Model.OUTPOST

    def test_ignores_friendly_colour(self, frame):
        det = SnipeDetector(enemy_team=Team.BLUE)
        assert det.detect(frame) == []

    def test_team_from_config(self, frame):
        det = SnipeDetector(SnipeConfig(enemy_team="red"))
        assert det.enemy_team is Team.RED
        assert len(det.detect(frame)) == 1
        det.apply_config(SnipeConfig(enemy_team="blue"))
        assert det.enemy_team is Team.BLUE
        assert det.detect(frame) == []

    def test_visualize_many(self, frame):
        fill_rect(frame, ((80, 100), (8, 40), 0), RED)
        fill_rect(frame, ((160, 100), (8, 40), 0), RED)
        det = SnipeDetector(enemy_team=Team.RED)
        assert len(det.detect(frame)) == 2
        out = np.zeros_like(frame)
        det.visualize_result(out, 3)
        assert out.any()
        det.close()

    def test_draw_pool_reused_across_frames(self, frame):
        fill_rect(frame, ((80, 100), (8, 40), 0), RED)
        fill_rect(frame, ((160, 100), (8, 40), 0), RED)
        det = SnipeDetector(enemy_team=Team.RED)
        out = np.zeros_like(frame)
        det.detect(frame)
        det.visualize_result(out, 1)
        pool = det._pool
        assert pool is not None
        det.detect(frame)
        det.visualize_result(out, 1)
        assert det._pool is pool
        det.close()
        assert det._pool is None


# ------------------------------------------------------------------ #
#   B U F F
# ------------------------------------------------------------------ #
class TestBuffDetector:
    @pytest.fixture
    def frame(self):
        img = blank()
        cv2.rectangle(img, (310, 230), (330, 250), BLUE, -1)   # rotation center
        cv2.rectangle(img, (400, 220), (520, 260), BLUE, -1)   # blade
        cv2.rectangle(img, (470, 228), (510, 252), (0, 0, 0), -1)   # armor window
        return img

    def test_finds_target(self, frame):
        det = BuffDetector(enemy_team=Team.BLUE)
        buffs = det.detect(frame)
        assert len(buffs) == 1
        buff = buffs[0]
        assert buff.center == pytest.approx((320.0, 240.0), abs=2.0)
        assert buff.angle == pytest.approx(0.0, abs=2.0)
        assert buff.direction is Direction.UNKNOWN
        assert len(buff.vertices) == 4
        assert len(det.armor_candidates) == 1

    def test_no_center_no_target(self, frame):
        cv2.rectangle(frame, (300, 220), (340, 260), (0, 0, 0), -1)
        assert BuffDetector(enemy_team=Team.BLUE).detect(frame) == []

    def test_wrong_team(self, frame):
        assert BuffDetector(enemy_team=Team.RED).detect(frame) == []

    @pytest.mark.parametrize(
        "angles, expected",
        [
            ([0.0, 5.0], Direction.ANTICLOCKWISE),
            ([10.0, 4.0], Direction.CLOCKWISE),
            ([0.0, 0.2], Direction.UNKNOWN),
            ([0.0, 90.0], Direction.UNKNOWN),
            ([179.0, -179.0], Direction.ANTICLOCKWISE),
            ([0.0, 5.0, 5.1, 5.3], Direction.ANTICLOCKWISE),
        ],
    )
    def test_update_direction(self, angles, expected):
        det = BuffDetector(BuffConfig())
        for a in angles:
            result = det.update_direction(a)
        assert result is expected


# ------------------------------------------------------------------ #
#   O R E   C U B E
# ------------------------------------------------------------------ #
class FakeEngine:
    input_size = (640, 640)

    def __init__(self, output):
        self.output = np.asarray(output, dtype=np.float32)
        self.calls = 0

    def infer(self, frame_bgr):
        self.calls += 1
        return self.output


class BrokenEngine:
    input_size = (640, 640)

    def infer(self, frame_bgr):
        raise RuntimeError("device lost")


class TestOreCubeDetector:
    def test_decode_nms_and_rescale(self):
        engine = FakeEngine(
            [
                [100, 100, 40, 40, 0.9, 0.9],
                [102, 101, 40, 40, 0.8, 0.9],   # duplicate of the first
                [400, 320, 20, 40, 0.7, 1.0],
                [500, 500, 20, 20, 0.2, 1.0],   # below threshold
            ]
        )
        det = OreCubeDetector(OreCubeConfig(), engine=engine)
        cubes = det.detect(blank())
        assert engine.calls == 1
        assert len(cubes) == 2
        first, second = cubes
        assert first.conf > second.conf
        assert (first.x_ctr, first.y_ctr) == pytest.approx((100.0, 75.0))
        assert (first.w, first.h) == pytest.approx((40.0, 30.0))
        assert first.label == "ore_cube"
        assert second.corners[0] == pytest.approx((390.0, 225.0))

    def test_unknown_class_label(self):
        engine = FakeEngine([[100, 100, 40, 40, 0.9, 0.1, 0.9]])
        cubes = OreCubeDetector(OreCubeConfig(), engine=engine).detect(blank())
        assert cubes[0].class_id == 1
        assert cubes[0].label == "1"

    def test_engine_failure_returns_empty(self):
        det = OreCubeDetector(OreCubeConfig(), engine=BrokenEngine())
        assert det.detect(blank()) == []

    def test_missing_model_is_fatal(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            OreCubeDetector(OreCubeConfig(model_path=str(tmp_path / "missing.onnx")))

    def test_apply_config_changes_threshold(self):
        engine = FakeEngine([[100, 100, 40, 40, 0.6, 1.0]])
        det = OreCubeDetector(OreCubeConfig(), engine=engine)
        assert len(det.detect(blank())) == 1
        det.apply_config(OreCubeConfig(conf_thresh=0.7))
        assert det.detect(blank()) == []
