"""
Tests for light-bar and armor value types.
"""
import math

import cv2
import numpy as np
import pytest

from armor_vision.common import Model
from armor_vision.geometry import Armor, LightBar


class TestLightBar:
    """Test suite for LightBar."""

    @pytest.fixture
    def rect(self):
        return ((1.0, 1.0), (2.0, 3.0), 5.0)

    def test_measurements(self, rect):
        bar = LightBar.from_rect(rect)
        assert bar.center == (1.0, 1.0)
        assert bar.angle == pytest.approx(5.0)
        assert bar.length == pytest.approx(3.0)
        assert bar.width == pytest.approx(2.0)
        assert bar.area == pytest.approx(6.0)
        assert bar.aspect_ratio == pytest.approx(1.5)

    def test_vertices_match_box_points(self, rect):
        bar = LightBar.from_rect(rect)
        expected = cv2.boxPoints(rect)
        assert len(bar.vertices) == 4
        for got, want in zip(bar.vertices, expected):
            assert got == pytest.approx((float(want[0]), float(want[1])), abs=1e-5)

    @pytest.mark.parametrize("size", [(2.0, 9.0), (9.0, 2.0), (4.0, 4.0), (0.5, 30.0)])
    def test_length_not_below_width(self, size):
        bar = LightBar.from_rect(((50.0, 50.0), size, 30.0))
        assert bar.length >= bar.width
        assert bar.aspect_ratio >= 1.0
        assert bar.length == pytest.approx(max(size))
        assert bar.width == pytest.approx(min(size))

    def test_degenerate_rect_is_finite(self):
        bar = LightBar.from_rect(((10.0, 10.0), (0.0, 0.0), 0.0))
        for value in (bar.length, bar.width, bar.area, bar.aspect_ratio, bar.tilt):
            assert math.isfinite(value)
        assert bar.aspect_ratio >= 1.0

    def test_zero_width_bar_is_finite(self):
        bar = LightBar.from_rect(((10.0, 10.0), (0.0, 12.0), 0.0))
        assert math.isfinite(bar.aspect_ratio)
        assert bar.width > 0

    def test_endpoints_of_vertical_bar(self):
        bar = LightBar.from_rect(((100.0, 200.0), (4.0, 40.0), 0.0))
        assert bar.top == pytest.approx((100.0, 180.0), abs=1e-4)
        assert bar.bottom == pytest.approx((100.0, 220.0), abs=1e-4)
        assert bar.tilt == pytest.approx(0.0, abs=1e-4)

    def test_tilt_sign(self):
        # Top leaning right means bottom sits to the left of the top.
        bar = LightBar.from_rect(((100.0, 100.0), (4.0, 40.0), 20.0))
        assert abs(bar.tilt) == pytest.approx(20.0, abs=1e-3)

    def test_immutable(self, rect):
        bar = LightBar.from_rect(rect)
        with pytest.raises(Exception):
            bar.length = 10.0


class TestArmor:
    """Test suite for Armor."""

    @pytest.fixture
    def armor(self):
        left = LightBar.from_rect(((1.0, 3.0), (1.0, 3.0), 5.0))
        right = LightBar.from_rect(((3.0, 1.0), (1.0, 3.0), 7.0))
        return Armor(left, right)

    def test_center_and_angle(self, armor):
        assert armor.center[0] == pytest.approx(2.0)
        assert armor.center[1] == pytest.approx(2.0)
        assert armor.angle == pytest.approx(6.0)

    def test_model_defaults_to_unknown(self, armor):
        assert armor.get_model() is Model.UNKNOWN

    def test_set_model(self, armor):
        armor.set_model(Model.HERO)
        assert armor.get_model() is Model.HERO
        assert armor.model is Model.HERO

    def test_set_same_model_twice(self, armor):
        armor.set_model(Model.SENTRY)
        armor.set_model(Model.SENTRY)
        assert armor.model is Model.SENTRY

    def test_model_cannot_be_reassigned(self, armor):
        armor.set_model(Model.HERO)
        with pytest.raises(RuntimeError):
            armor.set_model(Model.ENGINEER)
        assert armor.model is Model.HERO

    def test_vertices_order(self):
        left = LightBar.from_rect(((100.0, 100.0), (4.0, 40.0), 0.0))
        right = LightBar.from_rect(((200.0, 100.0), (4.0, 40.0), 0.0))
        tl, tr, br, bl = Armor(left, right).vertices
        assert tl[0] < tr[0] and bl[0] < br[0]
        assert tl[1] < bl[1] and tr[1] < br[1]
        assert np.allclose(Armor(left, right).image_points().shape, (4, 2))

    def test_visualize_object(self, armor):
        assert len(armor.visualize_object(False)) == 1
        assert len(armor.visualize_object(True)) > 1
