"""
Tests for the Rally Preset System.
Each scenario checks the contact response it was built to demonstrate.
"""

import math
import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rally_presets import RallyPreset
from pong_physics import BALL_SPEED, SPEED_UP_PER_HIT, MAX_BOUNCE_ANGLE_DEG


def outgoing_angle(ball) -> float:
    return math.atan2(ball.vy, ball.vx)


class TestScenario1Center:

    def test_flat_return(self):
        result = RallyPreset.scenario_1_center()
        ball = result["ball"]
        assert result["hit"]
        assert ball.vx > 0
        assert abs(outgoing_angle(ball)) < 1e-9

    def test_speed_steps_up_once(self):
        ball = RallyPreset.scenario_1_center()["ball"]
        assert ball.hits == 1
        assert ball.speed == pytest.approx(BALL_SPEED + SPEED_UP_PER_HIT)

    def test_simulation_completes(self):
        result = RallyPreset.scenario_1_center()
        assert result["elapsed"] < 3.0


class TestScenario2Edge:

    def test_steepest_upward_return(self):
        result = RallyPreset.scenario_2_edge()
        ball = result["ball"]
        assert result["hit"]
        assert outgoing_angle(ball) == pytest.approx(-math.radians(MAX_BOUNCE_ANGLE_DEG))
        assert result["events"][0]["offset"] == pytest.approx(-1.0)


class TestScenario3Tunnel:

    def test_static_test_alone_misses(self):
        result = RallyPreset.scenario_3_tunnel()
        assert result["static_hit"] is False

    def test_swept_test_catches_contact(self):
        result = RallyPreset.scenario_3_tunnel()
        ball = result["ball"]
        assert result["hit"]
        assert ball.vx > 0
        assert ball.x > result["paddle"].rect.right
        assert ball.velocity_magnitude == pytest.approx(ball.speed)


class TestScenario4Spin:

    @pytest.mark.parametrize("paddle_vy, sign", [(520.0, 1), (-520.0, -1)])
    def test_spin_follows_paddle(self, paddle_vy, sign):
        result = RallyPreset.scenario_4_spin(paddle_vy=paddle_vy)
        ball = result["ball"]
        assert result["hit"]
        assert math.copysign(1, ball.vy) == sign
        assert ball.velocity_magnitude == pytest.approx(ball.speed)

    def test_still_paddle_has_no_spin(self):
        ball = RallyPreset.scenario_4_spin(paddle_vy=0.0)["ball"]
        assert ball.vy == pytest.approx(0.0)


class TestSetupOnly:
    """run=False places the bodies without advancing anything."""

    SCENARIOS = [
        RallyPreset.scenario_1_center,
        RallyPreset.scenario_2_edge,
        RallyPreset.scenario_3_tunnel,
        lambda run: RallyPreset.scenario_4_spin(run=run),
    ]

    @pytest.mark.parametrize("scenario_fn", SCENARIOS)
    def test_no_contact_yet(self, scenario_fn):
        result = scenario_fn(run=False)
        assert result["hit"] is False
        assert result["elapsed"] == 0.0
        assert result["events"] == []

    @pytest.mark.parametrize("scenario_fn", SCENARIOS)
    def test_ball_heads_for_left_paddle(self, scenario_fn):
        result = scenario_fn(run=False)
        assert result["ball"].vx < 0
        assert result["ball"].x > result["paddle"].rect.right
