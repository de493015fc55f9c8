"""
Paddle Control Tests — mode selection priority and per-mode paddle motion.
"""

import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pong_physics import Ball, Paddle, PADDLE_SPEED, PADDLE_HEIGHT, WORLD_HEIGHT
from paddle_control import (
    ControlMode, SideInput, InputSnapshot, PaddleController, select_mode,
    AI_DEAD_ZONE, AI_FOLLOW_SPEED, AI_GAIN,
)

DT = 1 / 60


def make_paddle(y: float = WORLD_HEIGHT / 2) -> Paddle:
    return Paddle(40.0, y)


def ball_at(y: float) -> Ball:
    return Ball(position=[400.0, y])


class TestSelectMode:

    @pytest.mark.parametrize("side_input, ai, expected", [
        (SideInput(drag_y=100.0, axis=1), False, ControlMode.DRAG),
        (SideInput(axis=-1), False, ControlMode.KEYS),
        (SideInput(), False, ControlMode.IDLE),
        (SideInput(drag_y=100.0, axis=1), True, ControlMode.AI),
        (SideInput(), True, ControlMode.AI),
    ])
    def test_priority(self, side_input, ai, expected):
        assert select_mode(side_input, ai) is expected

    def test_drag_at_zero_is_still_drag(self):
        assert select_mode(SideInput(drag_y=0.0)) is ControlMode.DRAG


class TestSideInput:

    @pytest.mark.parametrize("raw, expected", [(-5, -1), (-1, -1), (0, 0), (1, 1), (7, 1)])
    def test_axis_clamped(self, raw, expected):
        assert SideInput(axis=raw).axis == expected

    def test_snapshot_defaults_are_idle(self):
        snap = InputSnapshot()
        assert snap.left == SideInput() and snap.right == SideInput()
        assert not (snap.start or snap.restart or snap.pause_toggle)


class TestDragMode:

    def test_rate_limited_step(self):
        paddle = make_paddle(225.0)
        PaddleController().drive(paddle, ControlMode.DRAG, SideInput(drag_y=400.0), ball_at(0), DT)
        assert paddle.y == pytest.approx(225.0 + PADDLE_SPEED * DT)
        assert paddle.vy == 0.0

    def test_reaches_close_target_exactly(self):
        paddle = make_paddle(225.0)
        PaddleController().drive(paddle, ControlMode.DRAG, SideInput(drag_y=230.0), ball_at(0), DT)
        assert paddle.y == pytest.approx(230.0)

    def test_target_clamped_to_field(self):
        paddle = make_paddle(PADDLE_HEIGHT / 2 + 1.0)
        PaddleController().drive(paddle, ControlMode.DRAG, SideInput(drag_y=-500.0), ball_at(0), DT)
        assert paddle.y == pytest.approx(PADDLE_HEIGHT / 2)

    def test_previous_velocity_discarded(self):
        paddle = make_paddle()
        paddle.vy = 300.0
        PaddleController().drive(paddle, ControlMode.DRAG, SideInput(drag_y=paddle.y), ball_at(0), DT)
        assert paddle.vy == 0.0


class TestKeysMode:

    @pytest.mark.parametrize("axis", [-1, 1])
    def test_velocity_and_motion(self, axis):
        paddle = make_paddle()
        PaddleController().drive(paddle, ControlMode.KEYS, SideInput(axis=axis), ball_at(0), DT)
        assert paddle.vy == axis * PADDLE_SPEED
        assert paddle.y == pytest.approx(WORLD_HEIGHT / 2 + axis * PADDLE_SPEED * DT)

    def test_held_against_wall(self):
        paddle = make_paddle(PADDLE_HEIGHT / 2)
        PaddleController().drive(paddle, ControlMode.KEYS, SideInput(axis=-1), ball_at(0), DT)
        assert paddle.y == PADDLE_HEIGHT / 2


class TestAIMode:

    def test_dead_zone(self):
        paddle = make_paddle(225.0)
        PaddleController().drive(paddle, ControlMode.AI, SideInput(), ball_at(225.0 + AI_DEAD_ZONE - 0.5), DT)
        assert paddle.vy == 0.0
        assert paddle.y == 225.0

    def test_proportional_gain(self):
        paddle = make_paddle(225.0)
        PaddleController().drive(paddle, ControlMode.AI, SideInput(), ball_at(265.0), DT)
        assert paddle.vy == pytest.approx(40.0 * AI_GAIN)
        assert paddle.y > 225.0

    @pytest.mark.parametrize("ball_y, sign", [(440.0, 1), (10.0, -1)])
    def test_speed_capped(self, ball_y, sign):
        paddle = make_paddle(225.0)
        PaddleController().drive(paddle, ControlMode.AI, SideInput(), ball_at(ball_y), DT)
        assert paddle.vy == sign * AI_FOLLOW_SPEED

    def test_ignores_human_input(self):
        paddle = make_paddle(225.0)
        mode = PaddleController().update(paddle, SideInput(drag_y=20.0, axis=-1),
                                         ball_at(225.0), DT, ai_controlled=True)
        assert mode is ControlMode.AI
        assert paddle.y == 225.0


class TestIdleMode:

    def test_holds_position(self):
        paddle = make_paddle(300.0)
        paddle.vy = 500.0
        mode = PaddleController().update(paddle, SideInput(), ball_at(0), DT)
        assert mode is ControlMode.IDLE
        assert paddle.vy == 0.0
        assert paddle.y == 300.0
