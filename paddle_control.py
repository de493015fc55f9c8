"""
Paddle control: per-side input snapshot, control-mode selection, paddle driving.

Each tick the match controller builds one SideInput per side, picks a
ControlMode with select_mode() and hands the paddle to PaddleController.drive()
for that single call.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional

from pong_physics import Ball, Paddle, PADDLE_SPEED, WORLD_HEIGHT, clamp

# AI tracker tuning
AI_FOLLOW_SPEED: float = 420.0  # px/s cap
AI_DEAD_ZONE: float = 14.0  # px, no correction inside this band
AI_GAIN: float = 3.0  # vy per px of error


class ControlMode(enum.Enum):
    DRAG = "drag"
    KEYS = "keys"
    AI = "ai"
    IDLE = "idle"


@dataclass(frozen=True)
class SideInput:
    """Input for one paddle for one tick."""
    drag_y: Optional[float] = None  # pointer y in world units while a pointer is held
    axis: int = 0  # -1 up, 0 none, +1 down

    def __post_init__(self):
        # Out-of-range axis values collapse to their sign
        axis = int(clamp(self.axis, -1, 1)) if self.axis else 0
        object.__setattr__(self, "axis", axis)


@dataclass(frozen=True)
class InputSnapshot:
    """Everything the simulation reads from the outside world in one tick."""
    left: SideInput = field(default_factory=SideInput)
    right: SideInput = field(default_factory=SideInput)
    start: bool = False
    restart: bool = False
    pause_toggle: bool = False


def select_mode(side_input: SideInput, ai_controlled: bool = False) -> ControlMode:
    """Pick how a paddle is driven this tick. AI sides ignore human input."""
    if ai_controlled:
        return ControlMode.AI
    if side_input.drag_y is not None:
        return ControlMode.DRAG
    if side_input.axis != 0:
        return ControlMode.KEYS
    return ControlMode.IDLE


class PaddleController:
    """Turns a ControlMode plus input into paddle motion."""

    def __init__(self, paddle_speed: float = PADDLE_SPEED,
                 world_height: float = WORLD_HEIGHT):
        self.paddle_speed = paddle_speed
        self.world_height = world_height

    def drive(self, paddle: Paddle, mode: ControlMode, side_input: SideInput,
              ball: Ball, dt: float) -> None:
        if mode is ControlMode.DRAG:
            self._drive_drag(paddle, side_input.drag_y, dt)
        elif mode is ControlMode.KEYS:
            paddle.vy = side_input.axis * self.paddle_speed
            paddle.integrate(dt, self.world_height)
        elif mode is ControlMode.AI:
            paddle.vy = self.ai_velocity(ball.y - paddle.y)
            paddle.integrate(dt, self.world_height)
        else:
            paddle.vy = 0.0
            paddle.integrate(dt, self.world_height)

    def update(self, paddle: Paddle, side_input: SideInput, ball: Ball, dt: float,
               ai_controlled: bool = False) -> ControlMode:
        mode = select_mode(side_input, ai_controlled)
        self.drive(paddle, mode, side_input, ball, dt)
        return mode

    def _drive_drag(self, paddle: Paddle, drag_y: float, dt: float) -> None:
        """Rate-limited snap toward the pointer. vy stays 0 so the paddle reads as held."""
        target = paddle.clamp_center(drag_y, self.world_height)
        max_step = self.paddle_speed * dt
        paddle.y += clamp(target - paddle.y, -max_step, max_step)
        paddle.vy = 0.0

    @staticmethod
    def ai_velocity(dy: float) -> float:
        """Proportional tracker with a dead zone and a speed cap."""
        if abs(dy) < AI_DEAD_ZONE:
            return 0.0
        return clamp(dy * AI_GAIN, -AI_FOLLOW_SPEED, AI_FOLLOW_SPEED)
