"""
Paddle Duel Physics
Layer 1: Ball / Paddle integration, swept paddle contact, bounce response
"""

import math
import random
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

import numpy as np

# ──────────────────────────────────────────────
# Constants (world units = pixels, seconds)
# ──────────────────────────────────────────────
WORLD_WIDTH: float = 800.0
WORLD_HEIGHT: float = 450.0

PADDLE_WIDTH: float = 16.0
PADDLE_HEIGHT: float = 90.0
PADDLE_SPEED: float = 520.0  # px/s, keyboard and drag rate limit
PADDLE_INSET: float = 40.0  # paddle centre distance from its side edge

BALL_RADIUS: float = 10.0
BALL_SPEED: float = 420.0  # serve speed
BALL_MAX_SPEED: float = 900.0
SPEED_UP_PER_HIT: float = 18.0
LAUNCH_ANGLE: float = 0.3  # rad, serve angle drawn from [-LAUNCH_ANGLE, LAUNCH_ANGLE]

# Bounce response
MAX_BOUNCE_ANGLE_DEG: float = 55.0
SPIN_FACTOR: float = 0.18  # share of paddle vy added to the outgoing vy

# Numerical thresholds
CONTACT_EPSILON: float = 0.001  # gap left between ball and paddle face after contact
DEGENERATE_SPEED: float = 1e-9


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


class Rect(NamedTuple):
    """Axis-aligned rectangle, top-left origin (y grows downward)."""
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h


# ──────────────────────────────────────────────
# Geometry primitives
# ──────────────────────────────────────────────
def circle_rect_hit(cx: float, cy: float, r: float, rect: Rect) -> bool:
    """True when the circle overlaps or touches the rectangle."""
    closest_x = clamp(cx, rect.x, rect.right)
    closest_y = clamp(cy, rect.y, rect.bottom)
    dx = cx - closest_x
    dy = cy - closest_y
    return dx * dx + dy * dy <= r * r


def swept_face_crossing(prev_edge: float, curr_edge: float, face_x: float,
                        toward_dir: int) -> Optional[float]:
    """
    Fraction of the step at which a moving edge crosses a vertical face.

    Args:
        prev_edge: Leading-edge x at the start of the step.
        curr_edge: Leading-edge x at the end of the step.
        face_x: x of the paddle face.
        toward_dir: +1 for the left paddle (ball travels -x, bounces to +x),
                    -1 for the right paddle (ball travels +x).

    Returns:
        t in [0, 1], or None when the edge did not cross the face this step.
    """
    if toward_dir < 0:
        crossed = prev_edge < face_x <= curr_edge
    else:
        crossed = prev_edge > face_x >= curr_edge
    if not crossed:
        return None
    span = curr_edge - prev_edge
    if abs(span) < DEGENERATE_SPEED:
        return 1.0
    return clamp((face_x - prev_edge) / span, 0.0, 1.0)


# ──────────────────────────────────────────────
# Bounce response helpers
# ──────────────────────────────────────────────
def bounce_angle(offset: float) -> float:
    """Outgoing angle (rad) for a contact offset in [-1, 1] from the paddle centre."""
    return clamp(offset, -1.0, 1.0) * math.radians(MAX_BOUNCE_ANGLE_DEG)


def rally_speed(hits: int) -> float:
    """Ball speed after `hits` paddle contacts: linear ramp capped at BALL_MAX_SPEED."""
    return clamp(BALL_SPEED + hits * SPEED_UP_PER_HIT, BALL_SPEED, BALL_MAX_SPEED)


def bounce_velocity(angle: float, speed: float, toward_dir: int,
                    paddle_vy: float = 0.0) -> np.ndarray:
    """
    Velocity leaving a paddle.

    The direction (cos, sin) is scaled to `speed`, paddle motion is added to the
    vertical component only, then the vector is rescaled so |v| == speed.
    A degenerate sum falls back to a flat return at `speed`.
    """
    v = np.array([math.cos(angle) * speed * toward_dir,
                  math.sin(angle) * speed + paddle_vy * SPIN_FACTOR])
    mag = float(np.hypot(v[0], v[1]))
    if mag < DEGENERATE_SPEED:
        return np.array([speed * toward_dir, 0.0])
    return v * (speed / mag)


# ──────────────────────────────────────────────
# Bodies
# ──────────────────────────────────────────────
@dataclass
class Ball:
    """The ball: position, previous position (for swept tests) and velocity."""
    position: np.ndarray = field(
        default_factory=lambda: np.array([WORLD_WIDTH / 2, WORLD_HEIGHT / 2]))
    velocity: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    prev_position: Optional[np.ndarray] = None
    speed: float = BALL_SPEED
    hits: int = 0
    radius: float = BALL_RADIUS
    wall_bounced: bool = False

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)
        if self.prev_position is None:
            self.prev_position = self.position.copy()
        else:
            self.prev_position = np.array(self.prev_position, dtype=float)

    # Scalar views used by the controller and the snapshot
    @property
    def x(self) -> float:
        return float(self.position[0])

    @x.setter
    def x(self, value: float) -> None:
        self.position[0] = value

    @property
    def y(self) -> float:
        return float(self.position[1])

    @y.setter
    def y(self, value: float) -> None:
        self.position[1] = value

    @property
    def prev_x(self) -> float:
        return float(self.prev_position[0])

    @property
    def prev_y(self) -> float:
        return float(self.prev_position[1])

    @property
    def vx(self) -> float:
        return float(self.velocity[0])

    @property
    def vy(self) -> float:
        return float(self.velocity[1])

    @property
    def velocity_magnitude(self) -> float:
        return float(np.hypot(self.velocity[0], self.velocity[1]))

    def reset(self, direction: int, rng: Optional[random.Random] = None,
              world_width: float = WORLD_WIDTH,
              world_height: float = WORLD_HEIGHT) -> None:
        """Re-serve from the centre. direction=+1 launches right, -1 left."""
        rng = rng or random
        self.position = np.array([world_width / 2, world_height / 2])
        self.prev_position = self.position.copy()
        angle = rng.uniform(-LAUNCH_ANGLE, LAUNCH_ANGLE)
        self.velocity = np.array([math.cos(angle) * BALL_SPEED * direction,
                                  math.sin(angle) * BALL_SPEED])
        self.speed = BALL_SPEED
        self.hits = 0
        self.wall_bounced = False

    def integrate(self, dt: float, world_height: float = WORLD_HEIGHT) -> None:
        """Advance by dt and bounce off the top/bottom walls."""
        self.wall_bounced = False
        self.prev_position = self.position.copy()
        self.position = self.position + self.velocity * dt

        r = self.radius
        if self.position[1] < r:
            self.position[1] = r
            self.velocity[1] = abs(self.velocity[1])
            self.wall_bounced = True
        elif self.position[1] > world_height - r:
            self.position[1] = world_height - r
            self.velocity[1] = -abs(self.velocity[1])
            self.wall_bounced = True


@dataclass
class Paddle:
    """Vertical paddle. x is fixed per side; vy is written by the paddle controller."""
    x: float
    y: float = WORLD_HEIGHT / 2
    vy: float = 0.0
    width: float = PADDLE_WIDTH
    height: float = PADDLE_HEIGHT

    @property
    def half_height(self) -> float:
        return self.height / 2

    @property
    def rect(self) -> Rect:
        return Rect(self.x - self.width / 2, self.y - self.height / 2,
                    self.width, self.height)

    def clamp_center(self, y: float, world_height: float = WORLD_HEIGHT) -> float:
        return clamp(y, self.half_height, world_height - self.half_height)

    def integrate(self, dt: float, world_height: float = WORLD_HEIGHT) -> None:
        self.y = self.clamp_center(self.y + self.vy * dt, world_height)

    def center(self, world_height: float = WORLD_HEIGHT) -> None:
        self.y = world_height / 2
        self.vy = 0.0


# ──────────────────────────────────────────────
# Paddle contact
# ──────────────────────────────────────────────
class CollisionResolver:
    """Detects ball-paddle contact each tick and applies the bounce response."""

    def __init__(self):
        self.events: list = []

    @staticmethod
    def find_contact(ball: Ball, paddle: Paddle, toward_dir: int) -> Optional[float]:
        """
        Contact y on the paddle face, or None.

        Swept test first: the ball's leading edge against the facing plane between
        the previous and current tick. If the edge did not cross the plane, fall
        back to a static circle/rect overlap at the current position.
        """
        r = ball.radius
        rect = paddle.rect
        if toward_dir < 0:
            face_x = rect.x
            prev_edge, curr_edge = ball.prev_x + r, ball.x + r
        else:
            face_x = rect.right
            prev_edge, curr_edge = ball.prev_x - r, ball.x - r

        t_hit = swept_face_crossing(prev_edge, curr_edge, face_x, toward_dir)
        if t_hit is not None:
            y_at = ball.prev_y + (ball.y - ball.prev_y) * t_hit
            if rect.y <= y_at <= rect.bottom:
                return y_at
            return None

        if circle_rect_hit(ball.x, ball.y, r, rect):
            return ball.y
        return None

    def resolve(self, ball: Ball, paddle: Paddle, toward_dir: int,
                side: str = "") -> bool:
        """
        Bounce the ball off `paddle` if they touch.

        Args:
            toward_dir: Horizontal sign of the outgoing ball (+1 left paddle,
                        -1 right paddle).
            side: Label copied into the emitted event.

        Returns:
            True when a contact was resolved.
        """
        # A ball moving away from (or parallel to) the paddle cannot hit it
        if toward_dir > 0 and ball.vx >= 0:
            return False
        if toward_dir < 0 and ball.vx <= 0:
            return False

        y_at = self.find_contact(ball, paddle, toward_dir)
        if y_at is None:
            return False

        rect = paddle.rect
        if toward_dir > 0:
            ball.x = rect.right + ball.radius + CONTACT_EPSILON
        else:
            ball.x = rect.x - ball.radius - CONTACT_EPSILON

        offset = clamp((y_at - paddle.y) / paddle.half_height, -1.0, 1.0)
        angle = bounce_angle(offset)

        ball.hits += 1
        ball.speed = rally_speed(ball.hits)
        ball.velocity = bounce_velocity(angle, ball.speed, toward_dir, paddle.vy)

        self.events.append({
            "type": "paddle_hit", "side": side,
            "offset": float(offset), "speed": float(ball.speed),
        })
        return True

    def check_paddles(self, ball: Ball, left: Paddle, right: Paddle) -> None:
        """Resolve both paddles for this tick. Clears the previous tick's events."""
        self.events.clear()
        self.resolve(ball, left, +1, side="left")
        self.resolve(ball, right, -1, side="right")
