"""
Rally Preset System
Four single-contact scenarios against the left paddle (centre return, edge
return, frame-hitch tunneling, moving-paddle spin), each set up and optionally
simulated headless.
"""

from pong_physics import (
    Ball, Paddle, CollisionResolver, circle_rect_hit,
    BALL_SPEED, PADDLE_INSET, WORLD_HEIGHT,
)

# Simulation timestep (120 Hz)
_DT = 1 / 120
_MAX_T = 3.0


def _left_paddle(vy: float = 0.0) -> Paddle:
    return Paddle(PADDLE_INSET, WORLD_HEIGHT / 2, vy=vy)


def _run_until_contact(ball: Ball, paddle: Paddle, resolver: CollisionResolver,
                       dt: float = _DT, max_t: float = _MAX_T) -> tuple:
    """Integrate the ball until it touches the paddle, leaves the field or time runs out."""
    t = 0.0
    while t < max_t:
        ball.integrate(dt)
        t += dt
        if resolver.resolve(ball, paddle, +1, side="left"):
            return t, True
        if ball.x < -ball.radius:
            break
    return t, False


class RallyPreset:
    """Each preset places ball + paddle → (optional) simulate → result dict."""

    @staticmethod
    def scenario_1_center(run=True) -> dict:
        """Centre contact: the return leaves almost horizontally."""
        paddle   = _left_paddle()
        ball     = Ball(position=[300.0, paddle.y], velocity=[-BALL_SPEED, 0.0])
        resolver = CollisionResolver()

        elapsed, hit = 0.0, False
        if run:
            elapsed, hit = _run_until_contact(ball, paddle, resolver)
        return {"ball": ball, "paddle": paddle, "resolver": resolver,
                "elapsed": elapsed, "hit": hit, "events": resolver.events}

    @staticmethod
    def scenario_2_edge(run=True) -> dict:
        """Top-edge contact: offset -1 gives the steepest (upward) return."""
        paddle   = _left_paddle()
        top      = paddle.rect.y
        ball     = Ball(position=[300.0, top], velocity=[-BALL_SPEED, 0.0])
        resolver = CollisionResolver()

        elapsed, hit = 0.0, False
        if run:
            elapsed, hit = _run_until_contact(ball, paddle, resolver)
        return {"ball": ball, "paddle": paddle, "resolver": resolver,
                "elapsed": elapsed, "hit": hit, "events": resolver.events}

    @staticmethod
    def scenario_3_tunnel(run=True) -> dict:
        """Frame hitch: one clamped 33 ms step carries the ball clean past the paddle.

        The static overlap test at the end position misses; the swept test must
        still report the contact. `static_hit` records what the static test alone
        would have said.
        """
        paddle   = _left_paddle()
        speed    = 1700.0
        ball     = Ball(position=[75.0, paddle.y + 10.0], velocity=[-speed, 0.0], speed=speed)
        resolver = CollisionResolver()

        elapsed, hit, static_hit = 0.0, False, None
        if run:
            dt = 0.033
            ball.integrate(dt)
            static_hit = circle_rect_hit(ball.x, ball.y, ball.radius, paddle.rect)
            hit = resolver.resolve(ball, paddle, +1, side="left")
            elapsed = dt
        return {"ball": ball, "paddle": paddle, "resolver": resolver,
                "elapsed": elapsed, "hit": hit, "static_hit": static_hit,
                "events": resolver.events}

    @staticmethod
    def scenario_4_spin(paddle_vy: float = 520.0, run=True) -> dict:
        """Centre contact on a moving paddle: spin bends the return, speed is kept.

        Args:
            paddle_vy: Paddle vertical velocity at contact (+ = moving down).
        """
        paddle   = _left_paddle(vy=paddle_vy)
        ball     = Ball(position=[300.0, paddle.y], velocity=[-BALL_SPEED, 0.0])
        resolver = CollisionResolver()

        elapsed, hit = 0.0, False
        if run:
            # Paddle vy is held, not integrated: only the contact response is under test
            elapsed, hit = _run_until_contact(ball, paddle, resolver)
        return {"ball": ball, "paddle": paddle, "resolver": resolver,
                "elapsed": elapsed, "hit": hit, "events": resolver.events}
