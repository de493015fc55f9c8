"""
PongController — Layer 2 (Match Logic)

Owns the ball, both paddles and the match state machine.
Communicates with Layer 3 (pong_server.py) through:
  - step(dt, inputs)   : advance one frame from a polled InputSnapshot
  - pending_events     : one-shot events (wall_bounce, paddle_hit, scored, …)
  - snapshot()         : read-only dict of everything a renderer/HUD needs

Layer 3 calls:
  ctrl.step(dt, inputs)       — once per frame
  ctrl.snapshot()             — build the frame to display
  ctrl.drain_events()         — take this frame's events (sounds, flashes)
"""

import enum
import logging
import math
import random
from typing import Callable, Optional, Union

from pong_physics import (
    Ball, Paddle, CollisionResolver,
    WORLD_WIDTH, WORLD_HEIGHT, PADDLE_INSET, clamp,
)
from paddle_control import InputSnapshot, PaddleController

log = logging.getLogger(__name__)


class Phase(enum.Enum):
    MENU = "menu"
    SERVE = "serve"
    PLAY = "play"
    PAUSE = "pause"
    OVER = "over"


# Outcomes are reported from the left (human) paddle's point of view
OUTCOME_TEXT = {
    "win":  "You Win!",
    "loss": "AI Wins!",
    "draw": "Draw!",
}


def format_clock(seconds: float) -> str:
    """MM:SS of the remaining time, rounded up to the next whole second."""
    t = max(0, math.ceil(seconds))
    return f"{t // 60:02d}:{t % 60:02d}"


InputSource = Union[InputSnapshot, Callable[["PongController"], InputSnapshot], None]


class PongController:
    """Layer 2: match state machine + physics orchestration."""

    # ── Class-level constants ─────────────────────────────────────────────────
    SCORE_TO_WIN      = 7
    MATCH_SECONDS     = 9 * 60.0
    COUNTDOWN_SECONDS = 3.0
    GO_HOLD           = 0.25
    OUT_MARGIN        = 40.0
    MAX_DT            = 0.033

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

        # Bodies
        self.ball  = Ball()
        self.left  = Paddle(PADDLE_INSET)
        self.right = Paddle(WORLD_WIDTH - PADDLE_INSET)
        self.resolver       = CollisionResolver()
        self.paddle_control = PaddleController()

        # Match state
        self.phase = Phase.MENU
        self.prev_phase: Optional[Phase] = None
        self.left_score  = 0
        self.right_score = 0
        self.match_time_left = self.MATCH_SECONDS
        self.serve_remaining = 0.0
        self._last_count = 0
        self.two_player = False
        self.outcome: Optional[str] = None
        self.time = 0.0

        # Overlay text (L3 reads this for the title/subtitle)
        self.status_msg = ""

        # Event queue, drained by L3 once per frame
        self.pending_events: list[dict] = []

        self.show_menu()

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def step(self, dt: float, inputs: Optional[InputSnapshot] = None) -> None:
        """Advance one frame. Commands in `inputs` apply before anything moves."""
        dt = clamp(dt, 0.0, self.MAX_DT)
        if inputs is None:
            inputs = InputSnapshot()
        self._apply_commands(inputs)

        if self.phase in (Phase.PAUSE, Phase.MENU, Phase.OVER):
            return
        self.time += dt

        # Clock runs through serve and play, and ends the match before the rally resolves
        self.match_time_left = max(0.0, self.match_time_left - dt)
        if self.match_time_left <= 0:
            self._end_match(self._clock_outcome())
            return

        if self.phase == Phase.SERVE:
            self._tick_serve(dt)

        # Paddles move during serve as well; only the ball is frozen
        self.paddle_control.update(self.left, inputs.left, self.ball, dt)
        self.paddle_control.update(self.right, inputs.right, self.ball, dt,
                                   ai_controlled=not self.two_player)

        if self.phase != Phase.PLAY:
            return

        self.ball.integrate(dt)
        if self.ball.wall_bounced:
            self.pending_events.append({"type": "wall_bounce"})

        self.resolver.check_paddles(self.ball, self.left, self.right)
        self.pending_events.extend(self.resolver.events)

        if self.ball.x < -self.OUT_MARGIN:
            self._score("right", serve_dir=+1)
        elif self.ball.x > WORLD_WIDTH + self.OUT_MARGIN:
            self._score("left", serve_dir=-1)

    def _apply_commands(self, inputs: InputSnapshot) -> None:
        if inputs.restart:
            self.restart()
        if inputs.start:
            self.start()
        if inputs.pause_toggle:
            self.toggle_pause()

    def _tick_serve(self, dt: float) -> None:
        self.serve_remaining = max(0.0, self.serve_remaining - dt)
        count = self.serve_count
        if count != self._last_count:
            self._last_count = count
            if count > 0:
                self.pending_events.append({"type": "serve_tick", "cue": "count", "count": count})
            else:
                self.pending_events.append({"type": "serve_tick", "cue": "go"})
        if self.serve_remaining <= 0:
            self.phase = Phase.PLAY
            self.status_msg = ""
            log.info("[SERVE] ball live")

    # ──────────────────────────────────────────────────────────────────────────
    # Commands
    # ──────────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Begin a match from the menu. Ignored in every other phase."""
        if self.phase != Phase.MENU:
            log.debug("[MATCH] start ignored in %s", self.phase.value)
            return
        self.left_score  = 0
        self.right_score = 0
        self.outcome = None
        self.match_time_left = self.MATCH_SECONDS
        log.info("[MATCH] start  duration=%.0fs  two_player=%s",
                 self.match_time_left, self.two_player)
        self._begin_serve(self._random_direction())

    def restart(self) -> None:
        """Reset scores, paddles and ball and return to the menu."""
        self.left_score  = 0
        self.right_score = 0
        self.outcome = None
        self.left.center()
        self.right.center()
        log.info("[MATCH] restart")
        self.show_menu()

    def quit_to_menu(self) -> None:
        self.show_menu()

    def show_menu(self) -> None:
        self.phase = Phase.MENU
        self.prev_phase = None
        self.two_player = False
        self.serve_remaining = 0.0
        self._last_count = 0
        self.match_time_left = self.MATCH_SECONDS
        self.ball.reset(self._random_direction(), self.rng)
        self.status_msg = "Pong"
        self.pending_events.append({"type": "menu"})

    def toggle_pause(self) -> None:
        if self.phase in (Phase.SERVE, Phase.PLAY):
            self.prev_phase = self.phase
            self.phase = Phase.PAUSE
            self.status_msg = "Paused"
            self.pending_events.append({"type": "paused"})
            log.info("[MATCH] paused during %s", self.prev_phase.value)
        elif self.phase == Phase.PAUSE:
            self.phase = self.prev_phase or Phase.MENU
            self.prev_phase = None
            self.status_msg = ""
            self.pending_events.append({"type": "resumed"})
            log.info("[MATCH] resumed %s", self.phase.value)
        else:
            log.debug("[MATCH] pause ignored in %s", self.phase.value)

    def load_rally(self, scenario_fn, label: str) -> None:
        """Load a rally-preset drill (keys 1-4) straight into play from the menu."""
        if self.phase != Phase.MENU:
            log.debug("[DRILL] load ignored in %s", self.phase.value)
            return

        result = scenario_fn(run=False)
        src_ball, src_paddle = result["ball"], result["paddle"]
        self.ball.position = src_ball.position.copy()
        self.ball.prev_position = src_ball.position.copy()
        self.ball.velocity = src_ball.velocity.copy()
        self.ball.speed = src_ball.speed
        self.ball.hits = src_ball.hits
        self.left.y = src_paddle.y
        self.left.vy = src_paddle.vy

        self.left_score  = 0
        self.right_score = 0
        self.outcome = None
        self.match_time_left = self.MATCH_SECONDS
        self.phase = Phase.PLAY
        self.status_msg = f"Drill {label}"
        self.pending_events.append({"type": "rally_loaded", "label": label})
        log.info("[DRILL] %s", label)

    def set_two_player(self, enabled: bool) -> None:
        flag = bool(enabled)
        if flag == self.two_player:
            return
        self.two_player = flag
        log.info("[MATCH] two_player=%s", flag)

    # ──────────────────────────────────────────────────────────────────────────
    # Serve / scoring
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def serve_count(self) -> int:
        """Countdown digit on screen during serve; 0 means GO."""
        if self.phase != Phase.SERVE and self.prev_phase != Phase.SERVE:
            return 0
        return math.ceil(max(0.0, self.serve_remaining - self.GO_HOLD))

    def _random_direction(self) -> int:
        return -1 if self.rng.random() < 0.5 else 1

    def _begin_serve(self, direction: int) -> None:
        self.phase = Phase.SERVE
        self.serve_remaining = self.COUNTDOWN_SECONDS + self.GO_HOLD
        self.ball.reset(direction, self.rng)
        self._last_count = self.serve_count + 1  # first digit shown emits a cue too
        self.status_msg = ""
        self.pending_events.append({"type": "serve_start", "direction": direction})
        log.info("[SERVE] direction=%+d  score=%d-%d",
                 direction, self.left_score, self.right_score)

    def _score(self, side: str, serve_dir: int) -> None:
        if side == "right":
            self.right_score += 1
        else:
            self.left_score += 1
        self.pending_events.append({
            "type": "scored", "side": side,
            "score": [self.left_score, self.right_score],
        })
        log.info("[MATCH] %s scores  %d-%d", side, self.left_score, self.right_score)

        outcome = self._check_win()
        if outcome is not None:
            self._end_match(outcome)
            return
        self._begin_serve(serve_dir)

    def _check_win(self) -> Optional[str]:
        if self.left_score >= self.SCORE_TO_WIN:
            return "win"
        if self.right_score >= self.SCORE_TO_WIN:
            return "loss"
        return None

    def _clock_outcome(self) -> str:
        if self.left_score == self.right_score:
            return "draw"
        return "win" if self.left_score > self.right_score else "loss"

    def _end_match(self, outcome: str) -> None:
        self.phase = Phase.OVER
        self.prev_phase = None
        self.outcome = outcome
        text = OUTCOME_TEXT[outcome]
        self.status_msg = f"{text}  Final Score: {self.left_score} - {self.right_score}"
        self.pending_events.append({"type": "match_ended", "outcome": outcome, "text": text})
        log.info("[MATCH] over: %s  %d-%d", text, self.left_score, self.right_score)

    # ──────────────────────────────────────────────────────────────────────────
    # Read-only views for L3
    # ──────────────────────────────────────────────────────────────────────────

    def drain_events(self) -> list:
        events = self.pending_events
        self.pending_events = []
        return events

    @staticmethod
    def _paddle_state(paddle: Paddle) -> dict:
        rect = paddle.rect
        return {"x": rect.x, "y": rect.y, "w": rect.w, "h": rect.h, "vy": paddle.vy}

    def snapshot(self) -> dict:
        """Post-tick state for renderers, audio and HUD. Includes undrained events."""
        b = self.ball
        return {
            "phase": self.phase.value,
            "left": self._paddle_state(self.left),
            "right": self._paddle_state(self.right),
            "ball": {
                "x": b.x, "y": b.y, "r": b.radius,
                "vx": b.vx, "vy": b.vy,
                "speed": b.speed, "hits": b.hits,
            },
            "score": [self.left_score, self.right_score],
            "time_left": self.match_time_left,
            "time_text": format_clock(self.match_time_left),
            "serve_count": self.serve_count,
            "two_player": self.two_player,
            "outcome": self.outcome,
            "status": self.status_msg,
            "events": list(self.pending_events),
        }

    # ──────────────────────────────────────────────────────────────────────────
    # Headless API
    # ──────────────────────────────────────────────────────────────────────────

    def reset(self, seed: Optional[int] = None) -> dict:
        """Back to a fresh menu. A seed makes every following serve reproducible."""
        if seed is not None:
            self.rng = random.Random(seed)
        self.time = 0.0
        self.restart()
        self.pending_events.clear()
        return self.snapshot()

    def simulate(self, max_time: float, dt: float = 1 / 60,
                 inputs: InputSource = None) -> float:
        """
        Run frames until the match is over or `max_time` simulated seconds pass.

        Args:
            max_time: Upper bound on simulated time (seconds).
            dt: Frame step; clamped to MAX_DT like step().
            inputs: A fixed InputSnapshot for every frame, or a callable
                    ``inputs(ctrl) -> InputSnapshot`` evaluated each frame.
                    Edge commands in a fixed snapshot repeat every frame.

        Returns:
            Elapsed simulated time in seconds.
        """
        dt = clamp(dt, 0.0, self.MAX_DT)
        if dt <= 0:
            raise ValueError("simulate: dt must be positive")
        t = 0.0
        while t < max_time:
            snap = inputs(self) if callable(inputs) else inputs
            self.step(dt, snap)
            self.drain_events()
            t += dt
            if self.phase == Phase.OVER:
                break
        return t
