"""
Paddle Duel Web Server — Layer 3 (FastAPI + WebSocket)

Runs the match loop and streams frames to browser clients over WebSocket.
Clients send key / pointer messages; the loop turns them into one
InputSnapshot per frame, so nothing reaches the controller mid-tick.
"""

import asyncio
import itertools
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Hashable, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from paddle_control import InputSnapshot, SideInput
from pong_controller import PongController, Phase
from pong_physics import (
    WORLD_WIDTH, WORLD_HEIGHT, PADDLE_WIDTH, PADDLE_HEIGHT, BALL_RADIUS,
)
from rally_presets import RallyPreset
from trail_buffer import TrailBuffer

log = logging.getLogger(__name__)

# ── Input state ─────────────────────────────────────────────────────────────

# Held-key axes per side: (up key, down key)
AXIS_KEYS = {
    "left":  ("w", "s"),
    "right": ("up", "down"),
}
PAUSE_KEYS = {"p", "escape"}

# Drill map (keys 1-4, menu only)
RALLY_SCENARIOS = {
    "1": (RallyPreset.scenario_1_center, "1: Centre"),
    "2": (RallyPreset.scenario_2_edge,   "2: Edge"),
    "3": (RallyPreset.scenario_3_tunnel, "3: Tunnel"),
    "4": (RallyPreset.scenario_4_spin,   "4: Spin"),
}


class InputState:
    """Held keys, active pointers and queued edge commands from all clients.

    Keys and pointers remember the connection that set them (`owner`), so one
    client leaving only releases its own input.
    """

    def __init__(self):
        self.held_keys: dict[str, set] = {}        # key -> owners holding it
        self.pointer_y: dict[str, Optional[float]] = {"left": None, "right": None}
        self.pointer_side: dict[tuple, str] = {}   # (owner, pointer id) -> side
        self.start        = False
        self.restart      = False
        self.pause_toggle = False

    def axis(self, side: str) -> int:
        up_key, down_key = AXIS_KEYS[side]
        up = bool(self.held_keys.get(up_key))
        down = bool(self.held_keys.get(down_key))
        if up and not down:
            return -1
        if down and not up:
            return 1
        return 0

    def key_down(self, key: str, phase: Phase, owner: Hashable = None) -> None:
        self.held_keys.setdefault(key, set()).add(owner)
        if key == "space":
            # One key drives the overlay button: Start / Restart / Resume
            if phase == Phase.MENU:
                self.start = True
            elif phase == Phase.OVER:
                self.restart = True
            elif phase == Phase.PAUSE:
                self.pause_toggle = True
        elif key == "r":
            self.restart = True
        elif key in PAUSE_KEYS:
            self.pause_toggle = True

    def key_up(self, key: str, owner: Hashable = None) -> None:
        self.held_keys.get(key, set()).discard(owner)

    def pointer_down(self, pointer_id: int, x: float, y: float, two_player: bool,
                     owner: Hashable = None) -> None:
        """Pointers on the right half drive the right paddle only in two-player mode."""
        side = "right" if two_player and x > WORLD_WIDTH / 2 else "left"
        self.pointer_side[(owner, pointer_id)] = side
        self.pointer_y[side] = y

    def pointer_move(self, pointer_id: int, y: float, owner: Hashable = None) -> None:
        side = self.pointer_side.get((owner, pointer_id))
        if side is not None:
            self.pointer_y[side] = y

    def pointer_up(self, pointer_id: int, owner: Hashable = None) -> None:
        side = self.pointer_side.pop((owner, pointer_id), None)
        if side is not None:
            self._release_side_if_free(side)

    def drop_side(self, side: str) -> None:
        self.pointer_y[side] = None
        for ref in [r for r, s in self.pointer_side.items() if s == side]:
            del self.pointer_side[ref]

    def release(self, owner: Hashable) -> None:
        """Drop every key and pointer held by one connection."""
        for owners in self.held_keys.values():
            owners.discard(owner)
        for ref in [r for r in self.pointer_side if r[0] == owner]:
            self._release_side_if_free(self.pointer_side.pop(ref))

    def release_all(self) -> None:
        self.held_keys.clear()
        self.pointer_side.clear()
        self.pointer_y = {"left": None, "right": None}

    def _release_side_if_free(self, side: str) -> None:
        if side not in self.pointer_side.values():
            self.pointer_y[side] = None

    def snapshot(self) -> InputSnapshot:
        """Freeze this frame's input and consume the edge commands."""
        snap = InputSnapshot(
            left=SideInput(drag_y=self.pointer_y["left"], axis=self.axis("left")),
            right=SideInput(drag_y=self.pointer_y["right"], axis=self.axis("right")),
            start=self.start,
            restart=self.restart,
            pause_toggle=self.pause_toggle,
        )
        self.start = self.restart = self.pause_toggle = False
        return snap


# ── Controller ──────────────────────────────────────────────────────────────

ctrl = PongController()
inputs = InputState()
trail = TrailBuffer()
clients: list[WebSocket] = []
_conn_ids = itertools.count(1)


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

# ── Async game loop ─────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


def tick(dt: float) -> str:
    """One frame: poll input, step the match, update the trail, build the frame."""
    ctrl.step(dt, inputs.snapshot())
    _update_trail()
    return _build_frame_message()


def _update_trail() -> None:
    if any(ev["type"] in ("serve_start", "menu", "rally_loaded") for ev in ctrl.pending_events):
        trail.clear()
    if ctrl.phase in (Phase.SERVE, Phase.PLAY):
        trail.push(ctrl.ball.x, ctrl.ball.y)


async def game_loop():
    """Main game loop running at ~60 fps."""
    last_time = time.perf_counter()

    while True:
        now = time.perf_counter()
        dt = now - last_time
        last_time = now

        # Controller clamps again; this only guards the trail/frame timing
        if dt > 0.05:
            dt = 0.05

        frame_msg = tick(dt)

        if clients:
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)
                    log.info("[WS] dropped client (send failed), %d left", len(clients))

        # Sleep to maintain target FPS
        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


def _build_frame_message() -> str:
    """Serialize the post-tick snapshot, drain its events, attach the trail."""
    snap = ctrl.snapshot()
    snap["events"] = ctrl.drain_events()
    frame = {"type": "frame", **snap, "trail": trail.points()}
    return json.dumps(frame, separators=(',', ':'))


def _init_message() -> dict:
    return {
        "type": "init",
        "world": {"w": WORLD_WIDTH, "h": WORLD_HEIGHT},
        "paddle": {"w": PADDLE_WIDTH, "h": PADDLE_HEIGHT},
        "ball_radius": BALL_RADIUS,
        "score_to_win": ctrl.SCORE_TO_WIN,
        "match_seconds": ctrl.MATCH_SECONDS,
        "trail_size": trail.size,
        "drills": {key: label for key, (_, label) in RALLY_SCENARIOS.items()},
    }


# ── Client message dispatch ─────────────────────────────────────────────────

def handle_message(msg: dict, owner: Hashable = None) -> None:
    """Apply one decoded client message to the shared input state on behalf of `owner`."""
    cmd = msg.get("cmd", "")
    if cmd == "key_down":
        key = str(msg.get("key", "")).lower()
        inputs.key_down(key, ctrl.phase, owner)
        if key in RALLY_SCENARIOS:
            fn, label = RALLY_SCENARIOS[key]
            ctrl.load_rally(fn, label)
    elif cmd == "key_up":
        inputs.key_up(str(msg.get("key", "")).lower(), owner)
    elif cmd == "pointer_down":
        inputs.pointer_down(int(msg.get("id", 0)), float(msg.get("x", 0.0)),
                            float(msg.get("y", 0.0)), ctrl.two_player, owner)
    elif cmd == "pointer_move":
        inputs.pointer_move(int(msg.get("id", 0)), float(msg.get("y", 0.0)), owner)
    elif cmd == "pointer_up":
        inputs.pointer_up(int(msg.get("id", 0)), owner)
    elif cmd == "set_two_player":
        enabled = bool(msg.get("enabled", False))
        ctrl.set_two_player(enabled)
        if not enabled:
            inputs.drop_side("right")
    elif cmd == "quit":
        ctrl.quit_to_menu()
    else:
        log.warning("[WS] unknown cmd %r", cmd)


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    conn_id = next(_conn_ids)
    clients.append(ws)
    log.info("[WS] client connected, %d total", len(clients))

    await ws.send_text(json.dumps(_init_message()))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue
            try:
                handle_message(msg, conn_id)
            except (TypeError, ValueError) as exc:
                log.warning("[WS] bad message %r: %s", msg, exc)
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)
        inputs.release(conn_id)
        log.info("[WS] client disconnected, %d left", len(clients))


# ── HTTP routes ─────────────────────────────────────────────────────────────

@app.get("/")
async def root():
    return _init_message()


@app.get("/state")
async def state():
    snap = ctrl.snapshot()
    return {"type": "frame", **snap, "trail": trail.points()}


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Paddle Duel server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default="info",
                        choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("pong_server:app", host=args.host, port=args.port,
                log_level=args.log_level, reload=False)
