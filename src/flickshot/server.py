"""WebSocket server streaming game snapshots to a browser front end.

The server runs the frame loop as an asyncio task and pushes a JSON
snapshot per tick (aim point, aiming flag, targets, score, time left,
phase) plus game events to every connected client. Clients never touch
game state; they send intents:

    {"type": "intent", "intent": "start" | "begin" | "restart" | "exit" | "toggle_mute"}

Usage:
    flickshot serve
    # or
    uvicorn flickshot.server:app --host 0.0.0.0 --port 8765
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Optional

try:
    from fastapi import FastAPI, WebSocket, WebSocketDisconnect
    from fastapi.responses import JSONResponse, PlainTextResponse
    _HAS_FASTAPI = True
except ImportError:
    _HAS_FASTAPI = False

if not _HAS_FASTAPI:
    raise ImportError("FastAPI required. Install with: pip install fastapi uvicorn")

from flickshot import __version__
from flickshot.config import GameConfig
from flickshot.game import GameEvent, Intent
from flickshot.runtime import GameRuntime

logger = logging.getLogger("flickshot.server")

app = FastAPI(title="FlickShot", version=__version__)


class ServerState:
    def __init__(self):
        self.clients: set[WebSocket] = set()
        self.config: GameConfig = GameConfig()
        self.runtime: Optional[GameRuntime] = None
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.pending_events: list[dict] = []
        self._hooked: Optional[GameRuntime] = None

    def ensure_runtime(self) -> GameRuntime:
        if self.runtime is None:
            self.runtime = GameRuntime(self.config)
        if self._hooked is not self.runtime:
            self.runtime.on_event(self._queue_event)
            self._hooked = self.runtime
        return self.runtime

    def _queue_event(self, event: GameEvent):
        self.pending_events.append(event.to_dict())


state = ServerState()


def _now_ms() -> float:
    return time.monotonic() * 1000.0


def _parse_intent(name: str) -> Optional[Intent]:
    try:
        intent = Intent(name)
    except ValueError:
        return None
    # permission is granted by the runtime, never by a client
    if intent is Intent.PERMISSION_GRANTED:
        return None
    return intent


# --- API endpoints ---

@app.get("/api/status")
async def api_status():
    runtime = state.ensure_runtime()
    return {
        "running": state.running,
        "clients": len(state.clients),
        "snapshot": runtime.snapshot.to_dict(),
        "pipeline": runtime.pipeline.stats,
    }


@app.get("/api/config")
async def api_config():
    return state.config.to_dict()


@app.post("/api/intent/{name}")
async def api_intent(name: str):
    intent = _parse_intent(name)
    if intent is None:
        return JSONResponse({"error": f"unknown intent '{name}'"}, status_code=400)
    runtime = state.ensure_runtime()
    accepted = runtime.dispatch(intent, _now_ms())
    return {"intent": intent.value, "accepted": accepted, "phase": runtime.phase.value}


@app.get("/metrics")
async def metrics():
    runtime = state.ensure_runtime()
    runtime.metrics.set_connections(len(state.clients))
    return PlainTextResponse(
        runtime.metrics.render(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    state.clients.add(ws)
    runtime = state.ensure_runtime()
    logger.info("Client connected (%d total)", len(state.clients))

    try:
        await ws.send_json({
            "type": "connected",
            "config": state.config.to_dict(),
            "snapshot": runtime.snapshot.to_dict(),
        })

        while True:
            try:
                msg = await asyncio.wait_for(ws.receive_text(), timeout=30)
            except asyncio.TimeoutError:
                await ws.send_json({"type": "ping"})
                continue

            try:
                data = json.loads(msg)
            except json.JSONDecodeError:
                await ws.send_json({"type": "error", "message": "invalid JSON"})
                continue

            kind = data.get("type")
            if kind == "ping":
                await ws.send_json({"type": "pong", "server_time": time.time()})
            elif kind == "intent":
                intent = _parse_intent(str(data.get("intent", "")))
                if intent is None:
                    await ws.send_json({"type": "error", "message": f"unknown intent {data.get('intent')!r}"})
                    continue
                accepted = runtime.dispatch(intent, _now_ms())
                await ws.send_json({
                    "type": "intent_result",
                    "intent": intent.value,
                    "accepted": accepted,
                    "phase": runtime.phase.value,
                })
            else:
                await ws.send_json({"type": "error", "message": f"unknown message type {kind!r}"})
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.debug("WebSocket error: %s", e)
    finally:
        state.clients.discard(ws)
        logger.info("Client disconnected (%d total)", len(state.clients))


async def broadcast(message: dict):
    """Send message to all clients, dropping the ones that went away."""
    if not state.clients:
        return
    dead = set()
    payload = json.dumps(message)
    for ws in state.clients:
        try:
            await ws.send_text(payload)
        except Exception:
            dead.add(ws)
    state.clients -= dead


# --- Frame loop ---

async def game_loop():
    """Step the runtime once per frame and broadcast the results."""
    runtime = state.ensure_runtime()
    period = 1.0 / max(1, state.config.frame_rate)
    state.running = True
    logger.info("Game loop started at %d FPS", state.config.frame_rate)

    try:
        while state.running:
            started = time.monotonic()
            snapshot = runtime.step(started * 1000.0)

            events, state.pending_events = state.pending_events, []
            for event in events:
                await broadcast({"type": "event", "event": event})
            await broadcast(snapshot.to_dict())

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.001, period - elapsed))
    finally:
        state.running = False
        runtime.close()
        if state.runtime is runtime:
            state.runtime = None
        logger.info("Game loop stopped")


@app.on_event("startup")
async def startup():
    state.task = asyncio.create_task(game_loop())


@app.on_event("shutdown")
async def shutdown():
    state.running = False
    if state.task is not None:
        await state.task
        state.task = None


def main():
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="FlickShot WebSocket Server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8765, help="Port")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
