from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import AsyncIterator, Dict, Set

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pygame.math import Vector2

from ..sim.core.agent import CombineStrategy, SingleBehavior
from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.types.frame import FrameInput, SteeringControls

logger = logging.getLogger(__name__)

MAX_QUEUED_SNAPSHOTS = 256


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = World(config)
        self.controls = SteeringControls()
        self.target = Vector2(config.width * 0.5, config.height * 0.5)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=MAX_QUEUED_SNAPSHOTS)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.running = False
        if self._broadcast_task is not None:
            self._broadcast_task.cancel()
            try:
                await self._broadcast_task
            except asyncio.CancelledError:
                pass
            self._broadcast_task = None

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        logger.info("Simulation reset")
        await self._broadcast_snapshot()

    async def step_once(self) -> None:
        async with self._lock:
            frame = FrameInput(dt=self.config.time_step, target=Vector2(self.target), controls=self.controls)
            self.world.step(self.tick, frame)
            self.tick += 1

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            await self.step_once()
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def set_pointer(self, x: float, y: float) -> None:
        async with self._lock:
            self.target = Vector2(x, y)

    async def update_controls(self, **changes: object) -> SteeringControls:
        async with self._lock:
            for name, value in changes.items():
                setattr(self.controls, name, value)
            logger.info("Controls updated: %s", changes)
            return self.controls

    async def toggle_behavior(self, name: str) -> bool:
        async with self._lock:
            value = self.controls.toggles.toggle(name)
        logger.info("Behavior %s %s", name, "enabled" if value else "disabled")
        return value

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
                "controls": asdict(snapshot.controls),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)
            logger.info("Dropped disconnected client")

    def status(self) -> dict:
        snapshot = self.world.snapshot(self.tick)
        return {
            "running": self.running,
            "tick": self.tick,
            "population": len(snapshot.agents),
            "metrics": asdict(snapshot.metrics),
            "controls": asdict(snapshot.controls),
        }


static_dir = Path(__file__).parent / "static"


def _field(payload: dict, key: str) -> object:
    if key not in payload:
        raise HTTPException(status_code=400, detail=f"Missing field: {key}")
    return payload[key]


def create_app(controller: SimulationController | None = None, autostart: bool = True) -> FastAPI:
    controller = controller if controller is not None else SimulationController(SimulationConfig())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if autostart:
            await controller.start()
        yield
        await controller.shutdown()

    app = FastAPI(title="Steering Behaviors Simulation", lifespan=lifespan)
    app.state.controller = controller
    app.mount("/static", StaticFiles(directory=static_dir), name="static")

    @app.get("/")
    async def index() -> FileResponse:
        return FileResponse(static_dir / "index.html")

    @app.get("/api/status")
    async def status() -> JSONResponse:
        return JSONResponse(controller.status())

    @app.post("/api/control/start")
    async def start_simulation() -> JSONResponse:
        controller.running = True
        return JSONResponse({"running": True})

    @app.post("/api/control/stop")
    async def stop_simulation() -> JSONResponse:
        controller.running = False
        return JSONResponse({"running": False})

    @app.post("/api/control/reset")
    async def reset_simulation() -> JSONResponse:
        await controller.reset()
        return JSONResponse({"running": controller.running, "tick": controller.tick})

    @app.post("/api/control/speed")
    async def set_speed(payload: dict) -> JSONResponse:
        try:
            speed = float(payload.get("multiplier", 1.0))
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="multiplier must be a number") from None
        controller.speed_multiplier = max(0.1, min(5.0, speed))
        return JSONResponse({"multiplier": controller.speed_multiplier})

    @app.post("/api/control/mode")
    async def set_mode(payload: dict) -> JSONResponse:
        mode = str(_field(payload, "mode")).lower()
        if mode not in {"single", "multi"}:
            raise HTTPException(status_code=400, detail=f"Unknown mode: {mode}")
        controls = await controller.update_controls(single_agent_mode=mode == "single")
        return JSONResponse({"single_agent_mode": controls.single_agent_mode})

    @app.post("/api/control/behavior")
    async def set_behavior(payload: dict) -> JSONResponse:
        try:
            behavior = SingleBehavior(str(_field(payload, "behavior")).lower())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from None
        controls = await controller.update_controls(behavior=behavior)
        return JSONResponse({"behavior": controls.behavior.value})

    @app.post("/api/control/strategy")
    async def set_strategy(payload: dict) -> JSONResponse:
        try:
            strategy = CombineStrategy(str(_field(payload, "strategy")).lower())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from None
        controls = await controller.update_controls(strategy=strategy)
        return JSONResponse({"strategy": controls.strategy.value})

    @app.post("/api/control/combine")
    async def set_combine(payload: dict) -> JSONResponse:
        controls = await controller.update_controls(combine_single=bool(payload.get("enabled", True)))
        return JSONResponse({"combine_single": controls.combine_single})

    @app.post("/api/control/toggle")
    async def toggle_behavior(payload: dict) -> JSONResponse:
        name = str(_field(payload, "behavior"))
        try:
            value = await controller.toggle_behavior(name)
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=exc.args[0]) from None
        return JSONResponse({"behavior": name, "enabled": value})

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        controller.clients.add(websocket)
        controller._client_last_sent[websocket] = -1
        logger.info("Client connected (%d total)", len(controller.clients))
        await controller._send_pending_snapshots(websocket)
        try:
            while True:
                message = await websocket.receive_text()
                try:
                    payload = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if not isinstance(payload, dict):
                    continue
                kind = payload.get("type")
                if kind == "ack":
                    tick = payload.get("tick")
                    if isinstance(tick, int):
                        await controller.acknowledge(tick)
                elif kind == "pointer":
                    x = payload.get("x")
                    y = payload.get("y")
                    if isinstance(x, (int, float)) and isinstance(y, (int, float)):
                        await controller.set_pointer(float(x), float(y))
        except WebSocketDisconnect:
            controller.clients.discard(websocket)
            controller._client_last_sent.pop(websocket, None)
            logger.info("Client disconnected (%d remaining)", len(controller.clients))

    return app


app = create_app()
controller = app.state.controller


def main() -> None:
    """Run the viewer server with uvicorn."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    port = int(os.getenv("STEERLAB_PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


__all__ = ["app", "controller", "create_app", "SimulationController"]
