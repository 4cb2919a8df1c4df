from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import websockets

from holdem.errors import ActionRejected, EngineHalted, InvariantViolation
from holdem.game import GameEngine
from holdem.models import TableConfig, TournamentMode
from holdem.scheduler import AsyncioScheduler

LOGGER = logging.getLogger("poker_host")

# HostServer glues the engine to one human WebSocket client plus spectators.
# Every network concern lives here; GameEngine stays transport-free.


@dataclass
class ClientSession:
    websocket: Any
    role: str
    name: str = ""
    player_id: Optional[str] = None


def generate_player_names(name: str, opponents: int, rng: random.Random) -> Tuple[List[str], int]:
    """Generic opponents with the human dropped in at a random seat."""
    names = [f"Player {idx}" for idx in range(1, opponents + 1)]
    position = rng.randrange(opponents + 1)
    names.insert(position, name)
    return names, position


class HostServer:
    def __init__(self, config: TableConfig, rng: Optional[random.Random] = None) -> None:
        self.config = config
        self.engine = GameEngine(config, scheduler=AsyncioScheduler())
        self.engine.add_listener(self._on_engine_events)
        self.rng = rng or random.Random(config.seed)
        self.sessions: List[ClientSession] = []
        self.player: Optional[ClientSession] = None
        self._broadcast_pending = False

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Poker host listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: Any) -> None:
        # First message must be "hello" so we know who we are talking to.
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return

        role_raw = hello.get("role") or "player"
        role = role_raw.strip().casefold() if isinstance(role_raw, str) else "player"
        if role == "spectator":
            await self._handle_spectator_session(websocket)
            return

        name_raw = hello.get("name")
        name = name_raw.strip() if isinstance(name_raw, str) else ""
        if not name:
            await self._send_error(websocket, code="BAD_SCHEMA", msg="name required")
            await websocket.close()
            return

        session = ClientSession(websocket=websocket, role="player", name=name)
        previous = self.player
        if previous is not None:
            await previous.websocket.close(code=4000, reason="Replaced by new connection")
            self._drop_session(previous)
        self.player = session
        self.sessions.append(session)

        try:
            self._start_tournament(session, hello.get("mode") or TournamentMode.STANDARD.value)
        except ValueError as exc:
            await self._send_error(websocket, code="BAD_SCHEMA", msg=str(exc))
            self._drop_session(session)
            await websocket.close()
            return

        await self._send_json(websocket, "welcome", {
            "player_id": session.player_id,
            "config": {
                "seats": self.config.seats,
                "starting_stack": self.config.starting_stack,
                "sb": self.config.sb,
                "bb": self.config.bb,
            },
        })
        await self._broadcast_state()

        try:
            async for raw in websocket:
                await self._handle_message(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            self._drop_session(session)
        LOGGER.info("Player %s disconnected", session.name)

    async def _handle_spectator_session(self, websocket: Any) -> None:
        LOGGER.info("Spectator connected")
        session = ClientSession(websocket=websocket, role="spectator")
        self.sessions.append(session)
        await self._send_json(websocket, "state", self.engine.snapshot())
        try:
            async for _ in websocket:
                LOGGER.warning("Spectator sent a message; closing connection")
                await websocket.close(code=4403, reason="Spectators are read-only")
                break
        except websockets.ConnectionClosed:
            pass
        finally:
            self._drop_session(session)
        LOGGER.info("Spectator disconnected")

    def _start_tournament(self, session: ClientSession, mode: str) -> None:
        names, position = generate_player_names(session.name, self.config.seats - 1, self.rng)
        state = self.engine.start_tournament(names, mode=TournamentMode(mode), human_seat=position)
        session.player_id = state.seats[position].player_id
        LOGGER.info("%s seated at %s as %s", session.name, position, session.player_id)

    async def _handle_message(self, session: ClientSession, message: Dict[str, object]) -> None:
        kind = message.get("type")
        try:
            if kind == "action":
                amount = message.get("amount")
                if amount is not None and not isinstance(amount, int):
                    await self._send_error(session.websocket, code="BAD_SCHEMA", msg="amount must be an integer")
                    return
                if session.player_id is None:
                    await self._send_error(session.websocket, code="NOT_SEATED", msg="No seat assigned")
                    return
                self.engine.submit_action(session.player_id, str(message.get("action")), amount)
            elif kind == "advance":
                self.engine.advance_phase()
            elif kind == "next_hand":
                self.engine.start_next_hand()
            elif kind == "restart":
                mode = message.get("mode")
                if not isinstance(mode, str):
                    mode = self.engine.state.mode.value if self.engine.state else TournamentMode.STANDARD.value
                self._start_tournament(session, mode)
            else:
                await self._send_error(session.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
        except ActionRejected as exc:
            await self._send_error(session.websocket, code=exc.code, msg=exc.msg)
        except (EngineHalted, InvariantViolation) as exc:
            await self._send_error(session.websocket, code="ENGINE_HALTED", msg=str(exc))
        except ValueError as exc:
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg=str(exc))

    def _on_engine_events(self, events: List[Dict[str, object]]) -> None:
        # Called synchronously from the engine, including from timer callbacks.
        if self._broadcast_pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._broadcast_pending = True
        loop.create_task(self._flush_broadcast())

    async def _flush_broadcast(self) -> None:
        self._broadcast_pending = False
        await self._broadcast_state()

    async def _broadcast_state(self) -> None:
        targets = list(self.sessions)
        if not targets:
            return
        await asyncio.gather(
            *(self._send_json(session.websocket, "state", self.engine.snapshot(session.player_id)) for session in targets),
            return_exceptions=True,
        )

    def _drop_session(self, session: ClientSession) -> None:
        if session in self.sessions:
            self.sessions.remove(session)
        if self.player is session:
            self.player = None

    async def _send_json(self, websocket: Any, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: Any, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: Any) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return message if isinstance(message, dict) else {}
