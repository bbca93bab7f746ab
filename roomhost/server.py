from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import websockets
from websockets.asyncio.server import ServerConnection, serve

from cardtable.blackjack import blackjack_pnl, parse_outcome
from cardtable.errors import CardTableError
from cardtable.game import RoomEngine
from cardtable.models import DEALER_OUTCOME, GameType, Participant, RoomStatus, RoundResult, RuleConfig
from cardtable.money import round_cents
from cardtable.niuniu import parse_category
from cardtable.store import InMemoryRoomStore, RoomStore, generate_room_id

LOGGER = logging.getLogger("room_host")

# RoomServer glues RoomEngine instances to WebSocket clients. Role checks and
# broadcasting live here; the engine stays transport-free.

HOST_ONLY = frozenset({"transfer-host", "set-dealer", "adjust-score", "kick-player"})
HOST_OR_DEALER = frozenset(
    {
        "start-round",
        "deal",
        "dealer-play",
        "record-outcome",
        "record-hand",
        "set-dealer-hand",
        "set-pnl",
        "submit-results",
        "undo-round",
        "cancel-round",
        "end-session",
    }
)

# Successful actions that also fan out a named event to the whole room.
ROOM_EVENTS = {
    "start-round": "round-started",
    "submit-results": "round-ended",
    "end-session": "session-settled",
}


class RoomHostError(Exception):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass
class ClientSession:
    websocket: Any
    room_id: Optional[str] = None
    player_id: Optional[str] = None


Handler = Callable[[ClientSession, Dict[str, Any]], Dict[str, object]]


class RoomServer:
    def __init__(
        self,
        rules: RuleConfig,
        store: Optional[RoomStore] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.rules = rules
        self.store: RoomStore = store if store is not None else InMemoryRoomStore()
        self.rng = rng or random.Random()
        self.sessions: Dict[Any, ClientSession] = {}
        self.lock = asyncio.Lock()
        self._handlers: Dict[str, Handler] = {
            "create-room": self._on_create_room,
            "join-room": self._on_join_room,
            "get-room": self._on_get_room,
            "transfer-host": self._on_transfer_host,
            "set-dealer": self._on_set_dealer,
            "set-bet": self._on_set_bet,
            "start-round": self._on_start_round,
            "deal": self._on_deal,
            "hit": self._on_hit,
            "double": self._on_double,
            "stand": self._on_stand,
            "dealer-play": self._on_dealer_play,
            "record-outcome": self._on_record_outcome,
            "record-hand": self._on_record_hand,
            "set-dealer-hand": self._on_set_dealer_hand,
            "set-pnl": self._on_set_pnl,
            "submit-results": self._on_submit_results,
            "undo-round": self._on_undo_round,
            "cancel-round": self._on_cancel_round,
            "adjust-score": self._on_adjust_score,
            "kick-player": self._on_kick_player,
            "end-session": self._on_end_session,
        }

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with serve(self._handle_connection, host, port):
            LOGGER.info("Room host listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        session = ClientSession(websocket=websocket)
        self.sessions[websocket] = session
        try:
            async for raw in websocket:
                await self.handle_message(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            self.sessions.pop(websocket, None)
            await self._mark_disconnected(session)

    async def _mark_disconnected(self, session: ClientSession) -> None:
        if not session.room_id or not session.player_id:
            return
        async with self.lock:
            room = self.store.get(session.room_id)
            if room is None:
                return
            try:
                room.set_connected(session.player_id, False)
            except ValueError:
                return
            state = room.state_payload()
        LOGGER.info("Player %s left room %s", session.player_id, session.room_id)
        await self._broadcast_room(session.room_id, "room-state", {"room": state})

    async def handle_message(self, session: ClientSession, message: Dict[str, Any]) -> None:
        msg_type = message.get("type")
        handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            await self._send_error(session.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
            return

        try:
            async with self.lock:
                reply = handler(session, message)
                room = self.store.get(session.room_id) if session.room_id else None
                state = room.state_payload() if room is not None else None
        except RoomHostError as exc:
            await self._send_error(session.websocket, code=exc.code, msg=exc.msg)
            return
        except CardTableError as exc:
            LOGGER.warning("Rejected %s from %s: %s", msg_type, session.player_id, exc)
            await self._send_error(session.websocket, code=exc.code, msg=str(exc))
            return
        except (ValueError, RuntimeError) as exc:
            LOGGER.warning("Rejected %s from %s: %s", msg_type, session.player_id, exc)
            await self._send_error(session.websocket, code="INVALID_ACTION", msg=str(exc))
            return

        await self._send_json(session.websocket, "ack", {"request": msg_type, **reply})
        if session.room_id and state is not None:
            await self._broadcast_room(session.room_id, "room-state", {"room": state})
            event = ROOM_EVENTS.get(msg_type)
            if event:
                await self._broadcast_room(session.room_id, event, reply)

    # Lobby ------------------------------------------------------------

    def _on_create_room(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        rules = replace(
            self.rules,
            game=GameType(message.get("game", self.rules.game.value)),
            base_bet=_number(message, "base_bet") or self.rules.base_bet,
            ties_favor_dealer=bool(message.get("ties_favor_dealer", self.rules.ties_favor_dealer)),
        )
        room = RoomEngine(generate_room_id(self.store, self.rng), rules, rng=self.rng)
        player = room.add_player(str(message.get("player_name", "")))
        self.store.put(room)
        session.room_id, session.player_id = room.room_id, player.id
        LOGGER.info("Room %s created by %s (%s)", room.room_id, player.name, rules.game.value)
        return {"room_id": room.room_id, "player_id": player.id}

    def _on_join_room(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room = self.store.get(str(message.get("room_id", "")))
        if room is None:
            raise RoomHostError("ROOM_NOT_FOUND", "Room not found")
        if room.status == RoomStatus.SETTLED:
            raise RoomHostError("ROOM_SETTLED", "Room already settled")
        name = str(message.get("player_name", ""))
        reconnected = room.find_by_name(name.strip()) is not None
        player = room.add_player(name)
        session.room_id, session.player_id = room.room_id, player.id
        LOGGER.info("%s %s room %s", player.name, "rejoined" if reconnected else "joined", room.room_id)
        return {"room_id": room.room_id, "player_id": player.id, "reconnected": reconnected}

    def _on_get_room(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "get-room")
        return {"room": room.state_payload()}

    def _on_transfer_host(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "transfer-host")
        target = room.get_player(self._target(message, caller))
        room.transfer_host(caller.id, target.id)
        return {"host": target.id}

    def _on_set_dealer(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "set-dealer")
        target = message.get("target_player_id")
        room.set_dealer(str(target) if target else None)
        return {"dealer": target}

    def _on_set_bet(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "set-bet")
        bet = _number(message, "bet") or room.config.base_bet
        player = room.set_bet(caller.id, bet)
        return {"bet": player.bet}

    # Rounds -----------------------------------------------------------

    def _on_start_round(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "start-round")
        round_ = room.start_round()
        return {"round_number": round_.number}

    def _on_deal(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "deal")
        deal = room.deal_cards()
        return {"remaining": len(deal.deck)}

    def _on_hit(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, target = self._card_target(session, message, "hit")
        card = room.hit(target)
        return {"player_id": target, "card": card.label}

    def _on_double(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, target = self._card_target(session, message, "double")
        card = room.double_down(target)
        return {"player_id": target, "card": card.label}

    def _on_stand(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, target = self._card_target(session, message, "stand")
        room.stand(target)
        return {"player_id": target}

    def _on_dealer_play(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "dealer-play")
        result = room.play_dealer()
        return {"dealer_total": result.total, "display": result.display}

    def _on_record_outcome(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "record-outcome")
        entry = room.record_outcome(
            self._target(message, caller),
            str(message.get("outcome", "")),
            bet=_number(message, "bet"),
        )
        return {"result": entry.to_dict()}

    def _on_record_hand(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "record-hand")
        entry = room.record_hand_value(self._target(message, caller), str(message.get("hand", "")))
        return {"result": entry.to_dict()}

    def _on_set_dealer_hand(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "set-dealer-hand")
        room.set_dealer_hand(str(message.get("hand", "")))
        return {"dealer_hand": room.dealer_hand.value if room.dealer_hand is not None else None}

    def _on_set_pnl(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "set-pnl")
        pnl = _number(message, "pnl")
        if pnl is None:
            raise RoomHostError("BAD_SCHEMA", "pnl must be a number")
        entry = room.set_pnl(self._target(message, caller), pnl)
        return {"result": entry.to_dict()}

    def _on_submit_results(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "submit-results")
        raw_results = message.get("results")
        results = None
        if raw_results is not None:
            if not isinstance(raw_results, list):
                raise RoomHostError("BAD_SCHEMA", "results must be a list")
            results = [self._result_from_payload(room, item) for item in raw_results]
        round_number = room.current_round
        submitted = room.submit_results(results)
        return {"round_number": round_number, "results": [entry.to_dict() for entry in submitted]}

    def _on_undo_round(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "undo-round")
        round_ = room.undo_last_round()
        return {"round_number": round_.number}

    def _on_cancel_round(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "cancel-round")
        round_ = room.cancel_round()
        return {"round_number": round_.number}

    # Host tools -------------------------------------------------------

    def _on_adjust_score(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "adjust-score")
        amount = _number(message, "amount")
        if amount is None:
            raise RoomHostError("BAD_SCHEMA", "amount must be a number")
        player = room.adjust_score(self._target(message, caller), amount)
        imbalance = room.imbalance()
        if imbalance:
            LOGGER.warning("Room %s is off by %s until a matching adjustment", room.room_id, imbalance)
        return {
            "player_id": player.id,
            "score": player.score,
            "reason": message.get("reason"),
            "imbalance": imbalance,
        }

    def _on_kick_player(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, caller = self._context(session, "kick-player")
        kicked = room.remove_player(self._target(message, caller))
        for other in self.sessions.values():
            if other.room_id == room.room_id and other.player_id == kicked.id:
                other.room_id = other.player_id = None
        LOGGER.info("%s was kicked from room %s", kicked.name, room.room_id)
        return {"player_id": kicked.id, "name": kicked.name}

    def _on_end_session(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        room, _ = self._context(session, "end-session")
        transfers = room.end_session()
        return {"settlements": [transfer.as_dict() for transfer in transfers]}

    # Helpers ----------------------------------------------------------

    def _context(self, session: ClientSession, action: str) -> Tuple[RoomEngine, Participant]:
        if not session.room_id or not session.player_id:
            raise RoomHostError("NOT_IN_ROOM", "Join a room first")
        room = self.store.get(session.room_id)
        if room is None:
            raise RoomHostError("ROOM_NOT_FOUND", "Room not found")
        try:
            caller = room.get_player(session.player_id)
        except ValueError:
            raise RoomHostError("NOT_IN_ROOM", "Not in room") from None
        if action in HOST_ONLY and not caller.is_host:
            raise RoomHostError("NOT_HOST", "Not host")
        if action in HOST_OR_DEALER and not (caller.is_host or caller.is_dealer):
            raise RoomHostError("NOT_HOST_OR_DEALER", "Not host/dealer")
        return room, caller

    def _card_target(self, session: ClientSession, message: Dict[str, Any], action: str) -> Tuple[RoomEngine, str]:
        room, caller = self._context(session, action)
        target = self._target(message, caller)
        if target != caller.id and not (caller.is_host or caller.is_dealer):
            raise RoomHostError("NOT_HOST_OR_DEALER", "Only the host or dealer may act for another player")
        return room, target

    def _target(self, message: Dict[str, Any], caller: Participant) -> str:
        target = message.get("target_player_id")
        return str(target) if target else caller.id

    def _result_from_payload(self, room: RoomEngine, item: Any) -> RoundResult:
        if not isinstance(item, dict):
            raise RoomHostError("BAD_SCHEMA", "result entries must be objects")
        player = room.get_player(str(item.get("participant_id", "")))
        label = item.get("outcome")
        outcome = None
        if label == DEALER_OUTCOME:
            outcome = DEALER_OUTCOME
        elif label is not None:
            outcome = parse_category(str(label)) if room.is_niuniu else parse_outcome(str(label))

        bet = _number(item, "bet") or 0.0
        pnl = _number(item, "pnl")
        if pnl is not None:
            pnl = round_cents(pnl)
        elif outcome is not None and not room.is_niuniu and outcome != DEALER_OUTCOME:
            pnl = blackjack_pnl(bet, outcome)
        else:
            raise RoomHostError("BAD_SCHEMA", f"pnl required for {player.name}")
        return RoundResult(
            participant_id=player.id,
            name=player.name,
            bet=bet,
            outcome=outcome,
            multiplier=_number(item, "multiplier") or 1.0,
            pnl=pnl,
            custom_pnl=True,
        )

    async def _broadcast_room(self, room_id: str, msg_type: str, payload: Dict[str, object]) -> None:
        targets: List[Any] = [
            session.websocket for session in self.sessions.values() if session.room_id == room_id
        ]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

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
        return json.dumps(body, ensure_ascii=False)

    def _decode(self, raw: Any) -> Dict[str, Any]:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return message if isinstance(message, dict) else {}


def _number(payload: Dict[str, Any], key: str) -> Optional[float]:
    value = payload.get(key)
    if value is None:
        return None
    # bool is an int subclass but never a valid amount.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RoomHostError("BAD_SCHEMA", f"{key} must be a number")
    return float(value)
