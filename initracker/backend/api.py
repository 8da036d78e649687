"""FastAPI endpoints for encounter control and websocket sync."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .actions import InvalidActionError, apply_action
from .config import TrackerSettings, configure_logging, load_party, load_settings
from .engine import EncounterEngine
from .initiative import create_resolver
from .models import EncounterSnapshot, Participant, ParticipantView
from .state import participant_to_dict, snapshot_to_dict


class ParticipantPayload(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    max_hp: int = Field(alias="maxHp")
    hp: int | None = None
    ac: int = 10
    modifier: int = 0
    initiative: int = 0
    enabled: bool = True

    model_config = {"populate_by_name": True}

    def to_participant(self) -> Participant:
        return Participant(
            name=self.name,
            hp=self.max_hp if self.hp is None else self.hp,
            max_hp=self.max_hp,
            ac=self.ac,
            modifier=self.modifier,
            initiative=self.initiative,
            enabled=self.enabled,
        )


class AddParticipantsRequest(BaseModel):
    participants: list[ParticipantPayload] = Field(min_length=1)


class ActionEnvelope(BaseModel):
    action: dict[str, Any]


class EncounterStateResponse(BaseModel):
    state: dict[str, Any]


class ParticipantResponse(BaseModel):
    participant: dict[str, Any]


class EncounterWebSocketHub:
    """Notification sink that fans engine snapshots out to websocket clients.

    The engine calls :meth:`notify` synchronously; endpoints then await
    :meth:`flush` to broadcast what was queued during the request.
    """

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._pending: list[EncounterSnapshot] = []

    def notify(self, snapshot: EncounterSnapshot) -> None:
        self._pending.append(snapshot)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)

    async def send_state(self, websocket: WebSocket, state: dict[str, Any]) -> None:
        await websocket.send_json({"type": "state.full", "state": state})

    async def flush(self) -> None:
        pending, self._pending = self._pending, []
        for snapshot in pending:
            await self.broadcast_state(snapshot_to_dict(snapshot))

    async def broadcast_state(self, state: dict[str, Any]) -> None:
        stale_connections: list[WebSocket] = []
        for websocket in list(self._connections):
            try:
                await self.send_state(websocket, state)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(websocket)


def _default_engine(settings: TrackerSettings) -> EncounterEngine:
    resolver = create_resolver(
        settings.dice_roller_url,
        formula=settings.initiative_formula,
        timeout=settings.dice_roller_timeout,
    )
    return EncounterEngine(party=load_party(settings.party_file), resolver=resolver)


def create_app(engine: EncounterEngine | None = None, settings: TrackerSettings | None = None) -> FastAPI:
    app = FastAPI(title="Initiative Tracker API", version="0.3.0")
    if engine is None:
        engine = _default_engine(settings if settings is not None else load_settings())
    websocket_hub = EncounterWebSocketHub()
    engine.subscribe(websocket_hub.notify)
    app.state.engine = engine
    app.state.websocket_hub = websocket_hub

    async def respond(snapshot: EncounterSnapshot) -> EncounterStateResponse:
        await websocket_hub.flush()
        return EncounterStateResponse(state=snapshot_to_dict(snapshot))

    @app.get("/api/encounter", response_model=EncounterStateResponse)
    async def get_encounter() -> EncounterStateResponse:
        return EncounterStateResponse(state=snapshot_to_dict(engine.snapshot()))

    @app.get("/api/encounter/participants/{participant_id}", response_model=ParticipantResponse)
    async def get_participant(participant_id: str) -> ParticipantResponse:
        participant = engine.find(participant_id)
        if participant is None:
            raise HTTPException(status_code=404, detail="Participant not found")
        return ParticipantResponse(participant=participant_to_dict(ParticipantView.of(participant)))

    @app.post("/api/encounter/participants", response_model=EncounterStateResponse)
    async def add_participants(payload: AddParticipantsRequest) -> EncounterStateResponse:
        snapshot = engine.add_participants(entry.to_participant() for entry in payload.participants)
        return await respond(snapshot)

    @app.post("/api/encounter/new", response_model=EncounterStateResponse)
    async def new_encounter() -> EncounterStateResponse:
        return await respond(await engine.start_new_encounter())

    @app.post("/api/encounter/reroll", response_model=EncounterStateResponse)
    async def reroll() -> EncounterStateResponse:
        return await respond(await engine.reroll_initiatives())

    @app.post("/api/encounter/actions", response_model=EncounterStateResponse)
    async def post_action(payload: ActionEnvelope) -> EncounterStateResponse:
        try:
            snapshot = apply_action(engine, payload.action)
        except InvalidActionError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return await respond(snapshot)

    @app.websocket("/ws/encounter")
    async def encounter_ws(websocket: WebSocket) -> None:
        await websocket_hub.connect(websocket)
        await websocket_hub.send_state(websocket, snapshot_to_dict(engine.snapshot()))

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(websocket)

    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
