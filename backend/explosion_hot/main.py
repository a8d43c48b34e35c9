"""Explosion Hot FastAPI Application."""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from explosion_hot.config import settings
from explosion_hot.config_hash import get_config_hash
from explosion_hot.errors import GameError
from explosion_hot.logic.engine import GameEngine
from explosion_hot.logic.models import ActionResult
from explosion_hot.middleware import ErrorHandlerMiddleware, PlayerIdMiddleware
from explosion_hot.protocol import (
    AutoplayRequest,
    Configuration,
    GambleGuessRequest,
    InitResponse,
    PaytableResponse,
    SpinRequest,
    StakeRequest,
    StateResponse,
    StateView,
    dump,
)
from explosion_hot.sessions import session_registry
from explosion_hot.validators import (
    raise_for_rejection,
    validate_spin_request,
    validate_stake_request,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the shared session ticker for the life of the app."""
    ticker = asyncio.create_task(session_registry.run_ticker(settings.ticker_interval_ms))
    yield
    ticker.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await ticker


app = FastAPI(
    title="Explosion Hot",
    version="0.1.0",
    description="Five-reel fruit slot game server",
    lifespan=lifespan,
)

app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(PlayerIdMiddleware)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    return exc.to_response()


def _engine(request: Request) -> GameEngine:
    return session_registry.get(request.state.player_id)


def _state_view(engine: GameEngine) -> StateView:
    return StateView.build(engine.state, engine.round_id, engine.last_result)


def _respond(engine: GameEngine, result: ActionResult | None = None) -> dict:
    """Raise for a rejected action, otherwise return the session state."""
    if result is not None:
        raise_for_rejection(result)
    return dump(StateResponse(state=_state_view(engine)))


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "configHash": get_config_hash()}


@app.get("/init")
async def init(request: Request) -> dict:
    """Configuration plus the current session state."""
    engine = _engine(request)
    response = InitResponse(
        configuration=Configuration(configHash=get_config_hash()),
        state=_state_view(engine),
    )
    return dump(response)


@app.get("/state")
async def state(request: Request) -> dict:
    return _respond(_engine(request))


@app.get("/paytable")
async def paytable(request: Request) -> dict:
    """Paytable scaled to the session's current payout."""
    engine = _engine(request)
    return dump(PaytableResponse.for_payout(engine.state.payout))


@app.post("/spin")
async def spin(request: Request, body: SpinRequest) -> dict:
    """
    Debit the payout and start the reels.

    Resolution happens on the ticker; poll /state for the outcome.
    """
    validate_spin_request(body)
    engine = _engine(request)
    return _respond(engine, engine.request_spin(stake=body.stake))


@app.post("/stop")
async def stop(request: Request) -> dict:
    engine = _engine(request)
    return _respond(engine, engine.request_stop())


@app.post("/start")
async def start(request: Request) -> dict:
    """Single Start button: spin, stop, collect or take win by phase."""
    engine = _engine(request)
    return _respond(engine, engine.request_start())


@app.post("/collect")
async def collect(request: Request) -> dict:
    engine = _engine(request)
    return _respond(engine, engine.request_collect())


@app.post("/gamble/open")
async def gamble_open(request: Request) -> dict:
    engine = _engine(request)
    return _respond(engine, engine.request_gamble_open())


@app.post("/gamble/guess")
async def gamble_guess(request: Request, body: GambleGuessRequest) -> dict:
    engine = _engine(request)
    return _respond(engine, engine.request_gamble_guess(body.color))


@app.post("/gamble/take")
async def gamble_take(request: Request) -> dict:
    engine = _engine(request)
    return _respond(engine, engine.request_gamble_take_win())


@app.post("/autoplay")
async def autoplay(request: Request, body: AutoplayRequest) -> dict:
    engine = _engine(request)
    return _respond(engine, engine.set_autoplay(body.enabled))


@app.post("/stake")
async def stake(request: Request, body: StakeRequest) -> dict:
    validate_stake_request(body)
    engine = _engine(request)
    return _respond(engine, engine.set_stake(body.delta))
