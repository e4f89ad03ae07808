"""FastAPI application for the race board game backend"""

import logging
import os
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .engine import RaceEngine
from .errors import GameError, INTERNAL_INCONSISTENCY, INVALID_INPUT, INVALID_STATE, NOT_FOUND
from .schemas import AddPlayerRequest, ErrorResponse, GameCreatedResponse, StartResponse
from .serialization import serialize_outcome, serialize_player

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "info").upper())
logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    NOT_FOUND: 404,
    INVALID_STATE: 400,
    INVALID_INPUT: 422,
    INTERNAL_INCONSISTENCY: 500,
}


def create_router(engine: RaceEngine) -> APIRouter:
    router = APIRouter(prefix="/api/games")

    @router.post("", response_model=GameCreatedResponse)
    def create_game():
        game = engine.create_game()
        return GameCreatedResponse(game_id=game.id)

    @router.post("/{game_id}/players")
    def add_player(game_id: int, body: AddPlayerRequest):
        return serialize_player(engine.add_player(game_id, body.name))

    @router.post("/{game_id}/start", response_model=StartResponse)
    def start_game(game_id: int):
        engine.start_game(game_id)
        return StartResponse()

    @router.get("/{game_id}")
    def get_game(game_id: int):
        return engine.get_state(game_id)

    @router.post("/{game_id}/roll")
    def roll(game_id: int):
        return serialize_outcome(engine.roll(game_id))

    @router.post("/{game_id}/reset", response_model=GameCreatedResponse)
    def reset_game(game_id: int):
        game = engine.reset_game(game_id)
        return GameCreatedResponse(game_id=game.id)

    return router


def create_app(engine: Optional[RaceEngine] = None) -> FastAPI:
    engine = engine or RaceEngine()
    app = FastAPI(title="Race Board Game API", version="1.0.0")

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError):
        status = STATUS_BY_CODE.get(exc.code, 400)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=status,
            content=ErrorResponse(code=exc.code, message=exc.message).model_dump(),
        )

    @app.get("/")
    async def root():
        return {"message": "Race Board Game API", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    app.include_router(create_router(engine))
    app.state.engine = engine
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
