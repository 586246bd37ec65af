"""FastAPI-powered web UI for playing tic-tac-toe against a friend or the bot."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import Difficulty
from .engine import DEFAULT_BOT_DELAY, GameEngine
from .game import Player
from .stats import GameStatistics, StatisticsRecorder


def _bot_delay_from_env() -> Optional[float]:
    raw = os.environ.get("TICTACTOE_BOT_DELAY")
    if raw is None or raw.strip() == "":
        return DEFAULT_BOT_DELAY
    try:
        delay = float(raw)
    except ValueError:
        logger.warning(
            "tictactoe.config.invalid TICTACTOE_BOT_DELAY={!r}, using {}",
            raw,
            DEFAULT_BOT_DELAY,
        )
        return DEFAULT_BOT_DELAY
    return None if delay <= 0 else delay


# Seconds before the bot replies; None plays the reply inline.
BOT_DELAY: Optional[float] = _bot_delay_from_env()


@dataclass
class GameSession:
    """Container for one local game, its settings and the statistics it feeds."""

    engine: GameEngine
    recorder: StatisticsRecorder = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.recorder = StatisticsRecorder(self.engine)

    @property
    def statistics(self) -> GameStatistics:
        return self.recorder.statistics


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="TicTacToe", description="Tic-tac-toe with a three-level bot")


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    bot_enabled: bool = Field(default=True, alias="botEnabled")
    difficulty: Difficulty = Field(
        default=Difficulty.INTERMEDIATE,
        description="Bot strength: Easy, Intermediate or Advanced",
    )
    bot_player: Player = Field(default=Player.O, alias="botPlayer")

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value


class SettingsRequest(BaseModel):
    """Partial settings update; toggling the bot or its side starts a new game."""

    model_config = ConfigDict(populate_by_name=True)

    bot_enabled: Optional[bool] = Field(default=None, alias="botEnabled")
    difficulty: Optional[Difficulty] = None
    bot_player: Optional[Player] = Field(default=None, alias="botPlayer")

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    index: int = Field(ge=0, le=8, description="Row-major cell index")


def _create_session(request: NewGameRequest) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    engine = GameEngine(
        is_bot_enabled=request.bot_enabled,
        bot_difficulty=request.difficulty,
        bot_player=request.bot_player,
        bot_delay=BOT_DELAY,
    )
    session = GameSession(engine=engine)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info(
        "tictactoe.session.create id={} bot_enabled={} difficulty={} bot_player={}",
        session_id,
        request.bot_enabled,
        request.difficulty.value,
        request.bot_player.value,
    )
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _play_opening_inline(session: GameSession) -> None:
    # Without a delay the bot's opening move after a reset is fired right away.
    if session.engine.bot_delay is None:
        session.engine.run_pending_bot_move()


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    engine = session.engine
    with engine.lock:
        winner = engine.winner()
        line = engine.winning_line()
        move_log: List[Dict[str, object]] = [
            {"player": player.value, "index": index}
            for player, index in engine.move_log
        ]
        state: Dict[str, object] = {
            "id": game_id,
            "board": [c.value if c is not None else "" for c in engine.board_snapshot()],
            "currentPlayer": engine.current_player().value,
            "status": engine.status().value,
            "gameOver": engine.is_game_over(),
            "winner": winner.value if winner else None,
            "winningLine": list(line) if line else None,
            "botEnabled": engine.is_bot_enabled,
            "botDifficulty": engine.bot_difficulty.value,
            "botPlayer": engine.bot_player.value,
            "botPending": engine.is_bot_pending(),
            "moveLog": move_log,
        }
        if move_log:
            state["lastMove"] = move_log[-1]
        return state


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request)
    _play_opening_inline(session)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(game_id: str, request: MoveRequest) -> Dict[str, object]:
    # Illegal moves leave the state untouched; the client just sees no change.
    session = _get_session(game_id)
    session.engine.make_move(request.index)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    session.engine.reset()
    _play_opening_inline(session)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/settings")
def update_settings(game_id: str, request: SettingsRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    session.engine.configure(
        is_bot_enabled=request.bot_enabled,
        bot_difficulty=request.difficulty,
        bot_player=request.bot_player,
    )
    _play_opening_inline(session)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}/stats")
def get_stats(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.engine.lock:
        stats = session.statistics
        return {
            "totalGamesPlayed": stats.total_games_played,
            "gamesWonByX": stats.games_won_by_x,
            "gamesWonByO": stats.games_won_by_o,
            "gamesDrawn": stats.games_drawn,
            "currentWinStreak": stats.current_win_streak,
            "longestWinStreak": stats.longest_win_streak,
            "averageGameDuration": stats.average_game_duration,
            "botWinPercentage": {
                d.value: stats.bot_win_percentage(d) for d in Difficulty
            },
            "summary": stats.summary(),
            "botSummary": stats.bot_summary(),
        }


@app.delete("/api/game/{game_id}")
def delete_game(game_id: str) -> Dict[str, str]:
    session = _get_session(game_id)
    session.engine.close()
    SESSIONS.pop(game_id, None)
    return {"id": game_id}


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      body { font-family: system-ui, sans-serif; background: #101322; color: #f4f5fb;
             display: flex; flex-direction: column; align-items: center; margin: 0; padding: 2rem; }
      .controls { display: flex; gap: 0.75rem; margin-bottom: 1rem; flex-wrap: wrap; }
      .board { display: grid; grid-template-columns: repeat(3, 6rem); gap: 0.4rem; }
      .cell { width: 6rem; height: 6rem; font-size: 3rem; background: #1d2240; color: inherit;
              border: none; border-radius: 0.6rem; cursor: pointer; }
      .cell.win { background: #3b4a9a; }
      .board.thinking { opacity: 0.7; }
      #status { margin: 1rem 0; min-height: 1.5rem; }
      pre { background: #1d2240; padding: 0.8rem; border-radius: 0.6rem; }
    </style>
  </head>
  <body>
    <h1>Tic-Tac-Toe</h1>
    <div class=\"controls\">
      <label><input type=\"checkbox\" id=\"bot\" checked /> Bot</label>
      <select id=\"difficulty\">
        <option>Easy</option>
        <option selected>Intermediate</option>
        <option>Advanced</option>
      </select>
      <select id=\"botPlayer\">
        <option value=\"O\" selected>Bot plays O</option>
        <option value=\"X\">Bot plays X</option>
      </select>
      <button id=\"newGame\">New game</button>
    </div>
    <div id=\"status\">Setting up your game…</div>
    <div class=\"board\" id=\"board\"></div>
    <pre id=\"stats\"></pre>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const statsEl = document.getElementById('stats');
      const botEl = document.getElementById('bot');
      const difficultyEl = document.getElementById('difficulty');
      const botPlayerEl = document.getElementById('botPlayer');
      let gameId = null;
      let gameState = null;
      let pollHandle = null;

      async function post(url, body) {
        const response = await fetch(url, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify(body || {}),
        });
        if (!response.ok) throw new Error('Request failed');
        return response.json();
      }

      function renderBoard() {
        boardEl.innerHTML = '';
        const line = gameState?.winningLine || [];
        (gameState?.board || Array(9).fill('')).forEach((mark, index) => {
          const cell = document.createElement('button');
          cell.className = 'cell' + (line.includes(index) ? ' win' : '');
          cell.textContent = mark;
          cell.addEventListener('click', () => sendMove(index));
          boardEl.appendChild(cell);
        });
        boardEl.classList.toggle('thinking', Boolean(gameState?.botPending));
      }

      function updateStatus() {
        if (!gameState) return;
        if (gameState.winner) statusEl.textContent = `${gameState.winner} wins!`;
        else if (gameState.gameOver) statusEl.textContent = "It's a draw.";
        else if (gameState.botPending) statusEl.textContent = 'Bot is thinking…';
        else statusEl.textContent = `${gameState.currentPlayer} to move`;
      }

      async function refreshStats() {
        if (!gameId) return;
        const response = await fetch(`/api/game/${gameId}/stats`);
        if (response.ok) {
          const data = await response.json();
          statsEl.textContent = data.summary + '\\n\\n' + data.botSummary;
        }
      }

      function setState(data) {
        gameId = data.id;
        gameState = data;
        renderBoard();
        updateStatus();
        if (gameState.botPending) {
          if (pollHandle === null) pollHandle = window.setTimeout(poll, 300);
        }
        if (gameState.gameOver) refreshStats();
      }

      async function poll() {
        pollHandle = null;
        if (!gameId) return;
        const response = await fetch(`/api/game/${gameId}`);
        if (response.ok) setState(await response.json());
      }

      async function sendMove(index) {
        if (!gameState || gameState.gameOver || gameState.botPending) return;
        setState(await post(`/api/game/${gameId}/move`, { index }));
      }

      async function startGame() {
        setState(
          await post('/api/game', {
            botEnabled: botEl.checked,
            difficulty: difficultyEl.value,
            botPlayer: botPlayerEl.value,
          })
        );
        refreshStats();
      }

      async function applySettings() {
        if (!gameId) return startGame();
        setState(
          await post(`/api/game/${gameId}/settings`, {
            botEnabled: botEl.checked,
            difficulty: difficultyEl.value,
            botPlayer: botPlayerEl.value,
          })
        );
      }

      document.getElementById('newGame').addEventListener('click', async () => {
        if (!gameId) return startGame();
        setState(await post(`/api/game/${gameId}/reset`));
      });
      botEl.addEventListener('change', applySettings);
      difficultyEl.addEventListener('change', applySettings);
      botPlayerEl.addEventListener('change', applySettings);
      startGame().catch((error) => {
        statusEl.textContent = error.message || 'Network error. Please try again.';
      });
    </script>
  </body>
</html>
"""
