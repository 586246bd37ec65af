"""Tic-tac-toe package exposing the rules engine, bot strategies, and the web application."""

from .ai import Difficulty, MinimaxAI, minimax, select_move
from .engine import GameEngine, GameStatus
from .game import WINNING_LINES, Board, Player
from .stats import GameStatistics, StatisticsRecorder
from .ui import app

__all__ = [
    "WINNING_LINES",
    "Board",
    "Difficulty",
    "GameEngine",
    "GameStatistics",
    "GameStatus",
    "MinimaxAI",
    "Player",
    "StatisticsRecorder",
    "app",
    "minimax",
    "select_move",
]
