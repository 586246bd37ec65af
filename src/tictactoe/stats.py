"""In-memory game statistics, fed by observing an engine's terminal transitions."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Callable, Dict, Optional
import math
import time

from loguru import logger

from .ai import Difficulty
from .engine import GameEngine
from .game import Player


# Per-game move time is approximated as duration / 9.
MOVES_PER_GAME = 9.0


@dataclass
class BotStats:
    games_played: int = 0
    games_won: int = 0
    games_lost: int = 0
    games_drawn: int = 0
    average_move_time: float = 0.0
    fastest_move: float = math.inf
    slowest_move: float = 0.0


def _percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


@dataclass
class GameStatistics:
    total_games_played: int = 0
    games_won_by_x: int = 0
    games_won_by_o: int = 0
    games_drawn: int = 0
    # Streaks count consecutive X wins.
    current_win_streak: int = 0
    longest_win_streak: int = 0
    average_game_duration: float = 0.0
    fastest_win: float = math.inf
    bot_difficulty_stats: Dict[Difficulty, BotStats] = field(
        default_factory=lambda: {d: BotStats() for d in Difficulty}
    )

    def record_game_result(
        self,
        winner: Optional[Player],
        duration: float,
        bot_difficulty: Optional[Difficulty] = None,
    ) -> None:
        self.total_games_played += 1

        if winner is not None:
            if winner is Player.X:
                self.games_won_by_x += 1
                self.current_win_streak += 1
            else:
                self.games_won_by_o += 1
                self.current_win_streak = 0
            self.longest_win_streak = max(
                self.longest_win_streak, self.current_win_streak
            )
            self.fastest_win = min(self.fastest_win, duration)
        else:
            self.games_drawn += 1
            self.current_win_streak = 0

        total = self.average_game_duration * (self.total_games_played - 1) + duration
        self.average_game_duration = total / self.total_games_played

        if bot_difficulty is not None:
            self._update_bot_stats(Difficulty(bot_difficulty), winner, duration)

    def _update_bot_stats(
        self, difficulty: Difficulty, winner: Optional[Player], duration: float
    ) -> None:
        stats = self.bot_difficulty_stats[difficulty]
        stats.games_played += 1
        # Bot results assume the bot plays O.
        if winner is Player.X:
            stats.games_lost += 1
        elif winner is Player.O:
            stats.games_won += 1
        else:
            stats.games_drawn += 1

        move_time = duration / MOVES_PER_GAME
        stats.average_move_time = (
            stats.average_move_time * (stats.games_played - 1) + move_time
        ) / stats.games_played
        stats.fastest_move = min(stats.fastest_move, move_time)
        stats.slowest_move = max(stats.slowest_move, move_time)

    def win_percentage(self, player: Player) -> float:
        wins = self.games_won_by_x if player is Player.X else self.games_won_by_o
        return _percent(wins, self.total_games_played)

    def draw_percentage(self) -> float:
        return _percent(self.games_drawn, self.total_games_played)

    def bot_win_percentage(self, difficulty: Difficulty) -> float:
        stats = self.bot_difficulty_stats[Difficulty(difficulty)]
        return _percent(stats.games_won, stats.games_played)

    def reset_statistics(self) -> None:
        fresh = GameStatistics()
        for f in fields(self):
            setattr(self, f.name, getattr(fresh, f.name))

    def summary(self) -> str:
        fastest = "N/A" if math.isinf(self.fastest_win) else f"{self.fastest_win:.1f}s"
        return "\n".join(
            [
                f"Games Played: {self.total_games_played}",
                f"X Wins: {self.games_won_by_x} ({self.win_percentage(Player.X):.1f}%)",
                f"O Wins: {self.games_won_by_o} ({self.win_percentage(Player.O):.1f}%)",
                f"Draws: {self.games_drawn} ({self.draw_percentage():.1f}%)",
                f"Longest Win Streak: {self.longest_win_streak}",
                f"Average Game Duration: {self.average_game_duration:.1f}s",
                f"Fastest Win: {fastest}",
            ]
        )

    def bot_summary(self) -> str:
        lines = ["Bot Performance:"]
        for difficulty in Difficulty:
            stats = self.bot_difficulty_stats[difficulty]
            if stats.games_played > 0:
                lines.append(
                    f"{difficulty.value}: {stats.games_won}/{stats.games_played} "
                    f"({self.bot_win_percentage(difficulty):.1f}%)"
                )
        return "\n".join(lines) + "\n"


class StatisticsRecorder:
    """Records one result per finished game of the engine it subscribes to."""

    def __init__(
        self,
        engine: GameEngine,
        statistics: Optional[GameStatistics] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.statistics = statistics or GameStatistics()
        self._clock = clock
        self._started_at = clock()
        self._game_number = engine.game_number
        self._recorded = engine.is_game_over()
        engine.subscribe(self._on_change)

    def _on_change(self, engine: GameEngine) -> None:
        if engine.game_number != self._game_number:
            self._game_number = engine.game_number
            self._started_at = self._clock()
            self._recorded = False
        if self._recorded or not engine.is_game_over():
            return
        self._recorded = True
        duration = self._clock() - self._started_at
        difficulty = engine.bot_difficulty if engine.is_bot_enabled else None
        winner = engine.winner()
        self.statistics.record_game_result(winner, duration, difficulty)
        logger.info(
            "tictactoe.stats.recorded winner={} duration={:.2f}",
            winner.value if winner else None,
            duration,
        )
