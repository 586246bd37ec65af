"""Bot strategies for tic-tac-toe: random, win/block heuristic, and alpha-beta minimax."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type, Union
import math
import random

from loguru import logger

from .game import Board, Player


WIN_SCORE = 10


class Difficulty(str, Enum):
    EASY = "Easy"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


def _legal_moves(board: Board) -> List[int]:
    moves = board.empty_cells()
    if not moves:
        raise RuntimeError("No valid moves available")
    return moves


def find_winning_move(board: Board, player: Player) -> Optional[int]:
    """First empty cell (ascending) where ``player`` completes a line."""
    for cell in board.empty_cells():
        if board.would_win(player, cell):
            return cell
    return None


def minimax(
    board: Board,
    bot: Player,
    depth: int,
    maximizing: bool,
    alpha: float = -math.inf,
    beta: float = math.inf,
    prune: bool = True,
) -> float:
    """Score ``board`` from ``bot``'s point of view.

    Wins score ``10 - depth`` and losses ``depth - 10`` so that faster wins and
    slower losses are preferred; a full board scores 0. Every child is
    searched on a copy. With ``prune`` off this is plain minimax.
    """
    opp = Board.opponent(bot)
    if board.has_winner(bot):
        return WIN_SCORE - depth
    if board.has_winner(opp):
        return depth - WIN_SCORE
    moves = board.empty_cells()
    if not moves:
        return 0

    if maximizing:
        value = -math.inf
        for cell in moves:
            child = board.copy()
            child.place(cell, bot)
            score = minimax(child, bot, depth + 1, False, alpha, beta, prune)
            value = max(value, score)
            alpha = max(alpha, score)
            if prune and beta <= alpha:
                break
    else:
        value = math.inf
        for cell in moves:
            child = board.copy()
            child.place(cell, opp)
            score = minimax(child, bot, depth + 1, True, alpha, beta, prune)
            value = min(value, score)
            beta = min(beta, score)
            if prune and beta <= alpha:
                break
    return value


@dataclass
class EasyBot:
    """Uniformly random legal move."""

    player: Player
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def choose(self, board: Board) -> int:
        return self.rng.choice(_legal_moves(board))


@dataclass
class IntermediateBot:
    """Takes an immediate win, else blocks one, else plays randomly."""

    player: Player
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def choose(self, board: Board) -> int:
        moves = _legal_moves(board)
        tactical = _win_or_block(board, self.player)
        if tactical is not None:
            return tactical
        return self.rng.choice(moves)


@dataclass
class MinimaxAI:
    """Perfect player: win/block shortcuts, then full-depth alpha-beta search.

    Each top-level cell is scored with a fresh window, so the returned scores
    are exact and ties go to the lowest index.
    """

    player: Player
    rng: random.Random = field(default_factory=random.Random, repr=False)
    prune: bool = True

    def choose(self, board: Board) -> int:
        _legal_moves(board)
        tactical = _win_or_block(board, self.player)
        if tactical is not None:
            return tactical
        move, _ = self.best_move(board)
        return move

    def best_move(self, board: Board) -> Tuple[int, float]:
        best_score = -math.inf
        best_move: Optional[int] = None
        for cell, score in self.score_moves(board):
            if score > best_score:
                best_score, best_move = score, cell
        if best_move is None:
            raise RuntimeError("No valid moves available")
        return best_move, best_score

    def score_moves(self, board: Board) -> List[Tuple[int, float]]:
        scored: List[Tuple[int, float]] = []
        for cell in _legal_moves(board):
            child = board.copy()
            child.place(cell, self.player)
            score = minimax(child, self.player, 0, False, prune=self.prune)
            scored.append((cell, score))
        return scored


def _win_or_block(board: Board, player: Player) -> Optional[int]:
    move = find_winning_move(board, player)
    if move is not None:
        return move
    return find_winning_move(board, Board.opponent(player))


BotStrategy = Union[EasyBot, IntermediateBot, MinimaxAI]

STRATEGIES: Dict[Difficulty, Type[BotStrategy]] = {
    Difficulty.EASY: EasyBot,
    Difficulty.INTERMEDIATE: IntermediateBot,
    Difficulty.ADVANCED: MinimaxAI,
}


def make_bot(
    difficulty: Union[Difficulty, str],
    player: Player,
    rng: Optional[random.Random] = None,
) -> BotStrategy:
    cls = STRATEGIES[Difficulty(difficulty)]
    return cls(player=player, rng=rng or random.Random())


def select_move(
    board: Board,
    player: Player,
    difficulty: Union[Difficulty, str],
    rng: Optional[random.Random] = None,
) -> int:
    """Pick a cell for ``player`` on ``board`` at the given difficulty."""
    move = make_bot(difficulty, player, rng).choose(board)
    logger.debug(
        "tictactoe.ai.select difficulty={} player={} move={}",
        Difficulty(difficulty).value,
        Player(player).value,
        move,
    )
    return move
