"""Turn-state engine: validates moves, detects the end of the game, drives the bot."""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional, Tuple, Union
import random
import threading

from loguru import logger

from .ai import Difficulty, select_move
from .game import BOARD_SIZE, Board, Cell, Player
from .scheduler import DeferredAction


class GameStatus(str, Enum):
    ONGOING = "ongoing"
    WON = "won"
    DRAWN = "drawn"


DEFAULT_BOT_DELAY = 0.5

ChangeCallback = Callable[["GameEngine"], None]


class GameEngine:
    """Owns the board and turn state, enforces rules and drives the bot.

    All mutation goes through :meth:`make_move`, :meth:`reset`,
    :meth:`enable_bot` and :meth:`configure`. Observers registered with
    :meth:`subscribe` are called after every mutation, including a deferred
    bot move landing.

    ``bot_delay`` is the latency of the bot's reply in seconds. ``None`` makes
    the bot answer a human move inline, inside that call; the bot's opening
    move after a reset is still left pending for :meth:`run_pending_bot_move`.
    """

    def __init__(
        self,
        *,
        is_bot_enabled: bool = False,
        bot_difficulty: Union[Difficulty, str] = Difficulty.INTERMEDIATE,
        bot_player: Player = Player.O,
        bot_delay: Optional[float] = DEFAULT_BOT_DELAY,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.is_bot_enabled = is_bot_enabled
        self.bot_difficulty = Difficulty(bot_difficulty)
        self.bot_player = Player(bot_player)
        self.bot_delay = bot_delay
        self.rng = rng or random.Random()

        self.board = Board()
        self.move_log: List[Tuple[Player, int]] = []
        self._current_player = Player.X
        self._status = GameStatus.ONGOING
        self._winner: Optional[Player] = None

        self._lock = threading.RLock()
        self._bot_action = DeferredAction()
        # Set while a scheduled bot reply has not landed yet.
        self._bot_move_due = False
        # Bumped on every reset so a stale deferred bot move never lands.
        self._generation = 0
        self._subscribers: List[ChangeCallback] = []

        self.reset()

    # ---- state queries ----

    def current_player(self) -> Player:
        return self._current_player

    def status(self) -> GameStatus:
        return self._status

    def is_game_over(self) -> bool:
        return self._status is not GameStatus.ONGOING

    def winner(self) -> Optional[Player]:
        return self._winner

    def board_snapshot(self) -> List[Cell]:
        with self._lock:
            return self.board.snapshot()

    def winning_line(self) -> Optional[Tuple[int, int, int]]:
        if self._status is not GameStatus.WON:
            return None
        return self.board.winning_line()

    def is_bot_pending(self) -> bool:
        return self._bot_move_due

    @property
    def lock(self):
        """Held by every mutation; readers take it for a consistent view."""
        return self._lock

    @property
    def game_number(self) -> int:
        """Increments on every reset."""
        return self._generation

    # ---- observers ----

    def subscribe(self, callback: ChangeCallback) -> None:
        self._subscribers.append(callback)

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    # ---- mutation ----

    def make_move(self, index: int) -> None:
        """Place the current player's mark at ``index``; illegal moves are ignored."""
        with self._lock:
            if self._status is not GameStatus.ONGOING:
                return
            if isinstance(index, bool) or not isinstance(index, int):
                return
            if not 0 <= index < BOARD_SIZE or not self.board.is_empty(index):
                return
            if self._bot_move_due:
                # The deferred bot reply owns this turn.
                return

            self._apply(index)
            if self._is_bot_turn():
                self._schedule_bot_move()
            self._notify()

    def reset(self) -> None:
        """Start a fresh game, discarding any pending bot reply."""
        with self._lock:
            self._bot_action.cancel()
            self._bot_move_due = False
            self._generation += 1
            self.board = Board()
            self.move_log = []
            self._current_player = Player.X
            self._status = GameStatus.ONGOING
            self._winner = None
            logger.info(
                "tictactoe.reset bot_enabled={} bot_player={} difficulty={}",
                self.is_bot_enabled,
                self.bot_player.value,
                self.bot_difficulty.value,
            )
            if self._is_bot_turn():
                self._schedule_bot_move(opening=True)
            self._notify()

    def enable_bot(self) -> None:
        """Turn the bot on; always starts a new game."""
        with self._lock:
            self.is_bot_enabled = True
            self.reset()

    def configure(
        self,
        *,
        is_bot_enabled: Optional[bool] = None,
        bot_difficulty: Union[Difficulty, str, None] = None,
        bot_player: Union[Player, str, None] = None,
    ) -> None:
        """Update bot settings; toggling the bot or switching its side resets the game."""
        with self._lock:
            needs_reset = False
            if bot_difficulty is not None:
                self.bot_difficulty = Difficulty(bot_difficulty)
            if bot_player is not None and Player(bot_player) is not self.bot_player:
                self.bot_player = Player(bot_player)
                needs_reset = True
            if is_bot_enabled is not None and is_bot_enabled != self.is_bot_enabled:
                self.is_bot_enabled = is_bot_enabled
                needs_reset = True
            if needs_reset:
                self.reset()
            else:
                self._notify()

    def run_pending_bot_move(self) -> bool:
        """Play the deferred bot reply now. Returns False if none was pending."""
        return self._bot_action.fire_now()

    def close(self) -> None:
        with self._lock:
            self._bot_action.cancel()
            self._bot_move_due = False

    def check_win(self) -> None:
        """Re-evaluate terminal state from the board."""
        line = self.board.winning_line()
        if line is not None:
            self._winner = self.board.cells[line[0]]
            self._status = GameStatus.WON
            return
        if not self.board.empty_cells():
            self._winner = None
            self._status = GameStatus.DRAWN

    # ---- helpers ----

    def _is_bot_turn(self) -> bool:
        return (
            self.is_bot_enabled
            and self._status is GameStatus.ONGOING
            and self._current_player is self.bot_player
        )

    def _apply(self, index: int) -> None:
        player = self._current_player
        self.board.place(index, player)
        self.move_log.append((player, index))
        logger.debug("tictactoe.move player={} index={}", player.value, index)
        self.check_win()
        if self._status is GameStatus.ONGOING:
            self._current_player = player.next
        else:
            logger.info(
                "tictactoe.game_over status={} winner={}",
                self._status.value,
                self._winner.value if self._winner else None,
            )

    def _schedule_bot_move(self, opening: bool = False) -> None:
        generation = self._generation
        if self.bot_delay is None:
            if not opening:
                self._play_bot_move(generation)
                return
            # The opening move after a reset stays pending until fired.
            self._bot_move_due = True
            self._bot_action.hold(
                lambda: self._play_bot_move(generation, notify=True)
            )
            return
        self._bot_move_due = True
        self._bot_action.schedule(
            self.bot_delay, lambda: self._play_bot_move(generation, notify=True)
        )

    def _play_bot_move(self, generation: int, notify: bool = False) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._bot_move_due = False
            if not self._is_bot_turn():
                return
            index = select_move(
                self.board, self.bot_player, self.bot_difficulty, self.rng
            )
            if not self.board.is_empty(index):
                raise RuntimeError(f"Bot selected occupied cell {index}")
            # One ply only: the bot's own move never schedules another.
            self._apply(index)
            if notify:
                self._notify()
