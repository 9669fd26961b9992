#!/usr/bin/env python3
"""
Terminal Snake on a fixed 20x20 board, drawn with curses.

One loop does everything:
  • drain the pending key presses and turn the snake
  • advance the snake once its move interval has elapsed
  • eat the apple, grow, respawn the apple and speed up
  • redraw the board inside a bordered box titled with the score

The state transitions live on ``Game`` and in ``step`` so they can be
exercised without a terminal; ``run`` is the curses driver around them.
"""

from __future__ import annotations

import curses
import enum
import locale
import logging
import os
import random
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple


logger = logging.getLogger(__name__)

BOARD_SIZE = 20
INITIAL_MOVE_INTERVAL_MS = 200
MOVE_INTERVAL_STEP_MS = 10
MIN_MOVE_INTERVAL_MS = 50
FRAME_DELAY_MS = 5

MIN_COLUMNS = (BOARD_SIZE + 2) * 2
MIN_ROWS = BOARD_SIZE + 2

SNAKE_GLYPH = "██"
APPLE_GLYPH = "##"

LOG_FILE_ENV = "SNAKE_LOG_FILE"

Cell = Tuple[int, int]  # (x, y), y grows downward


class GameError(Exception):
    """Fatal condition that aborts the run with a message."""


class TerminalTooSmall(GameError):
    def __init__(self, columns: int, rows: int) -> None:
        self.columns = columns
        self.rows = rows
        super().__init__(
            f"The terminal window must be at least {MIN_COLUMNS}x{MIN_ROWS} characters big "
            f"(current size is {columns}x{rows})"
        )


class BoardFull(GameError):
    def __init__(self) -> None:
        super().__init__("No free cell is left on the board to place an apple")


class Direction(enum.Enum):
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def vector(self) -> Tuple[int, int]:
        return self.value

    def opposite(self) -> "Direction":
        return OPPOSITES[self]


OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


class StopReason(enum.Enum):
    QUIT = "quit"
    COLLISION = "collision"


class KeyKind(enum.Enum):
    PRESS = "press"
    RELEASE = "release"


@dataclass(frozen=True)
class KeyEvent:
    code: int
    kind: KeyKind = KeyKind.PRESS


KEY_DIRECTIONS: Dict[int, Direction] = {
    curses.KEY_UP: Direction.UP,
    ord("w"): Direction.UP,
    curses.KEY_DOWN: Direction.DOWN,
    ord("s"): Direction.DOWN,
    curses.KEY_LEFT: Direction.LEFT,
    ord("a"): Direction.LEFT,
    curses.KEY_RIGHT: Direction.RIGHT,
    ord("d"): Direction.RIGHT,
}
QUIT_KEY = ord("q")


def offset(cell: Cell, vector: Tuple[int, int]) -> Cell:
    # Coordinates are unsigned: moving below zero stops at zero.
    return max(0, cell[0] + vector[0]), max(0, cell[1] + vector[1])


# ------------------------------------------------------------------ state
@dataclass
class Game:
    snake: List[Cell]
    direction: Direction = Direction.RIGHT
    apple: Cell = (BOARD_SIZE // 2, BOARD_SIZE // 3)
    move_interval_ms: int = INITIAL_MOVE_INTERVAL_MS
    last_tick: float = 0.0
    board_size: int = field(default=BOARD_SIZE, repr=False)

    @classmethod
    def new(cls, now: float = 0.0) -> "Game":
        center = BOARD_SIZE // 2
        return cls(snake=[(center, center)], last_tick=now)

    @property
    def head(self) -> Cell:
        return self.snake[0]

    @property
    def score(self) -> int:
        return len(self.snake) - 1

    # ------------------------------------------------------------- turning
    def is_valid_turn(self, direction: Direction) -> bool:
        """Reject turns that would fold the head back onto itself."""
        if len(self.snake) > 1:
            return offset(self.head, direction.vector) != self.snake[1]
        return direction is not self.direction.opposite()

    def turn(self, direction: Direction) -> bool:
        if not self.is_valid_turn(direction):
            return False
        self.direction = direction
        return True

    # ------------------------------------------------------------- moving
    def tick_due(self, now: float) -> bool:
        return (now - self.last_tick) * 1000 > self.move_interval_ms

    def hits_wall(self) -> bool:
        x, y = self.head
        dx, dy = self.direction.vector
        last = self.board_size - 1
        return (
            (x == 0 and dx < 0)
            or (y == 0 and dy < 0)
            or (x == last and dx > 0)
            or (y == last and dy > 0)
        )

    def advance(self, now: float) -> bool:
        """Move one cell forward. Returns False when the snake crashed."""
        if self.hits_wall():
            return False

        next_head = offset(self.head, self.direction.vector)
        # The tail leaves before the body check, so chasing the tail is allowed.
        self.snake.pop()
        if next_head in self.snake:
            return False

        self.snake.insert(0, next_head)
        self.last_tick = now
        return True

    # ------------------------------------------------------------- eating
    def free_cells(self) -> List[Cell]:
        occupied = set(self.snake)
        return [
            (x, y)
            for x in range(self.board_size)
            for y in range(self.board_size)
            if (x, y) not in occupied
        ]

    def grow(self) -> None:
        if len(self.snake) > 1:
            (x1, y1), (x2, y2) = self.snake[-1], self.snake[-2]
            growth = (x1 - x2, y1 - y2)
        else:
            dx, dy = self.direction.vector
            growth = (-dx, -dy)
        self.snake.append(offset(self.snake[-1], growth))

    def eat_apple(self, rng=random) -> bool:
        if self.head != self.apple:
            return False

        self.grow()
        candidates = self.free_cells()
        if not candidates:
            raise BoardFull()
        self.apple = rng.choice(candidates)
        self.move_interval_ms = max(MIN_MOVE_INTERVAL_MS, self.move_interval_ms - MOVE_INTERVAL_STEP_MS)
        logger.debug(
            "apple eaten: score=%d interval=%dms next apple=%s",
            self.score,
            self.move_interval_ms,
            self.apple,
        )
        return True


# ------------------------------------------------------------------ input
def direction_for_key(code: int) -> Optional[Direction]:
    return KEY_DIRECTIONS.get(code)


def apply_input(game: Game, events: Iterable[KeyEvent]) -> Optional[StopReason]:
    for event in events:
        if event.kind is not KeyKind.PRESS:
            continue
        if event.code == QUIT_KEY:
            return StopReason.QUIT
        direction = direction_for_key(event.code)
        if direction is not None:
            game.turn(direction)
    return None


def read_events(window: "curses._CursesWindow") -> List[KeyEvent]:
    """Drain every key currently buffered; expects ``nodelay(True)``."""
    events = []
    while True:
        key = window.getch()
        if key == -1:
            return events
        events.append(KeyEvent(key))


# ------------------------------------------------------------------- loop
def step(
    game: Game,
    events: Iterable[KeyEvent],
    now: float,
    rng=random,
) -> Optional[StopReason]:
    """Run one loop iteration. ``None`` means keep going and redraw."""
    reason = apply_input(game, events)
    if reason is not None:
        return reason

    if game.tick_due(now) and not game.advance(now):
        return StopReason.COLLISION

    game.eat_apple(rng)
    return None


# ----------------------------------------------------------------- render
COLOR_BORDER = 1
COLOR_SNAKE = 2
COLOR_APPLE = 3

PLAIN_ATTRS = {
    COLOR_BORDER: curses.A_NORMAL,
    COLOR_SNAKE: curses.A_NORMAL,
    COLOR_APPLE: curses.A_NORMAL,
}


def init_colors() -> Dict[int, int]:
    attrs = dict(PLAIN_ATTRS)
    if not curses.has_colors():
        return attrs
    try:
        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(COLOR_BORDER, curses.COLOR_WHITE, -1)
        curses.init_pair(COLOR_SNAKE, curses.COLOR_GREEN, -1)
        curses.init_pair(COLOR_APPLE, curses.COLOR_RED, -1)
    except curses.error:
        logger.debug("terminal refused colour pairs, drawing without colour")
        return attrs
    attrs[COLOR_BORDER] = curses.color_pair(COLOR_BORDER) | curses.A_BOLD
    attrs[COLOR_SNAKE] = curses.color_pair(COLOR_SNAKE)
    attrs[COLOR_APPLE] = curses.color_pair(COLOR_APPLE) | curses.A_BOLD
    return attrs


def board_origin(columns: int, rows: int) -> Cell:
    """Top-left screen cell of the play field, centered in the window."""
    return max(0, columns // 2 - BOARD_SIZE), max(0, rows // 2 - BOARD_SIZE // 2)


def draw_box(window, left: int, top: int, width: int, height: int, title: str, attr: int) -> None:
    inner = width - 2
    window.addstr(top, left, "┏" + "━" * inner + "┓", attr)
    for row in range(top + 1, top + height - 1):
        window.addstr(row, left, "┃", attr)
        window.addstr(row, left + width - 1, "┃", attr)
    window.addstr(top + height - 1, left, "┗" + "━" * inner + "┛", attr)
    window.addstr(top, left + (width - len(title)) // 2, title, attr)


def render(game: Game, window, attrs: Optional[Dict[int, int]] = None) -> None:
    attrs = attrs or PLAIN_ATTRS
    rows, columns = window.getmaxyx()
    if columns < MIN_COLUMNS or rows < MIN_ROWS:
        raise TerminalTooSmall(columns, rows)

    window.erase()

    # One board cell is two characters wide to look roughly square.
    board_x, board_y = board_origin(columns, rows)
    board_width = (BOARD_SIZE - 1) * 2
    draw_box(
        window,
        board_x - 1,
        board_y - 1,
        board_width + 4,
        BOARD_SIZE + 2,
        f" Score: {game.score} ",
        attrs[COLOR_BORDER],
    )

    apple_x, apple_y = game.apple
    window.addstr(board_y + apple_y, board_x + apple_x * 2, APPLE_GLYPH, attrs[COLOR_APPLE])

    for x, y in game.snake:
        window.addstr(board_y + y, board_x + x * 2, SNAKE_GLYPH, attrs[COLOR_SNAKE])

    window.noutrefresh()
    curses.doupdate()


# ----------------------------------------------------------------- driver
def run(window: "curses._CursesWindow", clock=time.monotonic, rng=random) -> StopReason:
    curses.curs_set(0)
    window.keypad(True)
    window.nodelay(True)
    attrs = init_colors()

    game = Game.new(now=clock())
    logger.info("game started: snake=%s apple=%s", game.snake, game.apple)

    while True:
        reason = step(game, read_events(window), clock(), rng)
        if reason is not None:
            logger.info("game stopped: reason=%s score=%d", reason.value, game.score)
            return reason
        render(game, window, attrs)
        # Yields the CPU; a tick can land up to FRAME_DELAY_MS late.
        curses.napms(FRAME_DELAY_MS)


def main(stdscr: "curses._CursesWindow") -> StopReason:
    return run(stdscr)


def configure_logging() -> None:
    # stdout/stderr belong to curses, so records only go to a file when asked.
    path = os.environ.get(LOG_FILE_ENV)
    if not path:
        return
    logging.basicConfig(
        filename=path,
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cli() -> int:
    configure_logging()
    locale.setlocale(locale.LC_ALL, "")
    try:
        curses.wrapper(main)
    except GameError as exc:
        logger.error("game aborted: %s", exc)
        raise SystemExit(str(exc)) from exc
    return 0


if __name__ == "__main__":
    raise SystemExit(cli())
