"""Payline and scatter (jackpot) evaluation of a settled grid."""
from explosion_hot.errors import EvaluationFault
from explosion_hot.logic.models import EvaluationResult, Grid, LineWin, Symbol
from explosion_hot.logic.reels import REELS, ROWS


# === GAME MATH ===

# Row index per reel, left to right
PAYLINES: tuple[tuple[int, ...], ...] = (
    (1, 1, 1, 1, 1),
    (0, 0, 0, 0, 0),
    (2, 2, 2, 2, 2),
    (0, 1, 2, 1, 0),
    (2, 1, 0, 1, 2),
)

# Multiplier of the stake payout by symbol and run length
LINE_PAYOUTS: dict[Symbol, dict[int, int]] = {
    Symbol.CHERRIES: {2: 1, 3: 4, 4: 10, 5: 40},
    Symbol.PLUM: {3: 4, 4: 10, 5: 40},
    Symbol.LEMON: {3: 4, 4: 10, 5: 40},
    Symbol.ORANGE: {3: 4, 4: 10, 5: 40},
    Symbol.GRAPE: {3: 10, 4: 40, 5: 100},
    Symbol.WATERMELON: {3: 10, 4: 40, 5: 100},
    Symbol.SEVEN: {3: 20, 4: 200, 5: 1000},
}

# Jackpot pays anywhere on the grid
JACKPOT_PAYOUTS: dict[int, int] = {3: 2, 4: 10, 5: 50}
JACKPOT_MIN_COUNT = 3
JACKPOT_MARKER = -1

DEFAULT_MIN_RUN = 3
MIN_RUN: dict[Symbol, int] = {Symbol.CHERRIES: 2}

# Runs / jackpot counts from here on get the bonus cue
BONUS_SOUND_COUNT = 4


def min_run(symbol: Symbol) -> int:
    return MIN_RUN.get(symbol, DEFAULT_MIN_RUN)


def validate_grid(grid: Grid) -> None:
    """Raise EvaluationFault unless ``grid`` is REELS x ROWS of Symbol/None."""
    if grid is None or len(grid) != REELS:
        raise EvaluationFault(f"Grid must have {REELS} reels")
    for reel_index, column in enumerate(grid):
        if column is None or len(column) != ROWS:
            raise EvaluationFault(f"Reel {reel_index} must have {ROWS} rows")
        for row_index, cell in enumerate(column):
            if cell is not None and not isinstance(cell, Symbol):
                raise EvaluationFault(
                    f"Cell {reel_index}-{row_index} holds unknown symbol {cell!r}"
                )


def count_run(symbols: list[Symbol | None]) -> tuple[Symbol | None, int]:
    """Longest run of one kind starting at reel 0; None never starts or extends a run."""
    first = symbols[0]
    if first is None:
        return None, 0
    count = 0
    for symbol in symbols:
        if symbol != first:
            break
        count += 1
    return first, count


def evaluate(grid: Grid, payout: int) -> EvaluationResult:
    """
    Evaluate a settled grid.

    Args:
        grid: grid[reel][row] of symbols (None for unresolved cells)
        payout: Payout unit derived from the current stake

    Returns:
        EvaluationResult with total win, per-line wins and winning cells

    Raises:
        EvaluationFault: grid is malformed
    """
    validate_grid(grid)
    result = EvaluationResult()
    winning_cells: dict[tuple[int, int], int] = {}

    # 1) Scatter rule
    jackpot_cells = [
        (reel_index, row_index)
        for reel_index, column in enumerate(grid)
        for row_index, cell in enumerate(column)
        if cell == Symbol.JACKPOT
    ]
    result.jackpot_count = len(jackpot_cells)
    if result.jackpot_count >= JACKPOT_MIN_COUNT:
        result.has_jackpot_win = True
        result.jackpot_win = payout * JACKPOT_PAYOUTS.get(result.jackpot_count, 0)
        for cell in jackpot_cells:
            winning_cells[cell] = JACKPOT_MARKER
        if result.jackpot_count >= BONUS_SOUND_COUNT:
            result.qualifies_bonus_sound = True

    # 2) Line rule
    for line_index, line in enumerate(PAYLINES):
        symbols = [grid[reel_index][row] for reel_index, row in enumerate(line)]
        symbol, count = count_run(symbols)
        if symbol is None or symbol not in LINE_PAYOUTS or count < min_run(symbol):
            continue
        multiplier = LINE_PAYOUTS[symbol].get(count)
        if not multiplier:
            continue
        result.has_line_win = True
        amount = payout * multiplier
        result.line_wins.append(LineWin(
            line_index=line_index,
            symbol=symbol,
            count=count,
            multiplier=multiplier,
            amount=amount,
        ))
        result.line_win += amount
        for reel_index in range(count):
            cell = (reel_index, line[reel_index])
            if winning_cells.get(cell) != JACKPOT_MARKER:
                winning_cells[cell] = line_index
        if count >= BONUS_SOUND_COUNT:
            result.qualifies_bonus_sound = True

    # 3) Totals
    result.total_win = result.line_win + result.jackpot_win
    result.winning_cells = winning_cells
    return result
