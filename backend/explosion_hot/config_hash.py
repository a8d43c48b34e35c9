"""Config hash of the game math.

Shared by:
- scripts/audit_sim.py (CSV audit)
- telemetry.py (spin_resolved event)
- GET /init

The hash MUST be computed identically in all locations.
"""
import hashlib
import json

from explosion_hot.config import settings
from explosion_hot.logic.evaluator import (
    JACKPOT_PAYOUTS,
    LINE_PAYOUTS,
    MIN_RUN,
    PAYLINES,
)


def get_config_hash() -> str:
    """
    Generate hash of the current game configuration.

    Returns 16-char hex hash of the math snapshot (paytable, scatter table,
    paylines, stakes).
    """
    config_snapshot = {
        "allowed_stakes": list(settings.allowed_stakes),
        "stake_to_payout": {str(k): v for k, v in settings.stake_to_payout.items()},
        "paylines": [list(line) for line in PAYLINES],
        "line_payouts": {
            symbol.value: {str(k): v for k, v in table.items()}
            for symbol, table in LINE_PAYOUTS.items()
        },
        "min_run": {symbol.value: v for symbol, v in MIN_RUN.items()},
        "jackpot_payouts": {str(k): v for k, v in JACKPOT_PAYOUTS.items()},
        "gamble_max_rounds": settings.gamble_max_rounds,
    }
    canonical = json.dumps(config_snapshot, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]
