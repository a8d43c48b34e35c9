"""Application configuration with game defaults and environment overrides."""
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine and server settings."""

    model_config = ConfigDict(env_prefix="EXPLOSION_HOT_")

    # Server
    debug: bool = False
    ticker_interval_ms: int = 16
    session_idle_ttl_ms: int = 30 * 60 * 1000

    # Protocol
    protocol_version: str = "1.0"
    currency: str = "CREDITS"

    # Wallet and stakes
    initial_credits: int = 10000
    initial_stake: int = 5
    allowed_stakes: list[int] = [5, 10, 15, 20, 40, 80]
    stake_to_payout: dict[int, int] = {
        5: 25,
        10: 50,
        15: 75,
        20: 100,
        40: 200,
        80: 400,
    }

    # Reel trajectory (positions are in symbol rows, durations in ms)
    base_spin_distance: int = 20
    max_extra_distance: int = 2
    base_spin_ms: int = 1500
    reel_stagger_ms: int = 300
    bounce_ms: int = 1000

    # Collect transfer
    collect_duration_ms: int = 3000
    collect_tick_ms: int = 16

    # Autoplay
    autoplay_delay_ms: int = 1000

    # Gamble
    gamble_max_rounds: int = 5

    # RNG: seeded when set, otherwise cryptographic source
    rng_seed: int | None = None


settings = Settings()
