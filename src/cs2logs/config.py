"""Parser configuration with sensible defaults for CS2 server logs."""

from dataclasses import dataclass

LOG_LINE_SENTINEL = "L "


@dataclass
class ParserConfig:
    """Configuration for the CS2 log parser and its driver loop.

    The defaults match what a competitive CS2 server prints at the end of a
    full game.
    """

    # A real game prints at least this many ACCOLADE lines before Game Over.
    # Warmup/practice games print fewer and are discarded.
    accolade_threshold: int = 6

    # Maximum number of lines scanned after a Round_End for the
    # JSON_BEGIN ... JSON_END player stats block.
    round_end_lookahead: int = 64

    # Drop kill/assist/attack events where both players are bots.
    skip_bot_only_events: bool = True

    # Persistent data storage
    data_dir: str = "data"
    db_path: str = "data/cs2logs.db"
