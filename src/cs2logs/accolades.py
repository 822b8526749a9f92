"""Accolade parsing for the end-of-game awards block.

CS2 prints one line per award right before ``Game Over``::

    L 01/07/2026 - 17:18:27: ACCOLADE, FINAL: {5k},\tKhanjer<0>,\tVALUE: 1.000000,\tPOS: 1,\tSCORE: 40.000000

The number of parseable accolade lines is what separates a real game from
a warmup or practice session, so a malformed line silently lowers the
count.
"""

import logging
import re
from typing import Sequence

from cs2logs.decoder import DecodedLine, try_decode_line
from cs2logs.matchers import ACCOLADE_MARKER, LOG_PREFIX
from cs2logs.models import AccoladeRecord
from cs2logs.validation import build_model, build_models

logger = logging.getLogger(__name__)

# Player names may contain spaces, brackets and punctuation; the id is the
# last <digits> token before the VALUE field.
ACCOLADE_RE = re.compile(
    LOG_PREFIX
    + r"ACCOLADE, FINAL: \{(?P<type>[^}]+)\}[,\s]+"
    + r"(?P<player_name>.+)<(?P<player_id>\d+)>[,\s]+"
    + r"VALUE: (?P<value>-?\d+(?:\.\d+)?)[,\s]+"
    + r"POS: (?P<position>\d+)[,\s]+"
    + r"SCORE: (?P<score>-?\d+(?:\.\d+)?)\s*$"
)

# Human player tokens inside event lines, used to resolve accolade owners.
PLAYER_TOKEN_RE = re.compile(
    r'"(?P<name>[^"]+?)<\d+><(?P<steam_id>\[U:\d+:\d+\])><(?:CT|TERRORIST)>"'
)


def _accolade_data(line: DecodedLine) -> dict | None:
    m = ACCOLADE_RE.match(line.text)
    if not m:
        return None
    return {
        "type": m.group("type"),
        "player_name": m.group("player_name").strip(),
        "player_id": int(m.group("player_id")),
        "value": float(m.group("value")),
        "position": int(m.group("position")),
        "score": float(m.group("score")),
    }


def parse_accolade(line: DecodedLine) -> AccoladeRecord | None:
    """Parse a single accolade line, or return None if it does not match."""
    data = _accolade_data(line)
    if data is None:
        return None
    return build_model(AccoladeRecord, data, line.index)


def collect_accolades(
    lines: Sequence[str], start: int, end: int
) -> list[AccoladeRecord]:
    """Parse every accolade line in ``lines[start:end]``.

    Non-accolade lines in the same window are scanned for human player
    tokens so each record's ``steam_id`` can be resolved by player name.

    Args:
        lines: The full raw (enveloped) log buffer.
        start: First index of the window (inclusive).
        end: Last index of the window (exclusive).

    Returns:
        Accolade records in log order. Lines that look like accolades but
        do not fit the grammar are skipped.
    """
    items: list[dict] = []
    steam_ids: dict[str, str] = {}

    for i in range(max(start, 0), min(end, len(lines))):
        line = try_decode_line(lines[i], i)
        if line is None:
            continue
        if ACCOLADE_MARKER in line.text:
            data = _accolade_data(line)
            if data is None:
                logger.debug("Accolade line %d did not match grammar: %s", i, line.text)
                continue
            items.append(data)
        else:
            for m in PLAYER_TOKEN_RE.finditer(line.text):
                steam_ids[m.group("name")] = m.group("steam_id")

    for item in items:
        item["steam_id"] = steam_ids.get(item["player_name"])

    records, rejected = build_models(items, AccoladeRecord)
    if rejected:
        logger.debug("Rejected %d accolade records in lines %d-%d", rejected, start, end)
    return records
