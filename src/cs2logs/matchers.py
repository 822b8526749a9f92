"""Regex matchers for CS2 server log event grammars.

Provides:
- one pure ``match_*`` function per grammar: DecodedLine in, event or None out
- IN_ROUND_MATCHERS: the prioritised matcher list used during replay
- read_round_players: bounded lookahead over the post-Round_End stats block
- match_app_server_id: server identification line (printed without sentinel)

Grammar examples (content of the ``log`` field)::

    L 04/20/2024 - 16:21:52: "ninja<1><[U:1:1135799416]><TERRORIST>" [-538 758 -23] attacked "Buckshot<5><BOT><CT>" [81 907 80] with "ak47" (damage "109") (damage_armor "15") (health "0") (armor "76") (hitgroup "head")
    L 04/20/2024 - 17:52:34: "MYTH<9><[U:1:1598851733]><CT>" assisted killing "Wasuli<4><[U:1:1026155000]><TERRORIST>"
    L 04/20/2024 - 18:30:45: Game Over: competitive mg_active de_dust2 score 16:10 after 45 min

Order matters: the kill grammar is tried before the attack grammar, and
the generic world/team triggers last.
"""

import re
from typing import Callable, Sequence

from cs2logs.decoder import DecodedLine, decode_envelope
from cs2logs.exceptions import NotDecodable
from cs2logs.models import (
    AssistEvent,
    AssistType,
    AttackEvent,
    BombAction,
    BombEvent,
    GameOverEvent,
    KillEvent,
    ParsedEvent,
    RoundEndEvent,
    RoundStartEvent,
)
from cs2logs.validation import build_model

# ---------------------------------------------------------------------------
# Pattern building blocks
# ---------------------------------------------------------------------------

LOG_PREFIX = r"L \d{2}/\d{2}/\d{4} - \d{2}:\d{2}:\d{2}: "


def _player(tag: str) -> str:
    """Quoted player token: ``"name<uid><[U:1:N]|BOT><CT|TERRORIST>"``."""
    return (
        rf'"(?P<{tag}_name>.+?)'
        rf"<(?P<{tag}_uid>\d+)>"
        rf"<(?P<{tag}_steam>\[U:\d+:\d+\]|BOT)>"
        rf'<(?P<{tag}_team>CT|TERRORIST)>"'
    )


def _position(tag: str) -> str:
    return rf"\[(?P<{tag}_x>-?\d+) (?P<{tag}_y>-?\d+) (?P<{tag}_z>-?\d+)\]"


KILL_RE = re.compile(
    LOG_PREFIX
    + _player("attacker") + " " + _position("attacker")
    + " killed (?:other )?"
    + _player("victim") + " " + _position("victim")
    + r' with "(?P<weapon>[^"]+)"'
    + r"(?P<modifiers>(?: \([^)]+\))*)\s*$"
)

ATTACK_RE = re.compile(
    LOG_PREFIX
    + _player("attacker") + " " + _position("attacker")
    + " attacked "
    + _player("victim") + " " + _position("victim")
    + r' with "(?P<weapon>[^"]+)"'
    + r' \(damage "(?P<damage>\d+)"\)'
    + r' \(damage_armor "(?P<damage_armor>\d+)"\)'
    + r' \(health "(?P<health>\d+)"\)'
    + r' \(armor "(?P<armor>\d+)"\)'
    + r' \(hitgroup "(?P<hitgroup>[^"]+)"\)\s*$'
)

ASSIST_RE = re.compile(
    LOG_PREFIX
    + _player("assister")
    + r" (?P<assist_kind>flash-assisted|assisted) killing "
    + _player("victim")
    + r"\s*$"
)

BOMB_PLANT_RE = re.compile(
    LOG_PREFIX
    + _player("actor")
    + r' triggered "Planted_The_Bomb"(?: at bombsite (?P<bombsite>[AB]))?\s*$'
)

BEGIN_DEFUSE_RE = re.compile(
    LOG_PREFIX
    + _player("actor")
    + r' triggered "Begin_Bomb_Defuse_(?P<kit>With|Without)_Kit"\s*$'
)

BOMB_DEFUSED_RE = re.compile(
    LOG_PREFIX + r'Team "CT" triggered "SFUI_Notice_Bomb_Defused"'
)

TARGET_BOMBED_RE = re.compile(
    LOG_PREFIX + r'Team "TERRORIST" triggered "SFUI_Notice_Target_Bombed"'
)

# Round markers are matched anywhere in the line; some server builds print
# a space before the timestamp colon.
ROUND_START_RE = re.compile(r'World triggered "Round_Start"')
ROUND_END_RE = re.compile(r'World triggered "Round_End"')

GAME_OVER_RE = re.compile(
    LOG_PREFIX
    + r"Game Over: (?P<mode>\w+) (?P<submode>\w+) (?P<map>\S+) "
    + r"score (?P<score1>\d+):(?P<score2>\d+) "
    + r"after (?P<duration>\d+) min\s*$"
)

APP_SERVER_ID_RE = re.compile(
    r"ResetBreakpadAppId:\s*Setting\s+dedicated\s+server\s+app\s+id:\s*(?P<app_id>\d+)",
    re.IGNORECASE,
)

ACCOLADE_MARKER = "ACCOLADE"
JSON_BEGIN_MARKER = "JSON_BEGIN"
JSON_END_MARKER = "JSON_END"
PLAYER_ROW_RE = re.compile(r'"player_\d+"\s*:\s*"\s*(?P<account_id>\d+)\s*,')


# ---------------------------------------------------------------------------
# Group extraction helpers
# ---------------------------------------------------------------------------

def _player_data(m: re.Match, tag: str) -> dict:
    return {
        "name": m.group(f"{tag}_name"),
        "user_id": int(m.group(f"{tag}_uid")),
        "steam_id": m.group(f"{tag}_steam"),
        "team": m.group(f"{tag}_team"),
    }


def _position_data(m: re.Match, tag: str) -> dict:
    return {
        "x": int(m.group(f"{tag}_x")),
        "y": int(m.group(f"{tag}_y")),
        "z": int(m.group(f"{tag}_z")),
    }


def _split_modifiers(raw: str | None) -> list[str]:
    """``' (headshot) (penetrated)'`` -> ``['headshot', 'penetrated']``."""
    if not raw:
        return []
    return re.findall(r"\(([^)]+)\)", raw)


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------

def match_kill(line: DecodedLine) -> KillEvent | None:
    m = KILL_RE.match(line.text)
    if not m:
        return None
    modifiers = _split_modifiers(m.group("modifiers"))
    return build_model(
        KillEvent,
        {
            "timestamp": line.timestamp,
            "attacker": _player_data(m, "attacker"),
            "victim": _player_data(m, "victim"),
            "attacker_pos": _position_data(m, "attacker"),
            "victim_pos": _position_data(m, "victim"),
            "weapon": m.group("weapon"),
            "headshot": any("headshot" in mod for mod in modifiers),
            "modifiers": modifiers,
        },
        line.index,
    )


def match_attack(line: DecodedLine) -> AttackEvent | None:
    m = ATTACK_RE.match(line.text)
    if not m:
        return None
    return build_model(
        AttackEvent,
        {
            "timestamp": line.timestamp,
            "attacker": _player_data(m, "attacker"),
            "victim": _player_data(m, "victim"),
            "attacker_pos": _position_data(m, "attacker"),
            "victim_pos": _position_data(m, "victim"),
            "weapon": m.group("weapon"),
            "damage": int(m.group("damage")),
            "armor_damage": int(m.group("damage_armor")),
            "health_remaining": int(m.group("health")),
            "armor_remaining": int(m.group("armor")),
            "hitgroup": m.group("hitgroup"),
        },
        line.index,
    )


def match_assist(line: DecodedLine) -> AssistEvent | None:
    m = ASSIST_RE.match(line.text)
    if not m:
        return None
    kind = m.group("assist_kind")
    return build_model(
        AssistEvent,
        {
            "timestamp": line.timestamp,
            "assister": _player_data(m, "assister"),
            "victim": _player_data(m, "victim"),
            "assist_type": AssistType.FLASH if kind.startswith("flash") else AssistType.REGULAR,
        },
        line.index,
    )


def match_bomb_plant(line: DecodedLine) -> BombEvent | None:
    m = BOMB_PLANT_RE.match(line.text)
    if not m:
        return None
    return build_model(
        BombEvent,
        {
            "timestamp": line.timestamp,
            "action": BombAction.PLANT,
            "actor": _player_data(m, "actor"),
            "bombsite": m.group("bombsite"),
        },
        line.index,
    )


def match_begin_defuse(line: DecodedLine) -> BombEvent | None:
    m = BEGIN_DEFUSE_RE.match(line.text)
    if not m:
        return None
    return build_model(
        BombEvent,
        {
            "timestamp": line.timestamp,
            "action": BombAction.BEGIN_DEFUSE,
            "actor": _player_data(m, "actor"),
            "with_kit": m.group("kit") == "With",
        },
        line.index,
    )


def match_bomb_defused(line: DecodedLine) -> BombEvent | None:
    """Team-level line; the defuser is attributed by the replay state."""
    if not BOMB_DEFUSED_RE.match(line.text):
        return None
    return BombEvent(timestamp=line.timestamp, action=BombAction.DEFUSE)


def match_target_bombed(line: DecodedLine) -> BombEvent | None:
    """Team-level line; the planter is attributed by the replay state."""
    if not TARGET_BOMBED_RE.match(line.text):
        return None
    return BombEvent(timestamp=line.timestamp, action=BombAction.EXPLODE)


def match_round_start(line: DecodedLine) -> RoundStartEvent | None:
    if not ROUND_START_RE.search(line.text):
        return None
    return RoundStartEvent(timestamp=line.timestamp)


def match_round_end(line: DecodedLine) -> RoundEndEvent | None:
    """Match the Round_End trigger; players are filled in by the caller."""
    if not ROUND_END_RE.search(line.text):
        return None
    return RoundEndEvent(timestamp=line.timestamp)


def match_game_over(line: DecodedLine) -> GameOverEvent | None:
    m = GAME_OVER_RE.match(line.text)
    if not m:
        return None
    return build_model(
        GameOverEvent,
        {
            "timestamp": line.timestamp,
            "map_name": m.group("map"),
            "mode": m.group("mode"),
            "submode": m.group("submode"),
            "team1_score": int(m.group("score1")),
            "team2_score": int(m.group("score2")),
            "duration_minutes": int(m.group("duration")),
        },
        line.index,
    )


def match_app_server_id(content: str) -> int | None:
    """Return the dedicated server app id from a ResetBreakpadAppId line."""
    m = APP_SERVER_ID_RE.search(content)
    return int(m.group("app_id")) if m else None


Matcher = Callable[[DecodedLine], ParsedEvent | None]

# First match wins. Kill before attack, player triggers before team
# triggers, world markers last.
IN_ROUND_MATCHERS: list[Matcher] = [
    match_round_start,
    match_kill,
    match_attack,
    match_assist,
    match_bomb_plant,
    match_begin_defuse,
    match_bomb_defused,
    match_target_bombed,
    match_round_end,
]


def match_in_round(
    line: DecodedLine,
    matchers: Sequence[Matcher] = IN_ROUND_MATCHERS,
) -> ParsedEvent | None:
    """Try each in-round matcher in priority order; first match wins."""
    for matcher in matchers:
        event = matcher(line)
        if event is not None:
            return event
    return None


# ---------------------------------------------------------------------------
# Round-end stats block lookahead
# ---------------------------------------------------------------------------

def read_round_players(lines: Sequence[str], index: int, limit: int) -> list[int]:
    """Collect account ids from the stats block that follows a Round_End.

    Scans at most ``limit`` lines after ``index``. Before ``JSON_BEGIN`` the
    scan gives up on an ACCOLADE line (the final round prints no table) or
    another round marker. Inside the block every ``"player_N" : "id, ..."``
    row contributes its first field, until ``JSON_END``.

    Returns:
        Account ids in print order; empty if no block was found.
    """
    players: list[int] = []
    in_block = False
    end = min(len(lines), index + 1 + limit)

    for i in range(index + 1, end):
        try:
            _, content = decode_envelope(lines[i])
        except NotDecodable:
            continue

        if not in_block:
            if JSON_BEGIN_MARKER in content:
                in_block = True
            elif (
                ACCOLADE_MARKER in content
                or ROUND_START_RE.search(content)
                or ROUND_END_RE.search(content)
            ):
                break
            continue

        if JSON_END_MARKER in content:
            break
        row = PLAYER_ROW_RE.search(content)
        if row:
            players.append(int(row.group("account_id")))

    return players
