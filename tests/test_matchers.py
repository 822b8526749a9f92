"""Unit tests for the event grammar matchers (cs2logs.matchers).

Each matcher is fed a DecodedLine built directly, so these tests exercise
only the regex grammars and model construction.
"""

import json
from datetime import datetime, timezone

from cs2logs.decoder import DecodedLine
from cs2logs.matchers import (
    IN_ROUND_MATCHERS,
    match_app_server_id,
    match_assist,
    match_attack,
    match_begin_defuse,
    match_bomb_defused,
    match_bomb_plant,
    match_game_over,
    match_in_round,
    match_kill,
    match_round_end,
    match_round_start,
    match_target_bombed,
    read_round_players,
)
from cs2logs.models import (
    AssistType,
    AttackEvent,
    BombAction,
    KillEvent,
    RoundStartEvent,
    Team,
)

TS = datetime(2025, 8, 1, 17, 30, 1, tzinfo=timezone.utc)
PREFIX = "L 04/20/2024 - 16:21:52: "

NINJA = '"ninja<1><[U:1:1135799416]><TERRORIST>"'
BUCKSHOT = '"Buckshot<5><BOT><CT>"'
MYTH = '"MYTH<9><[U:1:1598851733]><CT>"'
WASULI = '"Wasuli<4><[U:1:1026155000]><TERRORIST>"'


def make_decoded(body: str, index: int = 0) -> DecodedLine:
    return DecodedLine(index=index, timestamp=TS, text=PREFIX + body)


def make_raw(body: str, prefix: str = PREFIX) -> str:
    return json.dumps({"log": prefix + body + "\n", "time": "2025-08-01T17:30:01Z"})


# ---------------------------------------------------------------------------
# Kill / attack / assist
# ---------------------------------------------------------------------------

class TestMatchKill:
    """Tests for the kill grammar."""

    def test_kill_with_headshot(self):
        line = make_decoded(
            f'{NINJA} [-538 758 -23] killed {BUCKSHOT} [81 907 80] with "ak47" (headshot)'
        )
        kill = match_kill(line)
        assert isinstance(kill, KillEvent)
        assert kill.attacker.name == "ninja"
        assert kill.attacker.steam_id == "[U:1:1135799416]"
        assert kill.attacker.team is Team.TERRORIST
        assert kill.victim.is_bot
        assert kill.weapon == "ak47"
        assert kill.headshot is True
        assert kill.modifiers == ["headshot"]
        assert (kill.attacker_pos.x, kill.attacker_pos.y, kill.attacker_pos.z) == (-538, 758, -23)
        assert kill.victim_pos.z == 80
        assert kill.timestamp == TS

    def test_kill_multiple_modifiers(self):
        line = make_decoded(
            f'{NINJA} [0 0 0] killed {MYTH} [1 1 1] with "awp" (penetrated) (noscope)'
        )
        kill = match_kill(line)
        assert kill.headshot is False
        assert kill.modifiers == ["penetrated", "noscope"]

    def test_kill_other(self):
        line = make_decoded(f'{NINJA} [0 0 0] killed other {MYTH} [1 1 1] with "knife"')
        assert match_kill(line) is not None

    def test_kill_without_coordinates_is_no_match(self):
        line = make_decoded(f'{NINJA} killed {MYTH} with "ak47"')
        assert match_kill(line) is None

    def test_bot_name_with_space(self):
        line = make_decoded(
            f'"Bot Player<4><BOT><TERRORIST>" [0 0 0] killed {MYTH} [1 1 1] with "glock"'
        )
        kill = match_kill(line)
        assert kill.attacker.name == "Bot Player"
        assert kill.attacker.steam_id is None
        assert kill.attacker.is_bot

    def test_bot_victim_name_with_space(self):
        line = make_decoded(
            f'{NINJA} [0 0 0] killed "Bot Player<4><BOT><TERRORIST>" [1 1 1] with "ak47"'
        )
        kill = match_kill(line)
        assert kill.attacker.name == "ninja"
        assert kill.victim.name == "Bot Player"
        assert kill.victim.steam_id is None
        assert kill.victim.is_bot
        assert kill.victim.user_id == 4


class TestMatchAttack:
    """Tests for the attack grammar."""

    def test_attack(self):
        line = make_decoded(
            f'{NINJA} [-538 758 -23] attacked {BUCKSHOT} [81 907 80] with "ak47" '
            '(damage "109") (damage_armor "15") (health "0") (armor "76") (hitgroup "head")'
        )
        attack = match_attack(line)
        assert isinstance(attack, AttackEvent)
        assert attack.damage == 109
        assert attack.armor_damage == 15
        assert attack.health_remaining == 0
        assert attack.armor_remaining == 76
        assert attack.hitgroup == "head"
        assert attack.victim_pos is not None

    def test_kill_line_is_not_an_attack(self):
        line = make_decoded(f'{NINJA} [0 0 0] killed {MYTH} [1 1 1] with "ak47"')
        assert match_attack(line) is None


class TestMatchAssist:
    """Tests for the assist grammar."""

    def test_regular_assist(self):
        assist = match_assist(make_decoded(f"{MYTH} assisted killing {WASULI}"))
        assert assist.assister.name == "MYTH"
        assert assist.victim.name == "Wasuli"
        assert assist.assist_type is AssistType.REGULAR
        assert assist.attacker_pos is None
        assert assist.victim_pos is None

    def test_flash_assist(self):
        assist = match_assist(make_decoded(f"{MYTH} flash-assisted killing {WASULI}"))
        assert assist.assist_type is AssistType.FLASH


# ---------------------------------------------------------------------------
# Bomb
# ---------------------------------------------------------------------------

class TestBombMatchers:
    """Tests for the bomb grammars."""

    def test_plant_with_bombsite(self):
        bomb = match_bomb_plant(make_decoded(f'{NINJA} triggered "Planted_The_Bomb" at bombsite B'))
        assert bomb.action is BombAction.PLANT
        assert bomb.actor.name == "ninja"
        assert bomb.bombsite == "B"

    def test_plant_without_bombsite(self):
        bomb = match_bomb_plant(make_decoded(f'{NINJA} triggered "Planted_The_Bomb"'))
        assert bomb.bombsite is None

    def test_begin_defuse_with_kit(self):
        bomb = match_begin_defuse(make_decoded(f'{MYTH} triggered "Begin_Bomb_Defuse_With_Kit"'))
        assert bomb.action is BombAction.BEGIN_DEFUSE
        assert bomb.with_kit is True

    def test_begin_defuse_without_kit(self):
        bomb = match_begin_defuse(make_decoded(f'{MYTH} triggered "Begin_Bomb_Defuse_Without_Kit"'))
        assert bomb.with_kit is False

    def test_defused_is_team_level(self):
        bomb = match_bomb_defused(
            make_decoded('Team "CT" triggered "SFUI_Notice_Bomb_Defused" (CT "5") (T "3")')
        )
        assert bomb.action is BombAction.DEFUSE
        assert bomb.actor is None

    def test_target_bombed(self):
        bomb = match_target_bombed(
            make_decoded('Team "TERRORIST" triggered "SFUI_Notice_Target_Bombed" (CT "3") (T "5")')
        )
        assert bomb.action is BombAction.EXPLODE


# ---------------------------------------------------------------------------
# Round / game markers
# ---------------------------------------------------------------------------

class TestMarkers:
    """Tests for round and game-over markers."""

    def test_round_start(self):
        assert isinstance(match_round_start(make_decoded('World triggered "Round_Start"')), RoundStartEvent)

    def test_round_start_found_anywhere(self):
        line = DecodedLine(0, TS, 'L 04/20/2024 - 16:21:52 : World triggered "Round_Start"')
        assert match_round_start(line) is not None

    def test_round_end(self):
        end = match_round_end(make_decoded('World triggered "Round_End"'))
        assert end.players == []

    def test_game_over(self):
        go = match_game_over(
            make_decoded("Game Over: competitive mg_active de_dust2 score 16:10 after 45 min")
        )
        assert go.map_name == "de_dust2"
        assert go.mode == "competitive"
        assert go.submode == "mg_active"
        assert (go.team1_score, go.team2_score) == (16, 10)
        assert go.duration_minutes == 45

    def test_game_over_needs_prefix(self):
        line = DecodedLine(0, TS, "Game Over: competitive mg_active de_dust2 score 16:10 after 45 min")
        assert match_game_over(line) is None

    def test_app_server_id(self):
        assert match_app_server_id("ResetBreakpadAppId: Setting dedicated server app id: 730") == 730
        assert match_app_server_id("Server is hibernating") is None


# ---------------------------------------------------------------------------
# Ordered dispatch
# ---------------------------------------------------------------------------

class TestMatchInRound:
    """Tests for the prioritised in-round matcher list."""

    def test_first_match_wins(self):
        line = make_decoded(
            f'{NINJA} [0 0 0] attacked {MYTH} [1 1 1] with "ak47" '
            '(damage "27") (damage_armor "4") (health "73") (armor "96") (hitgroup "chest")'
        )
        assert isinstance(match_in_round(line), AttackEvent)

    def test_game_over_not_an_in_round_event(self):
        line = make_decoded("Game Over: competitive mg_active de_dust2 score 16:10 after 45 min")
        assert match_in_round(line) is None

    def test_accolade_not_an_in_round_event(self):
        line = make_decoded("ACCOLADE, FINAL: {5k},\tKhanjer<0>,\tVALUE: 1.000000,\tPOS: 1,\tSCORE: 40.000000")
        assert match_in_round(line) is None

    def test_custom_matcher_list(self):
        line = make_decoded('World triggered "Round_Start"')
        assert match_in_round(line, [match_kill]) is None
        assert match_round_start in IN_ROUND_MATCHERS

    def test_priority_order(self):
        assert IN_ROUND_MATCHERS == [
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


# ---------------------------------------------------------------------------
# Round-end stats block
# ---------------------------------------------------------------------------

class TestReadRoundPlayers:
    """Tests for the bounded lookahead after Round_End."""

    def test_reads_player_rows(self):
        lines = [
            make_raw('World triggered "Round_End"'),
            make_raw("JSON_BEGIN{"),
            make_raw('"name" : "round_stats",'),
            make_raw('"fields" : "             accountid,   team,  money",'),
            make_raw('"players" : {'),
            make_raw('"player_0" : "        100,      3,   4100",'),
            make_raw('"player_1" : "        101,      2,    850"'),
            make_raw("}}JSON_END"),
            make_raw('"player_2" : "        999,      2,    850"'),
        ]
        assert read_round_players(lines, 0, 64) == [100, 101]

    def test_accolade_before_block_means_no_players(self):
        lines = [
            make_raw('World triggered "Round_End"'),
            make_raw("ACCOLADE, FINAL: {5k},\tKhanjer<0>,\tVALUE: 1.000000,\tPOS: 1,\tSCORE: 40.000000"),
            make_raw("JSON_BEGIN{"),
            make_raw('"player_0" : "        100,      3,   4100",'),
            make_raw("}}JSON_END"),
        ]
        assert read_round_players(lines, 0, 64) == []

    def test_lookahead_limit(self):
        lines = [make_raw('World triggered "Round_End"')]
        lines += [make_raw("noise") for _ in range(5)]
        lines += [make_raw("JSON_BEGIN{"), make_raw('"player_0" : " 100, 3",'), make_raw("}}JSON_END")]
        assert read_round_players(lines, 0, 3) == []
        assert read_round_players(lines, 0, 64) == [100]

    def test_undecodable_lines_skipped(self):
        lines = [
            make_raw('World triggered "Round_End"'),
            "garbage",
            make_raw("JSON_BEGIN{"),
            make_raw('"player_0" : " 100, 3",'),
            make_raw("}}JSON_END"),
        ]
        assert read_round_players(lines, 0, 64) == [100]
