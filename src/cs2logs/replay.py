"""Replay state machine for CS2 server logs.

CS2 prints the final score (``Game Over: ... score 16:10 ...``) only after
every round of the game has already been logged. The parser therefore
ignores in-round lines until it sees a Game Over line, then:

1. scans backward for ``team1_score + team2_score`` Round_Start lines,
2. checks the accolade block and the processed-game lookup,
3. emits the GameOverEvent with ``next_index`` pointing back at the first
   Round_Start of the game (a rewind),
4. re-emits every round, kill, assist, attack and bomb event while the
   driver walks forward again,
5. emits a GameProcessedEvent when the cursor reaches the Game Over line a
   second time, closing the match.

One instance per log file; the state is not safe to share between files
or threads.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from cs2logs.accolades import collect_accolades
from cs2logs.config import ParserConfig
from cs2logs.decoder import DecodedLine, decode_envelope, try_decode_line
from cs2logs.exceptions import NotDecodable, ParserContractError
from cs2logs.interfaces import AccoladeSink, ProcessedGameLookup
from cs2logs.matchers import (
    match_app_server_id,
    match_game_over,
    match_in_round,
    match_round_start,
    read_round_players,
)
from cs2logs.models import (
    BombAction,
    BombEvent,
    GameEventType,
    GameOverEvent,
    GameProcessedEvent,
    ParsedEvent,
    Player,
    RoundEndEvent,
    RoundStartEvent,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseResult:
    """An emitted event plus the index the driver must resume at."""

    event: ParsedEvent
    next_index: int


@dataclass
class _BombState:
    """Per-round bomb attribution; team-level lines name no player."""

    planter: Player | None = None
    bombsite: str | None = None
    defuser: Player | None = None


class ReplayStateMachine:
    """Single-pass-with-rewind parser for one CS2 log file.

    Usage::

        machine = ReplayStateMachine(store, store)
        i = 0
        while i < len(lines):
            result = machine.parse_line(lines[i], lines, i)
            if result is None:
                i += 1
                continue
            sink.on_event(result.event)
            i = result.next_index

    The driver must honour ``next_index`` exactly, including rewinds.
    """

    def __init__(
        self,
        lookup: ProcessedGameLookup,
        accolade_sink: AccoladeSink,
        config: ParserConfig | None = None,
    ) -> None:
        self.lookup = lookup
        self.accolade_sink = accolade_sink
        self.config = config or ParserConfig()

        self.match_started: bool = False
        self.match_processing_index: int | None = None
        self.rounds_seen_since_rewind: int = 0
        self.app_server_id: int | None = None

        self._expected_rounds: int = 0
        self._bomb = _BombState()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def parse_line(
        self,
        line: str,
        all_lines: Sequence[str],
        current_index: int,
    ) -> ParseResult | None:
        """Parse the line at ``current_index``.

        Args:
            line: The raw enveloped line (``all_lines[current_index]``).
            all_lines: The full, ordered buffer of the log file.
            current_index: Position of ``line`` in ``all_lines``.

        Returns:
            ``None`` if the line produced no event (advance by one), or a
            ParseResult whose ``next_index`` may rewind.

        Raises:
            ParserContractError: ``line``/``all_lines`` is None or
                ``current_index`` is outside the buffer.
        """
        self._check_contract(line, all_lines, current_index)

        decoded = try_decode_line(line, current_index)
        if decoded is None:
            self._note_app_server_id(line, current_index)
            return None

        if self.match_started and current_index == self.match_processing_index:
            return self._close_match(decoded)

        if not self.match_started:
            game_over = match_game_over(decoded)
            if game_over is None:
                return None
            return self._open_match(game_over, all_lines, current_index)

        return self._replay_line(decoded, all_lines)

    # ------------------------------------------------------------------
    # Match lifecycle
    # ------------------------------------------------------------------

    def _open_match(
        self,
        game_over: GameOverEvent,
        all_lines: Sequence[str],
        current_index: int,
    ) -> ParseResult | None:
        expected = game_over.total_rounds
        logger.info(
            "Game over at line %d: %s score %d:%d",
            current_index, game_over.map_name,
            game_over.team1_score, game_over.team2_score,
        )

        rewind_target, found = find_rewind_target(all_lines, current_index, expected)

        accolades = collect_accolades(all_lines, rewind_target, current_index)
        if len(accolades) < self.config.accolade_threshold:
            logger.info(
                "Skipping game at line %d: %d accolades (need %d)",
                current_index, len(accolades), self.config.accolade_threshold,
            )
            return None

        if self.lookup.exists(GameEventType.GAME_OVER, game_over.timestamp):
            logger.info(
                "Game at line %d (%s) already processed, skipping",
                current_index, game_over.timestamp.isoformat(),
            )
            return None

        if found < expected:
            logger.warning(
                "Expected %d Round_Start lines before game over at line %d, "
                "found %d; rewinding to line 0",
                expected, current_index, found,
            )

        self.match_started = True
        self.match_processing_index = current_index
        self.rounds_seen_since_rewind = 0
        self._expected_rounds = expected
        self._bomb = _BombState()

        self.accolade_sink.queue_accolades(accolades)

        if self.app_server_id is not None:
            game_over = game_over.model_copy(update={"app_server_id": self.app_server_id})

        logger.info(
            "Rewinding %d rounds to line %d (game over at %d, %s min)",
            expected, rewind_target, current_index, game_over.duration_minutes,
        )
        return ParseResult(game_over, rewind_target)

    def _close_match(self, decoded: DecodedLine) -> ParseResult:
        if self.rounds_seen_since_rewind != self._expected_rounds:
            logger.warning(
                "Replayed %d rounds for game over at line %d, expected %d",
                self.rounds_seen_since_rewind, decoded.index, self._expected_rounds,
            )
        else:
            logger.debug(
                "Replay caught up with game over at line %d after %d rounds",
                decoded.index, self.rounds_seen_since_rewind,
            )

        self.match_started = False
        self.match_processing_index = None
        self._bomb = _BombState()
        return ParseResult(GameProcessedEvent(timestamp=decoded.timestamp), decoded.index + 1)

    # ------------------------------------------------------------------
    # In-round replay
    # ------------------------------------------------------------------

    def _replay_line(
        self, decoded: DecodedLine, all_lines: Sequence[str]
    ) -> ParseResult | None:
        event = match_in_round(decoded)
        if event is None:
            return None

        if isinstance(event, RoundStartEvent):
            self.rounds_seen_since_rewind += 1
            self._bomb = _BombState()
        elif isinstance(event, RoundEndEvent):
            players = read_round_players(
                all_lines, decoded.index, self.config.round_end_lookahead
            )
            event = event.model_copy(update={"players": players})
        elif isinstance(event, BombEvent):
            event = self._attribute_bomb(event, decoded.index)
            if event is None:
                return None

        return ParseResult(event, decoded.index + 1)

    def _attribute_bomb(self, event: BombEvent, index: int) -> BombEvent | None:
        """Track planter/defuser and attribute team-level bomb outcomes.

        Returns None for defuse attempts, which are tracked but not emitted.
        """
        if event.action == BombAction.PLANT:
            self._bomb.planter = event.actor
            self._bomb.bombsite = event.bombsite
            return event

        if event.action == BombAction.BEGIN_DEFUSE:
            self._bomb.defuser = event.actor
            return None

        if event.action == BombAction.DEFUSE:
            actor = self._bomb.defuser
        else:
            actor = self._bomb.planter
        if actor is None:
            logger.warning("Bomb %s at line %d but no player tracked", event.action.value, index)

        return event.model_copy(update={"actor": actor, "bombsite": self._bomb.bombsite})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _note_app_server_id(self, line: str, index: int) -> None:
        try:
            _, content = decode_envelope(line)
        except NotDecodable:
            return
        app_id = match_app_server_id(content)
        if app_id is not None:
            self.app_server_id = app_id
            logger.info("Server app id %d at line %d", app_id, index)

    @staticmethod
    def _check_contract(
        line: str, all_lines: Sequence[str], current_index: int
    ) -> None:
        if line is None or all_lines is None:
            raise ParserContractError("parse_line called without a line buffer")
        if not 0 <= current_index < len(all_lines):
            raise ParserContractError(
                f"index {current_index} outside buffer of {len(all_lines)} lines",
                line_index=current_index,
            )


def find_rewind_target(
    lines: Sequence[str], game_over_index: int, expected_rounds: int
) -> tuple[int, int]:
    """Locate the first Round_Start of the game ending at ``game_over_index``.

    Scans backward, counting Round_Start lines, until ``expected_rounds``
    are found. Never counts more than ``expected_rounds``.

    Returns:
        ``(rewind_index, found)``. On underrun ``rewind_index`` is 0 and
        ``found < expected_rounds``. A 0:0 game rewinds to the Game Over
        line itself.
    """
    if expected_rounds <= 0:
        return game_over_index, 0

    found = 0
    for i in range(game_over_index - 1, -1, -1):
        decoded = try_decode_line(lines[i], i)
        if decoded is not None and match_round_start(decoded) is not None:
            found += 1
            if found == expected_rounds:
                return i, found
    return 0, found
