# domain/bracket.py
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from domain.enums import MatchStatus, Slot
from domain.errors import (
    IncompleteMatchupError,
    InvalidInputError,
    InvalidResultError,
    NotFoundError,
)
from domain.models import PRELIMINARY_ROUND, Match, Team, is_power_of_two, largest_power_of_two

log = logging.getLogger(__name__)


def _ordered_seeds(teams: Sequence[Team]) -> list[Team]:
    if len(teams) < 2:
        raise InvalidInputError(f"A bracket needs at least 2 teams, got {len(teams)}.")

    ids = [t.id for t in teams]
    if len(set(ids)) != len(ids):
        raise InvalidInputError("Each team may appear only once in a bracket.")

    ordered = sorted(teams, key=lambda t: t.seed_position)
    positions = [t.seed_position for t in ordered]
    if positions != list(range(len(ordered))):
        raise InvalidInputError(f"Seed positions must be exactly 0..{len(ordered) - 1}, got {positions}.")
    return ordered


def _empty_rounds(tournament_id: int, first_round: int, total_rounds: int) -> list[Match]:
    """
    Rounds first_round..total_rounds-1 with no seeds; round R has 2^(total_rounds-1-R) matches.
    """
    out: list[Match] = []
    for round_no in range(first_round, total_rounds):
        for pos in range(2 ** (total_rounds - 1 - round_no)):
            out.append(Match(tournament_id=tournament_id, round_no=round_no, position=pos))
    return out


def generate_matches(tournament_id: int, teams: Sequence[Team]) -> list[Match]:
    """
    Builds every Match of a single elimination bracket (unsaved).

    Power of two: round 0 pairs seeds (0,1), (2,3), ...
    Otherwise the excess over the largest power of two plays a preliminary
    round (-1). Preliminary winners land in round 0 team1; the round 0 team2
    slots next to them, and every later round 0 match, are filled with byes
    straight from the seed order. When there are more preliminary matches
    than round 0 matches, byes run out first and the overflow winners take
    the remaining team2 slots (see preliminary_target).
    """
    seeds = _ordered_seeds(teams)
    n = len(seeds)
    main_slots = largest_power_of_two(n)
    total_rounds = main_slots.bit_length() - 1

    if is_power_of_two(n):
        first_round = [
            Match(
                tournament_id=tournament_id,
                round_no=0,
                position=pos,
                team1_id=seeds[2 * pos].id,
                team2_id=seeds[2 * pos + 1].id,
            )
            for pos in range(n // 2)
        ]
        return first_round + _empty_rounds(tournament_id, 1, total_rounds)

    preliminary_teams = (n - main_slots) * 2
    preliminary_matches = preliminary_teams // 2

    matches: list[Match] = [
        Match(
            tournament_id=tournament_id,
            round_no=PRELIMINARY_ROUND,
            position=i,
            team1_id=seeds[2 * i].id,
            team2_id=seeds[2 * i + 1].id,
        )
        for i in range(preliminary_matches)
    ]

    byes = n - preliminary_teams
    base = preliminary_teams + preliminary_matches
    for pos in range(main_slots // 2):
        m = Match(tournament_id=tournament_id, round_no=0, position=pos)
        if pos < preliminary_matches:
            # team1 waits for the winner of preliminary match `pos`
            if pos < byes:
                m.team2_id = seeds[preliminary_teams + pos].id
        else:
            offset = (pos - preliminary_matches) * 2
            m.team1_id = seeds[base + offset].id
            m.team2_id = seeds[base + offset + 1].id
        matches.append(m)

    matches.extend(_empty_rounds(tournament_id, 1, total_rounds))
    return matches


def next_slot(round_no: int, position: int) -> tuple[int, int, Slot]:
    """
    Where the winner of main-bracket match (round_no, position) plays next:
    (round, position, slot). Existence of that match is not checked here.
    """
    if round_no == PRELIMINARY_ROUND:
        raise ValueError("preliminary matches advance through preliminary_target()")
    slot = Slot.TEAM1 if position % 2 == 0 else Slot.TEAM2
    return round_no + 1, position // 2, slot


def preliminary_target(position: int, *, preliminary_matches: int, first_round_matches: int) -> tuple[int, int, Slot]:
    """
    Round 0 slot fed by preliminary match `position`.

    The first `first_round_matches` preliminary winners take team1 of the
    round 0 match with the same position. Any further winners take team2 of
    the round 0 matches that got no bye, in order.
    """
    if position < first_round_matches:
        return 0, position, Slot.TEAM1
    byes = 2 * first_round_matches - preliminary_matches
    return 0, position - first_round_matches + byes, Slot.TEAM2


def _set_slot(match: Match, slot: Slot, team_id: Optional[int]) -> None:
    if slot is Slot.TEAM1:
        match.team1_id = team_id
    else:
        match.team2_id = team_id


def validate_scores(score1: object, score2: object) -> None:
    for label, s in (("score1", score1), ("score2", score2)):
        if isinstance(s, bool) or not isinstance(s, int):
            raise InvalidInputError(f"{label} must be an integer, got {s!r}.")


class BracketTree:
    """
    In-memory arena over one tournament's matches, keyed by (round_no, position).

    Result recording and propagation mutate Match objects in place and mark
    them dirty; the caller flushes `dirty` back to storage in one transaction.
    """

    def __init__(self, tournament_id: int, matches: Iterable[Match]) -> None:
        self.tournament_id = int(tournament_id)
        self._by_key: dict[tuple[int, int], Match] = {}
        self._dirty: dict[tuple[int, int], Match] = {}
        for m in matches:
            if m.key in self._by_key:
                raise InvalidInputError(f"Duplicate match at round {m.round_no}, position {m.position}.")
            self._by_key[m.key] = m
        self._preliminary_matches = sum(1 for r, _ in self._by_key if r == PRELIMINARY_ROUND)
        self._first_round_matches = sum(1 for r, _ in self._by_key if r == 0)

    def __len__(self) -> int:
        return len(self._by_key)

    @property
    def matches(self) -> list[Match]:
        return sorted(self._by_key.values(), key=lambda m: m.key)

    @property
    def dirty(self) -> list[Match]:
        return sorted(self._dirty.values(), key=lambda m: m.key)

    @property
    def final(self) -> Optional[Match]:
        if not self._by_key:
            return None
        last_round = max(r for r, _ in self._by_key)
        if last_round == PRELIMINARY_ROUND:
            return None
        return self._by_key.get((last_round, 0))

    def get(self, round_no: int, position: int) -> Optional[Match]:
        return self._by_key.get((round_no, position))

    def find(self, match_id: int) -> Match:
        for m in self._by_key.values():
            if m.id == match_id:
                return m
        raise NotFoundError(f"Match {match_id} not found in tournament {self.tournament_id}.")

    def target_of(self, match: Match) -> tuple[int, int, Slot]:
        if match.round_no == PRELIMINARY_ROUND:
            return preliminary_target(
                match.position,
                preliminary_matches=self._preliminary_matches,
                first_round_matches=self._first_round_matches,
            )
        return next_slot(match.round_no, match.position)

    def _touch(self, match: Match) -> None:
        self._dirty[match.key] = match

    # -------------------------
    # Result recording
    # -------------------------

    def record_result(self, match_id: int, score1: int, score2: int) -> Match:
        validate_scores(score1, score2)
        match = self.find(match_id)

        if not match.has_both_teams:
            raise IncompleteMatchupError(
                f"Match {match_id} ({match.code}) of tournament {self.tournament_id} "
                "needs both teams before a result can be recorded."
            )
        if score1 < 0 or score2 < 0:
            raise InvalidResultError(f"Scores for match {match_id} must be >= 0, got {score1}-{score2}.")
        if score1 == score2:
            raise InvalidResultError(f"Match {match_id} cannot end in a draw ({score1}-{score2}).")

        winner_id = match.team1_id if score1 > score2 else match.team2_id
        match.score1 = score1
        match.score2 = score2
        match.winner_id = winner_id
        match.completed = True
        match.status = MatchStatus.FINISHED
        self._touch(match)

        self.advance(match, winner_id)
        return match

    # -------------------------
    # Propagation
    # -------------------------

    def advance(self, match: Match, winner_id: int) -> Optional[Match]:
        """
        Writes winner_id into the next-round slot fed by `match`.
        A completed target is stale: it is cleared and everything it fed is
        invalidated before the new winner is written.
        """
        round_no, position, slot = self.target_of(match)
        target = self.get(round_no, position)
        if target is None:
            log.debug("Match %s is the final, nothing to advance into", match.code)
            return None

        if target.completed:
            log.debug("Clearing stale result of %s fed by %s", target.code, match.code)
            target.clear_result()
            self.invalidate_downstream(target)

        _set_slot(target, slot, winner_id)
        self._touch(target)
        log.debug("Team %s advanced from %s into %s slot %s", winner_id, match.code, target.code, slot.value)
        return target

    def invalidate_downstream(self, cleared: Match) -> None:
        """
        Vacates the slot `cleared` used to fill and, if that match was
        completed, clears it and keeps walking toward the final.
        """
        round_no, position, slot = self.target_of(cleared)
        downstream = self.get(round_no, position)
        if downstream is None:
            return

        _set_slot(downstream, slot, None)
        if downstream.completed:
            downstream.clear_result()
            self.invalidate_downstream(downstream)
        elif downstream.status is MatchStatus.IN_PROGRESS:
            downstream.status = downstream.idle_status
        self._touch(downstream)
        log.debug("Invalidated %s slot %s after %s was cleared", downstream.code, slot.value, cleared.code)
