"""
Tests for result recording, winner propagation and the invalidation cascade
on the in-memory BracketTree.
"""
from datetime import datetime

import pytest

from conftest import make_teams
from domain.bracket import BracketTree, generate_matches, next_slot
from domain.enums import MatchStatus, Slot
from domain.errors import (
    IncompleteMatchupError,
    InvalidInputError,
    InvalidResultError,
    NotFoundError,
)


def _tree(n: int):
    teams = make_teams(n)
    matches = generate_matches(1, teams)
    for i, m in enumerate(matches, start=1):
        m.id = i
    return BracketTree(1, matches), teams


def _record(tree, round_no, position, s1, s2):
    return tree.record_result(tree.get(round_no, position).id, s1, s2)


def _play_out(tree):
    """Team1 wins every match, round by round, until nothing is playable."""
    while True:
        playable = [m for m in tree.matches if not m.completed and m.has_both_teams]
        if not playable:
            return
        m = playable[0]
        tree.record_result(m.id, 1, 0)


class TestNextSlot:
    def test_parity_rule(self):
        assert next_slot(0, 0) == (1, 0, Slot.TEAM1)
        assert next_slot(0, 1) == (1, 0, Slot.TEAM2)
        assert next_slot(0, 2) == (1, 1, Slot.TEAM1)
        assert next_slot(2, 3) == (3, 1, Slot.TEAM2)

    def test_preliminary_round_is_not_a_main_round(self):
        with pytest.raises(ValueError):
            next_slot(-1, 0)


class TestScenarios:
    def test_scenario_a_four_teams(self):
        tree, t = _tree(4)

        m = _record(tree, 0, 0, 3, 1)
        assert m.winner_id == t[0].id and m.completed
        assert m.status is MatchStatus.FINISHED
        assert tree.get(1, 0).team1_id == t[0].id

        _record(tree, 0, 1, 0, 2)
        assert tree.get(1, 0).team2_id == t[3].id

        final = _record(tree, 1, 0, 2, 0)
        assert final.winner_id == t[0].id
        assert tree.final is final and final.completed

    def test_scenario_b_three_teams(self):
        tree, t = _tree(3)

        _record(tree, -1, 0, 5, 4)
        m00 = tree.get(0, 0)
        assert (m00.team1_id, m00.team2_id) == (t[0].id, t[2].id)

        final = _record(tree, 0, 0, 1, 2)
        assert final.winner_id == t[2].id
        assert tree.final is final

    def test_scenario_c_invalidation(self):
        tree, t = _tree(4)
        _record(tree, 0, 0, 3, 1)
        _record(tree, 0, 1, 0, 2)
        _record(tree, 1, 0, 2, 0)
        assert tree.final.winner_id == t[0].id

        _record(tree, 0, 0, 0, 3)

        final = tree.get(1, 0)
        assert (final.team1_id, final.team2_id) == (t[1].id, t[3].id)
        assert not final.completed
        assert final.score1 is None and final.score2 is None and final.winner_id is None
        assert final.status is MatchStatus.CREATED


class TestPropagation:
    def test_preliminary_winner_fills_team1(self):
        tree, t = _tree(6)
        _record(tree, -1, 1, 0, 1)

        m = tree.get(0, 1)
        assert (m.team1_id, m.team2_id) == (t[3].id, t[5].id)

    def test_overflow_preliminary_winner_fills_team2(self):
        tree, t = _tree(7)
        _record(tree, -1, 1, 2, 0)
        _record(tree, -1, 2, 0, 2)

        m = tree.get(0, 1)
        assert (m.team1_id, m.team2_id) == (t[2].id, t[5].id)

    @pytest.mark.parametrize("n", list(range(3, 34)))
    def test_round_zero_full_after_preliminaries(self, n):
        tree, _ = _tree(n)
        prelims = [m for m in tree.matches if m.round_no == -1]
        if not prelims:
            pytest.skip("power of two")
        for m in prelims:
            tree.record_result(m.id, 1, 0)

        assert all(m.has_both_teams for m in tree.matches if m.round_no == 0)

    @pytest.mark.parametrize("n", list(range(2, 34)))
    def test_full_play_through_crowns_top_seed(self, n):
        tree, t = _tree(n)
        _play_out(tree)

        assert all(m.completed for m in tree.matches)
        assert tree.final.winner_id == t[0].id

    @pytest.mark.parametrize("n", [5, 8, 12, 16])
    def test_no_team_twice_in_one_round(self, n):
        tree, _ = _tree(n)
        _play_out(tree)

        by_round = {}
        for m in tree.matches:
            by_round.setdefault(m.round_no, []).extend([m.team1_id, m.team2_id])
        for ids in by_round.values():
            assert len(ids) == len(set(ids))

    def test_winner_is_higher_score(self):
        tree, t = _tree(2)
        m = _record(tree, 0, 0, 1, 7)
        assert m.winner_id == t[1].id

    def test_final_has_nowhere_to_advance(self):
        tree, _ = _tree(2)
        final = tree.get(0, 0)
        assert tree.advance(final, final.team1_id) is None

    def test_dirty_tracks_only_touched_matches(self):
        tree, _ = _tree(8)
        _record(tree, 0, 2, 1, 0)

        assert [m.key for m in tree.dirty] == [(0, 2), (1, 1)]


class TestInvalidation:
    def test_cascade_reaches_final_and_spares_siblings(self):
        tree, t = _tree(8)
        _play_out(tree)
        sibling_before = (tree.get(1, 1).team1_id, tree.get(1, 1).team2_id, tree.get(1, 1).winner_id)
        final_team2 = tree.get(2, 0).team2_id

        _record(tree, 0, 0, 0, 1)

        semi = tree.get(1, 0)
        assert semi.team1_id == t[1].id
        assert not semi.completed

        final = tree.get(2, 0)
        assert final.team1_id is None
        assert final.team2_id == final_team2
        assert not final.completed and final.winner_id is None

        sibling = tree.get(1, 1)
        assert (sibling.team1_id, sibling.team2_id, sibling.winner_id) == sibling_before
        assert sibling.completed

        assert {m.key for m in tree.dirty} >= {(0, 0), (1, 0), (2, 0)}

    def test_odd_position_vacates_team2(self):
        tree, t = _tree(8)
        _play_out(tree)

        _record(tree, 0, 3, 0, 1)

        assert tree.get(1, 1).team2_id == t[7].id
        assert tree.get(2, 0).team2_id is None
        assert tree.get(2, 0).team1_id == t[0].id

    def test_correction_with_same_winner_still_clears_downstream(self):
        tree, t = _tree(4)
        _play_out(tree)

        _record(tree, 0, 0, 5, 0)

        final = tree.get(1, 0)
        assert final.team1_id == t[0].id
        assert not final.completed

    def test_preliminary_correction_clears_round_zero(self):
        tree, t = _tree(3)
        _record(tree, -1, 0, 5, 4)
        _record(tree, 0, 0, 1, 2)

        _record(tree, -1, 0, 0, 1)

        m = tree.get(0, 0)
        assert (m.team1_id, m.team2_id) == (t[1].id, t[2].id)
        assert not m.completed

    def test_cleared_match_keeps_schedule(self):
        tree, _ = _tree(4)
        _play_out(tree)
        when = datetime(2026, 5, 1, 18, 30)
        tree.get(1, 0).scheduled_time = when

        _record(tree, 0, 1, 0, 1)

        final = tree.get(1, 0)
        assert final.status is MatchStatus.SCHEDULED
        assert final.scheduled_time == when

    def test_vacated_in_progress_match_goes_back_to_idle(self):
        tree, t = _tree(8)
        for position in range(4):
            _record(tree, 0, position, 1, 0)
        _record(tree, 1, 0, 1, 0)
        final = tree.get(2, 0)
        final.status = MatchStatus.IN_PROGRESS

        _record(tree, 0, 0, 0, 1)

        assert final.team1_id is None
        assert not final.completed
        assert final.status is MatchStatus.CREATED
        assert tree.get(1, 0).team1_id == t[1].id

    def test_vacated_in_progress_match_keeps_schedule(self):
        tree, _ = _tree(4)
        _record(tree, 0, 0, 1, 0)
        final = tree.get(1, 0)
        final.scheduled_time = datetime(2026, 6, 2, 20, 0)
        final.status = MatchStatus.IN_PROGRESS

        tree.invalidate_downstream(tree.get(0, 0))

        assert final.team1_id is None
        assert final.status is MatchStatus.SCHEDULED

    def test_invalidate_downstream_stops_at_final(self):
        tree, _ = _tree(2)
        final = tree.get(0, 0)
        tree.invalidate_downstream(final)
        assert tree.dirty == []


class TestRejectedResults:
    def test_tie_is_rejected_and_mutates_nothing(self):
        tree, _ = _tree(4)
        m = tree.get(0, 0)

        with pytest.raises(InvalidResultError):
            tree.record_result(m.id, 2, 2)

        assert m.score1 is None and not m.completed
        assert tree.dirty == []

    def test_negative_score_is_invalid_result_and_invalid_input(self):
        tree, _ = _tree(4)
        with pytest.raises(InvalidResultError) as exc:
            tree.record_result(tree.get(0, 0).id, -1, 2)
        assert isinstance(exc.value, InvalidInputError)

    def test_incomplete_matchup(self):
        tree, _ = _tree(4)
        with pytest.raises(IncompleteMatchupError):
            tree.record_result(tree.get(1, 0).id, 1, 0)

    def test_incomplete_preliminary_slot(self):
        tree, _ = _tree(5)
        with pytest.raises(IncompleteMatchupError):
            tree.record_result(tree.get(0, 0).id, 1, 0)

    @pytest.mark.parametrize("score", ["3", 1.5, None, True])
    def test_non_integer_scores(self, score):
        tree, _ = _tree(2)
        with pytest.raises(InvalidInputError):
            tree.record_result(tree.get(0, 0).id, score, 0)

    def test_unknown_match(self):
        tree, _ = _tree(2)
        with pytest.raises(NotFoundError):
            tree.record_result(999, 1, 0)

    def test_duplicate_slots_rejected(self):
        tree, _ = _tree(2)
        m = tree.get(0, 0)
        with pytest.raises(InvalidInputError):
            BracketTree(1, [m, m])
