"""Tests for candidate pool narrowing and combination shortlisting."""

import pytest

from fpl_squad_optimizer.domain.common.exceptions import OptimizationCanceled
from fpl_squad_optimizer.domain.models import OptimizationRequest, Player, Position
from fpl_squad_optimizer.domain.services.optimization import CandidateFilter


def make(name, position, club, price, *points):
    return Player(name=name, position=position, club=club, price=price, predictions=points)


@pytest.fixture
def forwards():
    """Five forwards with hand-checked combination rankings."""
    return [
        make("F1", "FWD", "ARS", 9.0, 9.0),
        make("F2", "FWD", "CHE", 4.0, 8.0),
        make("F3", "FWD", "LIV", 4.0, 2.0),
        make("F4", "FWD", "MCI", 6.0, 6.0),
        make("F5", "FWD", "TOT", 4.5, 1.0),
    ]


def request(**overrides):
    payload = {"start_gw": 1, "end_gw": 1, "complexity": 2, "min_team_price": 0.0}
    payload.update(overrides)
    return OptimizationRequest(**payload)


class TestSelectPlayerPool:
    """Top-by-points union top-by-value, include/lock added, bans removed."""

    @pytest.fixture
    def players(self):
        return [
            make("Big", "MID", "ARS", 10.0, 10.0),
            make("Cheap", "MID", "CHE", 3.0, 6.0),
            make("Meh", "MID", "LIV", 5.0, 1.0),
        ]

    def test_union_sorted_by_value(self, players):
        pool = CandidateFilter(1, 1).select_player_pool(players, request())

        assert [p.name for p in pool] == ["Cheap", "Big"]

    def test_included_players_added(self, players):
        pool = CandidateFilter(1, 1).select_player_pool(
            players, request(include_list=["Meh"])
        )

        assert [p.name for p in pool] == ["Cheap", "Big", "Meh"]

    def test_locked_players_added(self, players):
        pool = CandidateFilter(1, 1).select_player_pool(
            players, request(locked_players={"Meh": "MID"})
        )

        assert "Meh" in [p.name for p in pool]

    def test_banned_players_removed(self, players):
        pool = CandidateFilter(1, 1).select_player_pool(players, request(ban_list=["Big"]))

        assert [p.name for p in pool] == ["Cheap"]

    def test_unknown_included_name_is_skipped(self, players):
        pool = CandidateFilter(1, 1).select_player_pool(
            players, request(include_list=["Nobody"])
        )

        assert len(pool) == 2


class TestCollapseDuplicates:
    def test_keeps_best_per_position_price_club(self):
        weak = make("Weak", "DEF", "ARS", 5.0, 3.0)
        strong = make("Strong", "DEF", "ARS", 5.0, 5.0)
        other_club = make("Other", "DEF", "CHE", 5.0, 1.0)

        kept = CandidateFilter().collapse_duplicates([weak, strong, other_club], 1, 1)

        assert [p.name for p in kept] == ["Strong", "Other"]

    def test_first_wins_ties(self):
        first = make("First", "DEF", "ARS", 5.0, 4.0)
        second = make("Second", "DEF", "ARS", 5.0, 4.0)

        kept = CandidateFilter().collapse_duplicates([first, second], 1, 1)

        assert [p.name for p in kept] == ["First"]

    def test_different_price_is_kept(self):
        a = make("A", "DEF", "ARS", 5.0, 4.0)
        b = make("B", "DEF", "ARS", 4.5, 1.0)

        assert len(CandidateFilter().collapse_duplicates([a, b], 1, 1)) == 2

    def test_required_players_never_collapsed(self):
        strong = make("Strong", "DEF", "ARS", 5.0, 5.0)
        twin = make("Twin", "DEF", "ARS", 5.0, 1.0)

        kept = CandidateFilter().collapse_duplicates([strong, twin], 1, 1, keep_names=["Twin"])

        assert [p.name for p in kept] == ["Strong", "Twin"]

    def test_locked_twin_survives_shortlisting(self, forwards):
        twin = make("Twin", "FWD", "ARS", 9.0, 0.5)

        shortlists = CandidateFilter().build_shortlists(
            forwards + [twin], request(locked_players={"Twin": "FWD"})
        )

        fwd = shortlists.by_position[Position.FWD]
        assert not fwd.lock_fallback
        assert fwd.combinations
        assert all("Twin" in c.names for c in fwd.combinations)


class TestShortlistPosition:
    def test_value_list_then_points_list(self, forwards):
        shortlist = CandidateFilter().shortlist_position(forwards, Position.FWD, request())

        assert [c.names for c in shortlist.combinations] == [
            ("F1", "F2", "F4"),
            ("F2", "F3", "F4"),
            ("F1", "F2", "F3"),
        ]
        assert shortlist.combinations_considered == 10
        assert not shortlist.lock_fallback

    def test_locked_player_in_every_combination(self, forwards):
        shortlist = CandidateFilter().shortlist_position(
            forwards, Position.FWD, request(locked_players={"F5": "FWD"})
        )

        assert [c.names for c in shortlist.combinations] == [
            ("F2", "F4", "F5"),
            ("F1", "F2", "F5"),
            ("F1", "F4", "F5"),
        ]
        assert shortlist.combinations_considered == 6

    def test_unsatisfiable_lock_falls_back(self, forwards):
        locked = CandidateFilter().shortlist_position(
            forwards, Position.FWD, request(locked_players={"Ghost": "FWD"})
        )
        unlocked = CandidateFilter().shortlist_position(forwards, Position.FWD, request())

        assert locked.lock_fallback
        assert [c.names for c in locked.combinations] == [
            c.names for c in unlocked.combinations
        ]

    def test_shortlist_never_exceeds_twice_complexity(self, forwards):
        shortlist = CandidateFilter().shortlist_position(
            forwards, Position.FWD, request(complexity=1)
        )

        assert 1 <= len(shortlist.combinations) <= 2

    def test_too_few_players_gives_empty_shortlist(self, forwards):
        shortlist = CandidateFilter().shortlist_position(forwards[:2], Position.FWD, request())

        assert shortlist.combinations == []

    def test_cancel_check_is_called(self, forwards):
        def cancel():
            raise OptimizationCanceled()

        with pytest.raises(OptimizationCanceled):
            CandidateFilter().shortlist_position(forwards, Position.FWD, request(), cancel)


class TestBuildShortlists:
    def test_all_positions_present(self, forwards):
        players = forwards + [
            make("G1", "GK", "ARS", 4.5, 3.0),
            make("G2", "GK", "CHE", 4.0, 2.0),
        ]

        shortlists = CandidateFilter().build_shortlists(players, request())

        assert set(shortlists.by_position) == set(Position)
        assert len(shortlists.for_position(Position.GK)) == 1
        assert shortlists.for_position(Position.DEF) == []
        assert shortlists.sizes["FWD"] == 3
