"""Tests for squad assembly constraints."""

import itertools
import random

import pytest

from fpl_squad_optimizer.domain.common.exceptions import OptimizationCanceled
from fpl_squad_optimizer.domain.models import Combination, OptimizationRequest, Player, Position
from fpl_squad_optimizer.domain.services.optimization import SquadAssembler


def make(name, position, club, price, points=1.0):
    return Player(name=name, position=position, club=club, price=price, predictions=(points,))


def combo(*players):
    return Combination(tuple(players), 1, 1)


@pytest.fixture
def shortlists():
    return {
        Position.GK: [combo(make("G1", "GK", "ARS", 5.0)), combo(make("G2", "GK", "CHE", 4.0))],
        Position.DEF: [combo(make("D1", "DEF", "ARS", 5.0)), combo(make("D2", "DEF", "LIV", 6.0))],
        Position.MID: [combo(make("M1", "MID", "ARS", 8.0)), combo(make("M2", "MID", "MCI", 7.0))],
        Position.FWD: [combo(make("F1", "FWD", "TOT", 9.0)), combo(make("F2", "FWD", "ARS", 10.0))],
    }


class TestSquadAssembler:
    def test_unconstrained_yields_full_product(self, shortlists):
        assembler = SquadAssembler(max_players_per_club=4, min_team_price=0, max_team_price=100)

        squads = list(assembler.assemble(shortlists))

        assert len(squads) == 16
        assert squads[0].names == ("G1", "D1", "M1", "F1")
        assert squads[-1].names == ("G2", "D2", "M2", "F2")

    def test_club_cap(self, shortlists):
        assembler = SquadAssembler(max_players_per_club=1, min_team_price=0, max_team_price=100)

        squads = list(assembler.assemble(shortlists))

        assert squads
        for squad in squads:
            assert max(squad.club_counts().values()) <= 1

    def test_price_band(self, shortlists):
        assembler = SquadAssembler(max_players_per_club=4, min_team_price=26.0, max_team_price=27.0)

        squads = list(assembler.assemble(shortlists))

        assert squads
        assert all(26.0 <= squad.price <= 27.0 for squad in squads)

    def test_locked_names_must_all_appear(self, shortlists):
        assembler = SquadAssembler(max_players_per_club=4, min_team_price=0, max_team_price=100)

        squads = list(assembler.assemble(shortlists, locked_names=["G2", "F2"]))

        assert len(squads) == 4
        assert all({"G2", "F2"} <= set(squad.names) for squad in squads)

    def test_goalkeeper_progress_callback(self, shortlists):
        calls = []
        assembler = SquadAssembler(max_players_per_club=4, min_team_price=0, max_team_price=100)

        list(assembler.assemble(shortlists, on_goalkeeper=lambda i, n: calls.append((i, n))))

        assert calls == [(0, 2), (1, 2)]

    def test_cancel_check_stops_assembly(self, shortlists):
        def cancel():
            raise OptimizationCanceled()

        with pytest.raises(OptimizationCanceled):
            list(SquadAssembler().assemble(shortlists, cancel_check=cancel))

    def test_empty_shortlist_yields_nothing(self, shortlists):
        shortlists[Position.MID] = []

        assert list(SquadAssembler().assemble(shortlists)) == []

    def test_from_request(self):
        request = OptimizationRequest(
            start_gw=1, end_gw=1, max_players_per_club=2, min_team_price=50, max_team_price=90
        )
        assembler = SquadAssembler.from_request(request)

        assert assembler.max_players_per_club == 2
        assert assembler.min_team_price == 50
        assert assembler.max_team_price == 90


class TestRandomPools:
    """Emitted squads always respect the club cap and price band."""

    CLUBS = ["ARS", "CHE", "LIV", "MCI", "TOT"]

    def random_shortlists(self, rng):
        shortlists = {}
        counter = itertools.count()
        for position in Position:
            combos = []
            for _ in range(rng.randint(1, 4)):
                combos.append(
                    combo(
                        *(
                            make(
                                f"P{next(counter)}",
                                position.value,
                                rng.choice(self.CLUBS),
                                rng.choice([4.0, 4.5, 5.0, 6.5, 8.0]),
                            )
                            for _ in range(position.squad_slots)
                        )
                    )
                )
            shortlists[position] = combos
        return shortlists

    @pytest.mark.parametrize("seed", range(10))
    def test_constraints_hold(self, seed):
        rng = random.Random(seed)
        shortlists = self.random_shortlists(rng)
        cap = rng.randint(2, 5)
        low, high = sorted(rng.uniform(70, 100) for _ in range(2))
        assembler = SquadAssembler(max_players_per_club=cap, min_team_price=low, max_team_price=high)

        squads = list(assembler.assemble(shortlists))

        expected = 0
        for parts in itertools.product(*(shortlists[p] for p in Position)):
            players = [pl for c in parts for pl in c.players]
            clubs = [pl.club for pl in players]
            price = sum(c.price for c in parts)
            if low <= price <= high and max(clubs.count(c) for c in clubs) <= cap:
                expected += 1

        assert len(squads) == expected
        for squad in squads:
            assert low <= squad.price <= high
            assert max(squad.club_counts().values()) <= cap
