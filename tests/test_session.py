"""Tests for match session state: host election and roster."""
import itertools

import pytest

from peerplay.network.session import MatchSession, compute_host
from peerplay.network.transport import Player


class TestComputeHost:
    """Test deterministic host election."""

    def test_lowest_id_is_host(self):
        assert compute_host(['B', 'C'], 'A') is True
        assert compute_host(['A', 'C'], 'B') is False

    def test_alone_is_host(self):
        assert compute_host([], 'Z') is True

    def test_arrival_order_does_not_matter(self):
        """Result depends only on the ID set."""
        ids = ['G:3', 'G:1', 'G:2']
        results = {compute_host(list(order), 'G:15') for order in itertools.permutations(ids)}
        assert results == {False}

    def test_repeatable(self):
        assert compute_host({'X', 'Y'}, 'W') == compute_host({'Y', 'X'}, 'W')

    def test_all_peers_agree_on_one_host(self):
        """Each participant evaluating its own view elects the same single host."""
        everyone = ['P7', 'P2', 'P9']
        hosts = [
            pid for pid in everyone
            if compute_host([o for o in everyone if o != pid], pid)
        ]
        assert hosts == ['P2']

    def test_ordering_is_by_string(self):
        """IDs compare as strings, not numbers."""
        assert compute_host(['9'], '10') is True


class TestMatchSession:
    """Test per-match roster and readiness bookkeeping."""

    def test_role_computed_at_creation(self):
        session = MatchSession.from_players(Player('B'), [Player('A')])
        assert session.is_host is False
        assert session.is_full

    def test_role_stable_after_roster_changes(self):
        """Host flag is not recomputed when players come and go."""
        session = MatchSession.from_players(Player('B'), [Player('C')], required_players=3)
        assert session.is_host is True

        session.add_player(Player('A'))
        assert session.is_host is True

    def test_local_player_not_in_roster(self):
        session = MatchSession.from_players(Player('B'), [Player('B'), Player('C')])
        assert list(session.roster) == ['C']
        assert session.player_count == 2

    def test_add_is_idempotent(self):
        session = MatchSession(local_player=Player('A'))
        assert session.add_player(Player('B', 'Bob')) is True
        assert session.add_player(Player('B', 'Bobby')) is False
        assert session.roster['B'].display_name == 'Bob'

    def test_remove_unknown_player(self):
        session = MatchSession(local_player=Player('A'))
        assert session.remove_player(Player('Q')) is False

    def test_players_sorted_by_id(self):
        session = MatchSession.from_players(Player('A'), [Player('D'), Player('C')], required_players=3)
        assert [p.player_id for p in session.players] == ['C', 'D']

    def test_counter_starts_at_zero(self):
        assert MatchSession(local_player=Player('A')).counter == 0

    def test_required_players_minimum(self):
        with pytest.raises(ValueError):
            MatchSession(local_player=Player('A'), required_players=1)


class TestPlayer:

    def test_identity_ignores_display_name(self):
        assert Player('A', 'Alice') == Player('A', 'Al')

    def test_str_prefers_display_name(self):
        assert str(Player('A', 'Alice')) == 'Alice'
        assert str(Player('A')) == 'A'
