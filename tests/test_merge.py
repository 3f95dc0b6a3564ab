"""Tests for merging, ordering, deduplication and scoping."""

import random
from datetime import date, time

import pytest

from merge import build_scopes, dedupe_games, merge_items, scope_items, sort_key
from models import SENTINEL_DATE, Game, Note
from normalize import normalize_game
from sources import read_sheet_games


# =============================================================================
# ORDERING
# =============================================================================


class TestOrdering:
    """Test the merged sequence order."""

    def test_dates_ascending_sentinel_last(self, make_game):
        late = make_game(day=date(2025, 11, 1))
        unknown = make_game(day=SENTINEL_DATE, opponent='Mystery')
        early = make_game(day=date(2025, 10, 1))
        assert merge_items([unknown, late, early], []) == [early, late, unknown]

    def test_notes_before_games_on_same_day(self, make_game, make_note):
        game = make_game(at=time(8, 0))
        note = make_note()
        assert merge_items([game], [note]) == [note, game]

    def test_notes_keep_input_order(self, make_note):
        first = make_note(text='First')
        second = make_note(text='Second')
        assert merge_items([], [first, second]) == [first, second]

    def test_timed_games_before_tbd(self, make_game):
        tbd = make_game(at=None, opponent='A')
        evening = make_game(at=time(19, 0), opponent='B')
        morning = make_game(at=time(9, 30), opponent='C')
        assert merge_items([tbd, evening, morning], []) == [morning, evening, tbd]

    def test_same_time_uses_team_order_then_opponent(self, make_game, blue, gold):
        gold_game = make_game(team=gold, opponent='Aces')
        blue_b = make_game(team=blue, opponent='bears')
        blue_a = make_game(team=blue, opponent='Apes')
        assert merge_items([gold_game, blue_b, blue_a], []) == [blue_a, blue_b, gold_game]

    def test_order_independent_of_input_order(self, make_game, make_note, gold):
        items = [
            make_game(day=date(2025, 10, 18), at=time(9, 0)),
            make_game(day=date(2025, 10, 18), at=None, opponent='Zebras'),
            make_game(team=gold, day=date(2025, 10, 19), at=time(9, 0)),
            make_game(day=SENTINEL_DATE),
        ]
        notes = [make_note(day=date(2025, 10, 19))]
        expected = merge_items(items, notes)
        shuffled = list(items)
        random.Random(7).shuffle(shuffled)
        assert merge_items(shuffled, notes) == expected

    def test_sort_key_rejects_other_types(self):
        with pytest.raises(TypeError):
            sort_key('not an item', 0)


# =============================================================================
# DEDUPLICATION
# =============================================================================


class TestDedupe:
    """Test duplicate game suppression."""

    def test_same_game_from_two_sources(self, make_game):
        scraped = make_game(opponent='Hawks', score_display='W 42-30')
        sheet = make_game(opponent='hawks')
        assert dedupe_games([scraped, sheet]) == [scraped]

    def test_different_times_kept(self, make_game):
        games = [make_game(at=time(9, 0)), make_game(at=time(11, 0))]
        assert dedupe_games(games) == games


# =============================================================================
# SCOPES
# =============================================================================


class TestScopes:
    """Test per-team filtering and scope building."""

    def test_all_teams_note_in_every_scope(self, make_game, make_note, blue, gold):
        note = make_note(audience=frozenset())
        merged = merge_items([make_game(team=blue), make_game(team=gold)], [note])
        assert note in scope_items(merged, blue)
        assert note in scope_items(merged, gold)

    def test_targeted_note_only_in_its_scope(self, make_game, make_note, blue, gold):
        note = make_note(audience={'12u blue'})
        merged = merge_items([make_game(team=blue), make_game(team=gold)], [note])
        assert note in scope_items(merged, blue)
        assert note not in scope_items(merged, gold)
        assert note in scope_items(merged, None)

    def test_scope_games_belong_to_team(self, make_game, blue, gold):
        merged = merge_items([make_game(team=blue), make_game(team=gold)], [])
        assert all(g.team == gold for g in scope_items(merged, gold))

    def test_build_scopes(self, repo, make_game, make_note, blue):
        unlisted = repo.resolve_team('9U Red')
        games = [make_game(team=blue), make_game(team=unlisted)]
        scopes = build_scopes(games, [make_note()], repo)

        assert scopes[0].is_combined
        assert scopes[0].slug == ''
        assert [s.slug for s in scopes[1:]] == ['12ublue', '14ugold', '10uwhite', '9ured']
        assert len(scopes[0].games) == 2
        assert len(scopes[1].notes) == 1
        assert scopes[2].games == []

    def test_scope_items_are_a_subsequence(self, repo, make_game, make_note, blue, gold):
        games = [make_game(team=gold, at=time(9, 0)), make_game(team=blue, at=time(10, 0))]
        scopes = build_scopes(games, [make_note()], repo)
        combined = scopes[0].items
        for scope in scopes[1:]:
            positions = [combined.index(item) for item in scope.items]
            assert positions == sorted(positions)
        assert all(isinstance(item, (Game, Note)) for item in combined)

    def test_unlisted_team_never_lands_in_combined_root(self, repo):
        text = "Team,Date,Opponent\n!!!,10/18/2025,Hawks\n12U Blue,10/18/2025,Owls\n"
        raw_games, _ = read_sheet_games(text, repo)
        scopes = build_scopes([normalize_game(raw, repo) for raw in raw_games], [], repo)

        team_slugs = [s.slug for s in scopes[1:]]
        assert all(team_slugs)
        assert len(set(team_slugs)) == len(team_slugs)
        assert [s.slug for s in scopes if s.slug == ''] == ['']
        odd = [s for s in scopes if s.team and s.team.name == '!!!'][0]
        assert [g.opponent for g in odd.games] == ['Hawks']

    def test_unlisted_team_not_folded_into_known_team(self, repo):
        text = "Team,Date,Opponent\n12UBlue,10/18/2025,Hawks\n12U Blue,10/18/2025,Owls\n"
        raw_games, _ = read_sheet_games(text, repo)
        scopes = build_scopes([normalize_game(raw, repo) for raw in raw_games], [], repo)

        blue = [s for s in scopes if s.slug == '12ublue'][0]
        assert blue.team.known
        assert blue.team.color == '#1565C0'
        assert [g.opponent for g in blue.games] == ['Owls']
        assert any(s.team and s.team.name == '12UBlue' for s in scopes)
