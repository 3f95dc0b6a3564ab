"""Tests for the schedule page renderer."""

from dataclasses import replace
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from html_render import (
    build_nav, build_rows, display_datetime, is_past, location_display, render_html, team_text_color,
)
from models import AWAY, LOSS, SENTINEL_DATE, Location, Team

CHICAGO = ZoneInfo('America/Chicago')
NOW = datetime(2025, 10, 20, 12, 0, tzinfo=CHICAGO)


# =============================================================================
# DISPLAY HELPERS
# =============================================================================


class TestDisplay:
    """Test date/time and location display strings."""

    def test_display_datetime(self, make_game):
        assert display_datetime(make_game(day=date(2025, 10, 18), at=time(18, 0))) == 'Sat Oct 18 6PM'
        assert display_datetime(make_game(day=date(2025, 10, 18), at=time(9, 30))) == 'Sat Oct 18 9:30AM'

    def test_display_datetime_tbd(self, make_game):
        assert display_datetime(make_game(at=None)) == 'Sat Oct 18 TBD'
        assert display_datetime(make_game(day=SENTINEL_DATE)) == 'TBD'

    def test_location_with_abbreviation(self, make_game, lincoln):
        label, tooltip, _ = location_display(make_game(location=lincoln))
        assert label == 'LMS'
        assert tooltip == 'Lincoln Middle School, 100 Main St, Springfield'

    def test_empty_abbreviation_shows_name_without_tooltip(self, make_game):
        venue = Location(name='Central Fieldhouse', abbreviation='', address='200 Oak Ave')
        assert location_display(make_game(location=venue)) == ('Central Fieldhouse', '', '')

    def test_empty_abbreviation_keeps_sub_venue_in_name(self, make_game):
        venue = Location(name='Central Fieldhouse', abbreviation='', address='200 Oak Ave')
        game = make_game(location=venue, sub_venue='gym a')
        assert location_display(game) == ('Central Fieldhouse - gym a', '', '')

    def test_unresolved_location(self, make_game):
        label, tooltip, sub = location_display(make_game(location_text='Some Park', sub_venue='court 2'))
        assert (label, tooltip, sub) == ('Some Park', '', 'court 2')
        assert location_display(make_game())[0] == 'TBD'

    def test_team_text_color(self):
        assert team_text_color('#FFFFFF') == 'black'
        assert team_text_color('#fbcb44') == 'black'
        assert team_text_color('#1565C0') == 'white'
        assert team_text_color('#000') == 'white'
        assert team_text_color('navy') == 'white'


# =============================================================================
# ROWS
# =============================================================================


class TestBuildRows:
    """Test week boundaries and past-game flags."""

    def test_week_start(self, make_game, make_note):
        items = [
            make_game(day=date(2025, 10, 18)),      # Saturday
            make_game(day=date(2025, 10, 19)),      # Sunday, same ISO week
            make_note(day=date(2025, 10, 20)),
            make_game(day=date(2025, 10, 20)),      # Monday, new week
        ]
        rows = build_rows(items, date(2025, 10, 1))
        game_rows = [r for r in rows if r['kind'] == 'game']
        assert [r['week_start'] for r in game_rows] == [True, False, True]
        assert rows[2]['kind'] == 'note'

    def test_past_with_yesterday_grace(self, make_game):
        today = date(2025, 10, 20)
        assert is_past(make_game(day=date(2025, 10, 18)), today)
        assert not is_past(make_game(day=date(2025, 10, 19)), today)
        assert not is_past(make_game(day=date(2025, 10, 25)), today)

    def test_game_with_result_is_past(self, make_game):
        game = make_game(day=date(2025, 10, 25), result=LOSS, score_display='L 30-42')
        assert is_past(game, date(2025, 10, 20))

    def test_sentinel_date_not_past(self, make_game):
        assert not is_past(make_game(day=SENTINEL_DATE), date(2025, 10, 20))

    def test_records_are_not_modified(self, make_game):
        game = make_game()
        before = replace(game)
        build_rows([game], date(2025, 10, 20))
        assert game == before

    def test_jersey_labels(self, make_game):
        rows = build_rows([make_game(home_away=AWAY), make_game(home_away=None)], date(2025, 10, 1))
        assert rows[0]['jersey'] == '⬛️'
        assert rows[1]['jersey'] == 'TBD'


# =============================================================================
# PAGE
# =============================================================================


class TestRenderHtml:
    """Test the full page."""

    def test_nav_links(self, repo, blue):
        nav = build_nav(repo.teams, None)
        assert [link['href'] for link in nav] == ['./', '12ublue/', '14ugold/', '10uwhite/']
        assert nav[0]['active']

        nav = build_nav(repo.teams, blue)
        assert nav[0]['href'] == '../'
        assert nav[1] == {**nav[1], 'href': '../12ublue/', 'active': True}

    def test_nav_href_is_escaped(self):
        team = Team(name='Odd', slug='a"b<c', order=1)
        page = render_html([], [team], NOW, CHICAGO)
        assert 'href="a&quot;b&lt;c/"' in page

    def test_combined_page(self, repo, make_game, make_note, lincoln):
        items = [make_note(text='<b>Picture day</b>'), make_game(location=lincoln, opponent='Hawks & Co')]
        page = render_html(items, repo.teams, NOW, CHICAGO, feed_url='https://example.com/schedule.ics')

        assert '<title>Lightning Game Schedule</title>' in page
        assert 'data-utc="2025-10-20T17:00:00Z"' in page
        assert 'Last updated on 10/20/25 at 5:00PM UTC' in page
        assert 'Hawks &amp; Co' in page
        assert '<b>Picture day</b>' in page
        assert 'class="location-tooltip">Lincoln Middle School, 100 Main St, Springfield<' in page
        assert 'href="webcal://example.com/schedule.ics"' in page
        assert 'class="game-row week-start past-game" data-team="12ublue"' in page

    def test_team_page(self, repo, blue, make_game):
        page = render_html([make_game()], repo.teams, NOW, CHICAGO, current=blue)
        assert '<title>Lightning Game Schedule - 12U Blue</title>' in page
        assert 'href="../"' in page
        assert 'subscribe' not in page.split('</style>')[1]

    def test_white_team_badge_border(self, repo, make_game):
        white = repo.team_by_name('10U White')
        page = render_html([make_game(team=white)], repo.teams, NOW, CHICAGO)
        assert 'color: black; border: 1px solid black;' in page

    def test_script_passed_through(self, repo, make_game):
        page = render_html([make_game()], repo.teams, NOW, CHICAGO, script='console.log(1);')
        assert 'console.log(1);' in page
