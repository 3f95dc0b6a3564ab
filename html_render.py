"""
HTML schedule page renderer.

Rows are built first as plain dicts (with the render-only flags week_start
and past), then dropped into the page template. Canonical records are never
modified.
"""

import html
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional

from models import AWAY, HOME, NO_RESULT, Game, Note, ScheduleItem, Team
from normalize import format_time, time_text

DEFAULT_TITLE = "Lightning Game Schedule"

JERSEY_LABELS = {HOME: '⬜️', AWAY: '⬛️'}

DEFAULT_STYLESHEET = """
:root {
    --color-bg: #f5f5f5;
    --color-accent: #fbcb44;
    --color-text: #333;
    --color-muted: #999;
}
body { font-family: Arial, sans-serif; margin: 20px; background-color: var(--color-bg); }
h1 { color: var(--color-text); text-align: center; }
.last-updated { text-align: center; color: var(--color-muted); font-size: 0.75rem; }
.filter-buttons { text-align: center; margin: 20px 0; }
.filter-btn { display: inline-block; padding: 8px 16px; margin: 4px; border: none; border-radius: 4px;
              background-color: #999; color: white; text-decoration: none; cursor: pointer; }
.filter-btn.active { background-color: var(--color-accent); color: black; }
.subscribe { text-align: center; font-size: 0.85rem; }
table { width: 100%; max-width: 1200px; margin: 0 auto; border-collapse: collapse; background: white; }
th { background-color: var(--color-accent); color: black; padding: 12px; text-align: left; }
td { padding: 10px; border-bottom: 1px solid #ddd; }
tr.week-start td { border-top: 3px solid var(--color-accent); }
tr.past-game { opacity: 0.6; }
tr.note-row td { background: #fff8e6; font-style: italic; }
.team-badge { display: inline-block; padding: 4px 8px; border-radius: 4px; font-size: 0.9em; }
.location-wrapper { position: relative; display: inline-block; cursor: help; }
.location-abbr { text-decoration: underline dotted #999; }
.location-tooltip { visibility: hidden; position: absolute; z-index: 1000; background: #333; color: white;
                    padding: 8px 12px; border-radius: 6px; white-space: nowrap; bottom: 125%; left: 50%;
                    transform: translateX(-50%); }
.location-wrapper:hover .location-tooltip, .location-wrapper.active .location-tooltip { visibility: visible; }
"""


def team_text_color(background: str) -> str:
    """Badge text color for a team color: white on dark, black on light.

    Uses WCAG relative luminance; colors that are not #RGB/#RRGGBB hex are
    treated as dark.
    """
    value = (background or '').strip().lower()
    r = g = b = 0
    if value.startswith('#'):
        hex_digits = value[1:]
        if len(hex_digits) == 3:
            hex_digits = ''.join(c * 2 for c in hex_digits)
        if len(hex_digits) == 6:
            try:
                r, g, b = (int(hex_digits[i:i + 2], 16) for i in (0, 2, 4))
            except ValueError:
                r = g = b = 0

    def linear(channel: int) -> float:
        srgb = channel / 255.0
        if srgb <= 0.03928:
            return srgb / 12.92
        return ((srgb + 0.055) / 1.055) ** 2.4

    luminance = 0.2126 * linear(r) + 0.7152 * linear(g) + 0.0722 * linear(b)
    return 'white' if luminance < 0.5 else 'black'


def team_badge_style(team: Team) -> str:
    style = f"background-color: {team.color}; color: {team_text_color(team.color)};"
    if team.color.strip().lower() in ('#ffffff', '#fff', 'white'):
        style += " border: 1px solid black;"
    return style


def location_display(game: Game) -> tuple[str, str, str]:
    """(label, tooltip, sub-venue) for a game's location.

    A location with no abbreviation shows its full name, with any sub-venue
    still attached after the separator, and no tooltip.
    """
    location = game.location
    if location is None:
        return (game.location_text or 'TBD'), '', game.sub_venue
    if not location.abbreviation or location.abbreviation == location.name:
        if game.sub_venue:
            return f"{location.name} - {game.sub_venue}", '', ''
        return location.name, '', ''

    tooltip = location.name
    if location.address:
        tooltip = f"{location.name}, {location.address}"
    return location.abbreviation, tooltip, game.sub_venue


def location_html(game: Game) -> str:
    label, tooltip, sub_venue = location_display(game)
    if tooltip:
        markup = (f'<span class="location-wrapper"><span class="location-abbr">{html.escape(label)}</span>'
                  f'<span class="location-tooltip">{html.escape(tooltip)}</span></span>')
    else:
        markup = html.escape(label)
    if sub_venue:
        markup += f" ({html.escape(sub_venue)})"
    return markup


def display_date(value: date, known: bool) -> str:
    """'Sat Oct 18', or 'TBD' for the unparseable-date sentinel."""
    if not known:
        return 'TBD'
    return f"{value:%a} {value:%b} {value.day}"


def display_datetime(game: Game) -> str:
    """Combined date and time, e.g. 'Sat Oct 18 6PM' or 'Sat Oct 18 TBD'."""
    if not game.date_known:
        return 'TBD'
    return f"{display_date(game.date, True)} {format_time(time_text(game.time))}"


def is_past(game: Game, today: date) -> bool:
    """A game is past once it has a result, or once it is older than yesterday."""
    if game.result != NO_RESULT:
        return True
    return game.date_known and game.date < today - timedelta(days=1)


def build_rows(items: list[ScheduleItem], today: date) -> list[dict]:
    """Row data for the page, including week_start and past flags.

    Week boundaries compare each game with the nearest preceding game; notes
    are skipped.
    """
    rows = []
    previous_game = None
    for item in items:
        if isinstance(item, Note):
            rows.append({
                'kind': 'note',
                'date': display_date(item.date, item.date_known),
                'html': item.html,
            })
        elif isinstance(item, Game):
            week = item.date.isocalendar()[:2]
            week_start = previous_game is None or week != previous_game.date.isocalendar()[:2]
            rows.append({
                'kind': 'game',
                'team': item.team,
                'datetime': display_datetime(item),
                'location': location_html(item),
                'jersey': JERSEY_LABELS.get(item.home_away, 'TBD'),
                'opponent': item.opponent or 'TBD',
                'score': item.score_display or '-',
                'result': item.result,
                'week_start': week_start,
                'past': is_past(item, today),
            })
            previous_game = item
        else:
            raise TypeError(f"Not a schedule item: {item!r}")
    return rows


def build_nav(teams: list[Team], current: Optional[Team]) -> list[dict]:
    """Navigation links: 'All Teams' then one per team, relative to the page."""
    prefix = '../' if current else ''
    nav = [{
        'label': 'All Teams',
        'href': '../' if current else './',
        'active': current is None,
        'style': '',
    }]
    for team in teams:
        active = current is not None and team.slug == current.slug
        nav.append({
            'label': team.name,
            'href': f"{prefix}{team.slug}/",
            'active': active,
            'style': team_badge_style(team) if active else '',
        })
    return nav


def _nav_html(link: dict) -> str:
    classes = 'filter-btn active' if link['active'] else 'filter-btn'
    style = f' style="{html.escape(link["style"])}"' if link["style"] else ''
    return f'        <a href="{html.escape(link["href"])}" class="{classes}"{style}>{html.escape(link["label"])}</a>\n'


def _row_html(row: dict) -> str:
    if row['kind'] == 'note':
        return f'''            <tr class="note-row">
                <td>{html.escape(row['date'])}</td>
                <td colspan="5">{row['html']}</td>
            </tr>
'''

    classes = ['game-row']
    if row['week_start']:
        classes.append('week-start')
    if row['past']:
        classes.append('past-game')
    team = row['team']
    return f'''            <tr class="{' '.join(classes)}" data-team="{html.escape(team.slug)}" data-result="{row['result']}">
                <td><span class="team-badge" style="{html.escape(team_badge_style(team))}">{html.escape(team.name)}</span></td>
                <td>{html.escape(row['datetime'])}</td>
                <td>{row['location']}</td>
                <td>{row['jersey']}</td>
                <td>{html.escape(row['opponent'])}</td>
                <td>{html.escape(row['score'])}</td>
            </tr>
'''


def render_html(items: list[ScheduleItem], teams: list[Team], now: datetime, tz: tzinfo,
                current: Optional[Team] = None, title: str = DEFAULT_TITLE,
                feed_url: str = '', stylesheet: str = DEFAULT_STYLESHEET, script: str = '') -> str:
    """Render one scope's schedule page."""
    today = now.astimezone(tz).date()
    rows = build_rows(items, today)
    nav = build_nav(teams, current)

    page_title = f"{title} - {current.name}" if current else title
    utc_now = now.astimezone(timezone.utc)
    updated_text = (f"{utc_now.month}/{utc_now.day}/{utc_now:%y} at "
                    f"{utc_now.hour % 12 or 12}:{utc_now:%M}{'AM' if utc_now.hour < 12 else 'PM'} UTC")

    nav_html = ''.join(_nav_html(link) for link in nav)
    rows_html = ''.join(_row_html(row) for row in rows)

    subscribe_html = ''
    if feed_url:
        webcal = feed_url
        if feed_url.startswith(('https://', 'http://')):
            webcal = 'webcal://' + feed_url.split('://', 1)[1]
        subscribe_html = (f'    <p class="subscribe"><a href="{html.escape(webcal)}">Subscribe to calendar</a>'
                          f' &bull; <a href="{html.escape(feed_url)}" download>Download .ics</a></p>\n')

    script_html = f"    <script>\n{script}\n    </script>\n" if script else ''

    return f'''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(page_title)}</title>
    <style>
{stylesheet}
    </style>
</head>
<body>
    <h1>⚡️ {html.escape(page_title)}</h1>
    <p id="lastUpdated" class="last-updated" data-utc="{utc_now.strftime('%Y-%m-%dT%H:%M:%SZ')}">Last updated on {updated_text}</p>
    <div class="filter-buttons">
{nav_html}        <button id="onlyUpcoming" class="filter-btn">Only upcoming</button>
    </div>
{subscribe_html}    <table id="scheduleTable">
        <thead>
            <tr>
                <th>Team</th>
                <th>Time</th>
                <th>Location</th>
                <th>Jersey</th>
                <th>Opponent</th>
                <th>Score</th>
            </tr>
        </thead>
        <tbody>
{rows_html}        </tbody>
    </table>
{script_html}</body>
</html>
'''
