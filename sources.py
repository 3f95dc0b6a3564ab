"""
Source adapters.

Each adapter takes the raw text of one source plus the reference tables and
returns (records, skipped). A malformed row is logged and skipped; it never
aborts the run.

- scrape_team_table: a team's results page (HTML tables with date header rows
  and 8-column game rows)
- read_sheet_games: manually entered games (CSV export)
- read_sheet_notes: freeform dated notes (CSV export)
"""

import logging
import re
import urllib.error
import urllib.request
from pathlib import Path

from bs4 import BeautifulSoup

from models import AWAY, HOME, SOURCE_SCRAPED, SOURCE_SHEET, RawGame, RawNote, Team
from reference import ReferenceRepository, csv_rows

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

# Header rows look like "Saturday, October 18, 2025"
DATE_HEADER_RE = re.compile(r'\w+day,\s+\w+\s+\d+,\s+\d{4}')
# Time cells sometimes carry a date prefix: "Sat 10/18/25 6:00 PM"
TIME_PREFIX_RE = re.compile(r'^(Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s+\d+/\d+/\d+\s+')
HAS_TIME_RE = re.compile(r'\d+:\d+')

# Score cell value for games not yet played
UNPLAYED = '×'

GAME_ROW_CELLS = 8


def fetch_url(url: str, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Fetch a URL and return content, or "" on any failure."""
    headers = {
        'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
                      '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,text/csv;q=0.8,*/*;q=0.5',
        'Accept-Language': 'en-US,en;q=0.9',
    }

    req = urllib.request.Request(url, headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.read().decode('utf-8-sig')
    except (urllib.error.URLError, TimeoutError, OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to fetch {url}: {e}")
        return ""


def read_source(location: str, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Read a source given as an http(s) URL or a local file path."""
    if not location:
        return ""
    if location.startswith(('http://', 'https://')):
        return fetch_url(location, timeout)

    path = Path(location).expanduser()
    try:
        return path.read_text(encoding='utf-8-sig')
    except OSError as e:
        logger.error(f"Failed to read {path}: {e}")
        return ""


def _cell_text(cell) -> str:
    return ' '.join(cell.get_text(' ', strip=True).split())


def _score_text(ours: str, theirs: str) -> str:
    if ours == UNPLAYED or theirs == UNPLAYED or not ours or not theirs:
        return '-'
    return f"{ours}-{theirs}"


def scrape_team_table(html: str, team: Team) -> tuple[list[RawGame], int]:
    """Extract one team's games from a results page.

    The most recent date header applies to every following game row until the
    next header. Rows where neither side is the team's exact label are skipped.
    """
    games = []
    skipped = 0
    current_date = ''

    soup = BeautifulSoup(html or '', 'html.parser')
    for table in soup.find_all('table'):
        for row in table.find_all('tr'):
            if row.find_parent('table') is not table:
                continue
            if row.find('th'):
                match = DATE_HEADER_RE.search(_cell_text(row))
                if match:
                    current_date = match.group(0)

            cells = row.find_all('td', recursive=False)
            if len(cells) != GAME_ROW_CELLS or not current_date:
                continue

            try:
                texts = [_cell_text(c) for c in cells]
                game_num, time_str, location, visitor, visitor_score, home_score, home = texts[:7]
                time_str = TIME_PREFIX_RE.sub('', time_str)

                if not game_num or not HAS_TIME_RE.search(time_str):
                    logger.debug(f"{team.name}: row without game number/time skipped: {texts}")
                    skipped += 1
                    continue

                if visitor == team.html_name:
                    opponent, home_away = home, AWAY
                    score = _score_text(visitor_score, home_score)
                elif home == team.html_name:
                    opponent, home_away = visitor, HOME
                    score = _score_text(home_score, visitor_score)
                else:
                    continue

                games.append(RawGame(
                    team=team,
                    date_text=current_date,
                    time_text=time_str,
                    location_text=location,
                    opponent=opponent,
                    home_away=home_away,
                    score_text=score,
                    source=SOURCE_SCRAPED,
                ))
            except (ValueError, IndexError) as e:
                logger.warning(f"{team.name}: could not parse row: {e}")
                skipped += 1

    logger.info(f"Found {len(games)} games for {team.name}")
    return games, skipped


def jersey_home_away(jersey: str):
    """Light/home jerseys mean a home game, dark/away an away game."""
    value = (jersey or '').lower()
    if 'home' in value or 'light' in value:
        return HOME
    if 'away' in value or 'dark' in value:
        return AWAY
    return None


def read_sheet_games(text: str, repo: ReferenceRepository) -> tuple[list[RawGame], int]:
    """Read manually entered games: Team, Date, Time, Location, Jersey, Opponent, Score."""
    games = []
    skipped = 0

    for row_num, row in csv_rows(text or ''):
        try:
            team_name = row.get('team', '')
            date_str = row.get('date', '')
            opponent = row.get('opponent', '')
            if not team_name or not date_str or not opponent:
                logger.warning(f"Game row {row_num}: missing team, date or opponent, skipped")
                skipped += 1
                continue

            games.append(RawGame(
                team=repo.resolve_team(team_name),
                date_text=date_str,
                time_text=row.get('time', ''),
                location_text=row.get('location', ''),
                opponent=opponent,
                home_away=jersey_home_away(row.get('jersey', '')),
                score_text=row.get('score', ''),
                source=SOURCE_SHEET,
            ))
        except (ValueError, KeyError) as e:
            logger.warning(f"Game row {row_num}: {e}, skipped")
            skipped += 1

    logger.info(f"Found {len(games)} games in game sheet")
    return games, skipped


def read_sheet_notes(text: str) -> tuple[list[RawNote], int]:
    """Read dated notes: Date, Text, and an optional Teams audience column."""
    notes = []
    skipped = 0

    for row_num, row in csv_rows(text or ''):
        date_str = row.get('date', '')
        note_text = row.get('text', '')
        if not date_str or not note_text:
            logger.warning(f"Note row {row_num}: missing date or text, skipped")
            skipped += 1
            continue
        notes.append(RawNote(
            date_text=date_str,
            text=note_text,
            audience_text=row.get('teams', ''),
        ))

    logger.info(f"Found {len(notes)} notes in note sheet")
    return notes, skipped
