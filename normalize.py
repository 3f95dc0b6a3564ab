"""
Normalization of provisional source records.

Every function here is total: bad input turns into a sentinel or placeholder
value (SENTINEL_DATE, None for a TBD time, the 'none' result tag) rather than
an exception, so later stages always see well-typed records.
"""

import html
import logging
import re
from datetime import date, datetime, time
from typing import Optional

from models import (
    LOSS, NO_RESULT, SENTINEL_DATE, SOURCE_SCRAPED, WIN,
    Game, Location, Note, RawGame, RawNote,
)
from reference import ReferenceRepository

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ' - '

# Tried in order, first match wins
DATE_FORMATS = [
    '%A, %B %d, %Y',    # Saturday, October 18, 2025
    '%A, %b %d, %Y',    # Saturday, Oct 18, 2025
    '%a, %b %d, %Y',    # Sat, Oct 18, 2025
    '%B %d, %Y',        # October 18, 2025
    '%m/%d/%Y',         # 10/18/2025, 1/2/2006
    '%m/%d/%y',         # 10/18/25, 1/2/06
    '%Y-%m-%d',         # 2025-10-18
]

TIME_RE = re.compile(r'(\d{1,2}):(\d{2})\s*(AM|PM)', re.IGNORECASE)
SCORE_RE = re.compile(r'^\s*(\S+?)\s*-\s*(\S+)\s*$')
MARKDOWN_LINK_RE = re.compile(r'\[([^\]]+)\]\((https?://[^\s)]+)\)')
URL_RE = re.compile(r'https?://[^\s<>"\']+')
ANCHOR_RE = re.compile(r'(<a\s[^>]*>.*?</a>)', re.IGNORECASE | re.DOTALL)
TAG_RE = re.compile(r'<[^>]+>')

ALL_TEAMS = 'all teams'


def parse_date(date_str: str) -> date:
    """Parse a date in any of DATE_FORMATS, or return SENTINEL_DATE."""
    cleaned = ' '.join((date_str or '').split())
    if not cleaned:
        return SENTINEL_DATE
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return SENTINEL_DATE


def parse_time(time_str: str) -> Optional[time]:
    """Parse 'H:MM AM|PM'. None means the time is TBD."""
    match = TIME_RE.search(time_str or '')
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if not 1 <= hour <= 12 or minute > 59:
        return None
    ampm = match.group(3).upper()
    if ampm == 'PM' and hour != 12:
        hour += 12
    elif ampm == 'AM' and hour == 12:
        hour = 0
    return time(hour, minute)


def format_time(time_str: str) -> str:
    """Compact a time for display: '4:00 PM' -> '4PM', '9:30 am' -> '9:30AM'."""
    if not time_str or time_str == 'TBD':
        return time_str
    match = TIME_RE.search(time_str)
    if not match:
        return time_str
    hours, minutes, ampm = match.group(1), match.group(2), match.group(3).upper()
    if minutes == '00':
        return f"{hours}{ampm}"
    return f"{hours}:{minutes}{ampm}"


def time_text(value: Optional[time]) -> str:
    """Render a parsed time back to 'H:MM AM|PM', or 'TBD'."""
    if value is None:
        return 'TBD'
    hour = value.hour % 12 or 12
    ampm = 'PM' if value.hour >= 12 else 'AM'
    return f"{hour}:{value.minute:02d} {ampm}"


def normalize_score(score_text: str) -> tuple[str, str]:
    """Derive (result tag, display string) from an own-side-first 'A-B' score.

    Unplayed or unparseable scores give no result. Equal scores are reported
    as indeterminate instead of guessing a winner.
    """
    text = (score_text or '').strip()
    if not text or text == '-':
        return NO_RESULT, '-'

    match = SCORE_RE.match(text)
    if not match:
        return NO_RESULT, text
    try:
        ours, theirs = int(match.group(1)), int(match.group(2))
    except ValueError:
        return NO_RESULT, text

    if ours > theirs:
        return WIN, f"W {ours}-{theirs}"
    if ours < theirs:
        return LOSS, f"L {ours}-{theirs}"
    logger.warning(f"Tied score '{text}' cannot be classified, no result recorded")
    return NO_RESULT, f"{ours}-{theirs}"


def resolve_location(location_str: str, repo: ReferenceRepository, source: str,
                     separator: str = DEFAULT_SEPARATOR) -> tuple[Optional[Location], str, str]:
    """Split a location string into (Location, base text, sub-venue).

    Scraped sources are matched on the full location name, sheet sources on
    the abbreviation (falling back to the full name). Unknown names are kept
    as raw text with no Location linked.
    """
    text = ' '.join((location_str or '').split())
    if not text or text.upper() == 'TBD':
        return None, '', ''

    def lookup(name: str) -> Optional[Location]:
        if source == SOURCE_SCRAPED:
            return repo.location_by_name(name)
        return repo.location_by_abbreviation(name) or repo.location_by_name(name)

    whole = lookup(text)
    if whole:
        return whole, text, ''

    base, sub_venue = text, ''
    if separator and separator in text:
        base, sub_venue = (part.strip() for part in text.split(separator, 1))
        sub_venue = sub_venue.lower()

    return lookup(base), base, sub_venue


def _anchor(url: str, label: str) -> str:
    return f'<a href="{url}" target="_blank" rel="noopener">{label}</a>'


def _trim_url(url: str) -> tuple[str, str]:
    """Split trailing sentence punctuation off a bare URL."""
    stripped = url.rstrip('.,;:!?)')
    return stripped, url[len(stripped):]


def linkify(markup: str) -> str:
    """Wrap bare URLs in already-escaped markup, leaving existing anchors alone."""
    parts = []
    for segment in ANCHOR_RE.split(markup):
        if ANCHOR_RE.fullmatch(segment):
            parts.append(segment)
            continue

        def wrap(match):
            url, trailing = _trim_url(match.group(0))
            return _anchor(url, url) + trailing

        parts.append(URL_RE.sub(wrap, segment))
    return ''.join(parts)


def convert_note_text(text: str) -> str:
    """Convert note text to safe HTML.

    Markdown-style [label](url) links are converted first; bare URLs in the
    remaining text are linkified afterwards, so a URL that is already part of
    a link is never wrapped twice.
    """
    text = text or ''
    pieces = []
    pos = 0
    for match in MARKDOWN_LINK_RE.finditer(text):
        pieces.append(html.escape(text[pos:match.start()], quote=False))
        label = html.escape(match.group(1), quote=False)
        url = html.escape(match.group(2))
        pieces.append(_anchor(url, label))
        pos = match.end()
    pieces.append(html.escape(text[pos:], quote=False))
    return linkify(''.join(pieces))


def strip_markup(text: str) -> str:
    """Plain-text version of a note: link labels kept, tags removed."""
    text = MARKDOWN_LINK_RE.sub(lambda m: m.group(1), text or '')
    text = TAG_RE.sub('', text)
    return ' '.join(html.unescape(text).split())


def parse_audience(audience_str: str) -> frozenset:
    """Lower-cased team names a note targets; empty means every team."""
    names = [name.strip().lower() for name in (audience_str or '').split(',')]
    names = [name for name in names if name]
    if not names or ALL_TEAMS in names:
        return frozenset()
    return frozenset(names)


def normalize_game(raw: RawGame, repo: ReferenceRepository,
                   separator: str = DEFAULT_SEPARATOR) -> Game:
    game_date = parse_date(raw.date_text)
    if game_date == SENTINEL_DATE:
        logger.warning(f"{raw.team.name}: unparseable date '{raw.date_text}', placing last")

    location, base_text, sub_venue = resolve_location(raw.location_text, repo, raw.source, separator)
    result, score_display = normalize_score(raw.score_text)

    return Game(
        team=raw.team,
        date=game_date,
        time=parse_time(raw.time_text),
        location=location,
        location_text=base_text,
        sub_venue=sub_venue,
        opponent=' '.join((raw.opponent or '').split()),
        home_away=raw.home_away,
        score_text=(raw.score_text or '').strip(),
        result=result,
        score_display=score_display,
    )


def normalize_note(raw: RawNote, repo: ReferenceRepository) -> Note:
    note_date = parse_date(raw.date_text)
    if note_date == SENTINEL_DATE:
        logger.warning(f"Note has unparseable date '{raw.date_text}', placing last")

    audience = parse_audience(raw.audience_text)
    for name in sorted(audience):
        if not repo.team_by_name(name):
            logger.warning(f"Note audience names unknown team '{name}'")

    return Note(
        date=note_date,
        text=(raw.text or '').strip(),
        html=convert_note_text((raw.text or '').strip()),
        audience=audience,
    )
