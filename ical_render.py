"""
Calendar feed renderer.

One VCALENDAR per scope: a VTIMEZONE with explicit daylight/standard rules,
a timed (1 hour) or all-day VEVENT per game, and an all-day VEVENT per note.
Entries with an unparseable date are left out. UIDs are derived from the
team, date and time (or note text) so regenerating the feed never creates
duplicate events in subscribed calendars.
"""

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from icalendar import Alarm, Calendar, Event, Timezone, TimezoneDaylight, TimezoneStandard

from models import AWAY, HOME, NO_RESULT, Game, Note, ScheduleItem
from normalize import strip_markup, time_text

logger = logging.getLogger(__name__)

DEFAULT_TZID = 'America/Chicago'
UID_DOMAIN = 'lightning-schedule'
GAME_DURATION = timedelta(hours=1)

# tzid -> (standard UTC offset in hours, standard name, daylight name).
# All use the US rule: DST from the 2nd Sunday of March to the 1st Sunday
# of November, switching at 02:00 local time.
TIMEZONE_RULES = {
    'America/New_York': (-5, 'EST', 'EDT'),
    'America/Chicago': (-6, 'CST', 'CDT'),
    'America/Denver': (-7, 'MST', 'MDT'),
    'America/Los_Angeles': (-8, 'PST', 'PDT'),
}

JERSEY_NAMES = {HOME: 'Light (home)', AWAY: 'Dark (away)'}


def build_timezone(tzid: str = DEFAULT_TZID) -> Timezone:
    """VTIMEZONE component with explicit DST/STD transition rules."""
    offset_hours, std_name, dst_name = TIMEZONE_RULES[tzid]
    std_offset = timedelta(hours=offset_hours)
    dst_offset = std_offset + timedelta(hours=1)

    tz = Timezone()
    tz.add('tzid', tzid)
    tz.add('x-lic-location', tzid)

    daylight = TimezoneDaylight()
    daylight.add('tzname', dst_name)
    daylight.add('tzoffsetfrom', std_offset)
    daylight.add('tzoffsetto', dst_offset)
    daylight.add('dtstart', datetime(1970, 3, 8, 2, 0, 0))
    daylight.add('rrule', {'freq': 'YEARLY', 'bymonth': 3, 'byday': '2SU'})
    tz.add_component(daylight)

    standard = TimezoneStandard()
    standard.add('tzname', std_name)
    standard.add('tzoffsetfrom', dst_offset)
    standard.add('tzoffsetto', std_offset)
    standard.add('dtstart', datetime(1970, 11, 1, 2, 0, 0))
    standard.add('rrule', {'freq': 'YEARLY', 'bymonth': 11, 'byday': '1SU'})
    tz.add_component(standard)

    return tz


def _digest(text: str) -> str:
    return hashlib.md5(text.encode('utf-8')).hexdigest()


def game_uid(game: Game) -> str:
    when = game.time.strftime('%H%M') if game.time else 'TBD'
    return f"{_digest(f'{game.team.slug}-{game.date.isoformat()}-{when}')}@{UID_DOMAIN}"


def note_uid(note: Note) -> str:
    return f"{_digest(f'note-{note.date.isoformat()}-{strip_markup(note.text)}')}@{UID_DOMAIN}"


def game_location(game: Game) -> str:
    """Venue name with address and sub-venue for calendar apps to geocode."""
    if game.location:
        parts = [game.location.name]
        if game.location.address:
            parts.append(game.location.address)
        text = ', '.join(parts)
    else:
        text = game.location_text
    if text and game.sub_venue:
        text = f"{text} ({game.sub_venue})"
    return text


def game_summary(game: Game) -> str:
    opponent = game.opponent or 'TBD'
    if game.home_away == AWAY:
        summary = f"🏀 {game.team.name} @ {opponent}"
    else:
        summary = f"🏀 {game.team.name} vs {opponent}"
    if game.result != NO_RESULT:
        summary += f" ({game.score_display})"
    return summary


def _unique_uid(uid: str, seen: dict) -> str:
    count = seen.get(uid, 0) + 1
    seen[uid] = count
    if count == 1:
        return uid
    return uid.replace('@', f"-{count}@", 1)


def game_event(game: Game, tz: ZoneInfo, stamp: datetime, uid: str) -> Event:
    event = Event()
    event.add('uid', uid)
    event.add('summary', game_summary(game))

    if game.time is not None:
        start = datetime.combine(game.date, game.time, tzinfo=tz)
        event.add('dtstart', start)
        event.add('dtend', start + GAME_DURATION)
    else:
        event.add('dtstart', game.date)
        event.add('dtend', game.date + timedelta(days=1))

    location = game_location(game)
    if location:
        event.add('location', location)

    desc = [
        f"Team: {game.team.name}",
        f"Opponent: {game.opponent or 'TBD'}",
        f"Time: {time_text(game.time)}",
    ]
    if game.home_away in JERSEY_NAMES:
        desc.append(f"Jersey: {JERSEY_NAMES[game.home_away]}")
    if location:
        desc.append(f"Location: {location}")
    if game.result != NO_RESULT:
        desc.append(f"Score: {game.score_display}")
    event.add('description', '\n'.join(desc))
    event.add('dtstamp', stamp)

    if game.time is not None and game.result == NO_RESULT:
        alarm = Alarm()
        alarm.add('action', 'DISPLAY')
        alarm.add('trigger', timedelta(hours=-1))
        alarm.add('description', f"{game.team.name} game vs {game.opponent or 'TBD'} in 1 hour")
        event.add_component(alarm)

    return event


def note_event(note: Note, stamp: datetime, uid: str) -> Event:
    plain = strip_markup(note.text)
    event = Event()
    event.add('uid', uid)
    event.add('summary', plain)
    event.add('dtstart', note.date)
    event.add('dtend', note.date + timedelta(days=1))
    event.add('description', plain)
    event.add('transp', 'TRANSPARENT')
    event.add('dtstamp', stamp)
    return event


def render_ical(items: list[ScheduleItem], now: datetime, calendar_name: str,
                calendar_id: str, tzid: str = DEFAULT_TZID) -> bytes:
    """Serialize one scope's merged sequence as an iCalendar feed."""
    tz = ZoneInfo(tzid)
    stamp = now.astimezone(timezone.utc)

    cal = Calendar()
    cal.add('prodid', f'-//Lightning Schedule//{calendar_id}//EN')
    cal.add('version', '2.0')
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', 'PUBLISH')
    cal.add('x-wr-calname', calendar_name)
    cal.add('x-wr-timezone', tzid)
    cal.add_component(build_timezone(tzid))

    seen_uids = {}
    omitted = 0
    for item in items:
        if isinstance(item, Game):
            if not item.date_known:
                omitted += 1
                continue
            cal.add_component(game_event(item, tz, stamp, _unique_uid(game_uid(item), seen_uids)))
        elif isinstance(item, Note):
            if not item.date_known:
                omitted += 1
                continue
            cal.add_component(note_event(item, stamp, _unique_uid(note_uid(item), seen_uids)))
        else:
            raise TypeError(f"Not a schedule item: {item!r}")

    if omitted:
        logger.warning(f"{calendar_name}: {omitted} entries without a date left out of the feed")

    return cal.to_ical()
