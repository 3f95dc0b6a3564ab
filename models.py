"""
Schedule record model.

Teams and Locations come from the reference tables. Source adapters emit
RawGame/RawNote records, the normalizer turns them into Game/Note, and the
merger works on ScheduleItem (either a Game or a Note, never both).
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional, Union

# Far-future placeholder for dates that could not be parsed. Only used to
# place such entries last; never shown as a real date.
SENTINEL_DATE = date(2099, 12, 31)

# Result tags
WIN = 'win'
LOSS = 'loss'
NO_RESULT = 'none'

# Home/away designations (None means unknown)
HOME = 'home'
AWAY = 'away'

# Which lookup a location string should use
SOURCE_SCRAPED = 'scraped'
SOURCE_SHEET = 'sheet'

DEFAULT_TEAM_COLOR = '#2196F3'


@dataclass(frozen=True)
class Team:
    name: str
    slug: str
    order: int
    color: str = DEFAULT_TEAM_COLOR
    url: str = ''
    html_name: str = ''
    known: bool = True


@dataclass(frozen=True)
class Location:
    name: str
    abbreviation: str = ''
    address: str = ''


@dataclass(frozen=True)
class RawGame:
    """Provisional game as read from a source, all fields still text."""
    team: Team
    date_text: str
    time_text: str = ''
    location_text: str = ''
    opponent: str = ''
    home_away: Optional[str] = None
    score_text: str = ''
    source: str = SOURCE_SHEET


@dataclass(frozen=True)
class RawNote:
    date_text: str
    text: str
    audience_text: str = ''


@dataclass(frozen=True)
class Game:
    team: Team
    date: date
    time: Optional[time]
    location: Optional[Location]
    location_text: str
    sub_venue: str
    opponent: str
    home_away: Optional[str]
    score_text: str
    result: str = NO_RESULT
    score_display: str = '-'

    @property
    def date_known(self) -> bool:
        return self.date != SENTINEL_DATE


@dataclass(frozen=True)
class Note:
    date: date
    text: str
    html: str
    # Lower-cased team names; empty means every team.
    audience: frozenset = field(default_factory=frozenset)

    @property
    def date_known(self) -> bool:
        return self.date != SENTINEL_DATE

    @property
    def for_all_teams(self) -> bool:
        return not self.audience

    def applies_to(self, team: Team) -> bool:
        return self.for_all_teams or team.name.lower() in self.audience


ScheduleItem = Union[Game, Note]
