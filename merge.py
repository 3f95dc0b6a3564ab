"""
Merge games and notes into ordered per-scope sequences.

Ordering (strict and deterministic for any input):
1. date ascending, the unparseable-date sentinel last
2. on the same date, notes before games
3. notes on the same date keep their input order
4. games on the same date: timed games first, by time of day; then team sort
   order, team name, opponent, and finally input order
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from models import SENTINEL_DATE, Game, Note, ScheduleItem, Team
from reference import ReferenceRepository

logger = logging.getLogger(__name__)

NOTE_RANK = 0
GAME_RANK = 1


def sort_key(item: ScheduleItem, index: int) -> tuple:
    """Sort key for an item; index is its position in the input sequence."""
    if isinstance(item, Note):
        return (item.date == SENTINEL_DATE, item.date, NOTE_RANK, index)
    if isinstance(item, Game):
        if item.time is not None:
            time_key = (0, item.time.hour * 60 + item.time.minute)
        else:
            time_key = (1, 0)
        return (item.date == SENTINEL_DATE, item.date, GAME_RANK, time_key,
                item.team.order, item.team.name, item.opponent.lower(), index)
    raise TypeError(f"Not a schedule item: {item!r}")


def merge_items(games: list[Game], notes: list[Note]) -> list[ScheduleItem]:
    """Combine games and notes into one ordered sequence."""
    items = list(notes) + list(games)
    indexed = sorted(enumerate(items), key=lambda pair: sort_key(pair[1], pair[0]))
    return [item for _, item in indexed]


def dedupe_games(games: list[Game]) -> list[Game]:
    """Drop games listed by more than one source, keeping the first."""
    seen = set()
    unique = []
    for game in games:
        key = (game.team.slug, game.date, game.time, game.opponent.lower())
        if key in seen:
            logger.debug(f"Duplicate game dropped: {game.team.name} {game.date} vs {game.opponent}")
            continue
        seen.add(key)
        unique.append(game)
    return unique


def scope_items(items: list[ScheduleItem], team: Optional[Team] = None) -> list[ScheduleItem]:
    """Filter a merged sequence down to one scope; None means all teams."""
    if team is None:
        return list(items)
    scoped = []
    for item in items:
        if isinstance(item, Game):
            if item.team == team:
                scoped.append(item)
        elif isinstance(item, Note):
            if item.applies_to(team):
                scoped.append(item)
        else:
            raise TypeError(f"Not a schedule item: {item!r}")
    return scoped


@dataclass
class Scope:
    """One output view: the combined schedule or a single team's."""
    team: Optional[Team]
    items: list = field(default_factory=list)

    @property
    def slug(self) -> str:
        return self.team.slug if self.team else ''

    @property
    def is_combined(self) -> bool:
        return self.team is None

    @property
    def games(self) -> list[Game]:
        return [item for item in self.items if isinstance(item, Game)]

    @property
    def notes(self) -> list[Note]:
        return [item for item in self.items if isinstance(item, Note)]


def scope_teams(games: list[Game], repo: ReferenceRepository) -> list[Team]:
    """Known teams plus any unlisted team that has games, in display order.

    Each team gets its own output directory, so a team without a slug, or
    whose slug another team already holds, gets no scope of its own.
    """
    teams = {team.slug: team for team in repo.teams}
    for game in games:
        team = teams.setdefault(game.team.slug, game.team)
        if team != game.team:
            logger.warning(f"Team '{game.team.name}' shares slug '{game.team.slug}' with '{team.name}', no page of its own")
    teams.pop('', None)
    return sorted(teams.values(), key=lambda t: (t.order, t.name))


def build_scopes(games: list[Game], notes: list[Note], repo: ReferenceRepository) -> list[Scope]:
    """Combined scope first, then one scope per team."""
    merged = merge_items(dedupe_games(games), notes)
    scopes = [Scope(team=None, items=merged)]
    for team in scope_teams(games, repo):
        scopes.append(Scope(team=team, items=scope_items(merged, team)))
    return scopes
