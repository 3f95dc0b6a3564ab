"""
Reference tables for known teams and locations.

Both tables are loaded once from CSV exports (columns identified by header
name) into a ReferenceRepository, which every adapter and normalizer call
receives explicitly.
"""

import csv
import hashlib
import io
import logging
import re
from typing import Iterator, Optional

from models import DEFAULT_TEAM_COLOR, Location, Team

logger = logging.getLogger(__name__)

# Sort order given to teams that are not in the reference table
UNLISTED_ORDER = 10_000


def slugify(name: str) -> str:
    """URL-safe identifier for a team name, e.g. '12U Blue' -> '12ublue'."""
    return re.sub(r'[^a-z0-9-]', '', name.lower().replace(' ', ''))


def unique_slug(name: str, taken) -> str:
    """slugify(name), or a name-derived 'team-<hash>' when that is empty or taken.

    A scope directory is named by its slug, so every team needs a distinct,
    non-empty one.
    """
    slug = slugify(name)
    if slug and slug not in taken:
        return slug
    digest = hashlib.md5(name.strip().lower().encode('utf-8')).hexdigest()
    slug = f"team-{digest[:8]}"
    while slug in taken:
        digest = hashlib.md5(digest.encode('utf-8')).hexdigest()
        slug = f"team-{digest[:8]}"
    return slug


def csv_rows(text: str) -> Iterator[tuple[int, dict]]:
    """Yield (row number, row) pairs keyed by lower-cased header name.

    Rows shorter than the header are padded with empty strings so trailing
    columns may be left off.
    """
    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        return
    keys = [h.strip().lower() for h in header]

    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            logger.warning(f"Line {reader.line_num}: unreadable CSV row skipped ({e})")
            continue

        if not any(cell.strip() for cell in row):
            continue
        values = [cell.strip() for cell in row] + [''] * max(0, len(keys) - len(row))
        yield reader.line_num, dict(zip(keys, values))


class ReferenceRepository:
    """Known teams and locations, fixed once built.

    Unlisted team names resolved along the way are remembered so each one
    maps to a single transient Team with a slug no other team uses.
    """

    def __init__(self, teams: list[Team] = None, locations: list[Location] = None):
        self._teams = sorted(teams or [], key=lambda t: (t.order, t.name))
        self._teams_by_name = {t.name.lower(): t for t in self._teams}
        self._teams_by_slug = {t.slug: t for t in self._teams}
        self._unlisted = {}
        locations = list(locations or [])
        self._locations_by_name = {loc.name.lower(): loc for loc in locations}
        self._locations_by_abbr = {
            loc.abbreviation.lower(): loc for loc in locations if loc.abbreviation
        }

    @property
    def teams(self) -> list[Team]:
        """Known teams in display order."""
        return list(self._teams)

    def team_by_name(self, name: str) -> Optional[Team]:
        return self._teams_by_name.get(name.strip().lower())

    def resolve_team(self, name: str) -> Team:
        """Return the known team, or a transient one for an unlisted name."""
        team = self.team_by_name(name)
        if team:
            return team

        name = name.strip()
        team = self._unlisted.get(name.lower())
        if team is None:
            slug = unique_slug(name, self._teams_by_slug)
            team = Team(name=name, slug=slug, order=UNLISTED_ORDER,
                        color=DEFAULT_TEAM_COLOR, known=False)
            self._unlisted[name.lower()] = team
            self._teams_by_slug[slug] = team
            logger.warning(f"Team '{name}' is not in the team table, listing it as '{slug}'")
        return team

    def location_by_name(self, name: str) -> Optional[Location]:
        return self._locations_by_name.get(name.strip().lower())

    def location_by_abbreviation(self, abbreviation: str) -> Optional[Location]:
        return self._locations_by_abbr.get(abbreviation.strip().lower())

    def scraped_teams(self) -> list[Team]:
        """Teams that have a results-table URL to scrape."""
        return [t for t in self._teams if t.url and t.html_name]


def parse_teams(text: str) -> list[Team]:
    """Parse the team table: Name, Slug, Order, Color, URL, HTML Name."""
    teams = []
    seen = set()
    slugs = set()
    for row_num, row in csv_rows(text):
        name = row.get('name', '')
        if not name:
            logger.warning(f"Team row {row_num}: missing name, skipped")
            continue
        if name.lower() in seen:
            logger.warning(f"Team row {row_num}: duplicate team '{name}', skipped")
            continue

        order_text = row.get('order', '')
        try:
            order = int(order_text) if order_text else len(teams)
        except ValueError:
            logger.warning(f"Team row {row_num}: bad order '{order_text}', using row position")
            order = len(teams)

        slug = slugify(row.get('slug', '')) or slugify(name)
        if not slug or slug in slugs:
            slug = unique_slug(name, slugs)
            logger.warning(f"Team row {row_num}: no usable slug for '{name}', using '{slug}'")

        teams.append(Team(
            name=name,
            slug=slug,
            order=order,
            color=row.get('color') or DEFAULT_TEAM_COLOR,
            url=row.get('url', ''),
            html_name=row.get('html name', ''),
        ))
        seen.add(name.lower())
        slugs.add(slug)
    return teams


def parse_locations(text: str) -> list[Location]:
    """Parse the location table: Abbreviation, Name, Address."""
    locations = []
    for row_num, row in csv_rows(text):
        name = row.get('name', '')
        if not name:
            logger.warning(f"Location row {row_num}: missing name, skipped")
            continue
        locations.append(Location(
            name=name,
            abbreviation=row.get('abbreviation', ''),
            address=row.get('address', ''),
        ))
    return locations


def load_reference_tables(teams_text: str, locations_text: str) -> ReferenceRepository:
    """Build the repository from the two CSV exports."""
    teams = parse_teams(teams_text) if teams_text else []
    locations = parse_locations(locations_text) if locations_text else []
    logger.info(f"Loaded {len(teams)} teams and {len(locations)} locations")
    return ReferenceRepository(teams, locations)
