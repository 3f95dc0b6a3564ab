#!/usr/bin/env python3
"""
Lightning Game Schedule Builder

Scrapes each team's league results page, reads the hand-maintained game and
note sheets, and publishes a static HTML schedule plus an iCal feed for all
teams combined and for every team on its own.

Features:
- Team and location reference tables loaded from CSV exports
- Games from scraped results tables and a manual game sheet, deduplicated
- Dated notes (optionally for specific teams) mixed into the schedule
- One page and one feed per team, plus a combined view

Usage:
    python scraper.py --config schedule.json --output dist/
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from html_render import DEFAULT_STYLESHEET, DEFAULT_TITLE, render_html
from ical_render import DEFAULT_TZID, TIMEZONE_RULES, render_ical
from merge import build_scopes
from models import Game, Note
from normalize import DEFAULT_SEPARATOR, normalize_game, normalize_note
from output import FEED_FILENAME, write_scope, write_status
from reference import ReferenceRepository, load_reference_tables
from sources import DEFAULT_TIMEOUT, read_sheet_games, read_sheet_notes, read_source, scrape_team_table

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'title': DEFAULT_TITLE,
    'timezone': DEFAULT_TZID,
    'timeout': DEFAULT_TIMEOUT,
    'location_separator': DEFAULT_SEPARATOR,
    'base_url': '',
    'sources': {},
    'assets': {},
}


class ScheduleError(Exception):
    """A run that cannot produce trustworthy output."""


class NoGamesError(ScheduleError):
    """Every source came back without a single game."""


class ConfigError(Exception):
    """The config file is missing, unreadable or invalid."""


def load_config(path) -> dict:
    """Read a JSON config file and merge it over DEFAULT_CONFIG."""
    try:
        with open(Path(path).expanduser(), encoding='utf-8') as f:
            loaded = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config {path} must be a JSON object")

    config = dict(DEFAULT_CONFIG)
    config.update(loaded)
    config['sources'] = dict(loaded.get('sources') or {})
    config['assets'] = dict(loaded.get('assets') or {})

    if config['timezone'] not in TIMEZONE_RULES:
        raise ConfigError(
            f"Unsupported timezone '{config['timezone']}', expected one of {', '.join(sorted(TIMEZONE_RULES))}"
        )
    try:
        config['timeout'] = int(config['timeout'])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout '{config['timeout']}'") from e

    return config


def collect_items(config: dict, repo: ReferenceRepository) -> tuple[list[Game], list[Note]]:
    """Read every source and normalize the results.

    Raises NoGamesError when no source produced a game.
    """
    timeout = config['timeout']
    separator = config['location_separator']
    sources = config['sources']

    raw_games = []
    skipped = 0

    for team in repo.scraped_teams():
        logger.info(f"Scraping {team.name}...")
        team_games, team_skipped = scrape_team_table(read_source(team.url, timeout), team)
        raw_games.extend(team_games)
        skipped += team_skipped

    sheet_games, sheet_skipped = read_sheet_games(read_source(sources.get('games', ''), timeout), repo)
    raw_games.extend(sheet_games)
    skipped += sheet_skipped

    raw_notes, notes_skipped = read_sheet_notes(read_source(sources.get('notes', ''), timeout))
    skipped += notes_skipped

    if skipped:
        logger.warning(f"Skipped {skipped} unusable rows across all sources")

    if not raw_games:
        raise NoGamesError("No games found in any source, nothing written")

    games = [normalize_game(raw, repo, separator) for raw in raw_games]
    notes = [normalize_note(raw, repo) for raw in raw_notes]
    return games, notes


def read_asset(path: str, default: str = '') -> str:
    if not path:
        return default
    try:
        return Path(path).expanduser().read_text(encoding='utf-8')
    except OSError as e:
        logger.warning(f"Cannot read asset {path}: {e}, using default")
        return default


def feed_url(base_url: str, slug: str) -> str:
    """Public URL of a scope's feed, or a page-relative link without a base URL."""
    if not base_url:
        return FEED_FILENAME
    prefix = base_url.rstrip('/')
    if slug:
        prefix = f"{prefix}/{slug}"
    return f"{prefix}/{FEED_FILENAME}"


def run(config: dict, output_dir: Path, base_url: str = '', now: Optional[datetime] = None) -> dict:
    """Build and write every scope. Returns the status summary."""
    tzid = config['timezone']
    tz = ZoneInfo(tzid)
    now = now or datetime.now(tz)
    title = config['title']
    timeout = config['timeout']
    sources = config['sources']

    repo = load_reference_tables(
        read_source(sources.get('teams', ''), timeout),
        read_source(sources.get('locations', ''), timeout),
    )

    # Everything is collected before the first write so a failed run leaves
    # the previous output untouched.
    games, notes = collect_items(config, repo)
    scopes = build_scopes(games, notes, repo)
    teams = [scope.team for scope in scopes if scope.team]

    stylesheet = read_asset(config['assets'].get('css', ''), DEFAULT_STYLESHEET)
    script = read_asset(config['assets'].get('js', ''))

    scope_info = []
    for scope in scopes:
        name = title if scope.is_combined else f"{title} - {scope.team.name}"
        calendar_id = scope.slug or 'all'
        info = {
            'id': calendar_id,
            'name': name,
            'games': len(scope.games),
            'notes': len(scope.notes),
            'listed': scope.is_combined or scope.team.known,
            'page': False,
            'feed': False,
        }

        try:
            page = render_html(scope.items, teams, now, tz, current=scope.team, title=title,
                               feed_url=feed_url(base_url, scope.slug),
                               stylesheet=stylesheet, script=script)
            write_scope(output_dir, scope.slug, page=page)
            info['page'] = True
        except Exception:
            logger.exception(f"Failed to build page for {name}")

        try:
            feed = render_ical(scope.items, now, name, calendar_id, tzid)
            write_scope(output_dir, scope.slug, feed=feed)
            info['feed'] = True
        except Exception:
            logger.exception(f"Failed to build feed for {name}")

        scope_info.append(info)

    summary = {
        'updated': now.isoformat(),
        'title': title,
        'games': sum(1 for item in scopes[0].items if isinstance(item, Game)),
        'notes': len(notes),
        'scopes': scope_info,
    }
    write_status(output_dir, summary)
    return summary


def main():
    parser = argparse.ArgumentParser(description='Lightning Game Schedule Builder')
    parser.add_argument('--config', '-c', required=True, help='Config file (JSON)')
    parser.add_argument('--output', '-o', default='dist', help='Output directory for pages and feeds')
    parser.add_argument('--base-url', '-u', default='', help='Public base URL for calendar subscribe links')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log row-level details')
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
        base_url = args.base_url or config.get('base_url', '')

        output_dir = Path(args.output).expanduser()
        output_dir.mkdir(parents=True, exist_ok=True)

        summary = run(config, output_dir, base_url)
    except (ConfigError, ScheduleError) as e:
        logger.error(str(e))
        sys.exit(1)

    # Print summary
    print("\n" + "="*50)
    print("Schedule Complete")
    print("="*50)
    print(f"Games: {summary['games']}  Notes: {summary['notes']}")
    for scope in summary['scopes']:
        unlisted = '' if scope['listed'] else ' (not in team table)'
        print(f"  {scope['name']}: {scope['games']} games, {scope['notes']} notes{unlisted}")
    print(f"\nOutput: {output_dir}/")


if __name__ == '__main__':
    main()
