"""Shared fixtures: sample reference tables and record builders."""

from datetime import date, time
from pathlib import Path

import pytest

from models import HOME, NO_RESULT, Game, Location, Note, Team
from reference import ReferenceRepository, load_reference_tables

DATA_DIR = Path(__file__).parent / 'data'


@pytest.fixture
def data_dir() -> Path:
    """Sample team, location, game and note sheets plus a results page."""
    return DATA_DIR


@pytest.fixture
def results_page(data_dir) -> str:
    return (data_dir / 'results_12u.html').read_text(encoding='utf-8')


@pytest.fixture
def repo(data_dir) -> ReferenceRepository:
    return load_reference_tables(
        (data_dir / 'teams.csv').read_text(encoding='utf-8'),
        (data_dir / 'locations.csv').read_text(encoding='utf-8'),
    )


@pytest.fixture
def blue(repo) -> Team:
    return repo.team_by_name('12U Blue')


@pytest.fixture
def gold(repo) -> Team:
    return repo.team_by_name('14U Gold')


@pytest.fixture
def make_game(blue):
    """Build a normalized Game with sensible defaults."""
    def _make(team=None, day=date(2025, 10, 18), at=time(18, 0), opponent='Hawks',
              location=None, home_away=HOME, result=NO_RESULT, score_display='-', **extra):
        return Game(
            team=team or blue,
            date=day,
            time=at,
            location=location,
            location_text=extra.get('location_text', location.name if location else ''),
            sub_venue=extra.get('sub_venue', ''),
            opponent=opponent,
            home_away=home_away,
            score_text=extra.get('score_text', ''),
            result=result,
            score_display=score_display,
        )
    return _make


@pytest.fixture
def make_note():
    def _make(day=date(2025, 10, 18), text='Picture day', audience=frozenset()):
        return Note(date=day, text=text, html=text, audience=frozenset(audience))
    return _make


@pytest.fixture
def lincoln() -> Location:
    return Location(name='Lincoln Middle School', abbreviation='LMS', address='100 Main St, Springfield')
