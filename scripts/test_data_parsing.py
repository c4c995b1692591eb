"""
Tests for the data normalizer

Projected resources keep only the fields the frontend uses; every other
resource passes through untouched.
"""

import pytest

from khelinfo_backend.parser import NOT_AVAILABLE, DataParser, create_parser
from khelinfo_backend.resources import ResourceType


@pytest.fixture
def parser() -> DataParser:
    return create_parser()


def test_countries_projection(parser):
    raw = [{'resource': 'countries', 'id': 146, 'name': 'India', 'image_path': 'x.png',
            'updated_at': '2023-01-01'}]

    assert parser.normalize(ResourceType.COUNTRIES, raw) == [{'id': 146, 'name': 'India'}]


def test_teams_projection(parser, sample_teams):
    normalized = parser.normalize(ResourceType.TEAMS, sample_teams)

    assert normalized[0] == {
        'id': 1,
        'name': 'India',
        'code': 'IND',
        'image_path': 'https://cdn.sportmonks.com/images/cricket/teams/1.png',
        'country_id': 153732,
    }
    assert all('national_team' not in team for team in normalized)


def test_players_projection_with_position(parser):
    raw = [{
        'id': 44,
        'fullname': 'Virat Kohli',
        'firstname': 'Virat',
        'lastname': 'Kohli',
        'dateofbirth': '1988-11-05',
        'gender': 'm',
        'battingstyle': 'right-hand-bat',
        'bowlingstyle': 'right-arm-medium',
        'position': {'resource': 'positions', 'id': 1, 'name': 'Batsman'},
        'country_id': 146,
        'image_path': 'https://cdn.sportmonks.com/images/cricket/players/44.png',
        'updated_at': '2024-01-01',
    }]

    player = parser.normalize(ResourceType.PLAYERS, raw)[0]

    assert player['position'] == 'Batsman'
    assert player['fullname'] == 'Virat Kohli'
    assert 'updated_at' not in player
    assert set(player) == {
        'id', 'fullname', 'firstname', 'lastname', 'dateofbirth', 'gender',
        'battingstyle', 'bowlingstyle', 'position', 'country_id', 'image_path',
    }


@pytest.mark.parametrize('position', [None, {}, {'name': None}, {'name': ''}])
def test_players_missing_position_defaults(parser, position):
    raw = [{'id': 1, 'fullname': 'Unknown Player'}]
    if position is not None:
        raw[0]['position'] = position

    player = parser.normalize(ResourceType.PLAYERS, raw)[0]

    assert player['position'] == NOT_AVAILABLE
    assert player['battingstyle'] is None


def test_projection_skips_non_object_records(parser):
    normalized = parser.normalize(ResourceType.COUNTRIES, [{'id': 1, 'name': 'India'}, None, 'x'])

    assert normalized == [{'id': 1, 'name': 'India'}]


@pytest.mark.parametrize('resource_type', [
    ResourceType.RANKINGS,
    ResourceType.LIVE_SCORES,
    ResourceType.LEAGUES,
    ResourceType.FIXTURES,
    ResourceType.SEASONS,
    ResourceType.OFFICIALS,
    ResourceType.SCORES,
])
def test_identity_resources_pass_through(parser, resource_type):
    raw = [{'id': 5, 'type': 'T20I', 'team': [{'id': 1, 'position': 1}], 'extra': {'deep': True}}]

    normalized = parser.normalize(resource_type, raw)

    assert normalized == raw
    assert normalized is not raw


def test_news_has_no_normalization(parser):
    with pytest.raises(KeyError):
        parser.normalize(ResourceType.NEWS, [])
