import pytest

from sessionkeeper.errors import ValidationError
from sessionkeeper.zones import DEFAULT_ZONE, Zone, narrative_advantage, zone_distance


def test_parse_accepts_the_four_tiers():
    assert [Zone.parse(v) for v in ('close', 'near', 'far', 'distant')] == [
        Zone.CLOSE, Zone.NEAR, Zone.FAR, Zone.DISTANT,
    ]
    assert DEFAULT_ZONE is Zone.NEAR


@pytest.mark.parametrize('value', ['mid', 'Close', 'NEAR', ' near', '', None, 2])
def test_parse_rejects_anything_else(value):
    with pytest.raises(ValidationError) as excinfo:
        Zone.parse(value)
    assert excinfo.value.field == 'zone'


def test_zone_distance_counts_tiers():
    assert zone_distance('close', 'close') == 0
    assert zone_distance('close', 'distant') == 3
    assert zone_distance('far', 'near') == 1


def test_narrative_advantage_by_action():
    assert narrative_advantage('close', 'close', 'melee')['has_advantage'] is True
    assert narrative_advantage('close', 'near', 'melee')['has_advantage'] is False
    assert narrative_advantage('close', 'far', 'ranged')['has_advantage'] is True
    assert narrative_advantage('near', 'near', 'ranged')['description'] == 'Too close for effective ranged attack'
    assert narrative_advantage('close', 'distant', 'ranged')['description'] == 'Extreme range penalty'
    assert narrative_advantage('near', 'far', 'social')['has_advantage'] is True
    assert narrative_advantage('close', 'far', 'social')['has_advantage'] is False


def test_narrative_advantage_rejects_unknown_action():
    with pytest.raises(ValidationError):
        narrative_advantage('close', 'near', 'psychic')
