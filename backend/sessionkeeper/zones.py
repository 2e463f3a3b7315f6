"""Zone positioning: the four proximity tiers a character can occupy.

Zones are symbolic, not coordinates. A character is ``close``, ``near``,
``far`` or ``distant`` relative to the scene's point of reference and may
move between any two tiers in one step. Range helpers below are an optional
policy layered on top of the enumeration; the tier type itself knows nothing
about movement cost.
"""

from enum import Enum

from sessionkeeper.errors import ValidationError


class Zone(str, Enum):
    CLOSE = 'close'
    NEAR = 'near'
    FAR = 'far'
    DISTANT = 'distant'

    @classmethod
    def parse(cls, value) -> 'Zone':
        """Return the tier for ``value``; symbols are case-sensitive, no synonyms."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                'Invalid zone. Must be: close, near, far, or distant', field='zone'
            ) from None


DEFAULT_ZONE = Zone.NEAR
ZONE_ORDER = (Zone.CLOSE, Zone.NEAR, Zone.FAR, Zone.DISTANT)

ACTION_TYPES = ('melee', 'ranged', 'social')


def zone_distance(a, b) -> int:
    """Number of tiers between two zones."""
    return abs(ZONE_ORDER.index(Zone.parse(a)) - ZONE_ORDER.index(Zone.parse(b)))


def narrative_advantage(attacker_zone, target_zone, action_type: str) -> dict:
    """Whether the attacker's position favours the action against the target."""
    if action_type not in ACTION_TYPES:
        raise ValidationError('action_type must be melee, ranged, or social', field='action_type')
    distance = zone_distance(attacker_zone, target_zone)

    if action_type == 'melee':
        if distance == 0:
            return {'has_advantage': True, 'description': 'Perfect melee range'}
        if distance == 1:
            return {'has_advantage': False, 'description': 'Must close distance for melee'}
        return {'has_advantage': False, 'description': 'Too far for melee attack'}

    if action_type == 'ranged':
        if distance in (1, 2):
            return {'has_advantage': True, 'description': 'Ideal range for ranged attack'}
        if distance == 0:
            return {'has_advantage': False, 'description': 'Too close for effective ranged attack'}
        return {'has_advantage': False, 'description': 'Extreme range penalty'}

    if distance <= 1:
        return {'has_advantage': True, 'description': 'Good position for social interaction'}
    return {'has_advantage': False, 'description': 'Too far for effective communication'}
