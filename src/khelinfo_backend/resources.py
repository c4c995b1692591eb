"""
Resource table for the Khelinfo backend

Every cached resource type is described once here: where it lives upstream,
which extra query parameters it needs, which refresh cadence it follows, how
its records are normalized and which route serves it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .config import PollingConfig


class ResourceType(Enum):
    COUNTRIES = "countries"
    RANKINGS = "rankings"
    LIVE_SCORES = "live_scores"
    TEAMS = "teams"
    PLAYERS = "players"
    LEAGUES = "leagues"
    FIXTURES = "fixtures"
    SEASONS = "seasons"
    OFFICIALS = "officials"
    SCORES = "scores"
    NEWS = "news"


class Normalization(Enum):
    IDENTITY = "identity"
    PROJECTION = "projection"


@dataclass(frozen=True)
class ResourceSpec:
    """How one resource type is fetched, normalized and served"""
    resource_type: ResourceType
    endpoint: str
    route: str
    cadence: str = "static"  # attribute name on PollingConfig
    normalization: Normalization = Normalization.IDENTITY
    params: Dict[str, str] = field(default_factory=dict)

    def interval(self, polling: PollingConfig) -> int:
        return getattr(polling, self.cadence)


RESOURCES: Dict[ResourceType, ResourceSpec] = {
    spec.resource_type: spec for spec in (
        ResourceSpec(ResourceType.COUNTRIES, "countries", "/api/countries",
                     normalization=Normalization.PROJECTION),
        ResourceSpec(ResourceType.RANKINGS, "team-rankings", "/api/rankings",
                     cadence="rankings"),
        ResourceSpec(ResourceType.LIVE_SCORES, "livescores", "/api/livescores",
                     cadence="live_scores",
                     params={"include": "runs,batting,bowling"}),
        ResourceSpec(ResourceType.TEAMS, "teams", "/api/teams",
                     normalization=Normalization.PROJECTION),
        ResourceSpec(ResourceType.PLAYERS, "players", "/api/players",
                     normalization=Normalization.PROJECTION,
                     params={"include": "position"}),
        ResourceSpec(ResourceType.LEAGUES, "leagues", "/api/leagues"),
        ResourceSpec(ResourceType.FIXTURES, "fixtures", "/api/fixtures",
                     params={"include": "localteam,visitorteam"}),
        ResourceSpec(ResourceType.SEASONS, "seasons", "/api/seasons"),
        ResourceSpec(ResourceType.OFFICIALS, "officials", "/api/officials"),
        ResourceSpec(ResourceType.SCORES, "scores", "/api/scores"),
    )
}

# News has no cache slot; it is proxied per request.
CACHED_RESOURCES = tuple(RESOURCES.keys())


def get_resource_spec(resource_type: ResourceType) -> Optional[ResourceSpec]:
    return RESOURCES.get(resource_type)
