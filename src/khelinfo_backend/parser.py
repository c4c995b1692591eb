"""
Data normalizer for the Khelinfo backend

Maps raw SportMonks records to the reduced field set the frontend expects.
Only resources with large or noisy payloads (countries, teams, players) are
projected; every other resource passes through unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .resources import Normalization, ResourceType, get_resource_spec

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class ProjectionRule:
    """Rule for copying one (possibly nested) source field to a target field"""
    source_path: str
    target_path: str
    default_value: Any = None


def _same(*fields: str) -> List[ProjectionRule]:
    return [ProjectionRule(name, name) for name in fields]


PROJECTION_RULES: Dict[ResourceType, List[ProjectionRule]] = {
    ResourceType.COUNTRIES: _same('id', 'name'),
    ResourceType.TEAMS: _same('id', 'name', 'code', 'image_path', 'country_id'),
    ResourceType.PLAYERS: _same(
        'id', 'fullname', 'firstname', 'lastname', 'dateofbirth', 'gender',
        'battingstyle', 'bowlingstyle',
    ) + [
        ProjectionRule('position.name', 'position', default_value=NOT_AVAILABLE),
    ] + _same('country_id', 'image_path'),
}


class DataParser:
    """Normalizes raw upstream collections per resource type"""

    def __init__(self, rules: Optional[Dict[ResourceType, List[ProjectionRule]]] = None):
        self.rules = PROJECTION_RULES if rules is None else rules

    def normalize(self, resource_type: ResourceType, raw_records: List[Any]) -> List[Dict[str, Any]]:
        """Return the normalized form of a raw collection"""
        spec = get_resource_spec(resource_type)
        if spec is None:
            raise KeyError(f"No cached resource for {resource_type.value}")

        if spec.normalization is Normalization.IDENTITY:
            return list(raw_records)

        rules = self.rules[resource_type]
        normalized = []
        for record in raw_records:
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object {resource_type.value} record: {record!r}")
                continue
            normalized.append(self._apply_rules(record, rules))

        return normalized

    def _apply_rules(self, record: Dict[str, Any], rules: List[ProjectionRule]) -> Dict[str, Any]:
        result = {}
        for rule in rules:
            value = self._extract_value_by_path(record, rule.source_path)
            # A falsy nested value (e.g. empty position name) also falls back
            if rule.default_value is not None and not value:
                value = rule.default_value
            result[rule.target_path] = value
        return result

    def _extract_value_by_path(self, data: Any, path: str) -> Any:
        """Extract value from nested data using dot notation path"""
        current = data
        for part in path.split('.'):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return None
        return current


def create_parser() -> DataParser:
    """Create and initialize data parser"""
    return DataParser()
