import math
from typing import Any, Mapping, Optional, Tuple, Union

from classifier.logger import get_logger
from classifier.models import CategoryPath, MappingTable, TaxonomyConfig
from classifier.weights import format_weight, percent_to_basis_points

logger = get_logger(__name__)


def resolve_mapping(
    mapping: Optional[Union[str, MappingTable]],
    registry: Mapping[str, MappingTable],
    taxonomy_id: str = "",
) -> Tuple[MappingTable, bool]:
    """
    Resolves a taxonomy's mapping setting to a concrete table.

    Returns ``(table, identity)``. ``identity`` is True when no table is
    configured, in which case raw keys are used verbatim. A name that is not in
    the registry yields an empty table with identity disabled: nothing maps.
    """
    if mapping is None:
        return {}, True
    if isinstance(mapping, str):
        if mapping in registry:
            table = registry[mapping]
            return table, not table
        logger.warning(f"[{taxonomy_id}] Mapping key '{mapping}' not found in global mappings.")
        return {}, False
    return mapping, not mapping


def parse_percent(value: Any) -> Optional[float]:
    """Provider percentage as a finite float, or None if it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class CategoryMapper:
    """
    Turns raw provider keys and breakdown items into category paths.
    Stateless: the same input always produces the same output.
    """
    def __init__(
        self,
        taxonomy_id: str,
        mapping: MappingTable,
        identity: bool,
        key_field: str = "Type",
        value_field: str = "Value",
    ):
        self.taxonomy_id = taxonomy_id
        self.mapping = mapping
        self.identity = identity
        self.key_field = key_field
        self.value_field = value_field

    @classmethod
    def for_taxonomy(cls, taxonomy_id: str, config: TaxonomyConfig, registry: Mapping[str, MappingTable]):
        mapping, identity = resolve_mapping(config.mapping, registry, taxonomy_id)
        return cls(taxonomy_id, mapping, identity, config.key_field, config.value_field)

    def map_key(self, key: Any) -> Optional[CategoryPath]:
        """Category path for a raw key, or None when the key is unmapped or discarded."""
        key = str(key)
        if self.identity:
            return (key,)
        if key not in self.mapping:
            logger.warning(f"[{self.taxonomy_id}] Unmapped key: '{key}'")
            return None
        target = self.mapping[key]
        if not target:
            # null entry: key is deliberately excluded, e.g. overlapping breakdowns
            logger.debug(f"[{self.taxonomy_id}] Key '{key}' is discarded by the mapping.")
            return None
        if isinstance(target, str):
            return (target,)
        return tuple(target)

    def map_item(self, item: Mapping[str, Any]) -> Optional[Tuple[CategoryPath, int]]:
        key = item.get(self.key_field) if isinstance(item, Mapping) else None
        raw_value = item.get(self.value_field) if isinstance(item, Mapping) else None
        if key is None or key == "" or raw_value is None:
            logger.warning(
                f"[{self.taxonomy_id}] Skipping item without '{self.key_field}' or '{self.value_field}': {item}"
            )
            return None

        percent = parse_percent(raw_value)
        if percent is None:
            logger.warning(f"[{self.taxonomy_id}] Invalid weight for key: '{key}' (Value: {raw_value})")
            return None

        path = self.map_key(key)
        if path is None:
            return None

        weight = percent_to_basis_points(percent)
        if weight < 0:
            logger.warning(
                f"[{self.taxonomy_id}] Negative weight for key: '{key}' ignored (Value: {format_weight(weight)})"
            )
            return None
        if weight == 0:
            logger.debug(f"[{self.taxonomy_id}] Zero weight for key: '{key}' ignored")
            return None
        return path, weight
