from typing import Any, List, Mapping, Optional

from classifier.logger import get_logger
from classifier.mapper import CategoryMapper, resolve_mapping
from classifier.models import MappingTable, TaxonomyConfig, TaxonomyResult
from classifier.payload import MISSING, get_path, matches_filter
from classifier.weights import FULL_WEIGHT, format_path, format_weight

logger = get_logger(__name__)

# Group headers sometimes wrap the real leaf items in this collection.
BREAKDOWN_VALUES_FIELD = "BreakdownValues"


def flatten_breakdown(groups: List[Any]) -> List[Any]:
    """Replaces every group carrying a BreakdownValues list by its items, one level deep."""
    items = []
    for group in groups:
        nested = group.get(BREAKDOWN_VALUES_FIELD) if isinstance(group, Mapping) else None
        if isinstance(nested, list):
            items.extend(nested)
        else:
            items.append(group)
    return items


class TaxonomyAssigner:
    """
    Builds the raw (unnormalized) assignments of one taxonomy for one security,
    either from a fund breakdown array or from a single stock attribute.
    """
    def __init__(self, taxonomy_id: str, config: TaxonomyConfig, registry: Mapping[str, MappingTable]):
        self.taxonomy_id = taxonomy_id
        self.config = config
        self.mapper = CategoryMapper.for_taxonomy(taxonomy_id, config, registry)
        self.stock_mapper: Optional[CategoryMapper] = None
        if config.stock is not None:
            mapping, identity = resolve_mapping(config.stock.mapping, registry, taxonomy_id)
            self.stock_mapper = CategoryMapper(taxonomy_id, mapping, identity)

    def assign_fund(self, payload: Any) -> Optional[TaxonomyResult]:
        """
        Raw assignments from the configured breakdown array. Returns None when
        the payload has no usable breakdown, so the taxonomy counts as absent.
        """
        config = self.config

        # 1. Extract data
        source_data = get_path(payload, config.source_path)
        if source_data is MISSING or source_data is None:
            logger.warning(f"[{self.taxonomy_id}] No data found at path '{config.source_path}'")
            return None
        if not isinstance(source_data, list):
            logger.warning(f"[{self.taxonomy_id}] Data at '{config.source_path}' is not an array.")
            return None

        # 2. Filter data
        groups = source_data
        if config.filter:
            groups = [item for item in source_data if matches_filter(item, config.filter)]
            if not groups:
                logger.warning(f"[{self.taxonomy_id}] No items match the filter.")
                return None
        if not config.multigroup and len(groups) > 1:
            groups = groups[:1]

        # 3. Map and accumulate
        result = TaxonomyResult(taxonomy_id=self.taxonomy_id)
        for item in flatten_breakdown(groups):
            mapped = self.mapper.map_item(item)
            if mapped is None:
                continue
            path, weight = mapped
            result.add(path, weight)

        logger.debug(f"[{self.taxonomy_id}] {len(result.assignments)} categories, total {format_weight(result.total_weight)}")
        return result

    def assign_stock(self, payload: Any) -> TaxonomyResult:
        """
        A stock sits 100% in one category. ``payload`` is the document the
        configured source_path is read from (primary, view or secondary data).
        """
        result = TaxonomyResult(taxonomy_id=self.taxonomy_id)
        stock = self.config.stock
        if stock is None:
            return result

        if stock.value:
            path = (stock.value,) if isinstance(stock.value, str) else tuple(stock.value)
            result.add(path, FULL_WEIGHT)
            return result

        if not stock.source_path:
            logger.warning(f"[{self.taxonomy_id}] Stock config has neither a value nor a source path.")
            return result

        key = get_path(payload, stock.source_path)
        if key is MISSING or key is None or key == "":
            logger.warning(f"[{self.taxonomy_id}] No stock value found at path '{stock.source_path}'")
            return result

        path = self.stock_mapper.map_key(key)
        if path is not None:
            logger.debug(f"[{self.taxonomy_id}] Stock value '{key}' -> {format_path(path)}")
            result.add(path, FULL_WEIGHT)
        return result
