"""
Embedded taxonomies.

An embedding says "category X of the parent taxonomy is really made of the
child taxonomy's full breakdown". With Stock 80% / Bond 20% as parent and
Large Growth 70% / Small Value 30% as child, embedding the child under "Stock"
gives Stock > Large Growth 56%, Stock > Small Value 24%, Bond 20%.

Known approximation: the provider reports the child breakdown relative to one
asset class. If a fund holds the same child categories under several parent
categories, the cascade multiplies by a single parent slice anyway. This is
deliberate and is not renormalized.
"""

from typing import Dict, Mapping, Set

from classifier.logger import get_logger
from classifier.models import Assignment, EmbeddingConfig, TaxonomyResult
from classifier.weights import format_weight, scale_weight

logger = get_logger(__name__)


def find_category_weight(result: TaxonomyResult, category: str) -> int:
    """Weight of the top-level category ``[category]``, 0 if absent."""
    assignment = result.find((category,))
    return assignment.weight if assignment else 0


def taxonomies_needed_for_embedding(embeddings: Mapping[str, EmbeddingConfig]) -> Set[str]:
    needed = set()
    for config in embeddings.values():
        if config.active:
            needed.add(config.parent_taxonomy)
            needed.add(config.child_taxonomy)
    return needed


def _copy_results(results: Mapping[str, TaxonomyResult]) -> Dict[str, TaxonomyResult]:
    # Assignments are frozen, copying the lists is enough
    return {
        taxonomy_id: TaxonomyResult(taxonomy_id=result.taxonomy_id, assignments=list(result.assignments))
        for taxonomy_id, result in results.items()
    }


def apply_embeddings(
    results: Mapping[str, TaxonomyResult],
    embeddings: Mapping[str, EmbeddingConfig],
) -> Dict[str, TaxonomyResult]:
    """
    Applies every active embedding in declaration order and returns a new
    result map. The caller's map and its assignment lists are left untouched.
    Later embeddings see the output of earlier ones on the same target.
    """
    working = _copy_results(results)

    for config_id, config in embeddings.items():
        if not config.active:
            continue

        logger.info(f"[Embedded] Processing {config_id}...")

        # 1. Get parent, child and target results
        parent = working.get(config.parent_taxonomy)
        child = working.get(config.child_taxonomy)
        target = working.get(config.target_taxonomy)
        if parent is None or child is None or target is None:
            logger.info(f"[Embedded] Skipping {config_id}: missing taxonomy data")
            continue

        # 2. Find parent category weight
        parent_weight = find_category_weight(parent, config.parent_category)
        if parent_weight == 0:
            logger.info(
                f"[Embedded] Skipping {config_id}: parent category '{config.parent_category}' not found or has 0% weight"
            )
            continue
        logger.info(f"[Embedded] Parent '{config.parent_category}' weight: {format_weight(parent_weight)}")

        # 3. Cascade the child breakdown below the parent category
        embedded = [
            Assignment(
                path=(config.parent_category, *assignment.path),
                weight=scale_weight(parent_weight, assignment.weight),
            )
            for assignment in child.assignments
        ]

        # 4. Replace the flat parent category in the target
        updated = TaxonomyResult(taxonomy_id=target.taxonomy_id, assignments=list(target.assignments))
        updated.remove((config.parent_category,))
        for assignment in embedded:
            if assignment.weight > 0:
                updated.add(assignment.path, assignment.weight)
        logger.info(f"[Embedded] Created {len(embedded)} subcategories")

        # 5. Write back
        working[config.target_taxonomy] = updated

    return working
