import time
from typing import Any, Dict, Iterable, List, Optional

from classifier.assigner import TaxonomyAssigner
from classifier.config import settings
from classifier.embedding import apply_embeddings, taxonomies_needed_for_embedding
from classifier.logger import get_logger
from classifier.models import Assignment, ClassifierConfig, Security, SecurityData, StockConfig, TaxonomyResult
from classifier.normalizer import normalize_breakdown
from providers.morningstar import SecurityDataSource
from providers.portfolio_store import DocumentStore

logger = get_logger(__name__)


class Classifier:
    """
    Classifies securities one at a time: builds the raw assignments of every
    taxonomy that is active or feeds an active embedding, applies the
    embeddings, then normalizes and stores the active taxonomies.
    """
    def __init__(self, config: ClassifierConfig, api: SecurityDataSource, store: DocumentStore):
        self.config = config
        self.api = api
        self.store = store
        self.assigners = {
            taxonomy_id: TaxonomyAssigner(taxonomy_id, taxonomy_config, config.mappings)
            for taxonomy_id, taxonomy_config in config.taxonomies.items()
        }
        self.needed_for_embedding = taxonomies_needed_for_embedding(config.embedded_taxonomies)

    def taxonomies_to_process(self, security: Security) -> List[str]:
        taxonomy_ids = []
        for taxonomy_id, taxonomy_config in self.config.taxonomies.items():
            if not taxonomy_config.active and taxonomy_id not in self.needed_for_embedding:
                continue
            # Ignored through the security's note
            if security.ignore.skips(taxonomy_id):
                continue
            taxonomy_ids.append(taxonomy_id)
        return taxonomy_ids

    def classify_portfolio(self, securities: Iterable[Security], delay_seconds: Optional[float] = None) -> int:
        """
        Classifies every security in order. A failure on one security is
        logged and the batch moves on. Returns the number of securities processed.
        """
        delay = settings.REQUEST_DELAY_SECONDS if delay_seconds is None else delay_seconds
        processed = 0
        for security in securities:
            if security.is_retired:
                continue
            if not security.lookup_id:
                logger.info(f"Skipping {security.name} (no ISIN).")
                continue

            logger.info(f"Processing {security.name} ({security.lookup_id})...")
            try:
                self.classify_security(security)
            except Exception as e:
                logger.error(f"Error processing {security.uuid} ({security.lookup_id}): {e}", exc_info=True)

            processed += 1
            if delay > 0:
                time.sleep(delay)
        return processed

    def classify_security(self, security: Security) -> Dict[str, List[Assignment]]:
        """Classifies one security and returns the assignments written per taxonomy id."""
        lookup_id = security.lookup_id
        if not lookup_id or security.ignore.ignore_all:
            return {}

        security_data = self.api.fetch_primary(lookup_id)
        if security_data is None:
            logger.info(f"No data found for {security.name}.")
            return {}

        logger.info(f"Data retrieved for {security.name}. Type: {security_data.type}. Processing taxonomies...")

        if security_data.type == "Stock":
            results = self.classify_stock(security, security_data)
        elif security_data.type == "Fund":
            results = self.classify_fund(security, security_data.payload or {})
        else:
            logger.error(f"Unknown security type for {security.name}: {security_data.type}! Skipping...")
            return {}

        return self.write_results(security, apply_embeddings(results, self.config.embedded_taxonomies))

    def classify_fund(self, security: Security, payload: Dict[str, Any]) -> Dict[str, TaxonomyResult]:
        results = {}
        views: Dict[str, Optional[Dict[str, Any]]] = {}

        for taxonomy_id in self.taxonomies_to_process(security):
            taxonomy_config = self.config.taxonomies[taxonomy_id]
            data = payload

            # Merge the supplementary view, fetched once per security
            if taxonomy_config.view_id:
                if taxonomy_config.view_id not in views:
                    views[taxonomy_config.view_id] = self.api.fetch_view(security.lookup_id, taxonomy_config.view_id)
                view = views[taxonomy_config.view_id]
                if view:
                    data = {**payload, **view}

            # No breakdown: leave the taxonomy out so embeddings using it are skipped
            result = self.assigners[taxonomy_id].assign_fund(data)
            if result is not None:
                results[taxonomy_id] = result
        return results

    def classify_stock(self, security: Security, security_data: SecurityData) -> Dict[str, TaxonomyResult]:
        results = {}
        if not security_data.secondary_id and not security_data.payload:
            logger.warning(f"Cannot classify stock {security.name} without data.")
            return results

        fetched: Dict[tuple, Optional[Dict[str, Any]]] = {}
        for taxonomy_id in self.taxonomies_to_process(security):
            stock_config = self.config.taxonomies[taxonomy_id].stock
            if stock_config is None:
                continue

            payload = None
            if not stock_config.value:
                payload = self._stock_payload(security, security_data, taxonomy_id, stock_config, fetched)
                if payload is None:
                    continue

            result = self.assigners[taxonomy_id].assign_stock(payload)
            if result.assignments:
                results[taxonomy_id] = result
        return results

    def _stock_payload(
        self,
        security: Security,
        security_data: SecurityData,
        taxonomy_id: str,
        stock_config: StockConfig,
        fetched: Dict[tuple, Optional[Dict[str, Any]]],
    ) -> Optional[Dict[str, Any]]:
        """Document the stock's source_path is read from, or None to skip the taxonomy."""
        if stock_config.sal_endpoint:
            if not security_data.secondary_id:
                logger.warning(f"[{taxonomy_id}] Cannot fetch SAL data without secid.")
                return None
            key = ("secondary", stock_config.sal_endpoint)
            if key not in fetched:
                fetched[key] = self.api.fetch_secondary(security_data.secondary_id, stock_config.sal_endpoint)
            if fetched[key] is None:
                logger.warning(f"[{taxonomy_id}] No SAL data retrieved.")
            return fetched[key]

        if stock_config.view_id:
            key = ("view", stock_config.view_id)
            if key not in fetched:
                fetched[key] = self.api.fetch_view(security.lookup_id, stock_config.view_id)
            if fetched[key] is None:
                logger.warning(f"[{taxonomy_id}] No data retrieved for view '{stock_config.view_id}'.")
            return fetched[key]

        if security_data.payload is None:
            logger.warning(f"[{taxonomy_id}] No stock data available.")
        return security_data.payload

    def write_results(self, security: Security, results: Dict[str, TaxonomyResult]) -> Dict[str, List[Assignment]]:
        """
        Normalizes every active taxonomy and replaces the security's assignments
        in the store. An empty result leaves the existing assignments in place.
        """
        written = {}
        for taxonomy_id, result in results.items():
            taxonomy_config = self.config.taxonomies.get(taxonomy_id)
            if taxonomy_config is None or not taxonomy_config.active:
                continue

            assignments = normalize_breakdown(result.assignments, taxonomy_id, taxonomy_config.fix_total)
            if not assignments:
                logger.info(f"[{taxonomy_id}] No assignments for {security.name}, keeping existing ones.")
                continue

            self.store.update_security_assignments(taxonomy_config.display_name(taxonomy_id), security.uuid, assignments)
            written[taxonomy_id] = assignments
        return written
