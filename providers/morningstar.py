from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from classifier.config import Settings, settings
from classifier.logger import get_logger
from classifier.models import SecurityData

logger = get_logger(__name__)

SAL_ENDPOINTS = ("stock/equityOverview", "stock/companyProfile")


class SecurityDataSource(ABC):
    """
    Abstract base class for a financial-data provider. Every method returns
    None when the provider has nothing for the requested id.
    """
    @abstractmethod
    def fetch_primary(self, security_id: str) -> Optional[SecurityData]:
        """Security type, default view payload and provider secondary id."""
        pass

    @abstractmethod
    def fetch_view(self, security_id: str, view_id: str) -> Optional[Dict[str, Any]]:
        """Payload of a supplementary view of the same security."""
        pass

    @abstractmethod
    def fetch_secondary(self, secondary_id: str, endpoint_kind: str) -> Optional[Dict[str, Any]]:
        """Payload of a secondary endpoint keyed by the provider's own id."""
        pass


class MorningstarAPI(SecurityDataSource):
    """Reads fund and stock data from the Morningstar ecint and SAL APIs."""
    def __init__(self, config: Settings = settings, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"accept": "*/*"}
        if self.config.MORNINGSTAR_TOKEN:
            headers["Authorization"] = f"Bearer {self.config.MORNINGSTAR_TOKEN}"
        return headers

    def _get_json(self, url: str, params: Dict[str, str], headers: Optional[Dict[str, str]] = None) -> Any:
        response = self.session.get(
            url,
            params=params,
            headers=headers if headers is not None else self._headers(),
            timeout=self.config.REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json()

    def _get_security_entry(self, security_id: str, view_id: Optional[str] = None, id_type: str = "ISIN"):
        url = f"{self.config.MORNINGSTAR_BASE_URL}/securities/{security_id}"
        params = {
            "idtype": id_type,
            "viewid": view_id or self.config.MORNINGSTAR_VIEW_ID,
            "currencyId": self.config.CURRENCY_ID,
            "responseViewFormat": "json",
            "languageId": self.config.LANGUAGE_ID,
        }
        data = self._get_json(url, params)
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0]
        return None

    def fetch_primary(self, security_id: str) -> Optional[SecurityData]:
        try:
            entry = self._get_security_entry(security_id)
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 401:
                # Stocks not covered by the securities endpoint answer 401
                logger.info(f"ecint API refused {security_id}, trying website search fallback...")
                return self.find_secid_from_website(security_id)
            logger.warning(f"Could not fetch data for {security_id} from ecint API. Error: {e}")
            return None
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Could not fetch data for {security_id} from ecint API. Error: {e}")
            return None

        if entry is None:
            logger.info(f"ecint API returned empty for {security_id}, trying website search fallback...")
            return self.find_secid_from_website(security_id)

        security_type = entry.get("Type")
        return SecurityData(
            type=security_type if security_type in ("Fund", "Stock") else "Unknown",
            payload=entry,
            # SAL usually accepts the ISIN when the SecId is missing
            secondary_id=entry.get("Id") or security_id,
        )

    def fetch_view(self, security_id: str, view_id: str) -> Optional[Dict[str, Any]]:
        try:
            entry = self._get_security_entry(security_id, view_id)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Could not fetch view '{view_id}' for {security_id}. Error: {e}")
            return None
        if entry is None:
            logger.warning(f"View '{view_id}' for {security_id} is empty.")
        return entry

    def fetch_secondary(self, secondary_id: str, endpoint_kind: str) -> Optional[Dict[str, Any]]:
        if endpoint_kind not in SAL_ENDPOINTS:
            logger.warning(f"Unknown SAL endpoint '{endpoint_kind}'.")
            return None

        url = f"{self.config.MORNINGSTAR_SAL_BASE_URL}/{endpoint_kind}"
        params = {"languageId": self.config.LANGUAGE_ID, "locale": "en"}
        if endpoint_kind == "stock/equityOverview":
            url += f"/{secondary_id}/data"
            params["version"] = self.config.SAL_VERSION
        else:
            url += f"/{secondary_id}"

        try:
            data = self._get_json(url, params)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Could not fetch SAL data for secid {secondary_id} from endpoint {endpoint_kind}. Error: {e}")
            return None
        return data if isinstance(data, dict) else None

    def find_secid_from_website(self, isin: str) -> Optional[SecurityData]:
        """Finds the secid of a stock through the Morningstar website search."""
        url = self.config.MORNINGSTAR_SEARCH_URL.format(domain=self.config.MORNINGSTAR_DOMAIN)
        params = {"query": f'((isin ~= "{isin}"))'}
        try:
            data = self._get_json(url, params, headers={"user-agent": "Mozilla/5.0"})
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Fallback search for {isin} failed. Error: {e}")
            return None

        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            return None
        first = results[0]
        if first.get("universe") != "EQ":
            return None
        secid = first.get("securityID")
        logger.info(f"Found secid '{secid}' for stock {isin} via fallback.")
        return SecurityData(type="Stock", payload=None, secondary_id=secid)
