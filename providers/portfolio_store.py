from abc import ABC, abstractmethod
import json
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence

from classifier.logger import get_logger
from classifier.models import Assignment, Security
from classifier.notes import parse_note

logger = get_logger(__name__)

DEFAULT_COLOR = "#89afee"


class DocumentStore(ABC):
    """
    An abstract base class defining the interface the classifier writes its
    results through. Taxonomies are addressed by display name.
    """
    @abstractmethod
    def get_securities(self) -> List[Security]:
        pass

    @abstractmethod
    def get_or_create_category_node(self, taxonomy_name: str, path: Sequence[str]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def set_assignment(self, taxonomy_name: str, node: Dict[str, Any], security_id: str, weight: int):
        pass

    @abstractmethod
    def clear_assignments(self, taxonomy_name: str, security_id: str):
        pass

    def write_assignment(self, taxonomy_name: str, path: Sequence[str], security_id: str, weight: int):
        node = self.get_or_create_category_node(taxonomy_name, path)
        self.set_assignment(taxonomy_name, node, security_id, weight)

    def update_security_assignments(self, taxonomy_name: str, security_id: str, assignments: Iterable[Assignment]):
        """Replaces every assignment of the security in the taxonomy."""
        self.clear_assignments(taxonomy_name, security_id)
        for assignment in assignments:
            self.write_assignment(taxonomy_name, assignment.path, security_id, assignment.weight)


def _new_node(name: str) -> Dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "name": name,
        "color": DEFAULT_COLOR,
        "children": [],
        "assignments": [],
    }


def _is_true(value: Any) -> bool:
    # Exported documents carry booleans as strings
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class PortfolioStore(DocumentStore):
    """
    Concrete DocumentStore keeping the portfolio as a JSON document:

        {"securities": [{"uuid", "name", "isin", "note", "isRetired"}],
         "taxonomies": [{"id", "name", "root": {"id", "name", "children", "assignments"}}]}

    Category nodes nest through "children"; an assignment is
    {"security": <uuid>, "weight": <basis points>}.
    """
    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self.document = document if document is not None else {}
        self.document.setdefault("securities", [])
        self.document.setdefault("taxonomies", [])

    @classmethod
    def load(cls, file_path: str) -> "PortfolioStore":
        logger.info(f"Loading portfolio file: {file_path}")
        with open(file_path, 'r', encoding='utf-8') as f:
            return cls(json.load(f))

    def save(self, file_path: str):
        logger.info(f"Saving portfolio file to: {file_path}")
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(self.document, f, indent=2, ensure_ascii=False)

    def get_securities(self) -> List[Security]:
        securities = []
        for raw in self.document["securities"]:
            ignore, isin_override = parse_note(raw.get("note"))
            securities.append(Security(
                uuid=raw["uuid"],
                name=raw.get("name", ""),
                isin=raw.get("isin") or None,
                note=raw.get("note"),
                is_retired=_is_true(raw.get("isRetired", False)),
                isin_override=isin_override,
                ignore=ignore,
            ))
        return securities

    def has_security(self, security_id: str) -> bool:
        return any(s.get("uuid") == security_id for s in self.document["securities"])

    def get_taxonomy(self, name: str) -> Dict[str, Any]:
        """Finds or creates a taxonomy by name."""
        for taxonomy in self.document["taxonomies"]:
            if taxonomy.get("name") == name:
                return taxonomy
        root = _new_node(name)
        taxonomy = {"id": str(uuid.uuid4()), "name": name, "root": root}
        self.document["taxonomies"].append(taxonomy)
        logger.info(f"Created taxonomy '{name}'")
        return taxonomy

    def get_or_create_category_node(self, taxonomy_name: str, path: Sequence[str]) -> Dict[str, Any]:
        current = self.get_taxonomy(taxonomy_name)["root"]
        for segment in path:
            children = current.setdefault("children", [])
            next_node = next((c for c in children if c.get("name") == segment), None)
            if next_node is None:
                next_node = _new_node(segment)
                children.append(next_node)
            current = next_node
        return current

    def set_assignment(self, taxonomy_name: str, node: Dict[str, Any], security_id: str, weight: int):
        if not self.has_security(security_id):
            logger.error(f"Security UUID {security_id} not found in portfolio, '{taxonomy_name}' left unchanged.")
            return
        assignments = node.setdefault("assignments", [])
        new_assignment = {"security": security_id, "weight": int(weight)}
        for i, existing in enumerate(assignments):
            if existing.get("security") == security_id:
                assignments[i] = new_assignment
                return
        assignments.append(new_assignment)

    def clear_assignments(self, taxonomy_name: str, security_id: str):
        def remove_recursive(node):
            node["assignments"] = [a for a in node.get("assignments", []) if a.get("security") != security_id]
            for child in node.get("children", []):
                remove_recursive(child)

        remove_recursive(self.get_taxonomy(taxonomy_name)["root"])
