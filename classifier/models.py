from typing import Any, Dict, FrozenSet, List, Literal, Optional, Sequence, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

from classifier.weights import path_equals

# This file holds all the shared Pydantic data structures.

CategoryPath = Tuple[str, ...]
MappingTarget = Optional[Union[str, List[str]]]
MappingTable = Dict[str, MappingTarget]


# --- Classification results ---

class Assignment(BaseModel):
    """A security attached to one category node, weight in basis points (10000 = 100%)."""
    model_config = ConfigDict(frozen=True)

    path: CategoryPath = Field(min_length=1, description="Category names from the taxonomy root down to the leaf.")
    weight: int = Field(description="Weight in basis points.")


class TaxonomyResult(BaseModel):
    """All assignments of one security in one taxonomy. Paths are unique."""
    taxonomy_id: str
    assignments: List[Assignment] = Field(default_factory=list)

    def find(self, path: Sequence[str]) -> Optional[Assignment]:
        return next((a for a in self.assignments if path_equals(a.path, path)), None)

    def add(self, path: Sequence[str], weight: int) -> Assignment:
        """Adds a weight to the path, accumulating onto an existing identical path."""
        path = tuple(path)
        for i, existing in enumerate(self.assignments):
            if path_equals(existing.path, path):
                merged = Assignment(path=path, weight=existing.weight + weight)
                self.assignments[i] = merged
                return merged
        assignment = Assignment(path=path, weight=weight)
        self.assignments.append(assignment)
        return assignment

    def remove(self, path: Sequence[str]) -> None:
        self.assignments = [a for a in self.assignments if not path_equals(a.path, path)]

    @property
    def total_weight(self) -> int:
        return sum(a.weight for a in self.assignments)


# --- Configuration (read-only, loaded once per run) ---

class StockConfig(BaseModel):
    """How a taxonomy classifies an individual stock, which has no breakdown array."""
    model_config = ConfigDict(frozen=True)

    value: Optional[Union[str, List[str]]] = Field(None, description="Static category path, e.g. always 'Stocks'.")
    source_path: Optional[str] = Field(None, description="Field holding the category key.")
    view_id: Optional[str] = Field(None, description="Read source_path from this view instead of the primary payload.")
    sal_endpoint: Optional[Literal["stock/equityOverview", "stock/companyProfile"]] = Field(
        None, description="Read source_path from this secondary endpoint, keyed by the provider secid."
    )
    mapping: Optional[Union[str, MappingTable]] = None


class TaxonomyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: bool = False
    name: str = ""
    view_id: Optional[str] = Field(None, description="Supplementary view merged into the payload before extraction.")

    source_path: str = ""
    filter: Optional[Dict[str, Any]] = None
    multigroup: bool = False
    key_field: str = "Type"
    value_field: str = "Value"
    mapping: Optional[Union[str, MappingTable]] = None
    fix_total: bool = True

    stock: Optional[StockConfig] = None

    def display_name(self, taxonomy_id: str) -> str:
        return self.name or taxonomy_id


class EmbeddingConfig(BaseModel):
    """Nest child_taxonomy under parent_category of parent_taxonomy, write into target_taxonomy."""
    model_config = ConfigDict(frozen=True)

    active: bool = False
    parent_taxonomy: str
    parent_category: str
    child_taxonomy: str
    target_taxonomy: str


class ClassifierConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    taxonomies: Dict[str, TaxonomyConfig] = Field(default_factory=dict)
    mappings: Dict[str, MappingTable] = Field(default_factory=dict)
    embedded_taxonomies: Dict[str, EmbeddingConfig] = Field(default_factory=dict)


# --- Securities ---

class IgnoreDirective(BaseModel):
    model_config = ConfigDict(frozen=True)

    ignore_all: bool = False
    taxonomies: FrozenSet[str] = frozenset()

    def skips(self, taxonomy_id: str) -> bool:
        return self.ignore_all or taxonomy_id in self.taxonomies


class Security(BaseModel):
    uuid: str
    name: str = ""
    isin: Optional[str] = None
    note: Optional[str] = None
    is_retired: bool = False
    isin_override: Optional[str] = None
    ignore: IgnoreDirective = Field(default_factory=IgnoreDirective)

    @property
    def lookup_id(self) -> Optional[str]:
        return self.isin_override or self.isin


class SecurityData(BaseModel):
    """What the data provider knows about a security."""
    type: Literal["Fund", "Stock", "Unknown"] = "Unknown"
    payload: Optional[Dict[str, Any]] = None
    secondary_id: Optional[str] = None
