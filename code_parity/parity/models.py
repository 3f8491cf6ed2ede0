"""
Data models for parity comparison: language-erased projections of
functions and types, dimension scores, gaps and comparison results.

Gaps and results are recomputed by every comparison and never mutated
afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..core.config import DimensionWeights
from ..core.models import Severity


class Dimension(str, Enum):
    STRUCTURAL = "structural"
    TYPE = "type"
    BEHAVIORAL = "behavioral"
    TEST = "test"
    IDIOMATIC = "idiomatic"


class GapKind(str, Enum):
    """Whether the reference item is absent from the target or present but different."""
    MISSING = "missing"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class TypeShape:
    """A type spelling decomposed into a canonical base and modifier flags."""
    base: str
    is_ptr: bool = False
    is_array: bool = False
    is_map: bool = False


@dataclass
class NormalizedParam:
    name: str
    base_type: str
    is_ptr: bool = False
    is_array: bool = False
    is_map: bool = False
    optional: bool = False
    variadic: bool = False


@dataclass
class NormalizedSignature:
    name: str
    parameters: List[NormalizedParam] = field(default_factory=list)
    returns: List[str] = field(default_factory=list)
    is_async: bool = False
    is_public: bool = True
    complexity: int = 1
    original_name: str = ""
    signature: str = ""
    location: str = ""
    receiver: Optional[str] = None


@dataclass
class NormalizedField:
    name: str
    base_type: str
    is_ptr: bool = False
    is_array: bool = False
    is_map: bool = False


@dataclass
class NormalizedType:
    name: str
    kind: str
    fields: List[NormalizedField] = field(default_factory=list)
    methods: List[str] = field(default_factory=list)
    implements: List[str] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)
    is_public: bool = True
    original_name: str = ""
    location: str = ""

    def describe(self) -> str:
        return f"{self.kind} {self.original_name or self.name}"


@dataclass
class DimensionScores:
    structural: float = 0.0
    type: float = 0.0
    behavioral: float = 0.0
    test: float = 0.0
    idiomatic: float = 0.0

    def weighted(self, weights: DimensionWeights) -> float:
        """Weighted sum of the five scores, clamped to [0, 1]."""
        total = (self.structural * weights.structural
                 + self.type * weights.type
                 + self.behavioral * weights.behavioral
                 + self.test * weights.test
                 + self.idiomatic * weights.idiomatic)
        return min(1.0, max(0.0, total))

    def as_dict(self) -> Dict[str, float]:
        return {
            Dimension.STRUCTURAL.value: self.structural,
            Dimension.TYPE.value: self.type,
            Dimension.BEHAVIORAL.value: self.behavioral,
            Dimension.TEST.value: self.test,
            Dimension.IDIOMATIC.value: self.idiomatic,
        }

    @classmethod
    def mean(cls, scores: List["DimensionScores"]) -> "DimensionScores":
        if not scores:
            return cls()
        count = len(scores)
        return cls(
            structural=sum(s.structural for s in scores) / count,
            type=sum(s.type for s in scores) / count,
            behavioral=sum(s.behavioral for s in scores) / count,
            test=sum(s.test for s in scores) / count,
            idiomatic=sum(s.idiomatic for s in scores) / count,
        )


@dataclass
class ItemReference:
    kind: str  # "function" or "type"
    name: str
    signature: str = ""
    location: str = ""
    language: str = ""


@dataclass
class ParityGap:
    dimension: Dimension
    severity: Severity
    kind: GapKind
    source_item: ItemReference
    generated_item: Optional[ItemReference] = None
    discrepancy: str = ""
    suggested_fix: str = ""
    language: str = ""  # target language the gap was found in


@dataclass
class TypeInfo:
    kind: str
    field_count: int = 0
    methods: List[str] = field(default_factory=list)
    implements: List[str] = field(default_factory=list)


@dataclass
class TypeMismatch:
    type_name: str
    source_type: TypeInfo
    generated_type: TypeInfo
    differences: List[str] = field(default_factory=list)


@dataclass
class SignatureMismatch:
    func_name: str
    source_signature: str
    generated_signature: str
    differences: List[str] = field(default_factory=list)


@dataclass
class LanguageResult:
    language: str
    overall_score: float = 0.0
    by_dimension: DimensionScores = field(default_factory=DimensionScores)
    missing_types: List[str] = field(default_factory=list)
    missing_functions: List[str] = field(default_factory=list)
    type_mismatches: List[TypeMismatch] = field(default_factory=list)
    signature_mismatches: List[SignatureMismatch] = field(default_factory=list)


@dataclass
class ParityResult:
    overall_score: float = 0.0
    converged: bool = False
    by_dimension: DimensionScores = field(default_factory=DimensionScores)
    by_language: Dict[str, LanguageResult] = field(default_factory=dict)
    gaps: List[ParityGap] = field(default_factory=list)
    threshold: float = 0.95
    source_language: str = ""
