"""
Records exchanged by the refinement loop: its input, per-iteration history,
refinement instructions and the final result.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..parity.models import ParityGap, ParityResult


class Strategy(str, Enum):
    SPEC_FIRST = "spec-first"
    CODE_FIRST = "code-first"
    BALANCED = "balanced"
    ADAPTIVE = "adaptive"


class Phase(str, Enum):
    """What an iteration's instructions are aimed at."""
    SPEC = "spec"
    CODE = "code"
    BOTH = "both"


class LoopStatus(str, Enum):
    CONVERGED = "converged"
    STALLED = "stalled"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class LoopInput:
    """
    Where the reference lives and where each generated project is expected.

    The generated project for language L is output_dir/L unless project_paths
    names another directory for L.
    """
    source_path: str
    target_languages: List[str]
    output_dir: str = ""
    source_language: Optional[str] = None
    spec_path: Optional[str] = None
    project_paths: Dict[str, str] = field(default_factory=dict)

    def project_path(self, language: str) -> str:
        if language in self.project_paths:
            return self.project_paths[language]
        return os.path.join(self.output_dir, language)


@dataclass
class SpecChange:
    section: str  # Types, Functions, Architecture
    action: str  # add, modify
    element_name: str
    description: str = ""
    example: str = ""


@dataclass
class CodeChange:
    action: str
    element_type: str  # function, type
    element_name: str
    description: str = ""
    source_ref: str = ""
    file: str = ""


@dataclass
class RefinementInstructions:
    summary: str
    priority: Phase
    spec_refinements: List[SpecChange] = field(default_factory=list)
    code_refinements: Dict[str, List[CodeChange]] = field(default_factory=dict)

    @property
    def code_change_count(self) -> int:
        return sum(len(changes) for changes in self.code_refinements.values())

    @property
    def change_count(self) -> int:
        return len(self.spec_refinements) + self.code_change_count


@dataclass
class Iteration:
    number: int  # 1-based
    parity_score: float
    phase: Phase
    score_improvement: float = 0.0
    gap_count: int = 0
    refinements_applied: int = 0
    parity_result: Optional[ParityResult] = None
    instructions: Optional[RefinementInstructions] = None


@dataclass
class ConvergenceMetrics:
    scores: List[float] = field(default_factory=list)
    is_stuck: bool = False
    stuck_reason: str = ""
    trend: float = 0.0
    estimated_iterations_to_converge: int = 0


@dataclass
class LoopResult:
    status: LoopStatus
    final_score: float = 0.0
    best_score: float = 0.0
    iterations_used: int = 0
    iteration_history: List[Iteration] = field(default_factory=list)
    unresolved_gaps: List[ParityGap] = field(default_factory=list)
    stuck_reason: str = ""
    refinement_summary: str = ""
    generated_projects: Dict[str, str] = field(default_factory=dict)
    final_spec: Optional[str] = None
    last_instructions: Optional[RefinementInstructions] = None

    @property
    def converged(self) -> bool:
        return self.status == LoopStatus.CONVERGED

    @property
    def stalled(self) -> bool:
        return self.status == LoopStatus.STALLED
