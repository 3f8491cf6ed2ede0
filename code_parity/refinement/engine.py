"""
Iterative refinement loop.

The reference project is analyzed once per run. Every iteration re-reads
the generated projects, compares them against the reference, records the
score and emits refinement instructions, until the score converges, stops
improving, or the iteration budget is spent.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..core.aggregator import SymbolAggregator
from ..core.config import CodeParityConfig
from ..core.errors import AnalysisFailedError
from ..core.extractors import detect_language, resolve_language
from ..core.models import Analysis, Language, Severity
from ..core.utils import to_serializable
from ..parity.comparator import Comparator
from ..parity.models import ParityGap
from .convergence import ConvergenceTracker
from .instructions import determine_phase, generate_instructions
from .models import Iteration, LoopInput, LoopResult, LoopStatus, RefinementInstructions, Strategy

logger = logging.getLogger(__name__)

# (instructions, 1-based iteration number) -> None; expected to rewrite the generated projects
RegenerateCallback = Callable[[RefinementInstructions, int], None]

MAX_SUMMARY_GAPS = 10
_SEVERITY_ORDER = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


@dataclass
class AnalysisCache:
    """Analyses owned by a single loop run. The reference is never re-parsed mid-run."""
    source: Optional[Analysis] = None
    generated: Dict[str, Analysis] = field(default_factory=dict)

    def clear_generated(self) -> None:
        self.generated = {}


class RefinementEngine:
    """
    Drives the analyze / compare / instruct loop.

    Attributes:
        config: Full configuration; the 'loop' section controls termination
            and the 'comparison' section controls scoring.
        aggregator: Builds an Analysis for a project directory.
        comparator: Scores generated projects against the reference.
    """

    def __init__(self, config: Optional[CodeParityConfig] = None,
                 aggregator: Optional[SymbolAggregator] = None):
        self.config = config or CodeParityConfig()
        self.aggregator = aggregator or SymbolAggregator(ignored_patterns=self.config.ignored_patterns,
                                                         include_tests=self.config.include_tests)
        self.comparator = Comparator(self.config.comparison)

    def run(self, loop_input: LoopInput, cancel_event: Optional[Any] = None,
            regenerate: Optional[RegenerateCallback] = None) -> LoopResult:
        """
        Runs the refinement loop to a terminal state.

        Args:
            loop_input: Reference location, target languages and output layout.
            cancel_event: Anything with is_set(), e.g. threading.Event. Checked at the
                top of each iteration.
            regenerate: Called with the instructions after each non-terminal iteration.

        Returns:
            LoopResult in one of the converged, stalled, exhausted or cancelled states.

        Raises:
            UnsupportedLanguageError: A requested language has no extractor.
            LanguageDetectionError: The source language was not given and cannot be detected.
            AnalysisFailedError: The reference directory cannot be read.
        """
        loop_config = self.config.loop
        strategy = Strategy(loop_config.strategy)

        if loop_input.source_language:
            source_language = resolve_language(loop_input.source_language)
        else:
            source_language = detect_language(loop_input.source_path)
        targets = [resolve_language(lang) for lang in loop_input.target_languages]

        cache = AnalysisCache()
        cache.source = self.aggregator.analyze(loop_input.source_path, source_language)
        logger.info(f"Reference {cache.source.name} ({source_language.value}): "
                    f"{len(cache.source.types)} types, {len(cache.source.functions)} functions")

        tracker = ConvergenceTracker(loop_config)
        result = LoopResult(status=LoopStatus.EXHAUSTED, final_spec=loop_input.spec_path)
        gaps: List[ParityGap] = []

        for index in range(loop_config.max_iterations):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Refinement cancelled before iteration {index + 1}")
                result.status = LoopStatus.CANCELLED
                break

            generated: Dict[str, Analysis] = {}
            for language in targets:
                path = loop_input.project_path(language.value)
                result.generated_projects[language.value] = path
                generated[language.value] = self._analyze_generated(cache, path, language)

            parity = self.comparator.compare(cache.source, generated)
            gaps = parity.gaps
            phase = determine_phase(strategy, index, parity)
            instructions = generate_instructions(parity, phase)

            previous = result.iteration_history[-1].parity_score if result.iteration_history else None
            iteration = Iteration(
                number=index + 1,
                parity_score=parity.overall_score,
                phase=phase,
                score_improvement=parity.overall_score - previous if previous is not None else 0.0,
                gap_count=len(parity.gaps),
                refinements_applied=instructions.change_count,
                parity_result=parity,
                instructions=instructions,
            )
            result.iteration_history.append(iteration)
            result.last_instructions = instructions
            tracker.add_score(parity.overall_score)
            logger.info(f"Iteration {iteration.number}: score {parity.overall_score:.3f} "
                        f"({iteration.score_improvement:+.3f}), {len(parity.gaps)} gaps, phase {phase.value}")

            if parity.overall_score >= loop_config.threshold:
                result.status = LoopStatus.CONVERGED
                gaps = []
                break

            metrics = tracker.metrics()
            if metrics.is_stuck:
                result.status = LoopStatus.STALLED
                result.stuck_reason = metrics.stuck_reason
                break

            cache.clear_generated()
            if regenerate is not None and index + 1 < loop_config.max_iterations:
                regenerate(instructions, iteration.number)

        result.iterations_used = len(result.iteration_history)
        if result.iteration_history:
            result.final_score = result.iteration_history[-1].parity_score
        result.best_score = tracker.best_score
        result.unresolved_gaps = list(gaps)
        result.refinement_summary = generate_summary(result)
        logger.info(f"Refinement finished: {result.status.value} after {result.iterations_used} iteration(s)")
        return result

    def _analyze_generated(self, cache: AnalysisCache, path: str, language: Language) -> Analysis:
        if language.value in cache.generated:
            return cache.generated[language.value]
        if not Path(path).is_dir():
            logger.warning(f"Generated {language.value} project not found at {path}, treating as empty")
            analysis = Analysis(language=language, name=language.value, root=path)
        else:
            try:
                analysis = self.aggregator.analyze(path, language)
            except AnalysisFailedError as e:
                logger.warning(f"{e}, treating generated {language.value} project as empty")
                analysis = Analysis(language=language, name=language.value, root=path)
        cache.generated[language.value] = analysis
        return analysis


def generate_summary(result: LoopResult) -> str:
    """Human-readable outcome: terminal state, score trajectory and the most severe open gaps."""
    lines: List[str] = []
    count = result.iterations_used
    final = result.final_score * 100
    if result.status == LoopStatus.CONVERGED:
        lines.append(f"✓ Converged after {count} iteration(s) with {final:.1f}% parity.")
    elif result.status == LoopStatus.STALLED:
        lines.append(f"✗ Stalled after {count} iteration(s): {result.stuck_reason}. "
                     f"Final score: {final:.1f}% (best {result.best_score * 100:.1f}%)")
    elif result.status == LoopStatus.CANCELLED:
        lines.append(f"✗ Cancelled after {count} iteration(s). Final score: {final:.1f}%")
    else:
        lines.append(f"✗ Did not converge after {count} iteration(s). Final score: {final:.1f}%")

    if len(result.iteration_history) > 1:
        progression = " → ".join(f"{it.parity_score * 100:.1f}%" for it in result.iteration_history)
        lines.extend(["", f"Score progression: {progression}"])

    if result.unresolved_gaps:
        ordered = sorted(result.unresolved_gaps, key=lambda g: _SEVERITY_ORDER.get(g.severity, 3))
        lines.extend(["", f"{len(ordered)} unresolved gap(s):"])
        for gap in ordered[:MAX_SUMMARY_GAPS]:
            lines.append(f"  - [{gap.severity.value}] {gap.source_item.name}: {gap.discrepancy}")
        if len(ordered) > MAX_SUMMARY_GAPS:
            lines.append(f"  ... and {len(ordered) - MAX_SUMMARY_GAPS} more")

    return "\n".join(lines) + "\n"


def loop_result_to_dict(result: LoopResult, include_parity: bool = False) -> Dict[str, Any]:
    """JSON-safe view of a LoopResult. Per-iteration parity results are omitted unless requested."""
    data = to_serializable(result)
    data["converged"] = result.converged
    if not include_parity:
        for iteration in data["iteration_history"]:
            iteration.pop("parity_result", None)
            iteration.pop("instructions", None)
    return data
