"""
Semantic parity comparison between a reference Analysis and one or more
generated Analyses.

Each target language is scored independently on five dimensions and the
language scores are averaged into the overall parity score.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..core.config import ComparisonConfig
from ..core.models import Analysis, Severity
from .models import (
    Dimension, DimensionScores, GapKind, ItemReference, LanguageResult, NormalizedSignature,
    NormalizedType, ParityGap, ParityResult, SignatureMismatch, TypeInfo, TypeMismatch,
)
from .normalizer import normalize_functions, normalize_types, signature_match, type_match

logger = logging.getLogger(__name__)

# (reference, target) -> score in [0, 1]
DimensionScorer = Callable[[Analysis, Analysis], float]


def placeholder_scorer(reference: Analysis, target: Analysis) -> float:
    """Default for the test and idiomatic dimensions, which carry no real signal yet."""
    return 1.0


def compare_count(source: int, generated: int) -> float:
    """Symmetric count similarity: min/max, 1.0 when both are zero."""
    if source == 0 and generated == 0:
        return 1.0
    if source == 0 or generated == 0:
        return 0.0
    ratio = generated / source
    if ratio > 1.0:
        ratio = 1.0 / ratio
    return ratio


def _match_score(total: int, matched: int, mismatched: int) -> float:
    if total == 0:
        return 1.0
    score = matched / total - 0.5 * (mismatched / total)
    return max(0.0, score)


def format_signature(sig: NormalizedSignature) -> str:
    params = ", ".join(f"{p.name}: {p.base_type}" for p in sig.parameters)
    return f"{sig.name}({params}) -> {', '.join(sig.returns)}"


def _index_by_name(items):
    # First occurrence wins on normalized-name collisions
    index = {}
    for item in items:
        index.setdefault(item.name, item)
    return index


def _type_info(t: NormalizedType) -> TypeInfo:
    return TypeInfo(kind=t.kind, field_count=len(t.fields), methods=list(t.methods),
                    implements=list(t.implements))


class Comparator:
    """
    Scores generated implementations against a reference implementation.

    Attributes:
        config: Weights, threshold, strictness and private-symbol handling.
        test_scorer: Scorer for the test dimension.
        idiomatic_scorer: Scorer for the idiomatic dimension.
    """

    def __init__(self, config: Optional[ComparisonConfig] = None,
                 test_scorer: DimensionScorer = placeholder_scorer,
                 idiomatic_scorer: DimensionScorer = placeholder_scorer):
        self.config = config or ComparisonConfig()
        self.test_scorer = test_scorer
        self.idiomatic_scorer = idiomatic_scorer

    def compare(self, reference: Analysis, targets: Dict[str, Analysis]) -> ParityResult:
        """
        Compare the reference against every target language.

        Args:
            reference: Analysis of the reference implementation.
            targets: Mapping of target language name to its generated Analysis.

        Returns:
            ParityResult with per-language results, dimension means and gaps.
        """
        result = ParityResult(threshold=self.config.threshold,
                              source_language=reference.language.value)

        ref_funcs = normalize_functions(reference.functions, self.config.ignore_private)
        ref_types = normalize_types(reference.types, self.config.ignore_private)

        for language in sorted(targets):
            target = targets[language]
            lang_result, gaps = self._compare_language(reference, target, language, ref_funcs, ref_types)
            result.by_language[language] = lang_result
            result.gaps.extend(gaps)

        if result.by_language:
            scores = [lr.overall_score for lr in result.by_language.values()]
            result.overall_score = sum(scores) / len(scores)
            result.converged = result.overall_score >= self.config.threshold
        result.by_dimension = DimensionScores.mean([lr.by_dimension for lr in result.by_language.values()])

        logger.info(f"Parity {result.overall_score:.3f} across {len(result.by_language)} language(s), "
                    f"{len(result.gaps)} gap(s)")
        return result

    def _compare_language(self, reference: Analysis, target: Analysis, language: str,
                          ref_funcs: List[NormalizedSignature],
                          ref_types: List[NormalizedType]) -> Tuple[LanguageResult, List[ParityGap]]:
        gen_funcs = normalize_functions(target.functions, self.config.ignore_private)
        gen_types = normalize_types(target.types, self.config.ignore_private)

        lang_result = LanguageResult(language=language)
        dims = lang_result.by_dimension
        dims.structural = (compare_count(len(ref_funcs), len(gen_funcs))
                           + compare_count(len(ref_types), len(gen_types))) / 2.0

        type_gaps = self._compare_types(ref_types, gen_types, lang_result, reference, language)
        func_gaps = self._compare_functions(ref_funcs, gen_funcs, lang_result, reference, language)

        dims.type = _match_score(len(ref_types), len(ref_types) - len(lang_result.missing_types),
                                 len(lang_result.type_mismatches))
        dims.behavioral = _match_score(len(ref_funcs), len(ref_funcs) - len(lang_result.missing_functions),
                                       len(lang_result.signature_mismatches))
        dims.test = self.test_scorer(reference, target)
        dims.idiomatic = self.idiomatic_scorer(reference, target)

        lang_result.overall_score = dims.weighted(self.config.weights)
        return lang_result, func_gaps + type_gaps

    def _compare_types(self, ref_types: List[NormalizedType], gen_types: List[NormalizedType],
                       lang_result: LanguageResult, reference: Analysis, language: str) -> List[ParityGap]:
        gaps: List[ParityGap] = []
        gen_index = _index_by_name(gen_types)
        for ref_type in ref_types:
            source_item = ItemReference(kind="type", name=ref_type.original_name, signature=ref_type.describe(),
                                        location=ref_type.location, language=reference.language.value)
            gen_type = gen_index.get(ref_type.name)
            if gen_type is None:
                lang_result.missing_types.append(ref_type.name)
                gaps.append(ParityGap(
                    dimension=Dimension.TYPE,
                    severity=Severity.HIGH,
                    kind=GapKind.MISSING,
                    source_item=source_item,
                    discrepancy="type missing in generated code",
                    suggested_fix=f"Implement type '{ref_type.original_name}' in {language}",
                    language=language,
                ))
                continue

            is_match, diffs = type_match(ref_type, gen_type, self.config.strict)
            if is_match:
                continue
            lang_result.type_mismatches.append(TypeMismatch(
                type_name=ref_type.name,
                source_type=_type_info(ref_type),
                generated_type=_type_info(gen_type),
                differences=diffs,
            ))
            gaps.append(ParityGap(
                dimension=Dimension.TYPE,
                severity=Severity.MEDIUM,
                kind=GapKind.MISMATCH,
                source_item=source_item,
                generated_item=ItemReference(kind="type", name=gen_type.original_name,
                                             signature=gen_type.describe(), location=gen_type.location,
                                             language=language),
                discrepancy="; ".join(diffs),
                suggested_fix=f"Update type '{ref_type.name}' in {language} to match source definition",
                language=language,
            ))
        return gaps

    def _compare_functions(self, ref_funcs: List[NormalizedSignature], gen_funcs: List[NormalizedSignature],
                           lang_result: LanguageResult, reference: Analysis, language: str) -> List[ParityGap]:
        gaps: List[ParityGap] = []
        gen_index = _index_by_name(gen_funcs)
        for ref_func in ref_funcs:
            source_item = ItemReference(kind="function", name=ref_func.original_name,
                                        signature=ref_func.signature, location=ref_func.location,
                                        language=reference.language.value)
            gen_func = gen_index.get(ref_func.name)
            if gen_func is None:
                lang_result.missing_functions.append(ref_func.name)
                gaps.append(ParityGap(
                    dimension=Dimension.BEHAVIORAL,
                    severity=Severity.HIGH,
                    kind=GapKind.MISSING,
                    source_item=source_item,
                    discrepancy="function missing in generated code",
                    suggested_fix=f"Implement function '{ref_func.original_name}' in {language}",
                    language=language,
                ))
                continue

            is_match, diffs = signature_match(ref_func, gen_func, self.config.strict)
            if is_match:
                continue
            lang_result.signature_mismatches.append(SignatureMismatch(
                func_name=ref_func.name,
                source_signature=format_signature(ref_func),
                generated_signature=format_signature(gen_func),
                differences=diffs,
            ))
            gaps.append(ParityGap(
                dimension=Dimension.BEHAVIORAL,
                severity=Severity.HIGH,
                kind=GapKind.MISMATCH,
                source_item=source_item,
                generated_item=ItemReference(kind="function", name=gen_func.original_name,
                                             signature=format_signature(gen_func), location=gen_func.location,
                                             language=language),
                discrepancy="; ".join(diffs),
                suggested_fix=f"Update function '{ref_func.name}' in {language} to match source signature",
                language=language,
            ))
        return gaps
