"""
Tests for the parity comparator.
"""

import pytest

from code_parity.core.aggregator import SymbolAggregator
from code_parity.core.config import ComparisonConfig, DimensionWeights
from code_parity.core.models import (
    Analysis, Field, FunctionDef, Language, Parameter, Severity, TypeDef, TypeKind,
)
from code_parity.parity.comparator import Comparator, compare_count, format_signature
from code_parity.parity.models import Dimension, DimensionScores, GapKind
from code_parity.parity.normalizer import normalize_signature


def _python_analysis(source: str) -> Analysis:
    return SymbolAggregator().analyze_files([("users.py", source.encode("utf-8"))], "python")


@pytest.fixture
def reference(go_reference) -> Analysis:
    return SymbolAggregator().analyze(go_reference, "go")


class TestCompareCount:

    @pytest.mark.parametrize("source, generated, expected", [
        (0, 0, 1.0),
        (3, 0, 0.0),
        (0, 3, 0.0),
        (4, 2, 0.5),
        (2, 4, 0.5),
        (5, 5, 1.0),
    ])
    def test_values(self, source, generated, expected):
        assert compare_count(source, generated) == pytest.approx(expected)

    def test_symmetric(self):
        assert compare_count(7, 3) == compare_count(3, 7)


class TestWeightedScore:

    def test_default_weights(self):
        scores = DimensionScores(structural=0.75, type=1.0, behavioral=0.25, test=1.0, idiomatic=1.0)
        assert scores.weighted(DimensionWeights()) == pytest.approx(0.6875)

    def test_clamped_to_unit_interval(self):
        scores = DimensionScores(1.0, 1.0, 1.0, 1.0, 1.0)
        heavy = DimensionWeights(structural=1.0, type=1.0, behavioral=1.0, test=1.0, idiomatic=1.0)
        assert scores.weighted(heavy) == 1.0


class TestComparator:

    def test_matching_implementation(self, reference, python_matching_source):
        result = Comparator().compare(reference, {"python": _python_analysis(python_matching_source)})
        assert result.source_language == "go"
        assert result.overall_score == pytest.approx(1.0)
        assert result.converged
        assert result.gaps == []
        lang = result.by_language["python"]
        assert lang.missing_functions == []
        assert lang.signature_mismatches == []

    def test_partial_implementation(self, reference, python_partial_source):
        result = Comparator().compare(reference, {"python": _python_analysis(python_partial_source)})
        lang = result.by_language["python"]
        assert lang.by_dimension.structural == pytest.approx(0.75)
        assert lang.by_dimension.type == pytest.approx(1.0)
        assert lang.by_dimension.behavioral == pytest.approx(0.25)
        assert lang.overall_score == pytest.approx(0.6875)
        assert result.overall_score == pytest.approx(0.6875)
        assert not result.converged

        assert lang.missing_functions == ["find_user"]
        mismatch = lang.signature_mismatches[0]
        assert mismatch.func_name == "create_user"
        assert "return type count mismatch" in mismatch.differences
        assert mismatch.source_signature == "create_user(name: string) -> user, error"
        assert mismatch.generated_signature == "create_user(name: string) -> user"

    def test_partial_gaps(self, reference, python_partial_source):
        result = Comparator().compare(reference, {"python": _python_analysis(python_partial_source)})
        assert [(g.kind, g.source_item.name) for g in result.gaps] == [
            (GapKind.MISMATCH, "CreateUser"),
            (GapKind.MISSING, "FindUser"),
        ]
        mismatch, missing = result.gaps
        assert mismatch.severity == Severity.HIGH
        assert mismatch.dimension == Dimension.BEHAVIORAL
        assert mismatch.generated_item.name == "create_user"
        assert mismatch.suggested_fix == "Update function 'create_user' in python to match source signature"
        assert missing.discrepancy == "function missing in generated code"
        assert missing.suggested_fix == "Implement function 'FindUser' in python"
        assert missing.generated_item is None
        assert missing.source_item.location.startswith("users.go:")
        assert all(g.language == "python" for g in result.gaps)

    def test_private_reference_symbols_ignored(self, reference, python_matching_source):
        result = Comparator().compare(reference, {"python": _python_analysis(python_matching_source)})
        assert "helper" not in result.by_language["python"].missing_functions

        config = ComparisonConfig(ignore_private=False)
        result = Comparator(config).compare(reference, {"python": _python_analysis(python_matching_source)})
        assert result.by_language["python"].missing_functions == ["helper"]

    def test_empty_projects_have_full_parity(self):
        reference = Analysis(language=Language.GO)
        result = Comparator().compare(reference, {"rust": Analysis(language=Language.RUST)})
        dims = result.by_language["rust"].by_dimension
        assert (dims.structural, dims.type, dims.behavioral) == (1.0, 1.0, 1.0)
        assert result.overall_score == pytest.approx(1.0)

    def test_single_missing_function(self):
        reference = Analysis(language=Language.GO, functions=[FunctionDef(name="Run")])
        result = Comparator().compare(reference, {"python": Analysis(language=Language.PYTHON)})
        assert result.by_language["python"].by_dimension.behavioral == 0.0
        assert len(result.gaps) == 1
        assert result.gaps[0].kind == GapKind.MISSING
        assert result.gaps[0].severity == Severity.HIGH

    def test_type_gaps(self):
        reference = Analysis(language=Language.GO, types=[
            TypeDef(name="User", kind=TypeKind.STRUCT, fields=[Field(name="ID", type="int64")]),
            TypeDef(name="Order", kind=TypeKind.STRUCT),
        ])
        target = Analysis(language=Language.RUST, types=[
            TypeDef(name="User", kind=TypeKind.STRUCT, fields=[Field(name="id", type="String")]),
        ])
        result = Comparator().compare(reference, {"rust": target})
        lang = result.by_language["rust"]
        assert lang.missing_types == ["order"]
        assert lang.type_mismatches[0].differences == ["field type mismatch: id"]
        # one matched-with-differences, one missing: 1/2 - 0.5 * 1/2
        assert lang.by_dimension.type == pytest.approx(0.25)

        mismatch, missing = result.gaps
        assert mismatch.severity == Severity.MEDIUM
        assert mismatch.dimension == Dimension.TYPE
        assert mismatch.suggested_fix == "Update type 'user' in rust to match source definition"
        assert missing.severity == Severity.HIGH
        assert missing.suggested_fix == "Implement type 'Order' in rust"
        assert missing.source_item.signature == "struct Order"

    def test_languages_compared_in_sorted_order(self):
        reference = Analysis(language=Language.GO, functions=[FunctionDef(name="Run")])
        targets = {"rust": Analysis(language=Language.RUST), "java": Analysis(language=Language.JAVA)}
        result = Comparator().compare(reference, targets)
        assert list(result.by_language) == ["java", "rust"]
        assert [g.language for g in result.gaps] == ["java", "rust"]

    def test_overall_is_mean_of_languages(self, reference, python_matching_source):
        targets = {
            "python": _python_analysis(python_matching_source),
            "typescript": Analysis(language=Language.TYPESCRIPT),
        }
        result = Comparator().compare(reference, targets)
        scores = [lr.overall_score for lr in result.by_language.values()]
        assert result.overall_score == pytest.approx(sum(scores) / 2)
        assert result.by_dimension.behavioral == pytest.approx(0.5)

    def test_no_targets(self, reference):
        result = Comparator().compare(reference, {})
        assert result.overall_score == 0.0
        assert not result.converged

    def test_first_generated_duplicate_wins(self):
        reference = Analysis(language=Language.GO, functions=[
            FunctionDef(name="Parse", parameters=[Parameter(name="s", type="string")]),
        ])
        target = Analysis(language=Language.PYTHON, functions=[
            FunctionDef(name="parse", parameters=[Parameter(name="s", type="str")]),
            FunctionDef(name="Parse", parameters=[Parameter(name="s", type="int")]),
        ])
        result = Comparator().compare(reference, {"python": target})
        assert result.gaps == []

    def test_custom_dimension_scorers(self):
        reference = Analysis(language=Language.GO)
        comparator = Comparator(test_scorer=lambda ref, gen: 0.0, idiomatic_scorer=lambda ref, gen: 0.5)
        dims = comparator.compare(reference, {"python": Analysis(language=Language.PYTHON)}).by_dimension
        assert dims.test == 0.0
        assert dims.idiomatic == 0.5

    def test_strict_mode_reports_async(self):
        reference = Analysis(language=Language.GO, functions=[FunctionDef(name="Fetch")])
        target = Analysis(language=Language.PYTHON, functions=[FunctionDef(name="fetch", is_async=True)])
        assert Comparator().compare(reference, {"python": target}).gaps == []
        strict = Comparator(ComparisonConfig(strict=True)).compare(reference, {"python": target})
        assert strict.gaps[0].discrepancy == "async mismatch"


class TestFormatSignature:

    def test_format(self):
        sig = normalize_signature(FunctionDef(
            name="FindUser",
            parameters=[Parameter(name="ctx", type="context.Context"), Parameter(name="id", type="int64")],
            returns=["*User", "error"],
        ))
        assert format_signature(sig) == "find_user(ctx: context, id: integer) -> user, error"
