"""
Rendering of parity results: JSON-safe dicts and markdown fix instructions.
"""

from typing import Any, Dict, List

from ..core.models import Severity
from ..core.utils import to_serializable
from .models import ParityGap, ParityResult

_SEVERITY_HEADINGS = (
    (Severity.HIGH, "Critical (High Severity)"),
    (Severity.MEDIUM, "Important (Medium Severity)"),
    (Severity.LOW, "Minor (Low Severity)"),
)


def parity_result_to_dict(result: ParityResult) -> Dict[str, Any]:
    data = to_serializable(result)
    data["overall_score"] = round(result.overall_score, 4)
    return data


def _write_gap(lines: List[str], gap: ParityGap) -> None:
    lines.append(f"- **{gap.dimension.value}** `{gap.source_item.name}`")
    lines.append(f"  - Source: `{gap.source_item.signature}` at `{gap.source_item.location}`")
    lines.append(f"  - Issue: {gap.discrepancy}")
    lines.append(f"  - Fix: {gap.suggested_fix}")
    lines.append("")


def render_fix_instructions(result: ParityResult, source_language: str) -> str:
    """
    Markdown checklist of gaps, grouped by target language and then severity.
    """
    if not result.gaps:
        return f"All implementations have {result.overall_score * 100:.1f}% parity. No fixes needed."

    lines = [
        "# Parity Fix Instructions",
        "",
        f"**Overall Parity Score:** {result.overall_score * 100:.1f}%",
        f"**Reference Language:** {source_language}",
        "",
    ]

    by_language: Dict[str, List[ParityGap]] = {}
    for gap in result.gaps:
        by_language.setdefault(gap.language or "unknown", []).append(gap)

    for language in sorted(by_language):
        gaps = by_language[language]
        lines.append(f"## {language.upper()} ({len(gaps)} issues)")
        lines.append("")
        for severity, heading in _SEVERITY_HEADINGS:
            selected = [g for g in gaps if g.severity == severity]
            if not selected:
                continue
            lines.append(f"### {heading}")
            lines.append("")
            for gap in selected:
                _write_gap(lines, gap)

    lines.append("---")
    lines.append("After applying fixes, run parity analysis again to verify improvements.")
    return "\n".join(lines) + "\n"
