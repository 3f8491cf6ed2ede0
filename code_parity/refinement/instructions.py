"""
Turns parity gaps into refinement instructions for an external
regeneration step, and renders them as markdown.
"""

from typing import List

from ..parity.models import Dimension, GapKind, ParityGap, ParityResult
from .models import CodeChange, Phase, RefinementInstructions, SpecChange, Strategy

_SECTIONS = {
    Dimension.TYPE: "Types",
    Dimension.BEHAVIORAL: "Functions",
    Dimension.STRUCTURAL: "Architecture",
}

_ELEMENT_TYPES = {
    Dimension.TYPE: "type",
    Dimension.BEHAVIORAL: "function",
}


def determine_phase(strategy: Strategy, iteration: int, parity_result: ParityResult) -> Phase:
    """
    Chooses what to refine next.

    Args:
        strategy: Refinement strategy.
        iteration: Zero-based iteration index.
        parity_result: The comparison of this iteration.
    """
    strategy = Strategy(strategy)
    if strategy == Strategy.SPEC_FIRST:
        return Phase.SPEC if iteration < 2 else Phase.CODE
    if strategy == Strategy.CODE_FIRST:
        return Phase.CODE if iteration < 2 else Phase.SPEC
    if strategy == Strategy.BALANCED:
        return Phase.SPEC if iteration % 2 == 0 else Phase.CODE
    # Adaptive: missing items point at an incomplete spec, mismatches at the code
    missing = sum(1 for gap in parity_result.gaps if gap.kind == GapKind.MISSING)
    mismatched = len(parity_result.gaps) - missing
    return Phase.SPEC if missing > mismatched else Phase.CODE


def action_for(gap: ParityGap) -> str:
    return "add" if gap.kind == GapKind.MISSING else "modify"


def generate_instructions(parity_result: ParityResult, phase: Phase) -> RefinementInstructions:
    """Groups gaps into spec-directed and per-language code-directed changes for the given phase."""
    instructions = RefinementInstructions(summary="", priority=phase)
    if not parity_result.gaps:
        instructions.summary = "No refinements needed - parity achieved."
        return instructions

    wants_spec = phase in (Phase.SPEC, Phase.BOTH)
    wants_code = phase in (Phase.CODE, Phase.BOTH)

    for gap in parity_result.gaps:
        section = _SECTIONS.get(gap.dimension)
        if section is None:
            continue
        if wants_spec:
            instructions.spec_refinements.append(SpecChange(
                section=section,
                action="modify" if gap.dimension == Dimension.STRUCTURAL else action_for(gap),
                element_name=gap.source_item.name,
                description=gap.discrepancy,
                example=gap.suggested_fix,
            ))
        element_type = _ELEMENT_TYPES.get(gap.dimension)
        if wants_code and element_type and gap.language:
            instructions.code_refinements.setdefault(gap.language, []).append(CodeChange(
                action=action_for(gap),
                element_type=element_type,
                element_name=gap.source_item.name,
                description=gap.discrepancy,
                source_ref=gap.source_item.location,
                file=gap.generated_item.location if gap.generated_item else "",
            ))

    instructions.summary = (f"Found {len(parity_result.gaps)} parity gaps. "
                            f"{len(instructions.spec_refinements)} spec changes, "
                            f"{instructions.code_change_count} code changes needed")
    return instructions


def render_refinement_prompt(instructions: RefinementInstructions) -> str:
    lines: List[str] = ["# Refinement Instructions", "", instructions.summary, ""]

    if instructions.spec_refinements:
        lines.extend(["## Spec Changes", ""])
        for change in instructions.spec_refinements:
            lines.append(f"### {change.action}: {change.section} `{change.element_name}`")
            lines.append(change.description)
            if change.example:
                lines.extend(["", f"Suggested fix: {change.example}"])
            lines.append("")

    for language in sorted(instructions.code_refinements):
        changes = instructions.code_refinements[language]
        if not changes:
            continue
        lines.extend([f"## {language.upper()} Code Changes", ""])
        for change in changes:
            lines.append(f"### {change.action} {change.element_type} `{change.element_name}`")
            lines.append(change.description)
            if change.source_ref:
                lines.append(f"Reference: {change.source_ref}")
            lines.append("")

    return "\n".join(lines)
