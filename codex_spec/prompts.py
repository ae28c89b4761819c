"""Instruction payload sent to the generator for one task."""

from __future__ import annotations

import textwrap
from typing import Iterable

from .models import Task

_INSTRUCTIONS = textwrap.dedent(
    """\
    ## Implementation Instructions

    Please implement this task following these guidelines:
    1. **Architecture Alignment**: Follow the technical architecture defined in the plan
    2. **Code Standards**: Adhere to the project's coding standards in AGENTS.md
    3. **Testing**: Write tests as specified in the plan's QA strategy
    4. **Documentation**: Update relevant documentation and comments
    5. **Integration**: Consider integration points mentioned in the plan"""
)


def build_execution_prompt(
    task: Task,
    plan: str,
    satisfied: Iterable[str],
    outstanding: Iterable[str] = (),
) -> str:
    """Compose the execution request for ``task``.

    ``satisfied`` lists completed dependencies; ``outstanding`` lists the
    ones still open when the dependency gate was overridden.
    """
    satisfied = list(satisfied)
    outstanding = list(outstanding)
    criteria = "\n".join(f"- {item}" for item in task.acceptance_criteria) or "- None specified"

    sections = [
        "Based on our implementation plan and this specific task:",
        "## Implementation Plan Context\n" + (plan.strip() or "No implementation plan available."),
        "\n".join(
            [
                "## Current Task Details",
                f"**Task ID:** {task.id}",
                f"**Title:** {task.title}",
                f"**Phase:** {task.phase}",
                f"**Complexity:** {task.complexity}",
            ]
        ),
        f"**Description:**\n{task.description}",
        f"**Files to create/modify:**\n{', '.join(task.files) or 'None specified'}",
        f"**Dependencies completed:**\n{', '.join(satisfied) or 'None'}",
    ]
    if outstanding:
        sections.append(f"**Dependencies not yet completed (override):**\n{', '.join(outstanding)}")
    sections.append(f"**Acceptance Criteria:**\n{criteria}")
    sections.append(_INSTRUCTIONS)
    if task.technical_notes:
        sections.append(f"**Technical Notes:** {task.technical_notes}")
    sections.append(
        "Please provide a complete implementation with all necessary files, tests, "
        "and documentation updates."
    )
    return "\n\n".join(sections) + "\n"
