"""Scenario outline explosion.

Each data row of an examples table becomes one concrete scenario. Steps
are copied from the outline's templates and every ``<header>`` token is
replaced with that row's value for the column, in the step text, the
doc string and every table cell. Headers are applied one after another,
so substitution is purely textual. Tokens naming no header stay as
written; missing cells substitute as the empty string.
"""

from __future__ import annotations

from collections.abc import Sequence

from featurelink.models import Scenario, ScenarioKind, ScenarioOutline, Step


def substitute_placeholders(text: str, headers: Sequence[str], row: Sequence[str]) -> str:
    for index, header in enumerate(headers):
        value = row[index] if index < len(row) else ""
        text = text.replace(f"<{header}>", value)
    return text


def copy_step(
    template: Step,
    step_id: str,
    scenario_id: str,
    headers: Sequence[str],
    row: Sequence[str],
) -> Step:
    """Deep-copy a template step with the row's values substituted."""
    doc_string = None
    if template.doc_string is not None:
        doc_string = substitute_placeholders(template.doc_string, headers, row)

    table = None
    if template.table is not None:
        table = [
            [substitute_placeholders(cell, headers, row) for cell in table_row]
            for table_row in template.table
        ]

    return Step(
        id=step_id,
        keyword=template.keyword,
        text=substitute_placeholders(template.text, headers, row),
        location=template.location,
        scenario_id=scenario_id,
        doc_string=doc_string,
        table=table,
    )


def explode_row(
    outline: ScenarioOutline,
    headers: Sequence[str],
    row: Sequence[str],
) -> Scenario:
    """Build the next concrete scenario of ``outline`` from one data row.

    The scenario is numbered after every scenario the outline already has,
    across all of its examples blocks. It is not appended to the outline.
    """
    number = len(outline.scenarios) + 1
    scenario = Scenario(
        id=f"{outline.id}:example_{number}",
        kind=ScenarioKind.EXAMPLE,
        keyword=outline.keyword,
        title=f"{outline.title} ({number})",
        location=outline.location,
        description=outline.description,
        comments=outline.comments,
        feature_id=outline.feature_id,
        outline_id=outline.id,
    )
    for position, template in enumerate(outline.steps, 1):
        scenario.steps.append(copy_step(
            template,
            step_id=f"{scenario.id}:step_{position}",
            scenario_id=scenario.id,
            headers=headers,
            row=row,
        ))
    return scenario


def expected_scenario_count(outline: ScenarioOutline) -> int:
    """Number of scenarios the outline's retained examples should explode into."""
    return sum(len(ex.data_rows) for ex in outline.examples)
