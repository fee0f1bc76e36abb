"""Acceptance tests for properties that hold across whole linked models."""

from pathlib import Path

import pytest

from featurelink.models import Feature, LinkerConfig, RegistryKind, ScenarioOutline
from featurelink.outline import expected_scenario_count
from featurelink.pipeline import PipelineResult, run_pipeline

pytestmark = pytest.mark.acceptance

INVENTORY = """\
@inventory
Feature: Inventory

  Background:
    Given the warehouse is open

  @inventory
  Scenario: Count stock
    When I count 12 boxes and 3 crates
    Then the stock is 15

  @restock
  Scenario Outline: Restock
    When I add <qty> <item>
    Then I have <qty> <item> in <place>

    Examples: Shelves
      | qty | item  | place |
      | 4   | bolts | A1    |
      | 9   | nuts  | C3    |

    Examples: Empty
      | qty | item | place |

    @wip
    Examples: Pending
      | qty | item  | place |
      | 1   | gears | B2    |

  @wip
  Scenario: Unfinished
    Given something
"""

DEFINITIONS = """\
step_definitions:
  - keyword: When
    pattern: '/^I count (\\d+) (\\w+) and (\\d+) (\\w+)$/'
  - keyword: When
    pattern: '/^I (\\w+) (.*)$/'
  - keyword: When
    pattern: '/^I add (\\d+) (\\w+)$/'
  - keyword: Then
    pattern: '/^I have (\\d+) (\\w+) in (\\w*)$/'
transforms:
  - keyword: Transform
    pattern: '/^\\d+$/'
  - keyword: Transform
    pattern: '/^\\w+s$/'
"""


@pytest.fixture
def inventory(tmp_path: Path) -> PipelineResult:
    (tmp_path / "features").mkdir()
    (tmp_path / "features" / "inventory.feature").write_text(INVENTORY)
    (tmp_path / "defs.yaml").write_text(DEFINITIONS)
    return run_pipeline(
        tmp_path / "features", tmp_path / "defs.yaml", LinkerConfig(exclude_tags=["@wip"]),
    )


def _feature(result: PipelineResult) -> Feature:
    return result.features[0]


class TestTotals:
    def test_total_counts_leaf_scenarios(self, inventory: PipelineResult) -> None:
        feature = _feature(inventory)
        assert feature.total_scenarios == len(feature.executable_scenarios()) == 3

    def test_outline_count_matches_examples(self, inventory: PipelineResult) -> None:
        for outline in inventory.registry.find_all(RegistryKind.SCENARIO_OUTLINE):
            assert len(outline.scenarios) == expected_scenario_count(outline)

    def test_header_only_and_excluded_blocks(self, inventory: PipelineResult) -> None:
        outline = _feature(inventory).scenarios[1]
        assert isinstance(outline, ScenarioOutline)
        assert [e.name for e in outline.examples] == ["Shelves", "Empty"]
        assert [e.data_rows for e in outline.examples] == [[["4", "bolts", "A1"], ["9", "nuts", "C3"]], []]


class TestSubstitution:
    def test_rows_substituted(self, inventory: PipelineResult) -> None:
        outline = _feature(inventory).scenarios[1]
        texts = [[s.text for s in scenario.steps] for scenario in outline.scenarios]
        assert texts == [
            ["I add 4 bolts", "I have 4 bolts in A1"],
            ["I add 9 nuts", "I have 9 nuts in C3"],
        ]

    def test_no_header_placeholder_survives(self, inventory: PipelineResult) -> None:
        outline = _feature(inventory).scenarios[1]
        for scenario in outline.scenarios:
            for step in scenario.steps:
                for header in outline.examples[0].headers:
                    assert f"<{header}>" not in step.text


class TestTagSharing:
    def test_same_token_same_instance(self, inventory: PipelineResult) -> None:
        feature = _feature(inventory)
        assert feature.tags[0] is feature.scenarios[0].tags[0]

    def test_no_double_count_under_feature_tag(self, inventory: PipelineResult) -> None:
        totals = {t.value: t.total_scenarios for t in inventory.registry.find_all(RegistryKind.TAG)}
        assert totals == {"@inventory": 3, "@restock": 2}


class TestLinking:
    def test_precedence_over_specificity(self, inventory: PipelineResult) -> None:
        outline = _feature(inventory).scenarios[1]
        add_step = outline.scenarios[0].steps[0]
        # the broad "I <verb> ..." definition is registered before "I add ..."
        assert add_step.definition.id == "step_definition2"

    def test_multiple_transforms_once_each(self, inventory: PipelineResult) -> None:
        count_step = _feature(inventory).scenarios[0].steps[0]
        assert count_step.definition.id == "step_definition1"
        assert [t.id for t in count_step.transforms] == ["step_transform1", "step_transform2"]

    def test_template_steps_never_linked(self, inventory: PipelineResult) -> None:
        outline = _feature(inventory).scenarios[1]
        assert all(step.definition is None for step in outline.steps)

    def test_unlinked_steps_have_no_transforms(self, inventory: PipelineResult) -> None:
        for step_id in inventory.report.unmatched_steps:
            step = inventory.registry.get(step_id)
            assert step.definition is None
            assert step.transforms == []

    def test_background_without_definition_unmatched(self, inventory: PipelineResult) -> None:
        background = _feature(inventory).background
        assert background.steps[0].id in inventory.report.unmatched_steps

    def test_deterministic_across_runs(self, tmp_path: Path) -> None:
        (tmp_path / "features").mkdir()
        (tmp_path / "features" / "inventory.feature").write_text(INVENTORY)
        (tmp_path / "defs.yaml").write_text(DEFINITIONS)

        def snapshot() -> list[tuple[str, str, str | None]]:
            result = run_pipeline(tmp_path / "features", tmp_path / "defs.yaml")
            return [
                (step.id, step.text, step.definition.id if step.definition else None)
                for step in result.registry.find_all(RegistryKind.STEP)
            ]

        assert snapshot() == snapshot()
