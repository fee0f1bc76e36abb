"""Shared test fixtures for featurelink."""

import json
from pathlib import Path

import pytest

from featurelink.registry import Registry


@pytest.fixture
def registry() -> Registry:
    """Return an empty registry."""
    return Registry()


@pytest.fixture
def sample_feature_content() -> str:
    """Return a feature with a background, a tagged scenario and an outline."""
    return """\
# Account management
@accounts
Feature: User accounts
  Users can sign up and buy fruit.

  Background:
    Given the shop is open

  @smoke
  Scenario: Registration
    Given a user exists
    When the user registers with:
      | email           | password  |
      | bob@example.com | secret123 |
    Then the user "bob@example.com" can log in

  Scenario Outline: Buying fruit
    Given I have <count> <name>(s)
    When I eat 1 <name>
    Then the notes say:
      \"\"\"
      ate one <name>
      \"\"\"

    Examples: Small
      | name  | count |
      | apple | 3     |
      | pear  | 2     |

    @wip
    Examples: Unfinished
      | name  | count |
      | kiwi  | 9     |
"""


@pytest.fixture
def sample_definitions_content() -> str:
    """Return a definitions manifest matching the sample feature."""
    return """\
constants:
  COUNT: '/\\d+/'
step_definitions:
  - keyword: Given
    pattern: '/^the shop is open$/'
    source: steps/shop_steps.rb:3
  - keyword: Given
    pattern: '/^a user (.*)$/'
    source: steps/user_steps.rb:5
  - keyword: Given
    pattern: '/^I have (#{COUNT}) (\\w+)\\(s\\)$/'
    source: steps/fruit_steps.rb:1
  - keyword: Then
    pattern: '/^nobody ever writes this$/'
    source: steps/unused_steps.rb:1
transforms:
  - keyword: Transform
    pattern: '/^\\d+$/'
    source: support/transforms.rb:1
"""


@pytest.fixture
def feature_project(
    tmp_path: Path, sample_feature_content: str, sample_definitions_content: str
) -> Path:
    """Create a project directory with one feature file and a definitions manifest."""
    features_dir = tmp_path / "features" / "accounts"
    features_dir.mkdir(parents=True)
    (features_dir / "signup.feature").write_text(sample_feature_content)
    (features_dir / "README.md").write_text("Account features.\n")
    (tmp_path / "step_definitions.yaml").write_text(sample_definitions_content)
    return tmp_path


@pytest.fixture
def initialized_project(feature_project: Path) -> Path:
    """Create the feature project with featurelink initialized and @wip excluded."""
    config_dir = feature_project / ".featurelink"
    config_dir.mkdir()
    config = {
        "version": "0.1.0",
        "features_dir": "features",
        "definitions_file": "step_definitions.yaml",
        "exclude_tags": ["wip"],
        "step_keywords": ["Given", "When", "Then", "And", "But"],
    }
    (config_dir / "config.json").write_text(json.dumps(config, indent=2))
    return feature_project
