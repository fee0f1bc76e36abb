"""featurelink: link Gherkin feature steps to their step definitions and transforms."""

__version__ = "0.1.0"
