"""countgate: fail a build when an Elasticsearch count crosses a threshold."""

__version__ = "0.1.0"
