"""es-console — run Elasticsearch requests written in a query file."""

__version__ = "0.1.0"
