"""API catalog: store internal API documentation and exchange it as OpenAPI."""

__version__ = "0.1.0"
