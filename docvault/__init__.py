"""docvault - a schema-governed Markdown document store."""

__version__ = "0.1.0"
