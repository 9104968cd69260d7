"""Command implementations behind the `docvault` CLI."""
