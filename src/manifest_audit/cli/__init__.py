"""CLI for manifest-audit."""
