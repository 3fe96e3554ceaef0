"""Presentation layer: CLI, interactive prompt and run summary."""
