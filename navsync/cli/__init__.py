"""Command-line interface for navsync."""
