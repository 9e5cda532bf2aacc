"""Command-line interface for fareledger."""
