"""Command-line entry point for prebuilt-fetch."""
