"""Command-line tools for tuning the AI."""
