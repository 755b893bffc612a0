"""Command-line helpers that sit next to the upload pipeline."""
