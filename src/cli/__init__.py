"""Command-line interface for imgbuild."""
