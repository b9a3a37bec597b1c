"""Shared configuration, errors, logging and typed models.

This module holds the pieces every pipeline step and the CLI depend on.
"""
