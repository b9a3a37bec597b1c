"""Image build pipeline.

This module validates build input and runs the inspect, provision,
convert, snapshot, archive and manifest steps in order.
"""
