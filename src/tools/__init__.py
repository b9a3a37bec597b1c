"""External tool adapters.

This module wraps qemu-img, vmadm, zfs and the manifest helper behind
small typed functions that share one command runner.
"""
