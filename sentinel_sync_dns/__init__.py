"""
Keep DNS records pointed at the current Redis Sentinel master.

Usage:
    sentinel-sync-dns --config config.yaml
    sentinel-sync-dns-reconcile --config config.yaml
"""

__version__ = "0.1.0"
