"""
resticops - unattended scheduled restic backups across fixed and removable volumes.

Drives the restic binary with:
- Resolution of backup sources to mounted volumes
- Connectivity gating before touching a remote repository
- Retention, prune and integrity-check maintenance on a cadence
- Retry with backoff and external health reporting
"""

__version__ = "0.1.0"
__author__ = "resticops Contributors"
