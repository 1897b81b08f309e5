"""Process privilege helpers."""

import ctypes
import os


def is_elevated() -> bool:
    """Check whether the current process runs with administrative rights."""
    if hasattr(os, "geteuid"):
        return os.geteuid() == 0

    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except (AttributeError, OSError):
        return False
