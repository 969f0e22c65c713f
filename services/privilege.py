"""Administrator privilege helpers; winget machine-scope installs need elevation."""
from __future__ import annotations

import ctypes
import logging
import subprocess
import sys

logger = logging.getLogger(__name__)


def is_admin() -> bool:
    if not sys.platform.startswith("win"):
        return True
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except AttributeError:
        return False


def relaunch_as_admin(argv: list[str] | None = None) -> bool:
    if not sys.platform.startswith("win"):
        return False
    args = list(sys.argv if argv is None else argv)
    if getattr(sys, "frozen", False):
        args = args[1:]
    params = subprocess.list2cmdline(args)
    result = ctypes.windll.shell32.ShellExecuteW(None, "runas", sys.executable, params, None, 1)
    return result > 32


def ensure_admin(*, relaunch: bool = True) -> bool:
    """Return True when the current process may install; otherwise try to relaunch elevated."""
    if is_admin():
        return True
    logger.warning("Administrator privileges are required to install applications", extra={"event": "admin_required"})
    if relaunch and relaunch_as_admin():
        logger.info("Relaunched with elevation", extra={"event": "admin_relaunch"})
    return False
