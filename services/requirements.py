"""System requirement checks for catalog entries (memory, disk, OS build, arch)."""
from __future__ import annotations

import ctypes
import logging
import os
import platform
import re
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Protocol

from persona_setup.catalog import CatalogEntry

logger = logging.getLogger(__name__)

_UNKNOWN = "Unknown"
_ARCH_ALIASES = {
    "amd64": "x64",
    "x86_64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "arm64": "arm64",
    "aarch64": "arm64",
}


@dataclass(frozen=True)
class RequirementCheckResult:
    app: str
    name: str
    expected: str
    actual: str
    satisfied: bool


class SystemProbe(Protocol):
    def memory_gb(self) -> float | None:  # pragma: no cover - protocol
        ...

    def free_disk_gb(self) -> float | None:  # pragma: no cover - protocol
        ...

    def os_build(self) -> int | None:  # pragma: no cover - protocol
        ...

    def architecture(self) -> str | None:  # pragma: no cover - protocol
        ...


class _MemoryStatusEx(ctypes.Structure):
    _fields_ = [
        ("dwLength", ctypes.c_ulong),
        ("dwMemoryLoad", ctypes.c_ulong),
        ("ullTotalPhys", ctypes.c_ulonglong),
        ("ullAvailPhys", ctypes.c_ulonglong),
        ("ullTotalPageFile", ctypes.c_ulonglong),
        ("ullAvailPageFile", ctypes.c_ulonglong),
        ("ullTotalVirtual", ctypes.c_ulonglong),
        ("ullAvailVirtual", ctypes.c_ulonglong),
        ("ullAvailExtendedVirtual", ctypes.c_ulonglong),
    ]


class LocalSystemProbe:
    """Reads the current machine; every method returns None when it cannot tell."""

    def __init__(self, disk_root: Path | str | None = None) -> None:
        self._disk_root = Path(disk_root) if disk_root else Path(os.environ.get("SystemDrive", "C:") + "\\")
        if not sys.platform.startswith("win") and disk_root is None:
            self._disk_root = Path("/")

    def memory_gb(self) -> float | None:
        if sys.platform.startswith("win"):
            status = _MemoryStatusEx()
            status.dwLength = ctypes.sizeof(_MemoryStatusEx)
            try:
                if not ctypes.windll.kernel32.GlobalMemoryStatusEx(ctypes.byref(status)):
                    return None
            except AttributeError:
                return None
            return status.ullTotalPhys / 1024**3
        try:
            pages = os.sysconf("SC_PHYS_PAGES")
            page_size = os.sysconf("SC_PAGE_SIZE")
        except (AttributeError, ValueError, OSError):
            return None
        return pages * page_size / 1024**3

    def free_disk_gb(self) -> float | None:
        try:
            usage = shutil.disk_usage(self._disk_root)
        except OSError:
            return None
        return usage.free / 1024**3

    def os_build(self) -> int | None:
        if not sys.platform.startswith("win"):
            return None
        match = re.search(r"\d+\.\d+\.(\d+)", platform.version())
        if not match:
            return None
        return int(match.group(1))

    def architecture(self) -> str | None:
        return normalize_architecture(platform.machine())


def normalize_architecture(value: str | None) -> str | None:
    if not value:
        return None
    return _ARCH_ALIASES.get(value.strip().lower(), value.strip().lower())


def _as_number(value: object) -> float | None:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _format_gb(value: float) -> str:
    return f"{value:.1f} GB" if value % 1 else f"{int(value)} GB"


class RequirementsChecker:
    def __init__(self, probe: SystemProbe | None = None) -> None:
        self._probe = probe or LocalSystemProbe()

    def check(self, entry: CatalogEntry) -> List[RequirementCheckResult]:
        requirements = entry.system_requirements or {}
        results: List[RequirementCheckResult] = []
        if "min_memory_gb" in requirements:
            results.append(self._check_minimum(entry.name, "Memory", requirements["min_memory_gb"], self._probe.memory_gb()))
        if "min_disk_gb" in requirements:
            results.append(self._check_minimum(entry.name, "Free Disk", requirements["min_disk_gb"], self._probe.free_disk_gb()))
        if "min_os_build" in requirements:
            results.append(self._check_os_build(entry.name, requirements["min_os_build"]))
        if "architecture" in requirements:
            results.append(self._check_architecture(entry.name, requirements["architecture"]))
        return results

    def check_all(self, names: Iterable[str], catalog: Mapping[str, CatalogEntry]) -> List[RequirementCheckResult]:
        results: List[RequirementCheckResult] = []
        for name in names:
            entry = catalog.get(name)
            if entry is not None:
                results.extend(self.check(entry))
        return results

    def unmet(self, entry: CatalogEntry) -> List[RequirementCheckResult]:
        return [result for result in self.check(entry) if not result.satisfied]

    def _check_minimum(self, app: str, label: str, required: object, actual: float | None) -> RequirementCheckResult:
        minimum = _as_number(required)
        if minimum is None:
            logger.warning("%s: ignoring invalid %s requirement %r", app, label, required)
            return RequirementCheckResult(app, label, str(required), _UNKNOWN, True)
        expected = f">= {_format_gb(minimum)}"
        if actual is None:
            return RequirementCheckResult(app, label, expected, _UNKNOWN, True)
        return RequirementCheckResult(app, label, expected, _format_gb(round(actual, 1)), actual >= minimum)

    def _check_os_build(self, app: str, required: object) -> RequirementCheckResult:
        minimum = _as_number(required)
        expected = f">= {int(minimum)}" if minimum is not None else str(required)
        actual = self._probe.os_build()
        if minimum is None or actual is None:
            return RequirementCheckResult(app, "OS Build", expected, _UNKNOWN if actual is None else str(actual), True)
        return RequirementCheckResult(app, "OS Build", expected, str(actual), actual >= minimum)

    def _check_architecture(self, app: str, required: object) -> RequirementCheckResult:
        expected = normalize_architecture(str(required)) or str(required)
        actual = self._probe.architecture()
        if actual is None:
            return RequirementCheckResult(app, "Architecture", expected, _UNKNOWN, True)
        return RequirementCheckResult(app, "Architecture", expected, actual, actual == expected)
