"""Application installation orchestration on top of the winget CLI."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from persona_setup.catalog import CatalogEntry
from persona_setup.personas import Persona
from persona_setup.settings import UserSettings
from services.history import InstallationHistory
from services.requirements import RequirementsChecker
from services.resolver import ResolutionResult, resolve

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]
StatusCallback = Callable[[str], None]

# winget HRESULTs, as unsigned 32-bit values.
WINGET_NO_APPLICABLE_UPGRADE = 0x8A15002B
WINGET_PACKAGE_ALREADY_INSTALLED = 0x8A150061
WINGET_NO_PACKAGE_FOUND = 0x8A150014
ALREADY_INSTALLED_CODES = frozenset({WINGET_NO_APPLICABLE_UPGRADE, WINGET_PACKAGE_ALREADY_INSTALLED})


def normalize_exit_code(code: int) -> int:
    return code & 0xFFFFFFFF


@dataclass
class CommandExecutionResult:
    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def exit_code(self) -> int:
        return normalize_exit_code(self.returncode)


class WingetError(RuntimeError):
    pass


class WingetClient:
    """Thin wrapper around the winget CLI."""

    def __init__(self, executable: str | None = None):
        exe_path = executable or shutil.which("winget")
        if not exe_path:
            fallback = self._find_winget_fallback()
            exe_path = str(fallback) if fallback else None
        self._executable = Path(exe_path) if exe_path else None

    def is_available(self) -> bool:
        return self._executable is not None

    def install_package(
        self,
        package_id: str,
        *,
        source: str | None = None,
        scope: str | None = None,
        silent: bool = True,
        force: bool = False,
    ) -> CommandExecutionResult:
        cmd = self._build_base_command("install", package_id, source)
        cmd.append("--accept-package-agreements")
        if scope:
            cmd.extend(["--scope", scope])
        if silent:
            cmd.append("--silent")
        if force:
            cmd.append("--force")
        return self._run(cmd)

    def list_installed(self, package_id: str) -> CommandExecutionResult:
        return self._run(self._build_base_command("list", package_id, None))

    def is_installed(self, package_id: str) -> bool:
        result = self.list_installed(package_id)
        return result.succeeded and package_id.lower() in result.stdout.lower()

    def upgrade_listing(self) -> CommandExecutionResult:
        if not self._executable:
            raise WingetError("winget executable not found in PATH")
        cmd = [
            str(self._executable),
            "upgrade",
            "--include-unknown",
            "--accept-source-agreements",
            "--disable-interactivity",
        ]
        return self._run(cmd)

    def upgrade_package(
        self,
        package_id: str,
        *,
        source: str | None = None,
        silent: bool = True,
    ) -> CommandExecutionResult:
        cmd = self._build_base_command("upgrade", package_id, source)
        cmd.append("--accept-package-agreements")
        if silent:
            cmd.append("--silent")
        return self._run(cmd)

    def _build_base_command(self, verb: str, package_id: str, source: str | None) -> list[str]:
        if not self._executable:
            raise WingetError("winget executable not found in PATH")
        cmd = [str(self._executable), verb, "--id", package_id, "--exact"]
        cmd.extend(["--accept-source-agreements", "--disable-interactivity"])
        if source:
            cmd.extend(["--source", source])
        return cmd

    def _run(self, cmd: list[str]) -> CommandExecutionResult:
        logger.debug("Running %s", " ".join(cmd), extra={"event": "winget_command"})
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace", check=False)
        except OSError as exc:
            raise WingetError(f"Unable to run {cmd[0]}: {exc}") from exc
        return CommandExecutionResult(cmd, completed.returncode, completed.stdout or "", completed.stderr or "")

    def _find_winget_fallback(self) -> Path | None:
        local_appdata = os.environ.get("LOCALAPPDATA")
        if local_appdata:
            candidate = Path(local_appdata) / "Microsoft" / "WindowsApps" / "winget.exe"
            if candidate.exists():
                return candidate
        return None


@dataclass
class OperationResult:
    app: str
    operation: str
    success: bool
    message: str
    stdout: str = ""
    stderr: str = ""
    package_id: str = ""
    attempts: int = 0


@dataclass(frozen=True)
class InstallStrategy:
    name: str
    silent: bool = True
    force: bool = False
    scope: str | None = None


def default_strategies(settings: UserSettings) -> tuple[InstallStrategy, ...]:
    return (
        InstallStrategy("default", silent=True, scope=settings.install_scope or None),
        InstallStrategy("force-machine", silent=True, force=True, scope="machine"),
    )


class InstallEngine:
    """Runs winget installs with a fixed strategy sequence and a pause between attempts."""

    def __init__(
        self,
        winget_client: WingetClient | None = None,
        *,
        settings: UserSettings | None = None,
        strategies: Sequence[InstallStrategy] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._winget = winget_client or WingetClient()
        self._settings = settings or UserSettings()
        self._strategies = tuple(strategies or default_strategies(self._settings))
        self._sleep = sleep

    @property
    def client(self) -> WingetClient:
        return self._winget

    def install(self, entry: CatalogEntry) -> OperationResult:
        if not self._winget.is_available():
            return OperationResult(entry.name, "install", False, "winget executable not found", package_id=entry.package_id)
        max_attempts = max(1, self._settings.max_attempts)
        source = self._settings.winget_source or None
        stdout_parts: list[str] = []
        stderr_parts: list[str] = []
        last_code = 0
        attempts = 0
        for attempt in range(1, max_attempts + 1):
            strategy = self._strategies[min(attempt, len(self._strategies)) - 1]
            attempts = attempt
            log_extra = {
                "event": "install_attempt",
                "app": entry.name,
                "package_id": entry.package_id,
                "attempt": attempt,
                "strategy": strategy.name,
            }
            logger.info("Installing %s (attempt %d, %s)", entry.name, attempt, strategy.name, extra=log_extra)
            try:
                result = self._winget.install_package(
                    entry.package_id,
                    source=source,
                    scope=strategy.scope,
                    silent=strategy.silent,
                    force=strategy.force,
                )
            except WingetError as exc:
                return OperationResult(entry.name, "install", False, str(exc), package_id=entry.package_id, attempts=attempt)
            stdout_parts.append(result.stdout)
            stderr_parts.append(result.stderr)
            last_code = result.exit_code
            if result.succeeded:
                message = "Installed via winget" if strategy.name == "default" else f"Installed via winget ({strategy.name})"
                logger.info("%s installed", entry.name, extra={**log_extra, "event": "install_succeeded"})
                return self._result(entry, True, message, attempt, stdout_parts, stderr_parts)
            if last_code in ALREADY_INSTALLED_CODES:
                logger.info("%s already installed", entry.name, extra={**log_extra, "event": "install_skipped"})
                return self._result(entry, True, "Already installed", attempt, stdout_parts, stderr_parts)
            logger.warning(
                "%s failed with exit code 0x%08X",
                entry.name,
                last_code,
                extra={**log_extra, "event": "install_failed", "exit_code": last_code},
            )
            if last_code == WINGET_NO_PACKAGE_FOUND:
                return self._result(
                    entry, False, f"No package found for {entry.package_id}", attempt, stdout_parts, stderr_parts
                )
            if attempt < max_attempts:
                self._sleep(self._settings.retry_delay_seconds)
        message = f"winget install failed (exit code 0x{last_code:08X})"
        return self._result(entry, False, message, attempts, stdout_parts, stderr_parts)

    def upgrade(self, entry: CatalogEntry) -> OperationResult:
        if not self._winget.is_available():
            return OperationResult(entry.name, "upgrade", False, "winget executable not found", package_id=entry.package_id)
        try:
            result = self._winget.upgrade_package(entry.package_id, source=self._settings.winget_source or None)
        except WingetError as exc:
            return OperationResult(entry.name, "upgrade", False, str(exc), package_id=entry.package_id, attempts=1)
        success = result.succeeded or result.exit_code in ALREADY_INSTALLED_CODES
        message = "Upgraded via winget" if success else f"winget upgrade failed (exit code 0x{result.exit_code:08X})"
        logger.info(
            "%s: %s",
            entry.name,
            message,
            extra={"event": "upgrade_finished", "app": entry.name, "package_id": entry.package_id, "success": success},
        )
        return OperationResult(entry.name, "upgrade", success, message, result.stdout, result.stderr, entry.package_id, 1)

    def _result(
        self,
        entry: CatalogEntry,
        success: bool,
        message: str,
        attempts: int,
        stdout_parts: list[str],
        stderr_parts: list[str],
    ) -> OperationResult:
        return OperationResult(
            entry.name,
            "install",
            success,
            message,
            "\n".join(part for part in stdout_parts if part),
            "\n".join(part for part in stderr_parts if part),
            entry.package_id,
            attempts,
        )


class InstallerService:
    def __init__(
        self,
        catalog: Mapping[str, CatalogEntry],
        *,
        engine: InstallEngine | None = None,
        history: InstallationHistory | None = None,
        requirements: RequirementsChecker | None = None,
        settings: UserSettings | None = None,
    ) -> None:
        self._catalog = catalog
        self._settings = settings or UserSettings()
        self._engine = engine or InstallEngine(settings=self._settings)
        self._history = history
        self._requirements = requirements or RequirementsChecker()

    @property
    def catalog(self) -> Mapping[str, CatalogEntry]:
        return self._catalog

    def resolve(self, persona: Persona, optional: Iterable[str] = ()) -> ResolutionResult:
        return resolve(persona.selection(optional), self._catalog)

    def install_persona(
        self,
        persona: Persona,
        optional: Iterable[str] = (),
        *,
        progress_callback: ProgressCallback | None = None,
        status_callback: StatusCallback | None = None,
    ) -> tuple[ResolutionResult, list[OperationResult]]:
        resolution = self.resolve(persona, optional)
        if resolution.has_issues and self._settings.block_on_issues:
            logger.warning(
                "Not installing %s: dependency issues detected",
                persona.name,
                extra={"event": "install_blocked", "persona": persona.name},
            )
            return resolution, []
        results = self.install_plan(
            resolution.installation_order,
            persona=persona.name,
            progress_callback=progress_callback,
            status_callback=status_callback,
        )
        return resolution, results

    def install_plan(
        self,
        order: Iterable[str],
        *,
        persona: str | None = None,
        skip_installed: bool | None = None,
        progress_callback: ProgressCallback | None = None,
        status_callback: StatusCallback | None = None,
    ) -> list[OperationResult]:
        if skip_installed is None:
            skip_installed = self._settings.skip_installed
        names = list(order)
        total = len(names)
        results: list[OperationResult] = []
        for index, name in enumerate(names, start=1):
            if status_callback:
                status_callback(name)
            result = self._install_one(name, skip_installed=skip_installed)
            results.append(result)
            if self._history is not None:
                self._history.record(result, persona=persona)
            if progress_callback:
                progress_callback(index, total, name)
        succeeded = sum(1 for result in results if result.success)
        logger.info(
            "Installed %d of %d applications",
            succeeded,
            total,
            extra={"event": "plan_finished", "persona": persona, "succeeded": succeeded, "total": total},
        )
        return results

    def _install_one(self, name: str, *, skip_installed: bool) -> OperationResult:
        entry = self._catalog.get(name)
        if entry is None:
            return OperationResult(name, "install", False, "Not in catalog")
        if self._settings.check_requirements:
            unmet = self._requirements.unmet(entry)
            if unmet:
                details = "; ".join(f"{item.name} {item.expected} (found {item.actual})" for item in unmet)
                logger.warning(
                    "%s requirements not met: %s",
                    name,
                    details,
                    extra={"event": "requirements_unmet", "app": name},
                )
                return OperationResult(name, "install", False, f"Requirements not met: {details}", package_id=entry.package_id)
        if skip_installed and self._engine.client.is_available():
            try:
                installed = self._engine.client.is_installed(entry.package_id)
            except WingetError:
                installed = False
            if installed:
                return OperationResult(name, "install", True, "Already installed", package_id=entry.package_id)
        return self._engine.install(entry)
