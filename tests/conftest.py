from __future__ import annotations

from pathlib import Path

import pytest

from persona_setup.settings import UserSettings
from services.installer import CommandExecutionResult, WingetClient
from services.workspace import Workspace, open_workspace


class DummyWingetClient(WingetClient):
    def __init__(self, install_codes: dict[str, list[int]] | None = None) -> None:
        super().__init__(executable="winget")
        self._available = True
        self.install_codes = install_codes or {}
        self.installed: set[str] = set()
        self.upgrade_output = ""
        self.installs: list[tuple[str, str | None, str | None, bool]] = []
        self.upgrades: list[str] = []

    def is_available(self) -> bool:  # type: ignore[override]
        return self._available

    def install_package(
        self,
        package_id: str,
        *,
        source: str | None = None,
        scope: str | None = None,
        silent: bool = True,
        force: bool = False,
    ) -> CommandExecutionResult:  # type: ignore[override]
        self.installs.append((package_id, source, scope, force))
        codes = self.install_codes.get(package_id)
        code = codes.pop(0) if codes else 0
        return CommandExecutionResult(["winget", "install", package_id], code, "ok" if code == 0 else "", "" if code == 0 else "boom")

    def is_installed(self, package_id: str) -> bool:  # type: ignore[override]
        return package_id in self.installed

    def upgrade_listing(self) -> CommandExecutionResult:  # type: ignore[override]
        return CommandExecutionResult(["winget", "upgrade"], 0, self.upgrade_output, "")

    def upgrade_package(self, package_id: str, *, source: str | None = None, silent: bool = True) -> CommandExecutionResult:  # type: ignore[override]
        self.upgrades.append(package_id)
        return CommandExecutionResult(["winget", "upgrade", package_id], 0, "ok", "")


class FakeProbe:
    def __init__(
        self,
        memory: float | None = 16.0,
        disk: float | None = 200.0,
        build: int | None = 22631,
        arch: str | None = "x64",
    ) -> None:
        self.memory = memory
        self.disk = disk
        self.build = build
        self.arch = arch

    def memory_gb(self) -> float | None:
        return self.memory

    def free_disk_gb(self) -> float | None:
        return self.disk

    def os_build(self) -> int | None:
        return self.build

    def architecture(self) -> str | None:
        return self.arch


@pytest.fixture()
def winget() -> DummyWingetClient:
    return DummyWingetClient()


@pytest.fixture()
def settings(tmp_path: Path) -> UserSettings:
    return UserSettings(data_dir=str(tmp_path / "data"), retry_delay_seconds=0.0)


@pytest.fixture()
def workspace(settings: UserSettings, winget: DummyWingetClient) -> Workspace:
    return open_workspace(settings, winget_client=winget, probe=FakeProbe(), sleep=lambda _: None)
