"""Wires settings, stores and services together for the CLI and the GUI."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from persona_setup.catalog import Catalog, CatalogStore
from persona_setup.defaults import seed_data
from persona_setup.paths import DataPaths
from persona_setup.personas import PersonaStore
from persona_setup.settings import SettingsStore, UserSettings
from services.backup import BackupService
from services.history import InstallationHistory
from services.installer import InstallEngine, InstallerService, WingetClient
from services.requirements import RequirementsChecker, SystemProbe
from services.updates import UpdateService


@dataclass
class Workspace:
    settings: UserSettings
    paths: DataPaths
    catalog_store: CatalogStore
    persona_store: PersonaStore
    history: InstallationHistory
    backups: BackupService
    engine: InstallEngine
    requirements: RequirementsChecker

    def catalog(self) -> Catalog:
        return self.catalog_store.load()

    def installer(self) -> InstallerService:
        return InstallerService(
            self.catalog(),
            engine=self.engine,
            history=self.history,
            requirements=self.requirements,
            settings=self.settings,
        )

    def updates(self) -> UpdateService:
        return UpdateService(self.catalog(), winget_client=self.engine.client, engine=self.engine)


def open_workspace(
    settings: UserSettings | None = None,
    *,
    winget_client: WingetClient | None = None,
    probe: SystemProbe | None = None,
    sleep: Callable[[float], None] | None = None,
    seed: bool = True,
) -> Workspace:
    settings = settings or SettingsStore().load()
    paths = settings.data_paths()
    if seed:
        seed_data(paths)
    else:
        paths.ensure()
    persona_store = PersonaStore(paths.personas)
    engine_kwargs = {"settings": settings}
    if sleep is not None:
        engine_kwargs["sleep"] = sleep
    return Workspace(
        settings=settings,
        paths=paths,
        catalog_store=CatalogStore(paths.catalog),
        persona_store=persona_store,
        history=InstallationHistory(paths.history, max_records=settings.history_limit),
        backups=BackupService(persona_store, paths.backups, keep=settings.backup_keep),
        engine=InstallEngine(winget_client or WingetClient(), **engine_kwargs),
        requirements=RequirementsChecker(probe),
    )
