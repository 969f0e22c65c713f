"""Built-in catalog and personas used to seed a fresh data directory."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from persona_setup.catalog import CatalogStore, catalog_from_json
from persona_setup.paths import DataPaths
from persona_setup.personas import Persona, PersonaStore

logger = logging.getLogger(__name__)

DEFAULT_CATALOG: Dict[str, Any] = {
    # Developer tooling
    "Git": {"id": "Git.Git", "category": "Development"},
    "GitHub CLI": {"id": "GitHub.cli", "dependencies": ["Git"], "category": "Development"},
    "Visual Studio Code": {
        "id": "Microsoft.VisualStudioCode",
        "category": "Development",
        "system_requirements": {"min_memory_gb": 1, "min_disk_gb": 1},
    },
    "Python 3.12": {"id": "Python.Python.3.12", "category": "Development"},
    "Node.js LTS": {"id": "OpenJS.NodeJS.LTS", "category": "Development"},
    "WSL2": {"id": "Microsoft.WSL", "category": "Development", "system_requirements": {"min_os_build": 19041}},
    "Docker Desktop": {
        "id": "Docker.DockerDesktop",
        "dependencies": ["WSL2"],
        "conflicts": ["Podman Desktop"],
        "category": "Development",
        "system_requirements": {"min_memory_gb": 4, "min_disk_gb": 10, "min_os_build": 19041, "architecture": "x64"},
    },
    "Podman Desktop": {
        "id": "RedHat.Podman-Desktop",
        "dependencies": ["WSL2"],
        "conflicts": ["Docker Desktop"],
        "category": "Development",
    },
    "Windows Terminal": {"id": "Microsoft.WindowsTerminal", "category": "Development"},
    "PowerShell 7": "Microsoft.PowerShell",
    # Browsers
    "Google Chrome": {"id": "Google.Chrome", "category": "Browsers"},
    "Mozilla Firefox": {"id": "Mozilla.Firefox", "category": "Browsers"},
    # Productivity
    "7-Zip": "7zip.7zip",
    "Notepad++": {"id": "Notepad++.Notepad++", "category": "Productivity"},
    "Microsoft Teams": {"id": "Microsoft.Teams", "category": "Productivity"},
    "Zoom": {"id": "Zoom.Zoom", "category": "Productivity"},
    "Adobe Acrobat Reader": {"id": "Adobe.Acrobat.Reader.64-bit", "category": "Productivity"},
    # Design
    "GIMP": {"id": "GIMP.GIMP", "category": "Design", "system_requirements": {"min_memory_gb": 4}},
    "Inkscape": {"id": "Inkscape.Inkscape", "category": "Design"},
    "Blender": {
        "id": "BlenderFoundation.Blender",
        "category": "Design",
        "system_requirements": {"min_memory_gb": 8, "min_disk_gb": 2, "architecture": "x64"},
    },
    "Figma": {"id": "Figma.Figma", "category": "Design"},
    # Media
    "VLC": {"id": "VideoLAN.VLC", "category": "Media"},
    "OBS Studio": {"id": "OBSProject.OBSStudio", "category": "Media", "system_requirements": {"min_memory_gb": 4}},
}

DEFAULT_PERSONAS: List[Dict[str, Any]] = [
    {
        "name": "Developer",
        "description": "Source control, editors and container tooling",
        "base_apps": ["Git", "Visual Studio Code", "Windows Terminal", "PowerShell 7", "7-Zip"],
        "optional_apps": ["GitHub CLI", "Python 3.12", "Node.js LTS", "Docker Desktop", "Podman Desktop", "Google Chrome"],
    },
    {
        "name": "Designer",
        "description": "Raster, vector and 3D design tools",
        "base_apps": ["GIMP", "Inkscape", "Google Chrome", "7-Zip"],
        "optional_apps": ["Blender", "Figma", "VLC"],
    },
    {
        "name": "Office Worker",
        "description": "Browsers, meetings and documents",
        "base_apps": ["Google Chrome", "Microsoft Teams", "Adobe Acrobat Reader", "7-Zip"],
        "optional_apps": ["Zoom", "Mozilla Firefox", "Notepad++"],
    },
    {
        "name": "Streamer",
        "description": "Recording and playback",
        "base_apps": ["OBS Studio", "VLC"],
        "optional_apps": ["Google Chrome", "Zoom"],
    },
]


def default_personas() -> List[Persona]:
    return [Persona.from_dict(data) for data in DEFAULT_PERSONAS]


def seed_data(paths: DataPaths) -> bool:
    """Write the built-in catalog/personas when the data directory is empty."""
    paths.ensure()
    seeded = False
    catalog_store = CatalogStore(paths.catalog)
    if not catalog_store.exists():
        catalog_store.save(catalog_from_json(DEFAULT_CATALOG))
        seeded = True
    persona_store = PersonaStore(paths.personas)
    if not any(paths.personas.glob("*.json")):
        for persona in default_personas():
            persona_store.save(persona)
        seeded = True
    if seeded:
        logger.info("Seeded data directory %s", paths.root, extra={"event": "data_seeded"})
    return seeded
