"""Provisioning settings loaded from YAML.

```yaml
backend:
  type: com            # com | memory
  node: ""             # GR node name, empty for the local machine
  seed: galaxy.yaml    # memory backend only

galaxy:
  name: MyGalaxy       # optional, defaults to the first galaxy found
  username: ""
  password_env: GRACCESS_PASSWORD

instances:
  - name: GRPlatform
    template: $WinPlatform
  - name: AppEngine
    template: $AppEngine
    parent: GRPlatform

export:
  objects: [GRPlatform, AppEngine]
  format: exportAsPDF
  path: C:\\Exports\\Objects.aaPKG
```
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from ..galaxy.base import DEFAULT_EXPORT_FORMAT

logger = logging.getLogger(__name__)


@dataclass
class GalaxySettings:
    """Which galaxy to use and how to log in."""
    name: Optional[str] = None
    username: str = ""
    password: Optional[str] = None
    password_env: str = "GRACCESS_PASSWORD"

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


@dataclass
class InstanceSpec:
    """One instance to ensure."""
    name: str
    template: str
    parent: Optional[str] = None


@dataclass
class ExportSettings:
    """Objects to export after provisioning."""
    objects: list[str]
    path: str
    format: str = DEFAULT_EXPORT_FORMAT


@dataclass
class Settings:
    """Complete provisioning settings."""
    backend: dict = field(default_factory=lambda: {"type": "com"})
    galaxy: GalaxySettings = field(default_factory=GalaxySettings)
    instances: list[InstanceSpec] = field(default_factory=list)
    export: Optional[ExportSettings] = None
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> "Settings":
        """Build settings from parsed YAML.

        Raises:
            ValueError: If the settings are malformed
        """
        data = data or {}

        backend = dict(data.get("backend") or {"type": "com"})
        seed = backend.get("seed")
        if seed and base_dir is not None and not Path(seed).is_absolute():
            backend["seed"] = str(base_dir / seed)

        galaxy_data = data.get("galaxy") or {}
        unknown = set(galaxy_data) - {"name", "username", "password", "password_env"}
        if unknown:
            raise ValueError(f"Unknown galaxy settings: {sorted(unknown)}")
        galaxy = GalaxySettings(**{k: str(v) for k, v in galaxy_data.items() if v is not None})

        instances = [cls._parse_instance(i, entry) for i, entry in enumerate(data.get("instances") or [])]
        cls._validate_instances(instances)

        export = None
        export_data = data.get("export")
        if export_data:
            if not export_data.get("path"):
                raise ValueError("export.path is required")
            objects = export_data.get("objects") or []
            if not isinstance(objects, list) or not objects:
                raise ValueError("export.objects must be a non-empty list of instance names")
            export_path = str(export_data["path"])
            if base_dir is not None and not Path(export_path).is_absolute():
                export_path = str(base_dir / export_path)
            export = ExportSettings(
                objects=[str(o) for o in objects],
                path=export_path,
                format=str(export_data.get("format") or DEFAULT_EXPORT_FORMAT),
            )

        return cls(backend=backend, galaxy=galaxy, instances=instances, export=export)

    @staticmethod
    def _parse_instance(index: int, entry: dict) -> InstanceSpec:
        if not isinstance(entry, dict):
            raise ValueError(f"instances[{index}] must be a mapping")
        name = entry.get("name")
        template = entry.get("template")
        if not name or not template:
            raise ValueError(f"instances[{index}] needs both 'name' and 'template'")
        parent = entry.get("parent")
        return InstanceSpec(name=str(name), template=str(template), parent=str(parent) if parent else None)

    @staticmethod
    def _validate_instances(instances: list[InstanceSpec]) -> None:
        """Reject duplicate names and warn about parents not declared earlier."""
        seen: set[str] = set()
        for spec in instances:
            if spec.name in seen:
                raise ValueError(f"Instance '{spec.name}' is declared more than once")
            if spec.parent and spec.parent not in seen:
                logger.warning(
                    f"Parent '{spec.parent}' of '{spec.name}' is not declared earlier; "
                    "it must already exist in the galaxy"
                )
            seen.add(spec.name)

    def instance_names(self) -> list[str]:
        return [spec.name for spec in self.instances]


def find_settings_file() -> str:
    """Find the graccess.yaml settings file."""
    search_paths = [
        Path.cwd() / "configs" / "graccess.yaml",
        Path.cwd() / "graccess.yaml",
        Path.home() / ".config" / "graccess" / "graccess.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return str(path)

    raise FileNotFoundError(
        "Could not find graccess.yaml. Create one in ./configs/graccess.yaml"
    )


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from ``path`` or the first settings file found."""
    config_path = Path(path) if path else Path(find_settings_file())
    if not config_path.exists():
        raise FileNotFoundError(f"Settings file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    settings = Settings.from_dict(data, base_dir=config_path.resolve().parent)
    settings.source = str(config_path)
    logger.debug(f"Loaded settings from {config_path}: {len(settings.instances)} instances")
    return settings
