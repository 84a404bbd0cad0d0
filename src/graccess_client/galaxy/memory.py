"""In-process galaxy backend.

Holds galaxies, templates and instances in memory, seeded from YAML. It
reports failures through CommandResults the same way GRAccess does, which
makes it usable for dry runs and tests on machines without ArchestrA.

Seed format:

```yaml
galaxies:
  Demo:
    templates:
      - $WinPlatform
      - $AppEngine
      - $Area
      - $UserDefined
      - name: $Tank
        based_on: $UserDefined
    instances:
      GRPlatform:
        template: $WinPlatform
    security:
      users:
        admin: secret
```
"""
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import yaml

from .base import (
    CommandResult,
    ConditionType,
    Galaxy,
    GalaxyBackend,
    GalaxyObject,
    Instance,
    NamedCollection,
    ObjectCollection,
    ObjectKind,
    Template,
    assert_success,
)
from ..utils.logging_config import timed

logger = logging.getLogger(__name__)


def like_to_regex(pattern: str) -> re.Pattern:
    """Translate a SQL LIKE pattern ("%" and "_" wildcards) to a regex."""
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


class MemoryInstance(Instance):
    """Instance stored in a MemoryGalaxy."""

    def __init__(self, galaxy: "MemoryGalaxy", tagname: str, based_on: str, area: str = "", host: str = ""):
        self._galaxy = galaxy
        self._tagname = tagname
        self._based_on = based_on
        self._area = area
        self._host = host

    @property
    def tagname(self) -> str:
        return self._tagname

    @property
    def based_on(self) -> str:
        return self._based_on

    @property
    def area(self) -> str:
        return self._area

    @property
    def host(self) -> str:
        return self._host

    @timed("assign_area")
    def assign_area(self, area_name: str) -> None:
        assert_success(self._galaxy._check_parent(area_name), f"Set Area of {self._tagname}")
        self._area = area_name

    @timed("assign_host")
    def assign_host(self, host_name: str) -> None:
        assert_success(self._galaxy._check_parent(host_name), f"Set Host of {self._tagname}")
        self._host = host_name

    def to_dict(self) -> dict:
        return {
            "tagname": self._tagname,
            "kind": "instance",
            "based_on": self._based_on,
            "area": self._area,
            "host": self._host,
        }


class MemoryTemplate(Template):
    """Template stored in a MemoryGalaxy."""

    def __init__(self, galaxy: "MemoryGalaxy", tagname: str, based_on: str = ""):
        self._galaxy = galaxy
        self._tagname = tagname
        self._based_on = based_on

    @property
    def tagname(self) -> str:
        return self._tagname

    @property
    def based_on(self) -> str:
        return self._based_on

    @timed("create_instance")
    def create_instance(self, name: str) -> Instance:
        result = self._galaxy._check_new_tagname(name)
        assert_success(result, f"Create instance {name} from {self._tagname}")
        instance = MemoryInstance(self._galaxy, name, self._tagname)
        self._galaxy.instances[name] = instance
        logger.debug(f"Created instance {name} from {self._tagname} in {self._galaxy.name}")
        return instance

    def to_dict(self) -> dict:
        return {"tagname": self._tagname, "kind": "template", "based_on": self._based_on}


class MemoryObjectCollection(ObjectCollection):
    """Query result that exports to a YAML package file."""

    def __init__(self, galaxy: "MemoryGalaxy", items: list[GalaxyObject]):
        super().__init__(items)
        self._galaxy = galaxy

    @timed("export")
    def export(self, export_format: str, path: str) -> CommandResult:
        package = {
            "package": {
                "galaxy": self._galaxy.name,
                "format": export_format,
                "exported_at": datetime.now(timezone.utc).isoformat(),
            },
            "objects": [obj.to_dict() for obj in self.items],
        }
        try:
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(package, f, sort_keys=False)
        except OSError as e:
            result = CommandResult.failed("Could not create file", str(e), id="cmdCouldntCreateFile")
        else:
            result = CommandResult.ok(f"Exported {len(self)} objects")
        assert_success(result, f"Export to {path}")
        logger.info(f"Exported {len(self)} objects from {self._galaxy.name} to {path}")
        return result


class MemoryGalaxy(Galaxy):
    """Galaxy held in memory."""

    def __init__(self, name: str, users: Optional[dict[str, str]] = None):
        self._name = name
        self.users = dict(users or {})
        self.logged_in = False
        self.templates: dict[str, MemoryTemplate] = {}
        self.instances: dict[str, MemoryInstance] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def security_enabled(self) -> bool:
        return bool(self.users)

    @classmethod
    def from_dict(cls, name: str, data: Optional[dict]) -> "MemoryGalaxy":
        data = data or {}
        users = (data.get("security") or {}).get("users") or {}
        galaxy = cls(name, users={str(k): str(v) for k, v in users.items()})

        for entry in data.get("templates") or []:
            if isinstance(entry, str):
                galaxy.templates[entry] = MemoryTemplate(galaxy, entry)
            else:
                tagname = entry["name"]
                galaxy.templates[tagname] = MemoryTemplate(galaxy, tagname, entry.get("based_on", ""))

        for tagname, entry in (data.get("instances") or {}).items():
            entry = entry or {}
            template = entry.get("template")
            if not template:
                raise ValueError(f"Instance '{tagname}' in galaxy '{name}' has no template")
            galaxy.instances[tagname] = MemoryInstance(
                galaxy,
                tagname,
                template,
                area=entry.get("area", ""),
                host=entry.get("host", ""),
            )
        return galaxy

    def _objects(self, kind: ObjectKind) -> dict:
        if kind is ObjectKind.INSTANCE:
            return self.instances
        return self.templates

    def _require_login(self) -> CommandResult:
        if not self.logged_in:
            return CommandResult.failed("Not logged in", f"Login to {self._name} first")
        return CommandResult.ok()

    def _check_new_tagname(self, name: str) -> CommandResult:
        result = self._require_login()
        if not result.successful:
            return result
        if not name:
            return CommandResult.failed("Invalid tagname", "Tagname must not be empty")
        if name in self.instances or name in self.templates:
            return CommandResult.failed("Object already exists", name)
        return CommandResult.ok()

    def _check_parent(self, parent_name: str) -> CommandResult:
        result = self._require_login()
        if not result.successful:
            return result
        if parent_name not in self.instances:
            return CommandResult.failed("Object not found", parent_name)
        return CommandResult.ok()

    @timed("login")
    def login(self, username: str = "", password: str = "") -> CommandResult:
        if self.security_enabled and self.users.get(username) != password:
            result = CommandResult.failed("Access Denied", f"Invalid credentials for '{username}'")
        else:
            self.logged_in = True
            result = CommandResult.ok(f"Logged in to {self._name}")
        assert_success(result, f"Login to {self._name}")
        return result

    @timed("query_by_name")
    def query_objects_by_name(self, kind: ObjectKind, names: list[str]) -> ObjectCollection:
        assert_success(self._require_login(), f"Query {kind.name.lower()}s")
        objects = self._objects(kind)
        found = [objects[name] for name in names if name in objects]
        return MemoryObjectCollection(self, found)

    @timed("query")
    def query_objects(self, kind: ObjectKind, condition: ConditionType, pattern: str) -> ObjectCollection:
        assert_success(self._require_login(), f"Query {kind.name.lower()}s")
        if condition is not ConditionType.NAMED_LIKE:
            raise ValueError(f"Unsupported condition: {condition}")
        regex = like_to_regex(pattern)
        found = [obj for name, obj in self._objects(kind).items() if regex.match(name)]
        return MemoryObjectCollection(self, found)


class MemoryBackend(GalaxyBackend):
    """Backend whose galaxies live in this process."""

    def __init__(self, galaxies: Optional[dict] = None, node: str = ""):
        super().__init__(node)
        self.galaxies: dict[str, MemoryGalaxy] = {
            name: MemoryGalaxy.from_dict(name, data)
            for name, data in (galaxies or {}).items()
        }

    @classmethod
    def from_file(cls, path: Union[str, Path], node: str = "") -> "MemoryBackend":
        """Load galaxies from a YAML seed file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Galaxy seed file not found: {path}")
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(data.get("galaxies") or {}, node=node)

    @timed("query_galaxies", target="memory")
    def query_galaxies(self, node: Optional[str] = None) -> NamedCollection[Galaxy]:
        logger.debug(f"Querying in-memory galaxies (node={node or self.node or 'local'})")
        return NamedCollection(self.galaxies.values())
