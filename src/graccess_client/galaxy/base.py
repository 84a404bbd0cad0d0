"""Base abstractions for the GRAccess object model."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Iterable, Iterator, Mapping, Optional, TypeVar, Union

from ..errors import ExternalOperationFailed

logger = logging.getLogger(__name__)

# Base template that marks an instance as an area
AREA_TEMPLATE = "$Area"

# Package definition file (.aaPKG)
DEFAULT_EXPORT_FORMAT = "exportAsPDF"

T = TypeVar("T")


class ObjectKind(Enum):
    """Which half of the galaxy a query targets. Values are GRAccess enum names."""
    INSTANCE = "gObjectIsInstance"
    TEMPLATE = "gObjectIsTemplate"


class ConditionType(Enum):
    """Query conditions. Values are GRAccess enum names."""
    NAMED_LIKE = "namedLike"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a GRAccess operation."""
    successful: bool
    text: str = ""
    custom_message: str = ""
    id: Optional[Any] = None

    @classmethod
    def ok(cls, text: str = "") -> "CommandResult":
        return cls(successful=True, text=text)

    @classmethod
    def failed(cls, text: str, custom_message: str = "", id: Optional[Any] = None) -> "CommandResult":
        return cls(successful=False, text=text, custom_message=custom_message, id=id)

    def __repr__(self) -> str:
        status = "OK" if self.successful else "FAILED"
        return f"CommandResult({status}, text={self.text!r})"


def assert_success(result: Optional[CommandResult], operation: Optional[str] = None) -> None:
    """Raise ExternalOperationFailed unless the result is missing or successful."""
    if result is not None and not result.successful:
        logger.debug(f"{operation or 'operation'} reported failure: {result!r}")
        raise ExternalOperationFailed(result, operation)


@dataclass(frozen=True)
class Found(Generic[T]):
    """Lookup hit."""
    value: T


@dataclass(frozen=True)
class NotFound:
    """Lookup miss."""
    name: str


Lookup = Union[Found[T], NotFound]


class NamedCollection(Generic[T]):
    """Ordered collection of named items.

    Name lookups and positional access are separate methods. Positions are
    zero-based regardless of how the collaborator numbers its collections.
    """

    def __init__(self, items: Iterable[T], key: Any = None):
        self._items: tuple[T, ...] = tuple(items)
        key = key or (lambda item: item.name)
        self._by_name: dict[str, T] = {}
        for item in self._items:
            self._by_name.setdefault(key(item), item)

    @property
    def items(self) -> tuple[T, ...]:
        return self._items

    @property
    def by_name(self) -> Mapping[str, T]:
        return dict(self._by_name)

    def get(self, name: str) -> Lookup:
        if name in self._by_name:
            return Found(self._by_name[name])
        return NotFound(name)

    def at(self, position: int) -> T:
        return self._items[position]

    def first(self) -> Lookup:
        if not self._items:
            return NotFound("<first>")
        return Found(self._items[0])

    def names(self) -> list[str]:
        return list(self._by_name.keys())

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.names()!r})"


class GalaxyObject(ABC):
    """A template or instance in a galaxy."""

    @property
    @abstractmethod
    def tagname(self) -> str:
        pass

    @property
    @abstractmethod
    def based_on(self) -> str:
        """Name of the template this object was derived from."""
        pass

    @property
    def name(self) -> str:
        return self.tagname

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.tagname!r}, based_on={self.based_on!r})"


class Instance(GalaxyObject):
    """A concrete object derived from a template."""

    @property
    @abstractmethod
    def area(self) -> str:
        pass

    @property
    @abstractmethod
    def host(self) -> str:
        pass

    @abstractmethod
    def assign_area(self, area_name: str) -> None:
        """Set the Area attribute."""
        pass

    @abstractmethod
    def assign_host(self, host_name: str) -> None:
        """Set the Host attribute."""
        pass


class Template(GalaxyObject):
    """A reusable object definition."""

    @abstractmethod
    def create_instance(self, name: str) -> Instance:
        """Derive a new instance named ``name`` from this template."""
        pass


class ObjectCollection(NamedCollection[GalaxyObject], ABC):
    """Result of an object query. Can be exported as a package."""

    def __init__(self, items: Iterable[GalaxyObject]):
        super().__init__(items, key=lambda obj: obj.tagname)

    @abstractmethod
    def export(self, export_format: str, path: str) -> CommandResult:
        """Export every object in the collection to ``path``.

        Format and path are passed to the collaborator unchecked.
        """
        pass


class Galaxy(ABC):
    """A named configuration repository."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def login(self, username: str = "", password: str = "") -> CommandResult:
        """Log in. Required even when galaxy security is disabled."""
        pass

    @abstractmethod
    def query_objects_by_name(self, kind: ObjectKind, names: list[str]) -> ObjectCollection:
        """Exact-name lookup of instances or templates."""
        pass

    @abstractmethod
    def query_objects(self, kind: ObjectKind, condition: ConditionType, pattern: str) -> ObjectCollection:
        """Conditional query, e.g. NAMED_LIKE with "%" for everything."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class GalaxyBackend(ABC):
    """Entry point to a GRAccess implementation."""

    def __init__(self, node: str = ""):
        self.node = node

    @abstractmethod
    def query_galaxies(self, node: Optional[str] = None) -> NamedCollection[Galaxy]:
        """List galaxies on ``node`` (defaults to the backend's node)."""
        pass
