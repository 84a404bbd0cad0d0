"""GRAccess backend over COM (Windows only).

Wraps the GRAccess type library through pywin32. GRAccess methods do not
raise; each COM object exposes the outcome of its last call in a
``CommandResult`` property. Every wrapper method reads that property right
after the call and raises ExternalOperationFailed on failure, so callers only
ever see return values or exceptions.

GRAccess collections are 1-based and indexable by number or name. They are
read once into a NamedCollection here.
"""
import logging
from typing import Any, Callable, Iterator, Optional

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
from ..errors import GalaxyError
from ..utils.logging_config import timed

logger = logging.getLogger(__name__)

PROG_ID = "GRAccess.GRAccessApp"


def to_command_result(com_result: Any) -> Optional[CommandResult]:
    """Convert a GRAccess ICommandResult into a CommandResult."""
    if com_result is None:
        return None
    return CommandResult(
        successful=bool(com_result.Successful),
        text=str(com_result.Text or ""),
        custom_message=str(getattr(com_result, "CustomMessage", "") or ""),
        id=getattr(com_result, "ID", None),
    )


def iter_com_collection(collection: Any) -> Iterator[Any]:
    """Yield the items of a 1-based GRAccess collection in order."""
    if collection is None:
        return
    for index in range(1, collection.count + 1):
        yield collection.Item(index)


class ComInstance(Instance):
    """IInstance wrapper."""

    def __init__(self, com: Any):
        self._com = com

    @property
    def tagname(self) -> str:
        return str(self._com.Tagname)

    @property
    def based_on(self) -> str:
        return str(self._com.basedOn)

    @property
    def area(self) -> str:
        return str(self._com.Area or "")

    @property
    def host(self) -> str:
        return str(self._com.Host or "")

    @timed("assign_area")
    def assign_area(self, area_name: str) -> None:
        self._com.Area = area_name
        assert_success(to_command_result(self._com.CommandResult), f"Set Area of {self.tagname}")

    @timed("assign_host")
    def assign_host(self, host_name: str) -> None:
        self._com.Host = host_name
        assert_success(to_command_result(self._com.CommandResult), f"Set Host of {self.tagname}")


class ComTemplate(Template):
    """ITemplate wrapper."""

    def __init__(self, backend: "ComBackend", com: Any):
        self._backend = backend
        self._com = com

    @property
    def tagname(self) -> str:
        return str(self._com.Tagname)

    @property
    def based_on(self) -> str:
        return str(self._com.basedOn)

    @timed("create_instance")
    def create_instance(self, name: str) -> Instance:
        raw = self._com.CreateInstance(name)
        assert_success(
            to_command_result(self._com.CommandResult),
            f"Create instance {name} from {self.tagname}",
        )
        return ComInstance(self._backend.cast(raw, "IInstance"))


class ComObjectCollection(ObjectCollection):
    """IgObjects wrapper. Keeps the COM collection for export."""

    def __init__(self, backend: "ComBackend", com: Any, items: list[GalaxyObject]):
        super().__init__(items)
        self._backend = backend
        self._com = com

    @timed("export")
    def export(self, export_format: str, path: str) -> CommandResult:
        self._com.ExportObjects(self._backend.resolve(export_format), path)
        result = to_command_result(self._com.CommandResult)
        assert_success(result, f"Export to {path}")
        logger.info(f"Exported {len(self)} objects to {path}")
        return result or CommandResult.ok()


class ComGalaxy(Galaxy):
    """IGalaxy wrapper."""

    def __init__(self, backend: "ComBackend", com: Any):
        self._backend = backend
        self._com = com

    @property
    def name(self) -> str:
        return str(self._com.Name)

    def _check(self, operation: str) -> CommandResult:
        result = to_command_result(self._com.CommandResult)
        assert_success(result, operation)
        return result or CommandResult.ok()

    def _wrap(self, kind: ObjectKind, raw: Any) -> ObjectCollection:
        items: list[GalaxyObject] = []
        for obj in iter_com_collection(raw):
            if obj is None:
                continue
            if kind is ObjectKind.INSTANCE:
                items.append(ComInstance(self._backend.cast(obj, "IInstance")))
            else:
                items.append(ComTemplate(self._backend, self._backend.cast(obj, "ITemplate")))
        return ComObjectCollection(self._backend, raw, items)

    @timed("login")
    def login(self, username: str = "", password: str = "") -> CommandResult:
        self._com.Login(username, password)
        return self._check(f"Login to {self.name}")

    @timed("query_by_name")
    def query_objects_by_name(self, kind: ObjectKind, names: list[str]) -> ObjectCollection:
        raw = self._com.QueryObjectsByName(self._backend.resolve(kind.value), list(names))
        self._check(f"Query {kind.name.lower()}s by name")
        return self._wrap(kind, raw)

    @timed("query")
    def query_objects(self, kind: ObjectKind, condition: ConditionType, pattern: str) -> ObjectCollection:
        raw = self._com.QueryObjects(
            self._backend.resolve(kind.value),
            self._backend.resolve(condition.value),
            pattern,
        )
        self._check(f"Query {kind.name.lower()}s")
        return self._wrap(kind, raw)


class ComBackend(GalaxyBackend):
    """GRAccessApp wrapper.

    The COM server is created on first use. ``app``, ``constants`` and
    ``cast`` can be supplied to drive the wrapper with other objects.
    """

    def __init__(
        self,
        node: str = "",
        app: Any = None,
        constants: Any = None,
        cast: Optional[Callable[[Any, str], Any]] = None,
    ):
        super().__init__(node)
        self._app = app
        self._constants = constants
        self._cast = cast

    @property
    def app(self) -> Any:
        if self._app is None:
            self._dispatch()
        return self._app

    def _dispatch(self) -> None:
        try:
            import win32com.client
        except ImportError as e:
            raise GalaxyError("The COM backend needs pywin32 and a Windows host with GRAccess installed") from e

        logger.info(f"Starting COM server {PROG_ID}")
        # EnsureDispatch generates the type library wrappers so enum constants resolve by name
        self._app = win32com.client.gencache.EnsureDispatch(PROG_ID)
        if self._constants is None:
            self._constants = win32com.client.constants
        if self._cast is None:
            self._cast = win32com.client.CastTo

    def resolve(self, value: Any) -> Any:
        """Map a GRAccess enum name to its value. Anything else passes through."""
        if isinstance(value, str) and self._constants is not None:
            try:
                return getattr(self._constants, value)
            except AttributeError:
                logger.debug(f"No GRAccess constant named {value!r}, passing it through")
        return value

    def cast(self, obj: Any, interface: str) -> Any:
        if self._cast is None:
            return obj
        return self._cast(obj, interface)

    @timed("query_galaxies", target="com")
    def query_galaxies(self, node: Optional[str] = None) -> NamedCollection[Galaxy]:
        app = self.app
        raw = app.QueryGalaxies(node if node is not None else self.node)
        assert_success(to_command_result(app.CommandResult), "Query galaxies")
        return NamedCollection(ComGalaxy(self, g) for g in iter_com_collection(raw) if g is not None)
