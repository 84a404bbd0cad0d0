"""Shared fixtures: in-memory galaxies standing in for GRAccess."""
import copy
import logging

import pytest

from graccess_client.galaxy.base import CommandResult, ObjectKind, assert_success
from graccess_client.galaxy.memory import MemoryBackend, MemoryGalaxy

SEED = {
    "Demo": {
        "templates": ["$WinPlatform", "$AppEngine", "$Area", "$UserDefined"],
    },
    "Secure": {
        "templates": ["$WinPlatform", "$Area"],
        "security": {"users": {"admin": "secret"}},
    },
}


class DeniedGalaxy(MemoryGalaxy):
    """Galaxy whose object queries are refused."""

    def query_objects_by_name(self, kind, names):
        assert_success(CommandResult.failed("Access Denied", "No permission to query"), "Query")


@pytest.fixture
def seed():
    return copy.deepcopy(SEED)


@pytest.fixture
def backend(seed):
    return MemoryBackend(seed)


@pytest.fixture
def galaxy(backend):
    """Logged-in Demo galaxy."""
    demo = backend.galaxies["Demo"]
    demo.login()
    return demo


@pytest.fixture
def query_log(galaxy, monkeypatch):
    """Record the object kind of every query_objects_by_name call."""
    calls: list[ObjectKind] = []
    original = galaxy.query_objects_by_name

    def recording(kind, names):
        calls.append(kind)
        return original(kind, names)

    monkeypatch.setattr(galaxy, "query_objects_by_name", recording)
    return calls


@pytest.fixture
def denied_galaxy():
    denied = DeniedGalaxy("Denied")
    denied.login()
    return denied


@pytest.fixture(autouse=True)
def reset_loggers():
    """Drop handlers installed by setup_logging/setup_audit_logging during a test."""
    yield
    for name in ("graccess", "graccess_client", "graccess.perf", "graccess.audit"):
        lg = logging.getLogger(name)
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()
        lg.propagate = True
