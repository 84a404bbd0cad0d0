"""Tests for the provisioning runner."""
import pytest
import yaml

from graccess_client.config.settings import ExportSettings, Settings
from graccess_client.errors import ExternalOperationFailed, NotFoundError
from graccess_client.galaxy.memory import MemoryBackend
from graccess_client.provisioning.runner import ProvisionRunner, export_objects, select_galaxy

PLAN = [
    {"name": "GRPlatform", "template": "$WinPlatform"},
    {"name": "AppEngine", "template": "$AppEngine", "parent": "GRPlatform"},
    {"name": "MainArea", "template": "$Area", "parent": "AppEngine"},
    {"name": "MainTank", "template": "$UserDefined", "parent": "MainArea"},
]


def make_settings(tmp_path, **overrides) -> Settings:
    data = {
        "galaxy": {"name": "Demo"},
        "instances": PLAN,
        "export": {
            "objects": ["GRPlatform", "AppEngine", "MainTank"],
            "path": str(tmp_path / "Objects.aaPKG"),
        },
    }
    data.update(overrides)
    return Settings.from_dict(data)


class TestSelectGalaxy:
    """Tests for select_galaxy()."""

    def test_by_name(self, backend):
        assert select_galaxy(backend, "Secure").name == "Secure"

    def test_first(self, backend):
        assert select_galaxy(backend).name == "Demo"

    def test_missing(self, backend):
        with pytest.raises(NotFoundError) as exc_info:
            select_galaxy(backend, "Nope")
        assert "Nope" in str(exc_info.value)

    def test_no_galaxies(self):
        with pytest.raises(NotFoundError):
            select_galaxy(MemoryBackend({}))


class TestProvisionRunner:
    """Tests for ProvisionRunner.run()."""

    def test_full_run(self, backend, tmp_path):
        """All instances are created, linked and exported."""
        report = ProvisionRunner(backend, make_settings(tmp_path)).run()
        demo = backend.galaxies["Demo"]

        assert report.galaxy == "Demo"
        assert report.created == ["GRPlatform", "AppEngine", "MainArea", "MainTank"]
        assert demo.instances["AppEngine"].host == "GRPlatform"
        assert demo.instances["MainArea"].host == "AppEngine"
        assert demo.instances["MainTank"].area == "MainArea"
        assert demo.instances["MainTank"].host == ""

        package = yaml.safe_load((tmp_path / "Objects.aaPKG").read_text())
        assert [o["tagname"] for o in package["objects"]] == ["GRPlatform", "AppEngine", "MainTank"]
        assert report.exported == ["GRPlatform", "AppEngine", "MainTank"]

    def test_rerun_is_idempotent(self, backend, tmp_path):
        """A second run reuses every instance."""
        settings = make_settings(tmp_path)
        ProvisionRunner(backend, settings).run()
        report = ProvisionRunner(backend, settings).run()

        assert report.created == []
        assert len(backend.galaxies["Demo"].instances) == 4
        summary = report.to_dict()["summary"]
        assert summary == {"ensured": 4, "created": 0, "reused": 4}

    def test_parent_from_galaxy(self, seed, tmp_path):
        """A parent not in the plan is looked up in the galaxy."""
        seed["Demo"]["instances"] = {"ExistingArea": {"template": "$Area"}}
        backend = MemoryBackend(seed)
        settings = make_settings(
            tmp_path,
            instances=[{"name": "Tank", "template": "$UserDefined", "parent": "ExistingArea"}],
            export=None,
        )
        report = ProvisionRunner(backend, settings).run()
        assert backend.galaxies["Demo"].instances["Tank"].area == "ExistingArea"
        assert report.export_path is None
        assert report.to_dict()["export"] is None

    def test_missing_parent(self, backend, tmp_path):
        settings = make_settings(
            tmp_path,
            instances=[{"name": "Tank", "template": "$UserDefined", "parent": "Ghost"}],
        )
        with pytest.raises(NotFoundError) as exc_info:
            ProvisionRunner(backend, settings).run()
        assert "Ghost" in str(exc_info.value)
        assert backend.galaxies["Demo"].instances == {}

    def test_stops_at_first_failure(self, backend, tmp_path):
        """Instances before the failure stay; later ones are not attempted."""
        plan = [PLAN[0], {"name": "Pump", "template": "$Pump"}, PLAN[1]]
        settings = make_settings(tmp_path, instances=plan)
        with pytest.raises(NotFoundError):
            ProvisionRunner(backend, settings).run()
        assert list(backend.galaxies["Demo"].instances) == ["GRPlatform"]
        assert not (tmp_path / "Objects.aaPKG").exists()

    def test_login_failure(self, backend, tmp_path):
        """Wrong credentials abort before any change."""
        settings = make_settings(
            tmp_path,
            galaxy={"name": "Secure", "username": "admin", "password": "wrong"},
        )
        with pytest.raises(ExternalOperationFailed) as exc_info:
            ProvisionRunner(backend, settings).run()
        assert "Access Denied" in str(exc_info.value)

    def test_numeric_password_login(self, seed, tmp_path):
        """A numeric password in YAML still matches the galaxy user."""
        seed["Secure"]["security"] = {"users": {"admin": 1234}}
        backend = MemoryBackend(seed)
        settings = make_settings(
            tmp_path,
            instances=[{"name": "Area1", "template": "$Area"}],
            export=None,
            galaxy={"name": "Secure", "username": "admin", "password": 1234},
        )
        report = ProvisionRunner(backend, settings).run()
        assert report.galaxy == "Secure"
        assert "Area1" in backend.galaxies["Secure"].instances

    def test_galaxy_name_override(self, backend, tmp_path):
        """Explicit galaxy name beats the settings."""
        settings = make_settings(
            tmp_path,
            instances=[{"name": "Area1", "template": "$Area"}],
            export=None,
            galaxy={"username": "admin", "password": "secret"},
        )
        report = ProvisionRunner(backend, settings, galaxy_name="Secure").run()
        assert report.galaxy == "Secure"
        assert "Area1" in backend.galaxies["Secure"].instances


class TestExportObjects:
    """Tests for export_objects()."""

    def test_missing_objects(self, galaxy, tmp_path):
        with pytest.raises(NotFoundError) as exc_info:
            export_objects(galaxy, ExportSettings(objects=["Nope"], path=str(tmp_path / "x")))
        assert "Nope" in str(exc_info.value)
        assert not (tmp_path / "x").exists()
