import pytest

from orchard.aop import DEFAULT_CONFIGURATIONS
from orchard.errors import DefinitionError
from orchard.markers import ComponentScan, Configuration, Import, ImportDefaults
from orchard.scanner import candidate_types, load_type, scan_type_names
from tests.fixtures.default_scan import DefaultScanConfig
from tests.fixtures.scan_pkg.services import GreetingService
from tests.fixtures.scan_pkg.sub.repos import UserRepo


def test_package_is_walked_recursively():
    assert scan_type_names(["tests.fixtures.scan_pkg"]) == [
        "tests.fixtures.scan_pkg.app_config.ScanConfig",
        "tests.fixtures.scan_pkg.services.GreetingService",
        "tests.fixtures.scan_pkg.services.Unmanaged",
        "tests.fixtures.scan_pkg.sub.repos.UserRepo",
    ]


def test_single_module_reports_only_its_own_classes():
    assert scan_type_names(["tests.fixtures.scan_pkg.services"]) == [
        "tests.fixtures.scan_pkg.services.GreetingService",
        "tests.fixtures.scan_pkg.services.Unmanaged",
    ]


def test_unknown_root_is_a_definition_error():
    with pytest.raises(DefinitionError, match="Cannot import module for scanning"):
        scan_type_names(["tests.fixtures.no_such_module"])


def test_load_type_resolves_scanned_names():
    assert load_type("tests.fixtures.scan_pkg.services.GreetingService") is GreetingService
    assert load_type("tests.fixtures.scan_pkg.sub.repos.UserRepo") is UserRepo


@pytest.mark.parametrize(
    "name",
    ["tests.fixtures.scan_pkg.services.Missing", "nowhere.Thing", "tests.fixtures.default_scan"],
)
def test_load_type_rejects_unknown_names(name):
    with pytest.raises(DefinitionError, match="Class not found"):
        load_type(name)


def test_candidates_default_to_configuration_module():
    candidates = candidate_types(DefaultScanConfig)

    assert "tests.fixtures.default_scan.Clock" in candidates
    assert UserRepo in candidates
    assert candidates[-1] is DefaultScanConfig


def test_candidates_from_scan_roots_imports_and_defaults():
    @ImportDefaults()
    @Import(UserRepo)
    @ComponentScan("tests.fixtures.scan_pkg.services")
    @Configuration()
    class AppConfig:
        pass

    assert candidate_types(AppConfig) == [
        "tests.fixtures.scan_pkg.services.GreetingService",
        "tests.fixtures.scan_pkg.services.Unmanaged",
        UserRepo,
        *DEFAULT_CONFIGURATIONS,
        AppConfig,
    ]
