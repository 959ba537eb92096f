from dataclasses import dataclass, field
from typing import Annotated, ClassVar, Optional

import pytest

from orchard.context import ApplicationContext
from orchard.descriptor_builder import build_descriptors
from orchard.errors import BeanCreationError, DefinitionError, DependencyError
from orchard.markers import Autowired, Component, Value
from orchard.properties import ConfigProperties
from orchard.registry import Registry


class Repo:
    pass


class Audit:
    pass


def start(*types, properties=None) -> ApplicationContext:
    return ApplicationContext(Registry(build_descriptors(types)), ConfigProperties(properties))


def test_fields_are_injected():
    @Component()
    class RepoImpl(Repo):
        pass

    @Component()
    class Service:
        repo: Annotated[Repo, Autowired()]
        name: Annotated[str, Value("${service.name:users}")]
        retries: Annotated[int, Value("service.retries")]
        plain: str = "untouched"

    service = start(RepoImpl, Service, properties={"service.retries": "3"}).get_bean("service")

    assert isinstance(service.repo, RepoImpl)
    assert service.name == "users"
    assert service.retries == 3
    assert service.plain == "untouched"


def test_inherited_fields_are_injected():
    @Component()
    class RepoImpl(Repo):
        pass

    class Base:
        repo: Annotated[Repo, Autowired()]

    @Component()
    class Service(Base):
        pass

    context = start(RepoImpl, Service)

    assert context.get_bean("service").repo is context.get_bean("repoImpl")


def test_setters_are_injected():
    @Component()
    class RepoImpl(Repo):
        pass

    @Component()
    class Service:
        def __init__(self):
            self.calls = []

        @Autowired()
        def set_repo(self, repo: Repo):
            self.calls.append(repo)

        @Value("${service.limit:5}")
        def set_limit(self, limit: int):
            self.calls.append(limit)

    service = start(RepoImpl, Service).get_bean("service")

    assert isinstance(service.calls[0], RepoImpl)
    assert service.calls[1] == 5


def test_missing_required_field_dependency():
    @Component()
    class Service:
        repo: Annotated[Repo, Autowired()]

    with pytest.raises(DependencyError, match="Service.repo for bean 'service'"):
        start(Service)


def test_missing_optional_field_dependency_is_left_unset():
    @Component()
    class Service:
        repo: Annotated[Optional[Repo], Autowired(required=False)]
        audit: Annotated[Audit, Autowired("audit", required=False)] = None

    service = start(Service).get_bean("service")

    assert not hasattr(service, "repo")
    assert service.audit is None


def test_both_markers_on_a_field_are_rejected():
    @Component()
    class Service:
        repo: Annotated[Repo, Autowired(), Value("${repo}")]

    with pytest.raises(DefinitionError, match="Cannot specify both"):
        start(Service)


def test_class_variable_is_rejected():
    @Component()
    class Service:
        limit: ClassVar[Annotated[int, Value("${limit:1}")]] = 0

    with pytest.raises(DefinitionError, match="Cannot inject static or final field"):
        start(Service)


def test_frozen_dataclass_field_is_rejected():
    @Component()
    @dataclass(frozen=True)
    class Settings:
        limit: Annotated[int, Value("${limit:1}")] = field(init=False, default=0)

    with pytest.raises(DefinitionError, match="frozen dataclass"):
        start(Settings)


def test_dataclass_constructor_fields_are_bound_once():
    @Component()
    class RepoImpl(Repo):
        pass

    @Component()
    @dataclass(frozen=True)
    class Settings:
        repo: Annotated[Repo, Autowired()]
        limit: Annotated[int, Value("${limit:1}")]

    settings = start(RepoImpl, Settings).get_bean("settings")

    assert isinstance(settings.repo, RepoImpl)
    assert settings.limit == 1


def test_static_setter_is_rejected():
    @Component()
    class Service:
        @Value("${limit:1}")
        @staticmethod
        def set_limit(limit: int):
            pass

    with pytest.raises(DefinitionError, match="Cannot inject static or class method"):
        start(Service)


def test_setter_must_take_one_argument():
    @Component()
    class Service:
        @Autowired()
        def wire(self, first: Repo, second: Repo):
            pass

    with pytest.raises(DefinitionError, match="exactly one argument"):
        start(Service)


def test_failing_setter_is_wrapped():
    @Component()
    class Service:
        @Value("${service.limit:5}")
        def set_limit(self, limit: int):
            raise ValueError("limit rejected")

    with pytest.raises(BeanCreationError, match="set_limit of bean 'service': limit rejected"):
        start(Service)


def test_unassignable_field_is_wrapped():
    @Component()
    class Service:
        __slots__ = ()
        limit: Annotated[int, Value("${service.limit:5}")]

    with pytest.raises(BeanCreationError, match="limit of bean 'service'") as exc_info:
        start(Service)
    assert isinstance(exc_info.value.__cause__, AttributeError)
