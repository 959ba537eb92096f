import importlib
import pkgutil
from dataclasses import dataclass
from typing import Annotated

import pytest

import orchard
from orchard.errors import DefinitionError
from orchard.markers import (
    Around,
    Autowired,
    Component,
    Configuration,
    Marker,
    Order,
    Value,
    annotated_markers,
    find_inherited_marker,
    find_nested_marker,
    get_marker,
    own_markers,
)


def test_marker_is_recorded_on_decorated_class():
    @Order(3)
    @Component("thing")
    class Thing:
        pass

    assert get_marker(Thing, Component) == Component("thing")
    assert get_marker(Thing, Order).value == 3
    assert get_marker(Thing, Configuration) is None


def test_markers_are_not_inherited_by_default():
    @Component()
    class Base:
        pass

    class Derived(Base):
        pass

    assert own_markers(Derived) == []
    assert get_marker(Derived, Component) is None


def test_duplicate_marker_is_rejected():
    @Component("a")
    @Component("b")
    class Twice:
        pass

    with pytest.raises(DefinitionError, match="Duplicate @Component"):
        get_marker(Twice, Component)


def test_marker_on_classmethod_is_recorded_on_function_whichever_order():
    class Factory:
        @Autowired()
        @classmethod
        def create(cls):
            return cls()

        @classmethod
        @Autowired()
        def other(cls):
            return cls()

    assert get_marker(Factory.__dict__["create"], Autowired) == Autowired()
    assert get_marker(Factory.__dict__["other"], Autowired) == Autowired()


def test_every_module_imports():
    for module in pkgutil.iter_modules(orchard.__path__, "orchard."):
        importlib.import_module(module.name)

    assert get_marker(Configuration, Component) == Component()


def test_configuration_is_a_component_through_its_marker():
    @Configuration("config")
    class AppConfig:
        pass

    assert find_nested_marker(AppConfig, Component) == Component()
    assert get_marker(AppConfig, Component) is None


def test_stereotype_chain_is_followed():
    @Component()
    @dataclass(frozen=True)
    class Service(Marker):
        name: str = ""

    @Service()
    @dataclass(frozen=True)
    class Repository(Marker):
        name: str = ""

    @Repository("users")
    class UserRepo:
        pass

    assert find_nested_marker(UserRepo, Component) == Component()


def test_marker_reachable_twice_is_a_duplicate():
    @Component()
    @dataclass(frozen=True)
    class Service(Marker):
        pass

    @Service()
    @Component()
    class Both:
        pass

    with pytest.raises(DefinitionError, match="Duplicate @Component found on"):
        find_nested_marker(Both, Component)


def test_cyclic_marker_declaration_is_rejected():
    @dataclass(frozen=True)
    class Ping(Marker):
        pass

    @Ping()
    @dataclass(frozen=True)
    class Pong(Marker):
        pass

    Pong()(Ping)

    @Ping()
    class Target:
        pass

    with pytest.raises(DefinitionError, match="Cyclic marker declaration"):
        find_nested_marker(Target, Component)


def test_around_is_found_on_ancestors():
    @Around("audit")
    class Base:
        pass

    class Derived(Base):
        pass

    assert find_inherited_marker(Derived, Around).handlers == ("audit",)


def test_annotated_markers_split_type_from_metadata():
    base_type, markers = annotated_markers(Annotated[int, "doc", Value("${port}")])

    assert base_type is int
    assert markers == [Value("${port}")]


def test_plain_annotation_has_no_markers():
    assert annotated_markers(str) == (str, [])
