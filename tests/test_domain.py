from typing import Protocol

import pytest

from orchard.domain import DEFAULT_ORDER, LOWEST_PRECEDENCE, Binding, ComponentDescriptor
from orchard.errors import BeanCreationError, BeanTypeError, DefinitionError
from orchard.markers import Autowired, Configuration, Value
from orchard.post_processor import PostProcessor, PostProcessorPipeline


class Engine:
    pass


class Turbo(Engine):
    pass


def test_default_order_is_below_lowest_precedence():
    assert DEFAULT_ORDER == LOWEST_PRECEDENCE - 10000


def test_binding_needs_exactly_one_marker():
    with pytest.raises(DefinitionError, match="exactly one of @Value or @Autowired"):
        Binding("engine", Engine)
    with pytest.raises(DefinitionError):
        Binding("engine", Engine, value=Value("${e}"), autowired=Autowired())
    assert Binding("size", int, value=Value("${size}")).is_value


def test_descriptor_needs_exactly_one_strategy():
    with pytest.raises(DefinitionError, match="exactly one of a constructor or a factory"):
        ComponentDescriptor("engine", Engine)
    with pytest.raises(DefinitionError):
        ComponentDescriptor(
            "engine", Engine, constructor=Engine, factory_name="cfg", factory_method="engine"
        )


def test_descriptor_rejects_two_hooks_of_a_kind():
    with pytest.raises(DefinitionError, match="two init methods"):
        ComponentDescriptor(
            "engine", Engine, constructor=Engine, init_method=print, init_method_name="start"
        )


def test_instance_cell_checks_type():
    descriptor = ComponentDescriptor("engine", Engine, constructor=Engine)

    with pytest.raises(BeanCreationError, match="not instantiated"):
        descriptor.required_instance
    with pytest.raises(BeanTypeError, match="not the expected type"):
        descriptor.instance = "engine"
    with pytest.raises(BeanCreationError, match="must not be None"):
        descriptor.instance = None

    descriptor.instance = Turbo()
    assert isinstance(descriptor.required_instance, Turbo)


def test_instance_cell_rejects_uncheckable_type():
    class Greeter(Protocol):
        def greet(self) -> str: ...

    descriptor = ComponentDescriptor("greeter", Greeter, constructor=object)

    with pytest.raises(BeanTypeError, match="cannot check instances"):
        descriptor.instance = object()


def test_descriptor_kinds():
    @Configuration()
    class AppConfig:
        pass

    class Processor(PostProcessor):
        pass

    config = ComponentDescriptor("appConfig", AppConfig, constructor=AppConfig)
    processor = ComponentDescriptor("processor", Processor, constructor=Processor)
    plain = ComponentDescriptor("engine", Engine, constructor=Engine)

    assert config.is_configuration and config.bootstraps_early
    assert processor.is_post_processor and processor.bootstraps_early
    assert not plain.bootstraps_early


def test_proxy_descriptors_are_ordered_and_unique():
    target = ComponentDescriptor("engine", Engine, constructor=Engine)
    late = ComponentDescriptor("late", Engine, order=2, constructor=Engine)
    early = ComponentDescriptor("early", Engine, order=1, constructor=Engine)

    target.attach_proxy(late)
    target.attach_proxy(early)
    target.attach_proxy(late)

    assert [d.name for d in target.proxy_descriptors] == ["early", "late"]


class Tagging(PostProcessor):
    def __init__(self, tag, unwrapped):
        self.tag = tag
        self.unwrapped = unwrapped

    def after_construction(self, instance, name):
        return f"{instance}+{self.tag}"

    def before_property_set(self, instance, name):
        self.unwrapped.append(self.tag)
        return instance.removesuffix(f"+{self.tag}")


def test_pipeline_applies_in_order_and_unwraps_in_reverse():
    unwrapped = []
    pipeline = PostProcessorPipeline()
    pipeline.add("a", Tagging("a", unwrapped))
    pipeline.add("b", Tagging("b", unwrapped))

    processed = pipeline.after_construction("raw", "bean")

    assert processed == "raw+a+b"
    assert pipeline.unwrap(processed, "bean") == "raw"
    assert unwrapped == ["b", "a"]
    assert pipeline.after_ready(processed, "bean") == processed
    assert len(pipeline) == 2


def test_failing_post_processor_hook_is_wrapped():
    class Broken(PostProcessor):
        def after_ready(self, instance, name):
            raise RuntimeError("broken hook")

    pipeline = PostProcessorPipeline()
    pipeline.add("broken", Broken())

    with pytest.raises(BeanCreationError, match="'broken' failed in after_ready for bean 'engine'"):
        pipeline.after_ready(Engine(), "engine")
