# tests/test_aop.py
import asyncio

import pytest

from pico_wire import ComponentProxy, MethodCtx, NoSuchComponentError, component, init, intercepted_by
from pico_wire.aop import InterceptorPostProcessor, dispatch_method, has_interceptors, unwrap


class AuditInterceptor:
    def __init__(self):
        self.seen = []

    def invoke(self, ctx, call_next):
        self.seen.append((ctx.component_name, ctx.name, ctx.args))
        ctx.local["audited"] = True
        return call_next(ctx)


class UpperInterceptor:
    def invoke(self, ctx, call_next):
        assert ctx.local.get("audited") is True
        return call_next(ctx).upper()


class KeyRecorder:
    def __init__(self):
        self.keys = []

    def invoke(self, ctx, call_next):
        self.keys.append(ctx.request_key)
        return call_next(ctx)


@component
class Greeter:
    prefix = "hello"

    @intercepted_by(AuditInterceptor, UpperInterceptor)
    def greet(self, name):
        return f"{self.prefix} {name}"

    def plain(self):
        return "plain"

    @intercepted_by(AuditInterceptor)
    async def greet_later(self, name):
        return f"later {name}"


@component(scope="request")
class Cart:
    @intercepted_by(KeyRecorder)
    def total(self):
        return 0


@component
class PlainService:
    def run(self):
        return "ran"


# --- Proxying ---

def test_intercepted_component_is_proxied():
    pico = init(AuditInterceptor, UpperInterceptor, Greeter, PlainService)

    greeter = pico.get(Greeter)

    assert type(greeter) is ComponentProxy
    assert isinstance(greeter, Greeter)
    assert type(pico.get(PlainService)) is PlainService
    assert has_interceptors(Greeter)
    assert not has_interceptors(PlainService)
    pico.shutdown()


def test_interceptors_run_in_declared_order():
    pico = init(AuditInterceptor, UpperInterceptor, Greeter)
    greeter = pico.get(Greeter)

    assert greeter.greet("bob") == "HELLO BOB"
    assert pico.get(AuditInterceptor).seen == [("greeter", "greet", ("bob",))]
    pico.shutdown()


def test_methods_without_interceptors_pass_through():
    pico = init(AuditInterceptor, UpperInterceptor, Greeter)
    greeter = pico.get(Greeter)

    assert greeter.plain() == "plain"
    assert pico.get(AuditInterceptor).seen == []
    pico.shutdown()


def test_attribute_access_is_delegated():
    pico = init(AuditInterceptor, UpperInterceptor, Greeter)
    greeter = pico.get(Greeter)

    greeter.prefix = "hi"

    assert unwrap(greeter).prefix == "hi"
    assert greeter.greet("ann") == "HI ANN"
    assert repr(greeter) == repr(unwrap(greeter))
    pico.shutdown()


def test_async_methods_are_intercepted():
    pico = init(AuditInterceptor, UpperInterceptor, Greeter)
    greeter = pico.get(Greeter)

    assert asyncio.run(greeter.greet_later("x")) == "later x"
    assert pico.get(AuditInterceptor).seen == [("greeter", "greet_later", ("x",))]
    pico.shutdown()


def test_interceptors_can_be_disabled():
    pico = init(AuditInterceptor, UpperInterceptor, Greeter, interceptors=False)
    assert type(pico.get(Greeter)) is Greeter
    pico.shutdown()


def test_missing_interceptor_component_fails_on_call():
    pico = init(Greeter)
    greeter = pico.get(Greeter)
    with pytest.raises(NoSuchComponentError):
        greeter.greet("x")
    pico.shutdown()


def test_scoped_component_exposes_request_key():
    pico = init(KeyRecorder, Cart)

    with pico.scope("request", "r1"):
        assert pico.get(Cart).total() == 0

    assert pico.get(KeyRecorder).keys == ["r1"]
    pico.shutdown()


# --- Building blocks ---

def test_dispatch_without_interceptors_calls_method():
    ctx = MethodCtx(instance=None, cls=object, method=lambda a: a * 2, name="double", args=(4,), kwargs={}, container=None)
    assert dispatch_method([], ctx) == 8


def test_unwrap_leaves_plain_objects_alone():
    obj = object()
    assert unwrap(obj) is obj


def test_proxy_requires_a_container():
    with pytest.raises(ValueError):
        ComponentProxy(container=None, target=object(), component_name="x")


def test_intercepted_by_validates_arguments():
    with pytest.raises(TypeError):
        intercepted_by()
    with pytest.raises(TypeError):
        intercepted_by("not a class")
    with pytest.raises(TypeError):
        intercepted_by(AuditInterceptor)(42)


def test_intercepted_by_accumulates_without_duplicates():
    @intercepted_by(AuditInterceptor)
    @intercepted_by(UpperInterceptor, AuditInterceptor)
    def handler():
        return None

    assert handler._pico_wire_interceptors_ == (UpperInterceptor, AuditInterceptor)


def test_failed_creation_forgets_the_early_reference(container):
    processor = InterceptorPostProcessor(container)
    first = Greeter()
    processor.early_reference(first, "greeter")

    processor.discard_early_reference("greeter")
    second = Greeter()

    assert type(processor.after_initialization(second, "greeter")) is ComponentProxy
    assert type(processor.after_initialization(first, "greeter")) is ComponentProxy
