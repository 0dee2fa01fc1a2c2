# tests/test_cycles.py
import pytest

from pico_wire import (
    ComponentCreationError,
    ComponentPostProcessor,
    ComponentProxy,
    ContainerSettings,
    CurrentlyInCreationError,
    NoSuchComponentError,
    PicoContainer,
    RawIdentityLeakError,
    UnsatisfiedDependencyError,
    component,
    init,
    intercepted_by,
)
from pico_wire.aop import unwrap

created: list[str] = []


# --- Components ---

@component(autowire="by_type")
class Left:
    right: "Right"


@component
class Right:
    def __init__(self, left: Left):
        self.left = left


@component
class Front:
    def __init__(self, back: "Back"):
        self.back = back


@component(autowire="by_type")
class Back:
    front: Front


@component
class Alpha:
    def __init__(self, beta: "Beta"):
        self.beta = beta


@component
class Beta:
    def __init__(self, alpha: Alpha):
        self.alpha = alpha


@component(scope="prototype")
class Ping:
    def __init__(self, pong: "Pong"):
        self.pong = pong


@component(scope="prototype")
class Pong:
    def __init__(self, ping: Ping):
        self.ping = ping


@component(name="audit_log")
class AuditLog:
    def __init__(self):
        created.append("audit_log")


@component(depends_on=("audit_log",))
class PaymentService:
    def __init__(self):
        created.append("payment_service")


@component(name="dep_a", depends_on=("dep_b",))
class DepA: ...


@component(name="dep_b", depends_on=("dep_a",))
class DepB: ...


@component(depends_on=("nowhere",))
class Orphan: ...


class Wrapper:
    def __init__(self, target):
        self.target = target


class WrapLeft(ComponentPostProcessor):
    def after_initialization(self, obj, name):
        if name == "left":
            return Wrapper(obj)
        return obj


class CountingInterceptor:
    def __init__(self):
        self.calls = []

    def invoke(self, ctx, call_next):
        self.calls.append(ctx.name)
        return call_next(ctx)


@component(autowire="by_type")
class Ledger:
    journal: "Journal"

    @intercepted_by(CountingInterceptor)
    def record(self, entry):
        return f"recorded {entry}"


@component
class Journal:
    def __init__(self, ledger: Ledger):
        self.ledger = ledger


def _container(*classes, settings=None):
    pico = PicoContainer(settings)
    for cls in classes:
        pico.register_class(cls)
    return pico


# --- Resolvable cycles ---

def test_property_cycle_resolves_to_the_same_instances():
    """Left is exposed early, so Right receives the instance that ends up registered."""
    pico = _container(Left, Right)

    left = pico.get(Left)

    assert isinstance(left.right, Right)
    assert left.right.left is left
    assert pico.get(Right) is left.right
    assert pico.dependents_of("left") == ["right"]
    pico.shutdown()


def test_cycle_entered_from_constructor_side_fails():
    """Front is not instantiated yet when Back asks for it, so there is nothing to expose."""
    pico = _container(Front, Back)

    with pytest.raises(UnsatisfiedDependencyError) as exc:
        pico.get("front")

    assert exc.value.contains(CurrentlyInCreationError)
    assert not pico.contains_singleton("front")
    assert not pico.contains_singleton("back")
    pico.shutdown()


def test_constructor_cycle_reports_the_creation_chain():
    pico = _container(Alpha, Beta)

    with pytest.raises(UnsatisfiedDependencyError) as exc:
        pico.get(Alpha)

    cause = exc.value.most_specific_cause()
    assert isinstance(cause, CurrentlyInCreationError)
    message = str(cause)
    assert "Creation chain" in message
    assert "1. alpha [scope=singleton]" in message
    assert "3. alpha [scope=singleton]  ❌" in message
    pico.shutdown()


def test_prototype_cycle_is_detected():
    pico = _container(Ping, Pong)

    with pytest.raises(UnsatisfiedDependencyError) as exc:
        pico.get(Ping)

    cause = exc.value.most_specific_cause()
    assert isinstance(cause, CurrentlyInCreationError)
    assert "[scope=prototype]  ❌" in str(cause)
    pico.shutdown()


def test_cycle_fails_when_circular_references_disabled():
    pico = _container(Left, Right, settings=ContainerSettings(allow_circular_references=False))

    with pytest.raises(UnsatisfiedDependencyError) as exc:
        pico.get(Left)

    assert exc.value.contains(CurrentlyInCreationError)
    pico.shutdown()


# --- Raw identity ---

def test_wrapping_after_early_exposure_is_a_raw_identity_leak():
    pico = _container(Left, Right)
    pico.add_post_processor(WrapLeft())

    with pytest.raises(RawIdentityLeakError) as exc:
        pico.get("left")

    assert exc.value.dependents == ["right"]
    assert not pico.contains_singleton("left")
    assert not pico.contains_singleton("right")
    pico.shutdown()


def test_raw_injection_tolerated_when_enabled(pico_logs):
    pico = _container(Left, Right, settings=ContainerSettings(allow_raw_injection_despite_wrapping=True))
    pico.add_post_processor(WrapLeft())

    exposed = pico.get("left")

    assert isinstance(exposed, Wrapper)
    raw = pico.get("right").left
    assert isinstance(raw, Left)
    assert exposed.target is raw
    assert any("in its raw version" in line for line in pico_logs)
    pico.shutdown()


def test_early_reference_proxy_is_the_exposed_instance():
    """The interceptor proxy handed out during the cycle is the object the container keeps."""
    pico = init(CountingInterceptor, Ledger, Journal)

    ledger = pico.get("ledger")
    journal = pico.get(Journal)

    assert type(ledger) is ComponentProxy
    assert journal.ledger is ledger
    assert isinstance(ledger, Ledger)
    assert unwrap(ledger).journal is journal
    assert journal.ledger.record("x") == "recorded x"
    assert pico.get(CountingInterceptor).calls == ["record"]
    pico.shutdown()


# --- depends_on ---

def test_depends_on_creates_dependencies_first():
    created.clear()
    pico = _container(PaymentService, AuditLog)

    pico.get("payment_service")

    assert created == ["audit_log", "payment_service"]
    assert pico.dependents_of("audit_log") == ["payment_service"]
    pico.shutdown()


def test_circular_depends_on_is_rejected():
    pico = _container(DepA, DepB)
    with pytest.raises(CurrentlyInCreationError, match="Circular depends-on"):
        pico.get("dep_a")
    pico.shutdown()


def test_missing_depends_on_target():
    pico = _container(Orphan)
    with pytest.raises(ComponentCreationError) as exc:
        pico.get(Orphan)
    assert exc.value.contains(NoSuchComponentError)
    pico.shutdown()
