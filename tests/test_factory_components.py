# tests/test_factory_components.py
import pytest

from pico_wire import (
    ComponentCreationError,
    ComponentPostProcessor,
    CurrentlyInCreationError,
    FactoryComponent,
    FactoryNotInitializedError,
    NotOfRequiredTypeError,
    PicoContainer,
    component,
    init,
)
from pico_wire.constants import NULL_OBJECT
from pico_wire.factory import FactoryComponentRegistry


class Connection:
    def __init__(self, dsn: str):
        self.dsn = dsn


@component
class ConnectionFactory:
    def __init__(self):
        self.made = 0

    def get_object(self):
        self.made += 1
        return Connection("db://main")

    def object_type(self):
        return Connection

    def is_singleton(self):
        return True


@component
class SessionFactory:
    def __init__(self):
        self.made = 0

    def get_object(self):
        self.made += 1
        return Connection(f"db://session/{self.made}")

    def object_type(self):
        return Connection

    def is_singleton(self):
        return False


@component
class EmptyFactory:
    def get_object(self):
        return None

    def object_type(self):
        return None

    def is_singleton(self):
        return True


@component
class PendingFactory:
    def get_object(self):
        raise FactoryNotInitializedError()

    def object_type(self):
        return Connection

    def is_singleton(self):
        return True


@component
class FailingFactory:
    def get_object(self):
        raise ValueError("no route to host")

    def object_type(self):
        return Connection

    def is_singleton(self):
        return True


@component
class Consumer:
    def __init__(self, connection: Connection):
        self.connection = connection


class Tagger(ComponentPostProcessor):
    def after_initialization(self, obj, name):
        if isinstance(obj, Connection):
            obj.tagged = name
        return obj


def _registered(*classes):
    pico = PicoContainer()
    for cls in classes:
        pico.register_class(cls)
    return pico


# --- Products and dereferencing ---

def test_name_yields_product_and_prefix_yields_factory():
    pico = _registered(ConnectionFactory)

    product = pico.get("connection_factory")
    factory = pico.get("&connection_factory")

    assert isinstance(product, Connection)
    assert isinstance(factory, ConnectionFactory)
    assert isinstance(factory, FactoryComponent)
    assert pico.get_type("connection_factory") is Connection
    assert pico.get_type("&connection_factory") is ConnectionFactory
    pico.shutdown()


def test_singleton_factory_product_is_cached():
    pico = _registered(ConnectionFactory)

    first = pico.get("connection_factory")
    second = pico.get("connection_factory")

    assert first is second
    assert pico.get("&connection_factory").made == 1
    assert pico.get_cached_object_for_factory("connection_factory") is first
    assert pico.is_singleton("connection_factory")
    pico.shutdown()


def test_non_singleton_factory_makes_a_product_per_request():
    pico = _registered(SessionFactory)

    first = pico.get("session_factory")
    second = pico.get("session_factory")

    assert first is not second
    assert (first.dsn, second.dsn) == ("db://session/1", "db://session/2")
    assert pico.get_cached_object_for_factory("session_factory") is None
    assert not pico.is_singleton("session_factory")
    pico.shutdown()


def test_products_are_found_by_type():
    pico = _registered(ConnectionFactory, Consumer)

    consumer = pico.get(Consumer)

    assert consumer.connection is pico.get(Connection)
    assert pico.names_for_type(Connection) == ["connection_factory"]
    assert pico.names_for_type(ConnectionFactory) == ["&connection_factory"]
    assert pico.get(ConnectionFactory) is pico.get("&connection_factory")
    pico.shutdown()


def test_dereferencing_a_plain_component_fails():
    pico = _registered(Consumer, ConnectionFactory)
    pico.get(Consumer)
    with pytest.raises(NotOfRequiredTypeError):
        pico.get("&consumer")
    pico.shutdown()


def test_products_are_post_processed():
    pico = _registered(ConnectionFactory)
    pico.add_post_processor(Tagger())
    assert pico.get("connection_factory").tagged == "connection_factory"
    pico.shutdown()


def test_preinstantiation_creates_factories_but_not_products():
    pico = init(ConnectionFactory)
    assert pico.contains_singleton("connection_factory")
    assert pico.get("&connection_factory").made == 0
    assert pico.get_cached_object_for_factory("connection_factory") is None
    pico.shutdown()


# --- Empty and failing products ---

def test_empty_product_resolves_to_none():
    pico = _registered(EmptyFactory)
    assert pico.get("empty_factory") is None
    assert pico.get_cached_object_for_factory("empty_factory") is NULL_OBJECT
    assert pico.get("empty_factory") is None
    pico.shutdown()


def test_uninitialized_factory_reports_currently_in_creation():
    pico = _registered(PendingFactory)
    with pytest.raises(CurrentlyInCreationError, match="not fully initialized"):
        pico.get("pending_factory")
    pico.shutdown()


def test_failing_factory_is_wrapped():
    pico = _registered(FailingFactory)
    with pytest.raises(ComponentCreationError) as exc:
        pico.get("failing_factory")
    assert isinstance(exc.value.cause, ValueError)
    assert "FactoryComponent raised on object creation" in str(exc.value)
    pico.shutdown()


# --- Registry level ---

class _Wrapping(FactoryComponentRegistry):
    def post_process_object_from_factory(self, obj, name):
        return ("processed", obj)


def test_product_made_during_creation_is_neither_processed_nor_cached():
    reg = _Wrapping()
    factory = ConnectionFactory()
    reg.add_singleton("conn", factory)
    reg.before_singleton_creation("conn")

    product = reg.get_object_from_factory(factory, "conn", True)

    assert isinstance(product, Connection)
    assert reg.get_cached_object_for_factory("conn") is None
    reg.after_singleton_creation("conn")

    processed = reg.get_object_from_factory(factory, "conn", True)
    assert processed[0] == "processed"
    assert reg.get_cached_object_for_factory("conn") is processed


def test_product_of_unregistered_factory_is_not_cached():
    reg = FactoryComponentRegistry()
    factory = ConnectionFactory()
    reg.get_object_from_factory(factory, "conn", False)
    assert reg.get_cached_object_for_factory("conn") is None


def test_none_product_while_in_creation_is_rejected():
    reg = FactoryComponentRegistry()
    factory = EmptyFactory()
    reg.add_singleton("empty", factory)
    reg.before_singleton_creation("empty")
    with pytest.raises(CurrentlyInCreationError):
        reg.get_object_from_factory(factory, "empty", False)


def test_removing_the_factory_drops_its_product():
    reg = FactoryComponentRegistry()
    factory = ConnectionFactory()
    reg.add_singleton("conn", factory)
    reg.get_object_from_factory(factory, "conn", False)

    reg.remove_singleton("conn")

    assert reg.get_cached_object_for_factory("conn") is None


class BrokenTypeFactory:
    def get_object(self):
        return 1

    def object_type(self):
        raise RuntimeError("type not known")

    def is_singleton(self):
        return True


def test_object_type_failure_is_logged_and_treated_as_unknown(pico_logs):
    reg = FactoryComponentRegistry()
    assert reg.get_type_for_factory(BrokenTypeFactory()) is None
    assert any("raised from object_type()" in line for line in pico_logs)
