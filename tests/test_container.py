"""
Container-level tests: naming, lookup by type, collection injection and
the explicit definition API.
"""
from typing import Annotated, Optional

import pytest

from pico_wire import (
    ComponentDefinition,
    ComponentDefinitionError,
    ContainerSettings,
    NoSuchComponentError,
    NoUniqueComponentError,
    NotOfRequiredTypeError,
    PicoContainer,
    Qualifier,
    UnsatisfiedDependencyError,
    component,
)
from pico_wire.definition import default_component_name


class Notifier:
    def send(self, msg: str) -> str:
        raise NotImplementedError


@component
class EmailNotifier(Notifier):
    def send(self, msg: str) -> str:
        return f"email:{msg}"


@component(primary=True)
class SmsNotifier(Notifier):
    def send(self, msg: str) -> str:
        return f"sms:{msg}"


@component
class AlertService:
    def __init__(self, notifier: Notifier):
        self.notifier = notifier


@component
class EmailAlerts:
    def __init__(self, email_notifier: Notifier):
        self.notifier = email_notifier


@component
class QualifiedAlerts:
    def __init__(self, notifier: Annotated[Notifier, Qualifier("email_notifier")]):
        self.notifier = notifier


@component
class Broadcaster:
    def __init__(self, notifiers: list[Notifier], by_name: dict[str, Notifier]):
        self.notifiers = notifiers
        self.by_name = by_name


class Cache: ...


@component
class CachedReader:
    def __init__(self, cache: Optional[Cache]):
        self.cache = cache


@component
class StrictReader:
    def __init__(self, cache: Cache):
        self.cache = cache


@component
class Database:
    def __init__(self, url: str = "sqlite://"):
        self.url = url


@component
class UserRepository:
    def __init__(self, db: Database):
        self.db = db


@component(name="custom_name")
class Renamed: ...


@component
class NeedsContainer:
    def __init__(self, container: PicoContainer):
        self.container = container


def _registered(*classes, settings=None):
    pico = PicoContainer(settings)
    for cls in classes:
        pico.register_class(cls)
    return pico


# --- Names ---

def test_default_component_names():
    assert default_component_name(UserRepository) == "user_repository"
    assert default_component_name(type("HTTPClient", (), {})) == "http_client"


def test_register_class_honours_declared_name(container):
    assert container.register_class(Renamed) == "custom_name"
    assert container.register_class(Renamed, "other") == "other"
    assert container.definition_names() == ["custom_name", "other"]


def test_get_by_name_and_type_share_the_singleton(container):
    container.register_class(Database)
    container.register_class(UserRepository)

    repo = container.get(UserRepository)

    assert repo.db is container.get("database")
    assert repo.db is container.get(Database)
    assert container.has(Database)
    assert container.has("user_repository")
    assert not container.has("missing")


def test_unknown_name_raises(container):
    with pytest.raises(NoSuchComponentError):
        container.get("missing")
    with pytest.raises(NoSuchComponentError):
        container.get(Cache)


# --- Aliases ---

def test_alias_resolves_to_canonical_component(container):
    container.register_class(Database)
    container.register_alias("database", "db")
    container.register_alias("db", "primary_db")

    assert container.get("primary_db") is container.get("database")
    assert container.canonical_name("primary_db") == "database"
    assert sorted(container.aliases_of("database")) == ["db", "primary_db"]


def test_circular_alias_rejected(container):
    container.register_alias("database", "db")
    with pytest.raises(ComponentDefinitionError, match="circular reference"):
        container.register_alias("db", "database")


# --- By-type selection ---

def test_primary_candidate_wins():
    pico = _registered(EmailNotifier, SmsNotifier, AlertService)
    assert isinstance(pico.get(AlertService).notifier, SmsNotifier)
    assert isinstance(pico.get(Notifier), SmsNotifier)
    pico.shutdown()


def test_parameter_name_breaks_ties_without_primary():
    pico = _registered(EmailNotifier, SmsNotifier, EmailAlerts)
    pico.get_definition("sms_notifier").primary = False

    assert isinstance(pico.get(EmailAlerts).notifier, EmailNotifier)
    with pytest.raises(NoUniqueComponentError) as exc:
        pico.get(Notifier)
    assert exc.value.candidates == ["email_notifier", "sms_notifier"]
    pico.shutdown()


def test_qualifier_selects_by_name():
    pico = _registered(EmailNotifier, SmsNotifier, QualifiedAlerts)
    assert isinstance(pico.get(QualifiedAlerts).notifier, EmailNotifier)
    pico.shutdown()


def test_collection_parameters_receive_every_match():
    pico = _registered(EmailNotifier, SmsNotifier, Broadcaster)

    b = pico.get(Broadcaster)

    assert [n.send("x") for n in b.notifiers] == ["email:x", "sms:x"]
    assert set(b.by_name) == {"email_notifier", "sms_notifier"}
    assert sorted(pico.dependencies_of("broadcaster")) == ["email_notifier", "sms_notifier"]
    pico.shutdown()


def test_excluded_autowire_candidate_is_skipped():
    pico = _registered(EmailNotifier, SmsNotifier, AlertService)
    pico.get_definition("sms_notifier").autowire_candidate = False
    pico.get_definition("sms_notifier").primary = False

    assert isinstance(pico.get(AlertService).notifier, EmailNotifier)
    pico.shutdown()


def test_optional_dependency_defaults_to_none():
    pico = _registered(CachedReader)
    assert pico.get(CachedReader).cache is None
    pico.shutdown()


def test_missing_required_dependency():
    pico = _registered(StrictReader)
    with pytest.raises(UnsatisfiedDependencyError) as exc:
        pico.get(StrictReader)
    assert exc.value.contains(NoSuchComponentError)
    assert "StrictReader.__init__(Cache) parameter 'cache'" in str(exc.value)
    pico.shutdown()


def test_container_itself_is_resolvable(container):
    container.register_class(NeedsContainer)
    assert container.get(NeedsContainer).container is container
    assert container.get(PicoContainer) is container


def test_registered_resolvable_dependency(container):
    cache = Cache()
    container.register_resolvable_dependency(Cache, cache)
    container.register_class(StrictReader)
    assert container.get(StrictReader).cache is cache


# --- Externally registered singletons ---

def test_registered_singleton_found_by_name_and_type(container):
    settings = {"retries": 3}
    container.register_singleton("app_settings", settings)

    assert container.get("app_settings") is settings
    assert container.get(dict) is settings
    assert container.has("app_settings")
    assert not container.is_prototype("app_settings")


def test_required_type_converts_or_fails(container):
    container.register_singleton("port", "8080")
    container.register_class(Database)

    assert container.get("port", required_type=int) == 8080
    with pytest.raises(NotOfRequiredTypeError):
        container.get("database", required_type=UserRepository)


# --- Definition lifecycle ---

def test_overriding_definition_resets_singleton(container):
    container.register_class(Database)
    first = container.get("database")

    container.register_definition("database", ComponentDefinition(Database))

    assert container.get("database") is not first


def test_overriding_can_be_disabled():
    pico = PicoContainer(ContainerSettings(allow_definition_overriding=False))
    pico.register_class(Database)
    with pytest.raises(ComponentDefinitionError, match="overriding is disabled"):
        pico.register_class(Database)
    pico.shutdown()


def test_remove_definition(container):
    container.register_class(Database)
    container.get("database")

    container.remove_definition("database")

    assert not container.has("database")
    with pytest.raises(NoSuchComponentError):
        container.remove_definition("database")


def test_invalid_definitions_rejected(container):
    with pytest.raises(ComponentDefinitionError, match="unknown autowire mode"):
        container.register_definition("x", ComponentDefinition(Database, autowire="sideways"))
    with pytest.raises(ComponentDefinitionError, match="neither a component type"):
        container.register_definition("y", ComponentDefinition())
    with pytest.raises(ComponentDefinitionError):
        container.register_definition("", ComponentDefinition(Database))


# --- Unmanaged objects ---

def test_create_builds_without_registering(container):
    container.register_class(Database)

    first = container.create(UserRepository)
    second = container.create(UserRepository)

    assert first is not second
    assert first.db is second.db is container.get(Database)
    assert not container.has(UserRepository)


class Report:
    database: Database
    title: str = "untitled"


class NamedReport:
    database: Database


def test_autowire_existing_by_type(container):
    container.register_class(Database)
    report = Report()

    container.autowire_existing(report)

    assert report.database is container.get(Database)
    assert report.title == "untitled"


def test_autowire_existing_by_name(container):
    container.register_class(Database)
    report = NamedReport()
    container.autowire_existing(report, autowire="by_name")
    assert report.database is container.get("database")


def test_autowire_existing_rejects_constructor_mode(container):
    with pytest.raises(ComponentDefinitionError):
        container.autowire_existing(Report(), autowire="constructor")


def test_autowire_existing_dependency_check(container):
    with pytest.raises(UnsatisfiedDependencyError, match="property 'database'"):
        container.autowire_existing(NamedReport(), autowire="by_name", dependency_check=True)


# --- Prototypes ---

def test_prototype_scope_creates_new_instances(container):
    container.register_definition("db", ComponentDefinition(Database, scope="prototype", autowire="constructor"))

    assert container.get("db") is not container.get("db")
    assert container.is_prototype("db")
    assert not container.is_singleton("db")
    assert not container.contains_singleton("db")
