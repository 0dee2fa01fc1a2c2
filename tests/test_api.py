# tests/test_api.py
import pytest

from pico_wire import (
    ComponentDefinition,
    ComponentPostProcessor,
    ConfigurationError,
    PicoContainer,
    component,
    init,
)
from pico_wire.graph_export import build_dependency_graph, export_graph
from pico_wire.scope import ScopeProtocol

built: list[str] = []


@component
class Database:
    def __init__(self):
        built.append("database")


@component
class UserRepository:
    def __init__(self, db: Database):
        self.db = db
        built.append("user_repository")


@component(lazy=True)
class LazyReport:
    def __init__(self):
        built.append("lazy_report")


@component(scope="tenant")
class TenantConfig: ...


class FixedTenant(ScopeProtocol):
    def get_id(self):
        return "acme"


class RecordingObserver:
    def __init__(self):
        self.resolved = []
        self.hits = []

    def on_resolve(self, name, took_ms):
        assert took_ms >= 0
        self.resolved.append(name)

    def on_cache_hit(self, name):
        self.hits.append(name)


class Marker(ComponentPostProcessor):
    def __init__(self):
        self.names = []

    def before_initialization(self, obj, name):
        self.names.append(name)
        return obj


# --- init ---

def test_init_preinstantiates_non_lazy_singletons():
    built.clear()
    pico = init(Database, UserRepository, LazyReport)

    assert built == ["database", "user_repository"]
    pico.get(LazyReport)
    assert built[-1] == "lazy_report"
    pico.shutdown()


def test_init_lazy_defers_everything():
    built.clear()
    pico = init(Database, UserRepository, lazy=True)
    assert built == []
    pico.get(UserRepository)
    assert built == ["database", "user_repository"]
    pico.shutdown()


def test_init_accepts_definitions_singletons_and_aliases():
    pico = init(
        ("main_db", ComponentDefinition(Database)),
        definitions={"repo": ComponentDefinition(UserRepository, autowire="constructor")},
        singletons={"answer": 42},
        aliases={"db": "main_db"},
        lazy=True,
    )

    assert pico.get("repo").db is pico.get("db")
    assert pico.get("answer") == 42
    pico.shutdown()


def test_init_rejects_unknown_component_items():
    with pytest.raises(ConfigurationError, match="Cannot register"):
        init("not a class")


def test_init_registers_post_processors_after_interceptors():
    marker = Marker()
    pico = init(Database, post_processors=[marker])

    assert marker.names == ["database"]
    assert pico.post_processors[-1] is marker
    assert len(pico.post_processors) == 2
    pico.shutdown()


def test_init_registers_custom_scopes():
    pico = init(TenantConfig, custom_scopes={"tenant": FixedTenant()})
    assert pico.get(TenantConfig) is pico.get(TenantConfig)
    pico.shutdown()


# --- Observers and stats ---

def test_observers_see_resolutions_and_cache_hits():
    observer = RecordingObserver()
    pico = init(Database, observers=[observer], lazy=True)

    pico.get(Database)
    pico.get(Database)

    assert observer.resolved == ["database"]
    assert observer.hits == ["database"]
    pico.shutdown()


def test_stats_report_counts():
    pico = init(Database, lazy=True, container_id="stats-test")
    pico.get(Database)
    pico.get(Database)

    stats = pico.stats()

    assert stats["container_id"] == "stats-test"
    assert stats["total_resolves"] == 1
    assert stats["cache_hits"] == 1
    assert stats["cache_hit_rate"] == 0.5
    assert stats["registered_components"] == 1
    assert stats["singletons"] == 1
    assert stats["uptime_seconds"] >= 0
    pico.shutdown()


# --- Container registry ---

def test_container_registry_and_current_container():
    pico = init(container_id="registry-test")

    assert PicoContainer.all_containers()["registry-test"] is pico
    assert PicoContainer.get_current() is None
    with pico.as_current():
        assert PicoContainer.get_current() is pico
    assert PicoContainer.get_current() is None

    pico.shutdown()
    assert "registry-test" not in PicoContainer.all_containers()


def test_container_ids_are_unique():
    a, b = PicoContainer(), PicoContainer()
    assert a.container_id != b.container_id
    a.shutdown()
    b.shutdown()


def test_shutdown_drops_singletons(pico_logs):
    pico = init(Database)
    assert pico.contains_singleton("database")

    pico.shutdown()

    assert pico.singleton_count == 0
    assert any("Container shut down" in line for line in pico_logs)


# --- Dependency graph ---

def test_dependency_graph_records_wiring():
    pico = init(Database, UserRepository)
    graph = build_dependency_graph(pico)
    assert graph["user_repository"] == ("database",)
    assert graph["database"] == ()
    pico.shutdown()


def test_export_graph_writes_dot(tmp_path):
    pico = init(Database, UserRepository)
    path = tmp_path / "graph.dot"

    pico.export_graph(str(path), title="Wiring")

    text = path.read_text()
    assert text.startswith("digraph Pico {")
    assert 'label="Wiring";' in text
    assert "user_repository\\n[scope=singleton]" in text
    assert "n_1 -> n_0;" in text
    pico.shutdown()


def test_export_graph_requires_container(tmp_path):
    with pytest.raises(ValueError):
        export_graph(None, str(tmp_path / "x.dot"))
