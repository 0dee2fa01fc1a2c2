import inspect
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .aop import ContainerObserver, InterceptorPostProcessor
from .config import ContainerSettings, ContextConfig, load_settings
from .container import PicoContainer
from .conversion import TypeConverter
from .definition import ComponentDefinition
from .exceptions import ConfigurationError
from .instantiation import ExecutionContext, InstantiationStrategy
from .scope import ScopeManager, ScopeProtocol


def _register_component(pico: PicoContainer, item: Any) -> None:
    if inspect.isclass(item):
        pico.register_class(item)
    elif isinstance(item, tuple) and len(item) == 2 and isinstance(item[1], ComponentDefinition):
        pico.register_definition(item[0], item[1])
    else:
        raise ConfigurationError(f"Cannot register {item!r}: expected a class or a (name, ComponentDefinition) pair")


def init(
    *components: Any,
    definitions: Optional[Mapping[str, ComponentDefinition]] = None,
    singletons: Optional[Mapping[str, Any]] = None,
    aliases: Optional[Mapping[str, str]] = None,
    settings: Optional[ContainerSettings] = None,
    config: Optional[ContextConfig] = None,
    post_processors: Sequence[Any] = (),
    interceptors: bool = True,
    observers: Optional[List[ContainerObserver]] = None,
    custom_scopes: Optional[Dict[str, ScopeProtocol]] = None,
    type_converter: Optional[TypeConverter] = None,
    instantiation_strategy: Optional[InstantiationStrategy] = None,
    execution_context: Optional[ExecutionContext] = None,
    container_id: Optional[str] = None,
    lazy: bool = False,
) -> PicoContainer:
    """Build a container from component classes and explicit definitions.

    Args:
        *components: ``@component`` classes (plain classes are registered
            with the default name) or ``(name, ComponentDefinition)`` pairs.
        definitions: More definitions keyed by component name.
        singletons: Ready-made objects registered as singletons.
        aliases: Alias -> component name.
        settings: Container switches; read from *config* when omitted.
        config: Configuration the settings are loaded from.
        post_processors: Hooks added in order, after the interceptor
            post-processor.
        interceptors: Add the :class:`~pico_wire.aop.InterceptorPostProcessor`.
        observers: Receive resolution and cache-hit callbacks.
        custom_scopes: Scope implementations registered by name.
        lazy: Skip pre-instantiation of non-lazy singletons.

    Returns:
        The ready container.

    Raises:
        ConfigurationError: If both *settings* and *config* are given or a
            component cannot be registered.
    """
    if settings is not None and config is not None:
        raise ConfigurationError("Pass either settings or config, not both")
    if settings is None:
        settings = load_settings(config)

    scopes = ScopeManager()
    if custom_scopes:
        for n, impl in custom_scopes.items():
            scopes.register_scope(n, impl)

    pico = PicoContainer(
        settings,
        type_converter=type_converter,
        instantiation_strategy=instantiation_strategy,
        execution_context=execution_context,
        scopes=scopes,
        observers=observers,
        container_id=container_id,
    )
    if interceptors:
        pico.add_post_processor(InterceptorPostProcessor(pico))
    for pp in post_processors:
        pico.add_post_processor(pp)

    for item in components:
        _register_component(pico, item)
    for name, definition in (definitions or {}).items():
        pico.register_definition(name, definition)
    for alias, name in (aliases or {}).items():
        pico.register_alias(name, alias)
    for name, obj in (singletons or {}).items():
        pico.register_singleton(name, obj)

    pico.info(f"Container initialized with {len(pico.definition_names())} definition(s)")
    if not lazy:
        pico.preinstantiate_singletons()
    return pico


__all__ = ["init"]
