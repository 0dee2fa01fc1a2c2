"""Method interception for managed components.

Methods marked with :func:`intercepted_by` run through a chain of
interceptor components. A component that has such methods is exposed by the
container as a :class:`ComponentProxy`, installed by
:class:`InterceptorPostProcessor`. When the component is handed out early to
break a circular reference, the proxy is created at that point and the
container later exposes that same proxy.
"""

import inspect
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .constants import SCOPE_PROTOTYPE, SCOPE_SINGLETON
from .hooks import SmartInstantiationAwarePostProcessor

_INTERCEPTORS_ATTR = "_pico_wire_interceptors_"

_peek = object.__getattribute__


@dataclass
class MethodCtx:
    """One intercepted call, as seen by every interceptor in the chain.

    ``local`` starts empty for each call and is shared along the chain.
    ``request_key`` is the active scope id when the component is scoped.
    """

    instance: Any
    cls: type
    method: Callable[..., Any]
    name: str
    args: tuple
    kwargs: dict
    container: Any
    component_name: str = ""
    request_key: Any = None
    local: Dict[str, Any] = field(default_factory=dict)


class MethodInterceptor(Protocol):
    """An interceptor wraps the call and decides whether to go on::

        @component
        class Timing:
            def invoke(self, ctx, call_next):
                started = time.perf_counter()
                try:
                    return call_next(ctx)
                finally:
                    log.info("%s took %.3fs", ctx.name, time.perf_counter() - started)
    """

    def invoke(self, ctx: MethodCtx, call_next: Callable[[MethodCtx], Any]) -> Any: ...


class ContainerObserver(Protocol):
    """Receives ``on_resolve`` for each creation through ``get`` and ``on_cache_hit`` for cached singletons."""

    def on_resolve(self, name: str, took_ms: float): ...
    def on_cache_hit(self, name: str): ...


def dispatch_method(interceptors: Sequence[MethodInterceptor], ctx: MethodCtx) -> Any:
    """Run *interceptors* in order around ``ctx.method``."""
    chain = list(interceptors)

    def link(position: int) -> Callable[[MethodCtx], Any]:
        def call_next(current: MethodCtx) -> Any:
            if position == len(chain):
                return current.method(*current.args, **current.kwargs)
            return chain[position].invoke(current, link(position + 1))

        return call_next

    return link(0)(ctx)


def intercepted_by(*interceptor_classes: type):
    """Route calls of the decorated method through *interceptor_classes*.

    The interceptors are components themselves and are fetched from the
    container on each call. Stacking the decorator appends classes that are
    not attached yet::

        @component
        class OrderService:
            @intercepted_by(AuditInterceptor)
            def place_order(self, order): ...

    Raises:
        TypeError: Without arguments, for a non-class argument, or when
            applied to something that is not a function.
    """
    if not interceptor_classes:
        raise TypeError("intercepted_by() needs at least one interceptor class")
    not_classes = [c for c in interceptor_classes if not inspect.isclass(c)]
    if not_classes:
        raise TypeError(f"intercepted_by() takes interceptor classes, got {not_classes[0]!r}")

    def decorate(fn):
        if not inspect.isfunction(fn):
            raise TypeError(f"@intercepted_by applies to functions, not {type(fn).__name__}")
        attached = getattr(fn, _INTERCEPTORS_ATTR, ())
        setattr(fn, _INTERCEPTORS_ATTR, tuple(dict.fromkeys(attached + interceptor_classes)))
        return fn

    return decorate


def interceptors_for_method(target_cls: type, name: str) -> Tuple[type, ...]:
    member = getattr(target_cls, name, None)
    func = getattr(member, "__func__", member)
    if not inspect.isfunction(func):
        return ()
    return getattr(func, _INTERCEPTORS_ATTR, ())


def has_interceptors(cls: type) -> bool:
    return any(
        getattr(member, _INTERCEPTORS_ATTR, None)
        for klass in cls.__mro__
        for member in vars(klass).values()
    )


def _request_key(container: Any, name: str) -> Any:
    if not container.contains_definition(name):
        return None
    scope = container.get_definition(name).scope
    if scope in (SCOPE_SINGLETON, SCOPE_PROTOTYPE):
        return None
    return container.scopes.get_id(scope)


def _intercepting(proxy: "ComponentProxy", name: str, bound: Callable[..., Any], classes: Tuple[type, ...]):
    container = _peek(proxy, "_container")
    target = _peek(proxy, "_target")
    component_name = _peek(proxy, "_component_name")

    def run(args: tuple, kwargs: dict) -> Any:
        chain: List[Any] = [container.get(c) for c in classes]
        ctx = MethodCtx(
            instance=target,
            cls=type(target),
            method=bound,
            name=name,
            args=args,
            kwargs=kwargs,
            container=container,
            component_name=component_name,
            request_key=_request_key(container, component_name),
        )
        return dispatch_method(chain, ctx)

    if inspect.iscoroutinefunction(getattr(bound, "__func__", bound)):

        async def call_async(*args, **kwargs):
            outcome = run(args, kwargs)
            return await outcome if inspect.isawaitable(outcome) else outcome

        return call_async

    def call(*args, **kwargs):
        outcome = run(args, kwargs)
        if inspect.isawaitable(outcome):
            raise RuntimeError(f"Interceptor chain of sync method '{name}' produced an awaitable")
        return outcome

    return call


class ComponentProxy:
    """Stands in for a component whose methods have interceptors.

    Everything except intercepted methods goes straight to the target,
    including ``isinstance`` checks.
    """

    __slots__ = ("_target", "_container", "_component_name")

    def __init__(self, *, container: Any, target: Any, component_name: str):
        if container is None:
            raise ValueError(f"Cannot proxy component '{component_name}' without a container")
        for slot, value in (("_container", container), ("_target", target), ("_component_name", component_name)):
            object.__setattr__(self, slot, value)

    @property
    def __class__(self):
        return type(_peek(self, "_target"))

    def __getattr__(self, name: str) -> Any:
        target = _peek(self, "_target")
        value = getattr(target, name)
        classes = interceptors_for_method(type(target), name) if callable(value) else ()
        return _intercepting(self, name, value, classes) if classes else value

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(_peek(self, "_target"), name, value)

    def __delattr__(self, name: str) -> None:
        delattr(_peek(self, "_target"), name)

    def __repr__(self):
        return repr(_peek(self, "_target"))

    def __str__(self):
        return str(_peek(self, "_target"))

    def __dir__(self):
        return dir(_peek(self, "_target"))

    def __call__(self, *args, **kwargs):
        return _peek(self, "_target")(*args, **kwargs)


def unwrap(obj: Any) -> Any:
    """The target of a :class:`ComponentProxy`, or *obj* itself."""
    return _peek(obj, "_target") if type(obj) is ComponentProxy else obj


class InterceptorPostProcessor(SmartInstantiationAwarePostProcessor):
    """Puts components with intercepted methods behind a :class:`ComponentProxy`.

    An object already handed out through :meth:`early_reference` is left raw
    in ``after_initialization``; the container then keeps the early proxy.
    """

    def __init__(self, container: Any) -> None:
        self._container = container
        self._handed_out: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def early_reference(self, obj: Any, name: str) -> Any:
        with self._lock:
            self._handed_out[name] = obj
        return self._proxy_for(obj, name)

    def after_initialization(self, obj: Any, name: str) -> Any:
        with self._lock:
            early: Optional[Any] = self._handed_out.pop(name, None)
        return obj if early is obj else self._proxy_for(obj, name)

    def discard_early_reference(self, name: str) -> None:
        with self._lock:
            self._handed_out.pop(name, None)

    def _proxy_for(self, obj: Any, name: str) -> Any:
        if obj is None or type(obj) is ComponentProxy or not has_interceptors(type(obj)):
            return obj
        return ComponentProxy(container=self._container, target=obj, component_name=name)


__all__ = [
    "MethodCtx",
    "MethodInterceptor",
    "ContainerObserver",
    "dispatch_method",
    "intercepted_by",
    "ComponentProxy",
    "InterceptorPostProcessor",
    "unwrap",
]
