# pico_wire/_state.py
from contextvars import ContextVar
from typing import Any, Optional
from contextlib import contextmanager

_injection_point: ContextVar[Optional[Any]] = ContextVar("pico_wire_injection_point", default=None)
_factory_method: ContextVar[Optional[Any]] = ContextVar("pico_wire_factory_method", default=None)


def current_injection_point() -> Optional[Any]:
    return _injection_point.get()


@contextmanager
def injection_point_scope(point: Any):
    """Context manager: expose *point* as the current injection point within the block."""
    tok = _injection_point.set(point)
    try:
        yield point
    finally:
        _injection_point.reset(tok)


def current_factory_method() -> Optional[Any]:
    """The factory method procedure being invoked in this context, if any."""
    return _factory_method.get()


@contextmanager
def factory_method_scope(procedure: Any):
    tok = _factory_method.set(procedure)
    try:
        yield procedure
    finally:
        _factory_method.reset(tok)
