import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union, get_args, get_origin, Annotated

from .constants import PICO_META
from .decorators import Qualifier
from .exceptions import PicoError
from .typing_utils import describe_type

KeyT = Union[str, type]

KIND_INIT = "init"
KIND_CONSTRUCTOR = "constructor"
KIND_FACTORY_METHOD = "factory_method"


@dataclass(frozen=True)
class Parameter:
    name: str
    annotation: Any = Any
    default: Any = inspect.Parameter.empty
    keyword_only: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True, eq=False)
class Procedure:
    """One candidate way of building an object: ``__init__``, an alternative
    constructor, or a factory method.

    Attributes:
        owner: The class the procedure is looked up on.
        name: Attribute name (``"__init__"`` for the plain constructor).
        kind: ``"init"``, ``"constructor"`` or ``"factory_method"``.
        parameters: Parameters in call order, excluding ``self``/``cls``.
        public: ``False`` when the name starts with a single underscore.
        is_static: Whether the procedure is called on the class rather than on an instance.
        return_type: Declared return annotation, if any.
    """
    owner: type
    name: str
    kind: str
    parameters: Tuple[Parameter, ...]
    public: bool = True
    is_static: bool = True
    return_type: Any = inspect.Parameter.empty
    declaring_type: Optional[type] = None

    @property
    def parameter_types(self) -> Tuple[Any, ...]:
        return tuple(p.annotation for p in self.parameters)

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    def invoke(self, args: Sequence[Any], target: Any = None) -> Any:
        """Call the procedure with *args* in parameter order.

        *target* is the factory instance for instance factory methods, or a
        replacement class (e.g. a generated subclass) for constructors.
        """
        positional = [a for p, a in zip(self.parameters, args) if not p.keyword_only]
        keywords = {p.name: a for p, a in zip(self.parameters, args) if p.keyword_only}
        holder = target if target is not None else self.owner
        if self.kind == KIND_INIT:
            return holder(*positional, **keywords)
        return getattr(holder, self.name)(*positional, **keywords)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Procedure):
            return NotImplemented
        return (self.owner, self.name, self.kind) == (other.owner, other.name, other.kind)

    def __hash__(self) -> int:
        return hash((self.owner, self.name, self.kind))

    def __repr__(self) -> str:
        params = ", ".join(describe_type(t) for t in self.parameter_types)
        return f"{self.owner.__qualname__}.{self.name}({params})"


@dataclass(frozen=True)
class DependencyRequest:
    parameter_name: str
    key: KeyT
    is_list: bool = False
    is_dict: bool = False
    qualifier: Optional[str] = None
    is_optional: bool = False
    declared_type: Any = Any
    use_name: bool = True


@dataclass(frozen=True)
class InjectionPoint:
    """Describes the parameter or property currently being injected."""
    component_name: Optional[str]
    member: str
    parameter_name: str
    declared_type: Any = Any

    def __str__(self) -> str:
        return f"{self.member} parameter '{self.parameter_name}'"


def _extract_annotated(ann: Any) -> Tuple[Any, Optional[str]]:
    qualifier = None
    base = ann
    origin = get_origin(ann)

    if origin is Annotated:
        args = get_args(ann)
        base = args[0] if args else Any
        metas = args[1:] if len(args) > 1 else ()
        for m in metas:
            if isinstance(m, Qualifier):
                qualifier = str(m)
                break
    return base, qualifier


def _check_optional(ann: Any) -> Tuple[Any, bool]:
    origin = get_origin(ann)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(ann) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return ann, False


def dependency_request(name: str, ann: Any, has_default: bool = False) -> DependencyRequest:
    """Turn a parameter or property annotation into a by-type lookup request."""
    base_type, is_optional = _check_optional(ann)
    base_type, qualifier = _extract_annotated(base_type)

    is_list = is_dict = False
    elem_t: Any = None
    origin = get_origin(base_type)
    if origin in (list, List, tuple, set, frozenset):
        is_list = True
        args = get_args(base_type)
        elem_t, elem_qualifier = _extract_annotated(args[0] if args else Any)
        qualifier = qualifier or elem_qualifier
    elif origin in (dict, Dict):
        is_dict = True
        args = get_args(base_type)
        elem_t, _ = _extract_annotated(args[1] if len(args) == 2 else Any)

    final_key: KeyT
    if is_list or is_dict:
        final_key = elem_t if isinstance(elem_t, type) else object
    elif isinstance(base_type, type):
        final_key = base_type
    elif isinstance(base_type, str):
        final_key = base_type
    elif ann is inspect.Parameter.empty or ann is Any:
        final_key = name
    else:
        final_key = base_type

    return DependencyRequest(
        parameter_name=name,
        key=final_key,
        is_list=is_list,
        is_dict=is_dict,
        qualifier=qualifier,
        is_optional=is_optional or has_default,
        declared_type=ann,
    )


def _type_hints(fn: Any, owner: Optional[type]) -> Dict[str, Any]:
    globalns = getattr(inspect.unwrap(fn), "__globals__", None)
    localns = dict(vars(owner)) if owner is not None else None
    if owner is not None:
        localns[owner.__name__] = owner
    try:
        return typing.get_type_hints(fn, globalns=globalns, localns=localns, include_extras=True)
    except Exception:
        return dict(getattr(fn, "__annotations__", {}) or {})


def analyze_parameters(fn: Callable[..., Any], owner: Optional[type] = None) -> Tuple[Tuple[Parameter, ...], Any]:
    """Return the injectable parameters of *fn* and its return annotation.

    ``self``/``cls`` and ``*args``/``**kwargs`` are skipped. Unannotated
    parameters are typed ``Any``.
    """
    try:
        sig = inspect.signature(fn)
    except (ValueError, TypeError):
        return (), inspect.Parameter.empty
    hints = _type_hints(fn, owner)
    params: List[Parameter] = []
    for idx, (name, p) in enumerate(sig.parameters.items()):
        if idx == 0 and name in ("self", "cls"):
            continue
        if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        params.append(
            Parameter(
                name=name,
                annotation=hints.get(name, Any),
                default=p.default,
                keyword_only=p.kind is inspect.Parameter.KEYWORD_ONLY,
            )
        )
    return tuple(params), hints.get("return", inspect.Parameter.empty)


def _is_public(name: str) -> bool:
    return name == "__init__" or not name.startswith("_")


def _unwrap_member(cls: type, name: str) -> Tuple[Any, bool]:
    raw = inspect.getattr_static(cls, name)
    if isinstance(raw, (classmethod, staticmethod)):
        return raw.__func__, True
    return raw, False


def constructor_candidates(cls: type, non_public_allowed: bool = True) -> List[Procedure]:
    """Every construction procedure of *cls*: ``__init__`` plus ``@constructor`` members.

    Args:
        cls: The target class.
        non_public_allowed: Include candidates whose name starts with an underscore.

    Returns:
        Candidates in declaration order (``__init__`` first); call
        :func:`sort_procedures` to obtain the scan order.
    """
    if not isinstance(cls, type):
        raise PicoError(f"Cannot enumerate constructors of non-class {cls!r}")
    out: List[Procedure] = []
    init_params, _ = analyze_parameters(cls.__init__, cls) if cls.__init__ is not object.__init__ else ((), None)
    init_meta = getattr(cls.__init__, PICO_META, {}) or {}
    init_public = init_meta.get("public", True)
    if init_public or non_public_allowed:
        out.append(Procedure(owner=cls, name="__init__", kind=KIND_INIT, parameters=init_params, public=init_public, declaring_type=cls))

    seen = {"__init__"}
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name in vars(klass):
            if name in seen:
                continue
            fn, is_static = _unwrap_member(cls, name)
            meta = getattr(fn, PICO_META, None) or {}
            if not meta.get("constructor"):
                continue
            seen.add(name)
            public = _is_public(name)
            if not public and not non_public_allowed:
                continue
            params, ret = analyze_parameters(fn, cls)
            out.append(Procedure(owner=cls, name=name, kind=KIND_CONSTRUCTOR, parameters=params, public=public, is_static=True, return_type=ret, declaring_type=klass))
    return out


def factory_method_candidates(factory_cls: type, method_name: str, is_static: bool, non_public_allowed: bool = True) -> List[Procedure]:
    """Every method of *factory_cls* that implements the factory procedure *method_name*.

    A method matches when its attribute name equals *method_name* or when it
    was decorated with ``@factory_method(method_name)``. Static-ness must
    match: static candidates are ``staticmethod``/``classmethod`` members.
    """
    out: List[Procedure] = []
    seen = set()
    for klass in factory_cls.__mro__:
        if klass is object:
            continue
        for name in vars(klass):
            if name in seen:
                continue
            seen.add(name)
            fn, static_member = _unwrap_member(factory_cls, name)
            if not callable(fn) or isinstance(fn, type):
                continue
            meta = getattr(fn, PICO_META, None) or {}
            if name != method_name and meta.get("factory_method") != method_name:
                continue
            if static_member != is_static:
                continue
            public = _is_public(name)
            if not public and not non_public_allowed:
                continue
            params, ret = analyze_parameters(fn, factory_cls)
            out.append(Procedure(owner=factory_cls, name=name, kind=KIND_FACTORY_METHOD, parameters=params, public=public, is_static=is_static, return_type=ret, declaring_type=klass))
    return out


def sort_procedures(candidates: Sequence[Procedure]) -> List[Procedure]:
    """Scan order: public before protected, then more parameters first. Stable."""
    return sorted(candidates, key=lambda p: (not p.public, -p.parameter_count))


def writable_properties(cls: type) -> Dict[str, Any]:
    """Public attributes of *cls* that can be assigned after construction.

    Covers annotated class attributes (``ClassVar`` excluded) and
    ``property`` objects that define a setter, across the MRO. Values are the
    declared types (``Any`` when unknown).
    """
    out: Dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        hints = _type_hints(klass, klass)
        for name in getattr(klass, "__annotations__", {}):
            if name.startswith("_"):
                continue
            ann = hints.get(name, Any)
            if ann is typing.ClassVar or get_origin(ann) is typing.ClassVar:
                continue
            out[name] = ann
        for name, member in vars(klass).items():
            if name.startswith("_") or not isinstance(member, property):
                continue
            if member.fset is None:
                out.pop(name, None)
                continue
            params, _ = analyze_parameters(member.fset, klass)
            if params and params[0].annotation is not Any:
                out[name] = params[0].annotation
            elif member.fget is not None:
                out[name] = _type_hints(member.fget, klass).get("return", Any)
            else:
                out[name] = Any
    return out
