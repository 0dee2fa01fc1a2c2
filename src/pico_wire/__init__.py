# pico_wire/__init__.py
__version__ = "0.1.0"

from .analysis import InjectionPoint, Procedure
from .aop import ComponentProxy, ContainerObserver, InterceptorPostProcessor, MethodCtx, MethodInterceptor, intercepted_by
from .api import init
from .arguments import ArgumentValues, PropertyValues
from .config import ContainerSettings, EnvSource, FileSource, FlatDictSource, configuration, load_settings
from .container import PicoContainer
from .conversion import SimpleTypeConverter
from .decorators import Qualifier, component, constructor, factory_method, lookup
from .definition import ComponentDefinition, LookupOverride, ReplaceOverride, definition_from_class
from .exceptions import (
    AmbiguousMatchError,
    ComponentCreationError,
    ComponentDefinitionError,
    ConfigurationError,
    CurrentlyInCreationError,
    FactoryNotInitializedError,
    NoSuchComponentError,
    NoUniqueComponentError,
    NotOfRequiredTypeError,
    PicoError,
    RawIdentityLeakError,
    ScopeError,
    TypeMismatchError,
    UnsatisfiedDependencyError,
)
from .factory import FactoryComponent
from .hooks import (
    ComponentPostProcessor,
    ContainerAware,
    DefinitionPostProcessor,
    InitializingComponent,
    InstantiationAwarePostProcessor,
    NameAware,
    SmartInstantiationAwarePostProcessor,
)
from .instantiation import current_factory_method
from .values import InnerDefinition, ManagedDict, ManagedList, ManagedSet, NameRef, Ref, TypedValue

__all__ = [
    "__version__",
    "PicoContainer",
    "init",
    "component",
    "current_factory_method",
    "constructor",
    "factory_method",
    "lookup",
    "Qualifier",
    "ComponentDefinition",
    "definition_from_class",
    "LookupOverride",
    "ReplaceOverride",
    "ArgumentValues",
    "PropertyValues",
    "Ref",
    "NameRef",
    "TypedValue",
    "InnerDefinition",
    "ManagedList",
    "ManagedSet",
    "ManagedDict",
    "InjectionPoint",
    "Procedure",
    "FactoryComponent",
    "SimpleTypeConverter",
    "ContainerSettings",
    "EnvSource",
    "FileSource",
    "FlatDictSource",
    "configuration",
    "load_settings",
    "ComponentPostProcessor",
    "InstantiationAwarePostProcessor",
    "SmartInstantiationAwarePostProcessor",
    "DefinitionPostProcessor",
    "NameAware",
    "ContainerAware",
    "InitializingComponent",
    "ComponentProxy",
    "ContainerObserver",
    "InterceptorPostProcessor",
    "MethodCtx",
    "MethodInterceptor",
    "intercepted_by",
    "PicoError",
    "ConfigurationError",
    "ScopeError",
    "ComponentDefinitionError",
    "TypeMismatchError",
    "NoSuchComponentError",
    "NoUniqueComponentError",
    "NotOfRequiredTypeError",
    "ComponentCreationError",
    "UnsatisfiedDependencyError",
    "AmbiguousMatchError",
    "CurrentlyInCreationError",
    "RawIdentityLeakError",
    "FactoryNotInitializedError",
]
