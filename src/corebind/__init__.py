"""Minimal name-based dependency injection with staged startup.

This package provides a small dependency injection container for Python where
assets are registered and requested by string identifier, resolved lazily with
cycle detection, and started through a configure / flush providers / run sequence.

Exports:
- `Container`: registry of constants, values, factories, classes and custom providers,
  with parent/child composition and `bootstrap`.
- `Injector`: handle on a container, registered in every container as "injector".
- `BootPhase`: the startup phases a container goes through.
- `DependencyRef` / `provider_of`: dependency list entries; "fooProvider" or
  `provider_of("foo")` asks for the provider of "foo" instead of its value.
- Errors: `ContainerError` and its subclasses.
"""

from ._container import BootPhase, Container, Injector, ResolutionContext
from ._errors import (
    ConfigDependencyError,
    ContainerError,
    CyclicDependencyError,
    DuplicateIdentifierError,
    InvalidParameterError,
    MissingGetMethodError,
    NotFoundError,
    ResolutionError,
)
from ._providers import (
    PROVIDER_SUFFIX,
    DependencyRef,
    FactoryProvider,
    Invocation,
    InvokeMode,
    Provider,
    ValueProvider,
    provider_of,
)


__all__ = [
    "PROVIDER_SUFFIX",
    "BootPhase",
    "ConfigDependencyError",
    "Container",
    "ContainerError",
    "CyclicDependencyError",
    "DependencyRef",
    "DuplicateIdentifierError",
    "FactoryProvider",
    "Injector",
    "InvalidParameterError",
    "Invocation",
    "InvokeMode",
    "MissingGetMethodError",
    "NotFoundError",
    "Provider",
    "ResolutionContext",
    "ResolutionError",
    "ValueProvider",
    "provider_of",
]
