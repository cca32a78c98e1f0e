from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ._errors import InvalidParameterError


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ._container import Container


# Reserved marker: "fooProvider" in a dependency list asks for the provider of "foo".
PROVIDER_SUFFIX = "Provider"

_UNSET: Any = object()


@dataclass(frozen=True)
class DependencyRef:
    """A single entry of a dependency list.

    `provider_handle` selects the provider object registered for `identifier`
    instead of the value it materializes.
    """

    identifier: str
    provider_handle: bool = False

    @classmethod
    def parse(cls, ref: str | DependencyRef) -> DependencyRef:
        if isinstance(ref, DependencyRef):
            return ref

        if not isinstance(ref, str) or not ref:
            msg = f"Dependency identifiers must be non-empty strings, got {ref!r}"
            raise InvalidParameterError(msg)

        if ref.endswith(PROVIDER_SUFFIX) and len(ref) > len(PROVIDER_SUFFIX):
            return cls(ref[: -len(PROVIDER_SUFFIX)], provider_handle=True)

        return cls(ref)

    def __str__(self) -> str:
        return self.identifier + PROVIDER_SUFFIX if self.provider_handle else self.identifier


def provider_of(identifier: str) -> DependencyRef:
    """Reference the provider registered under `identifier` rather than its value."""
    return DependencyRef(identifier, provider_handle=True)


def parse_inject(inject: Iterable[str | DependencyRef]) -> tuple[DependencyRef, ...]:
    if isinstance(inject, (str, DependencyRef)):
        msg = f"`inject` expects a sequence of identifiers, got {inject!r}"
        raise InvalidParameterError(msg)

    return tuple(DependencyRef.parse(ref) for ref in inject)


class InvokeMode(Enum):
    PLAIN = "plain"
    CONSTRUCT = "construct"


@dataclass(frozen=True)
class Invocation:
    """A callable together with the dependencies it is called with."""

    func: Callable[..., Any]
    inject: tuple[DependencyRef, ...] = ()
    mode: InvokeMode = InvokeMode.PLAIN

    @classmethod
    def create(
        cls,
        func: Callable[..., Any],
        inject: Iterable[str | DependencyRef] = (),
        *,
        with_new: bool = False,
    ) -> Invocation:
        if not callable(func):
            msg = f"Expected a callable, got {func!r}"
            raise InvalidParameterError(msg)

        mode = InvokeMode.CONSTRUCT if with_new else InvokeMode.PLAIN
        if mode is InvokeMode.CONSTRUCT and not inspect.isclass(func):
            msg = f"`with_new` requires a class, got {func!r}"
            raise InvalidParameterError(msg)

        return cls(func=func, inject=parse_inject(inject), mode=mode)

    def __call__(self, args: list[Any]) -> Any:
        # CONSTRUCT mode holds a class, and calling it constructs.
        return self.func(*args)


@runtime_checkable
class Provider(Protocol):
    def get(self) -> Any: ...


class ValueProvider:
    """Always hands out the same value."""

    def __init__(self, identifier: str, value: Any) -> None:
        self.identifier = identifier
        self._value = value

    def get(self) -> Any:
        return self._value

    def __repr__(self) -> str:
        return f"ValueProvider({self.identifier!r})"


class FactoryProvider:
    """Invokes a callable against its owning container on every `get`.

    With `cache` the first result is kept and returned from then on.
    """

    def __init__(self, identifier: str, invocation: Invocation, container: Container, *, cache: bool = False) -> None:
        self.identifier = identifier
        self.invocation = invocation
        self.cache = cache
        self._container = container
        self._cached: Any = _UNSET

    def get(self) -> Any:
        if self._cached is not _UNSET:
            return self._cached

        result = self._container.call(self.invocation)
        if self.cache:
            self._cached = result

        return result

    def __repr__(self) -> str:
        kind = "class" if self.invocation.mode is InvokeMode.CONSTRUCT else "factory"
        return f"FactoryProvider({self.identifier!r}, kind={kind}, cache={self.cache})"
