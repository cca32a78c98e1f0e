from __future__ import annotations

import functools
import logging
import types
from collections import deque
from collections.abc import Mapping
from contextlib import contextmanager
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from ._errors import (
    ConfigDependencyError,
    CyclicDependencyError,
    DuplicateIdentifierError,
    InvalidParameterError,
    MissingGetMethodError,
    NotFoundError,
)
from ._providers import (
    _UNSET,
    PROVIDER_SUFFIX,
    DependencyRef,
    FactoryProvider,
    Invocation,
    InvokeMode,
    Provider,
    ValueProvider,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    Ref = str | DependencyRef

INJECTOR = "injector"


class BootPhase(IntEnum):
    NOT_STARTED = 0
    CONFIGURING = 1
    FLUSHING_PROVIDERS = 2
    RUNNING = 3
    STARTED = 4


class ResolutionContext:
    """Providers currently being materialized within one container tree.

    Lives only for the duration of a top-level `get`.
    """

    def __init__(self) -> None:
        self._in_progress: set[int] = set()
        self.path: list[str] = []

    @contextmanager
    def resolving(self, identifier: str, provider: Provider) -> Iterator[None]:
        key = id(provider)
        if key in self._in_progress:
            raise CyclicDependencyError([*self.path, identifier])

        self._in_progress.add(key)
        self.path.append(identifier)
        try:
            yield
        finally:
            self.path.pop()
            self._in_progress.discard(key)


class Injector:
    """Handle on a container, registered in it under the `injector` identifier."""

    def __init__(self, container: Container) -> None:
        self._container = container

    def get(self, identifier: Ref) -> Any:
        return self._container.get(identifier)

    def has(self, identifier: Ref) -> bool:
        return self._container.has(identifier)

    def invoke(self, func: Callable[..., Any], *, inject: Iterable[Ref] = (), with_new: bool = False) -> Any:
        return self._container.invoke(func, inject=inject, with_new=with_new)

    def wrap(self, func: Callable[..., Any], *, inject: Iterable[Ref] = (), with_new: bool = False) -> Any:
        return self._container.wrap(func, inject=inject, with_new=with_new)


class Container:
    """Name-based DI container.

    - register constants, values, factories, classes and custom providers by string id
    - resolve lazily with cycle detection
    - children look up through their parents
    - staged startup: configure -> flush providers -> run -> main.

    A container tree is meant to be used from a single thread.
    """

    def __init__(self, constants: Mapping[str, Any] | None = None) -> None:
        self._registry: dict[str, Provider] = {}
        self._claimed: set[str] = set()
        self._provider_queue: deque[tuple[str, Provider]] = deque()
        self._config_queue: deque[Invocation] = deque()
        self._run_queue: deque[Invocation] = deque()
        self._parent: Container | None = None
        self._children: list[Container] = []
        self._phase = BootPhase.NOT_STARTED
        self._configured = False
        self._resolution: ResolutionContext | None = None

        self.constant(INJECTOR, Injector(self))
        if constants is not None:
            self.constant(constants)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} depth={self._depth()} phase={self._phase.name} ids={len(self._claimed)}>"

    @property
    def parent(self) -> Container | None:
        return self._parent

    @property
    def children(self) -> tuple[Container, ...]:
        return tuple(self._children)

    @property
    def phase(self) -> BootPhase:
        return self._phase

    @property
    def started(self) -> bool:
        return self._phase is BootPhase.STARTED

    # Registration

    def constant(self, identifier: str | Mapping[str, Any], value: Any = _UNSET) -> Container:
        """Register a value that is available immediately.

        Example:
          container.constant("port", 8080)
          container.constant({"host": "localhost", "port": 8080})

        """
        for key, val in _entries("constant", identifier, value):
            self._claim(key)
            self._registry[key] = ValueProvider(key, val)
            logger.debug("Registered constant %r", key)

        return self

    def value(self, identifier: str | Mapping[str, Any], value: Any = _UNSET) -> Container:
        """Register a value that becomes resolvable once the container is bootstrapped.

        Config callables may still replace or mutate it before then.
        """
        for key, val in _entries("value", identifier, value):
            self._claim(key)
            self._enqueue(key, ValueProvider(key, val))

        return self

    def factory(
        self,
        identifier: str,
        func: Callable[..., Any],
        *,
        inject: Iterable[Ref] = (),
        cache: bool = False,
        with_new: bool = False,
    ) -> Container:
        """Register a callable invoked with its resolved `inject` list on each `get`.

        `cache=True` keeps the first result. `with_new=True` treats `func` as a class.
        """
        _check_identifier("factory", identifier)
        invocation = Invocation.create(func, inject, with_new=with_new)
        self._claim(identifier)
        self._enqueue(identifier, FactoryProvider(identifier, invocation, self, cache=cache))

        return self

    def class_(
        self,
        identifier: str,
        cls: type,
        *,
        inject: Iterable[Ref] = (),
        cache: bool = False,
    ) -> Container:
        return self.factory(identifier, cls, inject=inject, cache=cache, with_new=True)

    def provide(self, identifier: str, func: Callable[..., Any], *, inject: Iterable[Ref] = ()) -> Container:
        """Register a custom provider built right away by `func`.

        `func` is invoked with its resolved `inject` list and must return an object
        with a `get()` method. Both "foo" and "fooProvider" register "foo"; the
        provider object itself is reachable as "fooProvider".

        Example:
          container.provide("clock", lambda injector: ClockProvider(injector), inject=["injector"])

        """
        if not isinstance(identifier, str) or not identifier:
            msg = f'Invalid "provide" identifier: {identifier!r}'
            raise InvalidParameterError(msg)

        ref = DependencyRef.parse(identifier)
        name = ref.identifier
        if name in self._claimed:
            raise DuplicateIdentifierError(name)

        provider = self.invoke(func, inject=inject)
        if not callable(getattr(provider, "get", None)):
            raise MissingGetMethodError(name + PROVIDER_SUFFIX)

        self._claim(name)
        self._registry[name] = provider
        logger.debug("Registered provider %r", name)

        return self

    def config(self, func: Callable[..., Any], *, inject: Iterable[Ref] = ()) -> Container:
        """Queue `func` for the configure phase.

        "fooProvider" (or `provider_of("foo")`) in `inject` receives the provider
        object; a bare "foo" receives its value.
        """
        invocation = Invocation.create(func, inject)
        if self._configured:
            logger.warning("%r is past its configure phase; %r will not run", self, func)
            return self

        self._config_queue.append(invocation)
        return self

    def run(self, func: Callable[..., Any], *, inject: Iterable[Ref] = ()) -> Container:
        """Queue `func` for the run phase."""
        invocation = Invocation.create(func, inject)
        if self._phase is BootPhase.STARTED:
            logger.warning("%r has already started; %r will not run", self, func)
            return self

        self._run_queue.append(invocation)
        return self

    def use(self, namespace: str | Container, other: Container | None = None) -> Container:
        """Import another container's local registrations, optionally under `namespace.`.

        Imported providers keep resolving their own dependencies against `other`.
        """
        if isinstance(namespace, Container) and other is None:
            other, prefix = namespace, ""
        elif isinstance(namespace, str) and namespace and isinstance(other, Container):
            prefix = namespace + "."
        else:
            msg = '"use" expects a namespace and a container, or a container only'
            raise InvalidParameterError(msg)

        if other is self:
            msg = "A container cannot import itself"
            raise InvalidParameterError(msg)

        for identifier, provider in other._registry.items():
            if identifier != INJECTOR:
                self._claim(prefix + identifier)
                self._registry[prefix + identifier] = provider

        for identifier, provider in list(other._provider_queue):
            self._claim(prefix + identifier)
            self._enqueue(prefix + identifier, provider)

        return self

    # Resolution

    def has(self, identifier: Ref) -> bool:
        """Whether `identifier` is registered here or in an ancestor, bootstrapped or not."""
        name = DependencyRef.parse(identifier).identifier
        return any(name in node._claimed for node in self._lineage())

    def get(self, identifier: Ref) -> Any:
        """Resolve `identifier` to its value, or to its provider for "fooProvider"."""
        ref = DependencyRef.parse(identifier)
        provider = self._find(ref.identifier)
        if provider is None:
            raise NotFoundError(ref.identifier, pending=self.has(ref.identifier))

        if ref.provider_handle:
            return provider

        return self._materialize(ref.identifier, provider)

    def invoke(self, func: Callable[..., Any], *, inject: Iterable[Ref] = (), with_new: bool = False) -> Any:
        """Call `func` (or construct it, with `with_new`) with its resolved dependencies."""
        return self.call(Invocation.create(func, inject, with_new=with_new))

    def call(self, invocation: Invocation) -> Any:
        return invocation([self.get(ref) for ref in invocation.inject])

    def wrap(self, func: Callable[..., Any], *, inject: Iterable[Ref] = (), with_new: bool = False) -> Any:
        """Bind `func` to its dependencies, resolved at call time.

        The resolved dependencies come first, followed by the caller's arguments.
        With `with_new`, returns a subclass of `func` that does the same in `__init__`.
        """
        invocation = Invocation.create(func, inject, with_new=with_new)

        def resolve() -> list[Any]:
            return [self.get(ref) for ref in invocation.inject]

        if invocation.mode is InvokeMode.CONSTRUCT:

            def __init__(instance: Any, *args: Any, **kwargs: Any) -> None:
                super(wrapped, instance).__init__(*resolve(), *args, **kwargs)

            def body(ns: dict[str, Any]) -> None:
                ns.update(
                    __init__=__init__,
                    __module__=func.__module__,
                    __qualname__=func.__qualname__,
                    __doc__=func.__doc__,
                )

            wrapped = types.new_class(func.__name__, (func,), exec_body=body)
            return wrapped

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*resolve(), *args, **kwargs)

        return wrapper

    def _find(self, identifier: str) -> Provider | None:
        for node in self._lineage():
            provider = node._registry.get(identifier)
            if provider is not None:
                return provider

        return None

    def _materialize(self, identifier: str, provider: Provider) -> Any:
        with self._resolving() as context, context.resolving(identifier, provider):
            return provider.get()

    @contextmanager
    def _resolving(self) -> Iterator[ResolutionContext]:
        root = self._root()
        if root._resolution is not None:
            yield root._resolution
            return

        root._resolution = ResolutionContext()
        try:
            yield root._resolution
        finally:
            root._resolution = None

    # Composition

    def create_child(self, constants: Mapping[str, Any] | None = None) -> Container:
        """Create a container that resolves through this one and starts after it."""
        child = type(self)(constants)
        return self.install(child)

    def install(self, child: Container) -> Container:
        """Attach a parentless container as a child; returns the child."""
        if not isinstance(child, Container):
            msg = f"Expected a Container, got {child!r}"
            raise InvalidParameterError(msg)

        if child._parent is not None:
            msg = f"{child!r} already has a parent"
            raise InvalidParameterError(msg)

        if any(node is child for node in self._lineage()):
            msg = "A container cannot be installed into itself or its descendants"
            raise InvalidParameterError(msg)

        child._parent = self
        self._children.append(child)
        return child

    def _lineage(self) -> Iterator[Container]:
        node: Container | None = self
        while node is not None:
            yield node
            node = node._parent

    def _root(self) -> Container:
        *_, root = self._lineage()
        return root

    def _depth(self) -> int:
        return sum(1 for _ in self._lineage()) - 1

    # Bootstrap

    def bootstrap(self, func: Callable[..., Any] | None = None, *, inject: Iterable[Ref] = ()) -> Container:
        """Start the highest unstarted ancestor's tree, then call `func` with its dependencies.

        Each sweep (configure, flush providers, run) covers the whole tree before
        the next one begins.
        """
        main = Invocation.create(func, inject) if func is not None else None

        root = self
        while root._parent is not None and not root._parent.started:
            root = root._parent

        root._bootstrap()

        if main is not None:
            self.call(main)

        return self

    def _bootstrap(self) -> None:
        self._configure()
        self._flush_provider_queue()
        self._flush_run_queue()

    def _configure(self) -> None:
        self._advance(BootPhase.CONFIGURING)
        while self._config_queue:
            invocation = self._config_queue.popleft()
            invocation([self._config_dependency(ref) for ref in invocation.inject])
        self._configured = True

        for child in self._children:
            child._configure()

    def _config_dependency(self, ref: DependencyRef) -> Any:
        provider = self._find(ref.identifier)
        if provider is None:
            raise ConfigDependencyError(str(ref))

        if ref.provider_handle:
            return provider

        return self._materialize(ref.identifier, provider)

    def _flush_provider_queue(self) -> None:
        self._advance(BootPhase.FLUSHING_PROVIDERS)
        while self._provider_queue:
            identifier, provider = self._provider_queue.popleft()
            self._registry[identifier] = provider

        for child in self._children:
            child._flush_provider_queue()

    def _flush_run_queue(self) -> None:
        self._advance(BootPhase.RUNNING)
        while self._run_queue:
            self.call(self._run_queue.popleft())

        self._advance(BootPhase.STARTED)
        for child in self._children:
            child._flush_run_queue()

    def _advance(self, phase: BootPhase) -> None:
        if self._phase < phase:
            self._phase = phase
            logger.debug("%r entered %s", self, phase.name)

    # Helpers

    def _claim(self, identifier: str) -> None:
        if identifier in self._claimed:
            raise DuplicateIdentifierError(identifier)

        self._claimed.add(identifier)

    def _enqueue(self, identifier: str, provider: Provider) -> None:
        # The provider queue is already drained: promote right away.
        if self._phase >= BootPhase.FLUSHING_PROVIDERS:
            self._registry[identifier] = provider
        else:
            self._provider_queue.append((identifier, provider))

        logger.debug("Registered %r", provider)


def _check_identifier(kind: str, identifier: object) -> None:
    if not isinstance(identifier, str) or not identifier:
        msg = f'Invalid "{kind}" identifier: {identifier!r}'
        raise InvalidParameterError(msg)

    if DependencyRef.parse(identifier).provider_handle:
        msg = f'"{identifier}" ends with the reserved suffix "{PROVIDER_SUFFIX}"; use "provide" to register providers'
        raise InvalidParameterError(msg)


def _entries(kind: str, identifier: object, value: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(identifier, Mapping) and value is _UNSET:
        for key, val in identifier.items():
            _check_identifier(kind, key)
            yield key, val
    elif isinstance(identifier, str) and value is not _UNSET:
        _check_identifier(kind, identifier)
        yield identifier, value
    else:
        msg = f'Invalid "{kind}" arguments: expected (id, value) or a mapping, got {identifier!r}'
        raise InvalidParameterError(msg)
