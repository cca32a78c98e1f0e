from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence


class ContainerError(RuntimeError):
    """Base class for every error raised by a container."""


class DuplicateIdentifierError(ContainerError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f'"{identifier}" has already been registered')
        self.identifier = identifier


class InvalidParameterError(ContainerError, ValueError):
    """Malformed arguments passed to a registration call."""


class MissingGetMethodError(InvalidParameterError, TypeError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f'"{identifier}" needs a "get" method')
        self.identifier = identifier


class ResolutionError(ContainerError):
    """Raised when an identifier cannot be turned into a value."""


class NotFoundError(ResolutionError):
    def __init__(self, identifier: str, *, pending: bool = False) -> None:
        msg = f'Dependency "{identifier}" not found'
        if pending:
            msg += " (registered, but the container has not been bootstrapped yet)"
        super().__init__(msg)
        self.identifier = identifier


class CyclicDependencyError(ResolutionError):
    def __init__(self, path: Sequence[str]) -> None:
        self.path = tuple(path)
        super().__init__(f'Cyclic dependency "{" -> ".join(self.path)}"')


class ConfigDependencyError(ResolutionError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f'"config" dependency "{identifier}" not found or illegal')
        self.identifier = identifier
