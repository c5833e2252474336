"""Package ownership backends and the blocking client in front of them."""

from collections.abc import Callable

from deskctl.resolvers.apt import DpkgBackend
from deskctl.resolvers.base import OwnershipBackend, QueryRole, QuerySink, ResolverError
from deskctl.resolvers.client import ResolverClient

_BACKENDS: dict[str, Callable[..., OwnershipBackend]] = {
    "apt": DpkgBackend,
}


def get_backend(name: str, *, command_timeout: float | None = None) -> OwnershipBackend:
    """Create the ownership backend registered under name.

    Args:
        name: Registered backend name.
        command_timeout: Seconds allowed for each package manager command;
            None keeps the backend default.

    Raises:
        ValueError: If no backend has that name.
    """
    try:
        backend_class = _BACKENDS[name]
    except KeyError:
        msg = f"Unknown backend: {name!r} (available: {', '.join(sorted(_BACKENDS))})"
        raise ValueError(msg) from None

    if command_timeout is None:
        return backend_class()
    return backend_class(command_timeout=command_timeout)


__all__ = [
    "DpkgBackend",
    "OwnershipBackend",
    "QueryRole",
    "QuerySink",
    "ResolverClient",
    "ResolverError",
    "get_backend",
]
