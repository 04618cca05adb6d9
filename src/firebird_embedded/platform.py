"""Platform detection and the guard applied to public entry points."""

from __future__ import annotations

import functools
import sys
from collections.abc import Callable
from typing import Any, TypeVar

from firebird_embedded._constants import SUPPORTED_PLATFORM
from firebird_embedded.exceptions import UnsupportedPlatformError

F = TypeVar("F", bound=Callable[..., Any])


def current_platform() -> str:
    """Return the identifier of the running platform.

    CPython reports ``"android"`` as ``sys.platform`` from 3.13 on; older
    Android builds (Chaquopy, Termux) report ``"linux"`` but expose
    ``sys.getandroidapilevel``.
    """
    if sys.platform == SUPPORTED_PLATFORM or hasattr(sys, "getandroidapilevel"):
        return SUPPORTED_PLATFORM
    return sys.platform


def is_supported(platform: str) -> bool:
    """Whether provisioning can run on *platform*."""
    return platform == SUPPORTED_PLATFORM


def require_supported(platform: str) -> None:
    """Raise :class:`UnsupportedPlatformError` unless *platform* is supported."""
    if not is_supported(platform):
        raise UnsupportedPlatformError(
            f"Only the {SUPPORTED_PLATFORM} platform is supported (running on {platform!r}).",
            platform=platform,
        )


def platform_guarded(method: F) -> F:
    """Check ``self.platform`` before dispatching to *method*.

    Works for both plain and ``async`` methods. For coroutines the check
    still runs before the coroutine object is created, so callers get the
    error at call time rather than at ``await`` time.
    """

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        require_supported(self.platform)
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
