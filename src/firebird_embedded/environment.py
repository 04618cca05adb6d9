"""Process environment access and the Firebird variable configurator."""

from __future__ import annotations

import logging
import os
from collections.abc import MutableMapping
from typing import Protocol

from firebird_embedded._constants import FIREBIRD_LOCK_VAR, FIREBIRD_ROOT_VAR, FIREBIRD_TMP_VAR
from firebird_embedded._paths import FirebirdPaths

_logger = logging.getLogger(__name__)


class Environment(Protocol):
    """Get/set access to environment variables."""

    def get(self, name: str) -> str | None:
        ...

    def set(self, name: str, value: str) -> None:
        ...


class MappingEnvironment:
    """:class:`Environment` backed by a mutable mapping.

    With the default ``os.environ`` every assignment also calls
    ``putenv``, so native libraries loaded afterwards in the same process
    read the new values. Pass a plain ``dict`` to keep changes in memory.
    """

    def __init__(self, mapping: MutableMapping[str, str] | None = None) -> None:
        self._mapping: MutableMapping[str, str] = os.environ if mapping is None else mapping

    def get(self, name: str) -> str | None:
        return self._mapping.get(name)

    def set(self, name: str, value: str) -> None:
        self._mapping[name] = value


def maybe_set_var(environment: Environment, name: str, value: str, force: bool) -> bool:
    """Set *name* to *value* unless it already holds a non-blank value.

    Returns ``True`` when the variable was written.
    """
    current = environment.get(name)
    if force or current is None or not current.strip():
        environment.set(name, value)
        _logger.debug("Set %s=%s", name, value)
        return True
    _logger.debug("Keeping existing %s=%s", name, current)
    return False


def apply_env_vars(paths: FirebirdPaths, environment: Environment, force: bool = False) -> list[str]:
    """Point ``FIREBIRD``, ``FIREBIRD_TMP`` and ``FIREBIRD_LOCK`` at *paths*.

    Variables that already have a non-blank value are left untouched
    unless *force* is true. Returns the names that were written.
    """
    assignments = (
        (FIREBIRD_ROOT_VAR, paths.root),
        (FIREBIRD_TMP_VAR, paths.tmp),
        (FIREBIRD_LOCK_VAR, paths.lock),
    )
    written: list[str] = []
    for name, path in assignments:
        if maybe_set_var(environment, name, str(path), force):
            written.append(name)
    return written
