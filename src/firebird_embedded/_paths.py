"""Root Resolver and the resolved directory triple used by every step."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

import platformdirs
from pydantic import BaseModel, ConfigDict, field_validator

from firebird_embedded._constants import LOCK_DIR_NAME, ROOT_DIR_NAME, TMP_DIR_NAME

_logger = logging.getLogger(__name__)

#: Callable returning the application's private, writable data directory.
DataDirResolver = Callable[[], str | os.PathLike[str]]


def _platform_data_dir() -> Path:
    # On Android this is the app sandbox (``/data/user/0/<package>/files``).
    return platformdirs.user_data_path()


def default_firebird_root(resolver: DataDirResolver | None = None) -> Path:
    """Determine the default Firebird root directory.

    This is the directory in which all Firebird embedded assets (configs,
    ICU data, ``firebird.msg``) are stored: the ``firebird`` subdirectory
    of the application's private data directory.

    Parameters
    ----------
    resolver : callable or None
        Returns the private data directory. Defaults to
        :func:`platformdirs.user_data_path`.
    """
    data_dir = Path(resolver() if resolver is not None else _platform_data_dir())
    return data_dir.absolute() / ROOT_DIR_NAME


class FirebirdPaths(BaseModel):
    """Root, temporary and lock directories of one embedded engine.

    Parameters
    ----------
    root : Path
        Engine root holding configuration and data files (``FIREBIRD``).
    tmp : Path
        Scratch space for sorts and index rebuilds (``FIREBIRD_TMP``).
    lock : Path
        Lock files coordinating access to databases (``FIREBIRD_LOCK``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root: Path
    tmp: Path
    lock: Path

    @field_validator("root", "tmp", "lock", mode="after")
    @classmethod
    def _make_absolute(cls, value: Path) -> Path:
        return value.expanduser().absolute()

    @classmethod
    def resolve(
        cls,
        root: str | os.PathLike[str] | None = None,
        tmp: str | os.PathLike[str] | None = None,
        lock: str | os.PathLike[str] | None = None,
        *,
        resolver: DataDirResolver | None = None,
    ) -> FirebirdPaths:
        """Fill in omitted directories.

        Any directory provided is used as is. A missing *root* comes from
        :func:`default_firebird_root`; missing *tmp* and *lock* become
        ``<root>/tmp`` and ``<root>/lock`` of the effective root.
        """
        root_path = Path(root) if root is not None else default_firebird_root(resolver)
        paths = cls(
            root=root_path,
            tmp=Path(tmp) if tmp is not None else root_path / TMP_DIR_NAME,
            lock=Path(lock) if lock is not None else root_path / LOCK_DIR_NAME,
        )
        _logger.debug("Resolved Firebird paths: root=%s tmp=%s lock=%s", paths.root, paths.tmp, paths.lock)
        return paths

    def as_tuple(self) -> tuple[Path, Path, Path]:
        return (self.root, self.tmp, self.lock)
