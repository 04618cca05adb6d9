"""Read-only asset bundles the engine payload is deployed from.

A bundle is a manifest of logical asset names plus a load-by-name
operation returning raw bytes. Logical names use ``/`` separators and
start with the name of the bundle's owner (for package data, the Python
package), e.g. ``firebird_embedded/data/firebird.conf``.
"""

from __future__ import annotations

import asyncio
import importlib.resources
import logging
import os
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Protocol

from firebird_embedded._constants import ASSET_PACKAGE
from firebird_embedded.exceptions import AssetLoadError

_logger = logging.getLogger(__name__)


class AssetBundle(Protocol):
    """Structural interface of a read-only asset bundle.

    Any object with these two coroutines can be passed to the deployer,
    which keeps test doubles trivial.
    """

    async def list_assets(self) -> list[str]:
        ...

    async def load(self, name: str) -> bytes:
        ...


def _walk(node: Traversable, prefix: str) -> list[str]:
    names: list[str] = []
    for child in sorted(node.iterdir(), key=lambda item: item.name):
        if child.name == "__pycache__":
            continue
        logical = f"{prefix}/{child.name}"
        if child.is_dir():
            names.extend(_walk(child, logical))
        elif child.is_file():
            names.append(logical)
    return names


class PackageAssetBundle:
    """Assets shipped as package data of an installed Python package.

    Parameters
    ----------
    package : str
        Import name of the package. Logical names are
        ``<package>/<relative path>``.
    """

    def __init__(self, package: str = ASSET_PACKAGE) -> None:
        self._package = package

    def _root(self) -> Traversable:
        try:
            return importlib.resources.files(self._package)
        except ModuleNotFoundError as exc:
            raise AssetLoadError(f"Asset package {self._package!r} is not installed") from exc

    def _list_sync(self) -> list[str]:
        try:
            return _walk(self._root(), self._package)
        except OSError as exc:
            raise AssetLoadError(f"Could not list assets of package {self._package!r}: {exc}") from exc

    def _load_sync(self, name: str) -> bytes:
        head, sep, relative = name.partition("/")
        if head != self._package or not sep or not relative:
            raise AssetLoadError(f"Asset {name!r} does not belong to package {self._package!r}", asset=name)
        try:
            return self._root().joinpath(*relative.split("/")).read_bytes()
        except OSError as exc:
            raise AssetLoadError(f"Could not read asset {name!r}: {exc}", asset=name) from exc

    async def list_assets(self) -> list[str]:
        names = await asyncio.to_thread(self._list_sync)
        _logger.debug("Package %s lists %d assets", self._package, len(names))
        return names

    async def load(self, name: str) -> bytes:
        return await asyncio.to_thread(self._load_sync, name)


class DirectoryAssetBundle:
    """Assets stored as plain files under a directory.

    Parameters
    ----------
    base : str or PathLike
        Directory whose files are exposed.
    prefix : str
        Prepended to every relative path to form the logical name. Pass
        :data:`firebird_embedded._constants.ASSET_PREFIX` when *base*
        holds an unpacked payload.
    """

    def __init__(self, base: str | os.PathLike[str], prefix: str = "") -> None:
        self._base = Path(base)
        self._prefix = prefix

    def _list_sync(self) -> list[str]:
        if not self._base.is_dir():
            raise AssetLoadError(f"Asset directory not found: {self._base}")
        try:
            files = sorted(path for path in self._base.rglob("*") if path.is_file())
        except OSError as exc:
            raise AssetLoadError(f"Could not list asset directory {self._base}: {exc}") from exc
        return [self._prefix + path.relative_to(self._base).as_posix() for path in files]

    def _load_sync(self, name: str) -> bytes:
        if not name.startswith(self._prefix):
            raise AssetLoadError(f"Asset {name!r} is not part of {self._base}", asset=name)
        relative = name[len(self._prefix) :]
        try:
            return self._base.joinpath(*relative.split("/")).read_bytes()
        except OSError as exc:
            raise AssetLoadError(f"Could not read asset {name!r}: {exc}", asset=name) from exc

    async def list_assets(self) -> list[str]:
        return await asyncio.to_thread(self._list_sync)

    async def load(self, name: str) -> bytes:
        return await asyncio.to_thread(self._load_sync, name)
