"""Provisioning of the Firebird embedded engine on an Android device.

The engine needs its config and data files (``firebird.conf``, ICU data,
``firebird.msg``) in a writable directory, and the ``FIREBIRD``,
``FIREBIRD_TMP`` and ``FIREBIRD_LOCK`` environment variables pointing at
its root, temporary and lock directories before the native library is
loaded. The package itself ships only the configuration files; the ICU
data and ``firebird.msg`` of the engine build are added to ``data/`` as
package data, or served from a custom :class:`AssetBundle`.

:class:`Provisioner` performs these steps in order:

1. resolve the directories,
2. create them,
3. copy the bundled payload into the root directory,
4. set the environment variables.

Usage::

    import firebird_embedded as fbe

    await fbe.set_up_embedded()
    # embedded Firebird ready

    await fbe.set_up_embedded(firebird_root="/tmp/fbemb", force_redeploy=True)
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from firebird_embedded._constants import ASSET_PREFIX
from firebird_embedded.assets import AssetBundle, PackageAssetBundle
from firebird_embedded.config import ProvisionConfig
from firebird_embedded.environment import Environment, MappingEnvironment, apply_env_vars
from firebird_embedded.exceptions import AssetLoadError, FilesystemError
from firebird_embedded.models import ProvisionResult
from firebird_embedded._paths import DataDirResolver, FirebirdPaths, default_firebird_root
from firebird_embedded.platform import current_platform, platform_guarded

_logger = logging.getLogger(__name__)

PathArg = str | os.PathLike[str] | None


# ----------------------------------------------------------------------
# Filesystem helpers (run in a worker thread)
# ----------------------------------------------------------------------


def _mkdir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Could not create directory {path}: {exc}", path=path) from exc


def _ensure_dirs_sync(paths: FirebirdPaths) -> None:
    for path in paths.as_tuple():
        if not path.is_dir():
            _logger.debug("Creating directory %s", path)
            _mkdir(path)


def _write_bytes(target: Path, content: bytes) -> None:
    _mkdir(target.parent)
    try:
        target.write_bytes(content)
    except OSError as exc:
        raise FilesystemError(f"Could not write {target}: {exc}", path=target) from exc


def asset_target_path(root: Path, name: str) -> Path:
    """Map a payload asset name to its location under *root*.

    The payload prefix is replaced by *root*; the rest of the logical
    name is kept as the relative path.
    """
    relative = name[len(ASSET_PREFIX) :]
    parts = relative.split("/")
    if not relative or any(part in ("", ".", "..") for part in parts):
        raise AssetLoadError(f"Asset name {name!r} does not map to a file under the root", asset=name)
    return root.joinpath(*parts)


# ----------------------------------------------------------------------
# Steps
# ----------------------------------------------------------------------


async def _ensure_dirs(paths: FirebirdPaths) -> None:
    await asyncio.to_thread(_ensure_dirs_sync, paths)


async def _deploy(root: Path, bundle: AssetBundle, force_redeploy: bool) -> list[Path]:
    root_exists = await asyncio.to_thread(root.is_dir)
    if root_exists and not force_redeploy:
        # Already provisioned and not asked to refresh the payload.
        _logger.debug("Firebird root %s exists, skipping asset deployment", root)
        return []
    if not root_exists:
        await asyncio.to_thread(_mkdir, root)

    try:
        names = await bundle.list_assets()
    except OSError as exc:
        raise AssetLoadError(f"Could not load the asset manifest: {exc}") from exc

    written: list[Path] = []
    for name in names:
        if not name.startswith(ASSET_PREFIX):
            continue
        target = asset_target_path(root, name)
        try:
            content = await bundle.load(name)
        except OSError as exc:
            raise AssetLoadError(f"Could not read asset {name!r}: {exc}", asset=name) from exc
        await asyncio.to_thread(_write_bytes, target, content)
        _logger.debug("Deployed %s -> %s (%d bytes)", name, target, len(content))
        written.append(target)
    _logger.debug("Deployed %d assets into %s", len(written), root)
    return written


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------


class Provisioner:
    """Prepares the bundled Firebird embedded engine on the local device.

    Every public method first checks that the running platform is
    supported and raises :class:`UnsupportedPlatformError` otherwise,
    before touching the filesystem or the environment.

    Parameters
    ----------
    platform : str or None
        Platform identifier. Detected with :func:`current_platform` when omitted.
    environment : Environment or None
        Environment access. Defaults to the process environment.
    bundle : AssetBundle or None
        Default source of the payload. Defaults to the package data of
        ``firebird_embedded``.
    data_dir_resolver : callable or None
        Returns the application's private data directory; see
        :func:`default_firebird_root`.
    """

    def __init__(
        self,
        *,
        platform: str | None = None,
        environment: Environment | None = None,
        bundle: AssetBundle | None = None,
        data_dir_resolver: DataDirResolver | None = None,
    ) -> None:
        self.platform = platform if platform is not None else current_platform()
        self._environment = environment if environment is not None else MappingEnvironment()
        self._bundle = bundle
        self._resolver = data_dir_resolver

    def _resolve(self, firebird_root: PathArg, firebird_tmp: PathArg, firebird_lock: PathArg) -> FirebirdPaths:
        return FirebirdPaths.resolve(firebird_root, firebird_tmp, firebird_lock, resolver=self._resolver)

    def _bundle_or_default(self, bundle: AssetBundle | None) -> AssetBundle:
        if bundle is not None:
            return bundle
        if self._bundle is None:
            self._bundle = PackageAssetBundle()
        return self._bundle

    @platform_guarded
    def default_root(self) -> Path:
        """The ``firebird`` subdirectory of the application's private data directory."""
        return default_firebird_root(self._resolver)

    @platform_guarded
    async def create_dirs(
        self,
        firebird_root: PathArg = None,
        firebird_tmp: PathArg = None,
        firebird_lock: PathArg = None,
    ) -> None:
        """Create the root, temporary and lock directories if absent."""
        await _ensure_dirs(self._resolve(firebird_root, firebird_tmp, firebird_lock))

    @platform_guarded
    async def deploy_assets(
        self,
        firebird_root: PathArg = None,
        *,
        bundle: AssetBundle | None = None,
        force_redeploy: bool = False,
    ) -> list[Path]:
        """Copy the bundled payload into the Firebird root directory.

        If the root directory is absent it is created and the assets are
        copied. If it exists, nothing is copied unless *force_redeploy*
        is true, in which case files already in the root are overwritten.
        Assets outside the payload prefix are skipped.

        Returns the files written.
        """
        if firebird_root is not None:
            root = Path(firebird_root).expanduser().absolute()
        else:
            root = default_firebird_root(self._resolver)
        return await _deploy(root, self._bundle_or_default(bundle), force_redeploy)

    @platform_guarded
    def set_env_vars(
        self,
        firebird_root: PathArg = None,
        firebird_tmp: PathArg = None,
        firebird_lock: PathArg = None,
        *,
        force: bool = False,
    ) -> list[str]:
        """Set ``FIREBIRD``, ``FIREBIRD_TMP`` and ``FIREBIRD_LOCK``.

        Variables that already hold a non-blank value are kept unless
        *force* is true. Returns the names written.
        """
        paths = self._resolve(firebird_root, firebird_tmp, firebird_lock)
        return apply_env_vars(paths, self._environment, force)

    @platform_guarded
    async def set_up(
        self,
        firebird_root: PathArg = None,
        firebird_tmp: PathArg = None,
        firebird_lock: PathArg = None,
        *,
        bundle: AssetBundle | None = None,
        force_redeploy: bool = False,
    ) -> ProvisionResult:
        """Perform every step needed for the embedded engine to work.

        Omitted directories are determined automatically: the root via
        :func:`default_firebird_root`, tmp and lock relative to the
        effective root. The payload is deployed when the root did not
        exist before the call or *force_redeploy* is true; the latter
        also overwrites environment variables that are already set.

        Errors from any step propagate unchanged and abort the remaining
        steps. Already created directories and copied files are left in
        place, so the call can simply be retried.
        """
        return await self._set_up(
            firebird_root,
            firebird_tmp,
            firebird_lock,
            bundle=bundle,
            force_redeploy=force_redeploy,
        )

    @platform_guarded
    async def set_up_from_config(
        self,
        config: ProvisionConfig,
        *,
        bundle: AssetBundle | None = None,
    ) -> ProvisionResult:
        """Run :meth:`set_up` with the values of *config*."""
        return await self._set_up(
            config.firebird_root,
            config.firebird_tmp,
            config.firebird_lock,
            bundle=bundle,
            force_redeploy=config.force_redeploy,
        )

    async def _set_up(
        self,
        firebird_root: PathArg,
        firebird_tmp: PathArg,
        firebird_lock: PathArg,
        *,
        bundle: AssetBundle | None,
        force_redeploy: bool,
    ) -> ProvisionResult:
        paths = self._resolve(firebird_root, firebird_tmp, firebird_lock)
        root_existed = await asyncio.to_thread(paths.root.is_dir)

        await _ensure_dirs(paths)
        deployed = await _deploy(
            paths.root,
            self._bundle_or_default(bundle),
            force_redeploy or not root_existed,
        )
        env_updated = apply_env_vars(paths, self._environment, force_redeploy)

        _logger.info(
            "Firebird embedded ready at %s (%d assets deployed, %d variables set)",
            paths.root,
            len(deployed),
            len(env_updated),
        )
        return ProvisionResult(
            paths=paths,
            root_existed=root_existed,
            deployed=tuple(deployed),
            env_updated=tuple(env_updated),
        )


# ----------------------------------------------------------------------
# Module-level shortcuts using the process environment and package data
# ----------------------------------------------------------------------


def get_default_root() -> Path:
    """See :meth:`Provisioner.default_root`."""
    return Provisioner().default_root()


async def create_dirs(
    firebird_root: PathArg = None,
    firebird_tmp: PathArg = None,
    firebird_lock: PathArg = None,
) -> None:
    """See :meth:`Provisioner.create_dirs`."""
    await Provisioner().create_dirs(firebird_root, firebird_tmp, firebird_lock)


async def deploy_assets(
    firebird_root: PathArg = None,
    *,
    bundle: AssetBundle | None = None,
    force_redeploy: bool = False,
) -> list[Path]:
    """See :meth:`Provisioner.deploy_assets`."""
    return await Provisioner().deploy_assets(firebird_root, bundle=bundle, force_redeploy=force_redeploy)


def set_env_vars(
    firebird_root: PathArg = None,
    firebird_tmp: PathArg = None,
    firebird_lock: PathArg = None,
    *,
    force: bool = False,
) -> list[str]:
    """See :meth:`Provisioner.set_env_vars`."""
    return Provisioner().set_env_vars(firebird_root, firebird_tmp, firebird_lock, force=force)


async def set_up_embedded(
    firebird_root: PathArg = None,
    firebird_tmp: PathArg = None,
    firebird_lock: PathArg = None,
    *,
    bundle: AssetBundle | None = None,
    force_redeploy: bool = False,
) -> ProvisionResult:
    """All-in-one setup; see :meth:`Provisioner.set_up`."""
    return await Provisioner().set_up(
        firebird_root,
        firebird_tmp,
        firebird_lock,
        bundle=bundle,
        force_redeploy=force_redeploy,
    )
