from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

import firebird_embedded as fbe
from firebird_embedded import provision
from firebird_embedded._constants import ASSET_PREFIX
from firebird_embedded.config import ProvisionConfig
from firebird_embedded.environment import MappingEnvironment
from firebird_embedded.exceptions import AssetLoadError, FilesystemError, UnsupportedPlatformError
from firebird_embedded.provision import Provisioner, asset_target_path

_PAYLOAD = {
    f"{ASSET_PREFIX}firebird.conf": b"ServerMode = SuperClassic\n",
    f"{ASSET_PREFIX}firebird.msg": b"\x00\x01\x02\x03",
    f"{ASSET_PREFIX}intl/fbintl.conf": b"<intl_module fbintl>\n",
}
_FOREIGN = {
    "other_plugin/assets/logo.png": b"\x89PNG",
    "firebird_embedded/readme.txt": b"not payload",
}


class _FakeBundle:
    def __init__(self, assets: dict[str, bytes] | None = None) -> None:
        self.assets = dict(_PAYLOAD | _FOREIGN) if assets is None else assets
        self.loaded: list[str] = []
        self.listed = 0

    async def list_assets(self) -> list[str]:
        self.listed += 1
        return list(self.assets)

    async def load(self, name: str) -> bytes:
        self.loaded.append(name)
        return self.assets[name]


class _BrokenManifestBundle:
    async def list_assets(self) -> list[str]:
        raise AssetLoadError("manifest unavailable")

    async def load(self, name: str) -> bytes:
        raise AssertionError("load must not be called")


class _UnreadableAssetBundle(_FakeBundle):
    async def load(self, name: str) -> bytes:
        raise FileNotFoundError(name)


def _provisioner(
    tmp_path: Path,
    env: dict[str, str],
    bundle: _FakeBundle | None = None,
    platform: str = "android",
) -> Provisioner:
    return Provisioner(
        platform=platform,
        environment=MappingEnvironment(env),
        bundle=bundle if bundle is not None else _FakeBundle(),
        data_dir_resolver=lambda: tmp_path / "files",
    )


def _snapshot(root: Path) -> dict[str, int]:
    return {str(path): path.stat().st_mtime_ns for path in root.rglob("*") if path.is_file()}


@pytest.mark.asyncio
async def test_first_setup_with_defaults(tmp_path: Path) -> None:
    env: dict[str, str] = {}
    result = await _provisioner(tmp_path, env).set_up()

    root = tmp_path / "files" / "firebird"
    assert root.is_dir()
    assert (root / "tmp").is_dir()
    assert (root / "lock").is_dir()
    assert (root / "firebird.conf").read_bytes() == _PAYLOAD[f"{ASSET_PREFIX}firebird.conf"]
    assert (root / "firebird.msg").read_bytes() == b"\x00\x01\x02\x03"
    assert (root / "intl" / "fbintl.conf").is_file()
    assert env == {
        "FIREBIRD": str(root),
        "FIREBIRD_TMP": str(root / "tmp"),
        "FIREBIRD_LOCK": str(root / "lock"),
    }
    assert result.root_existed is False
    assert len(result.deployed) == len(_PAYLOAD)
    assert result.env_updated == ("FIREBIRD", "FIREBIRD_TMP", "FIREBIRD_LOCK")


@pytest.mark.asyncio
async def test_foreign_assets_are_never_copied(tmp_path: Path) -> None:
    bundle = _FakeBundle()
    provisioner = _provisioner(tmp_path, {}, bundle)

    await provisioner.set_up(tmp_path / "fb")
    await provisioner.set_up(tmp_path / "fb", force_redeploy=True)

    assert sorted(set(bundle.loaded)) == sorted(_PAYLOAD)
    copied = {path.relative_to(tmp_path / "fb").as_posix() for path in (tmp_path / "fb").rglob("*") if path.is_file()}
    assert copied == {"firebird.conf", "firebird.msg", "intl/fbintl.conf"}


@pytest.mark.asyncio
async def test_second_call_does_not_redeploy(tmp_path: Path) -> None:
    bundle = _FakeBundle()
    env: dict[str, str] = {}
    provisioner = _provisioner(tmp_path, env, bundle)
    root = tmp_path / "fb"

    await provisioner.set_up(root)
    # Push mtimes into the past so any rewrite would be visible.
    for path in root.rglob("*"):
        if path.is_file():
            os.utime(path, ns=(1_000_000_000, 1_000_000_000))
    before = _snapshot(root)
    loaded_before = list(bundle.loaded)

    result = await provisioner.set_up(root)

    assert _snapshot(root) == before
    assert bundle.loaded == loaded_before
    assert bundle.listed == 1
    assert result.root_existed is True
    assert result.deployed == ()
    assert result.env_updated == ()


@pytest.mark.asyncio
async def test_forced_redeploy_overwrites_files_and_variables(tmp_path: Path) -> None:
    root = tmp_path / "fb"
    root.mkdir()
    (root / "firebird.conf").write_bytes(b"stale")
    env = {"FIREBIRD": "/elsewhere", "FIREBIRD_TMP": "/elsewhere/tmp", "FIREBIRD_LOCK": "/elsewhere/lock"}

    result = await _provisioner(tmp_path, env).set_up(root, force_redeploy=True)

    assert (root / "firebird.conf").read_bytes() == _PAYLOAD[f"{ASSET_PREFIX}firebird.conf"]
    assert env["FIREBIRD"] == str(root)
    assert env["FIREBIRD_TMP"] == str(root / "tmp")
    assert env["FIREBIRD_LOCK"] == str(root / "lock")
    assert result.root_existed is True
    assert result.redeployed


@pytest.mark.asyncio
async def test_existing_root_and_variables_are_left_alone(tmp_path: Path) -> None:
    root = tmp_path / "fb"
    root.mkdir()
    env = {"FIREBIRD": "/preset", "FIREBIRD_TMP": "/preset/tmp", "FIREBIRD_LOCK": "/preset/lock"}
    bundle = _FakeBundle()

    await _provisioner(tmp_path, env, bundle).set_up(root)

    assert env == {"FIREBIRD": "/preset", "FIREBIRD_TMP": "/preset/tmp", "FIREBIRD_LOCK": "/preset/lock"}
    assert bundle.loaded == []
    assert not (root / "firebird.conf").exists()
    # Working directories are still ensured.
    assert (root / "tmp").is_dir()
    assert (root / "lock").is_dir()


@pytest.mark.asyncio
async def test_blank_variable_is_overwritten_without_force(tmp_path: Path) -> None:
    env = {"FIREBIRD": "   ", "FIREBIRD_TMP": "/keep/tmp", "FIREBIRD_LOCK": ""}
    root = tmp_path / "fb"

    await _provisioner(tmp_path, env).set_up(root)

    assert env == {"FIREBIRD": str(root), "FIREBIRD_TMP": "/keep/tmp", "FIREBIRD_LOCK": str(root / "lock")}


@pytest.mark.asyncio
async def test_custom_root_drives_tmp_and_lock(tmp_path: Path) -> None:
    env: dict[str, str] = {}
    custom = tmp_path / "custom"

    result = await _provisioner(tmp_path, env).set_up(custom)

    assert result.paths.tmp == custom / "tmp"
    assert result.paths.lock == custom / "lock"
    assert (custom / "tmp").is_dir()
    assert not (tmp_path / "files").exists()
    assert env["FIREBIRD_TMP"] == str(custom / "tmp")


@pytest.mark.asyncio
async def test_explicit_tmp_and_lock_are_used_as_given(tmp_path: Path) -> None:
    env: dict[str, str] = {}

    await _provisioner(tmp_path, env).set_up(tmp_path / "fb", tmp_path / "scratch", tmp_path / "locks")

    assert (tmp_path / "scratch").is_dir()
    assert (tmp_path / "locks").is_dir()
    assert not (tmp_path / "fb" / "tmp").exists()
    assert env["FIREBIRD_LOCK"] == str(tmp_path / "locks")


@pytest.mark.asyncio
async def test_unsupported_platform_has_no_side_effects(tmp_path: Path) -> None:
    env: dict[str, str] = {}
    bundle = _FakeBundle()
    provisioner = _provisioner(tmp_path, env, bundle, platform="linux")
    root = tmp_path / "fb"

    with pytest.raises(UnsupportedPlatformError):
        await provisioner.set_up(root, force_redeploy=True)
    with pytest.raises(UnsupportedPlatformError):
        await provisioner.create_dirs(root)
    with pytest.raises(UnsupportedPlatformError):
        await provisioner.deploy_assets(root, force_redeploy=True)
    with pytest.raises(UnsupportedPlatformError):
        provisioner.set_env_vars(root, force=True)
    with pytest.raises(UnsupportedPlatformError):
        provisioner.default_root()

    assert not root.exists()
    assert env == {}
    assert bundle.listed == 0


def test_guard_raises_at_call_time(tmp_path: Path) -> None:
    provisioner = _provisioner(tmp_path, {}, platform="ios")
    # No coroutine is created, so nothing is left un-awaited.
    with pytest.raises(UnsupportedPlatformError):
        provisioner.set_up(tmp_path / "fb")


@pytest.mark.asyncio
async def test_deploy_assets_skips_existing_root_unless_forced(tmp_path: Path) -> None:
    root = tmp_path / "fb"
    root.mkdir()
    bundle = _FakeBundle()
    provisioner = _provisioner(tmp_path, {}, bundle)

    assert await provisioner.deploy_assets(root) == []
    written = await provisioner.deploy_assets(root, force_redeploy=True)

    assert sorted(written) == sorted(root / name[len(ASSET_PREFIX) :] for name in _PAYLOAD)


@pytest.mark.asyncio
async def test_deploy_assets_creates_missing_root(tmp_path: Path) -> None:
    root = tmp_path / "a" / "b" / "fb"

    written = await _provisioner(tmp_path, {}).deploy_assets(root)

    assert root.is_dir()
    assert len(written) == len(_PAYLOAD)


@pytest.mark.asyncio
async def test_create_dirs_is_idempotent(tmp_path: Path) -> None:
    provisioner = _provisioner(tmp_path, {})
    await provisioner.create_dirs()
    await provisioner.create_dirs()

    root = tmp_path / "files" / "firebird"
    assert sorted(p.name for p in root.iterdir()) == ["lock", "tmp"]


@pytest.mark.asyncio
async def test_directory_creation_failure_raises_filesystem_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    env: dict[str, str] = {}
    bundle = _FakeBundle()

    with pytest.raises(FilesystemError) as excinfo:
        await _provisioner(tmp_path, env, bundle).set_up(blocker / "fb")

    assert excinfo.value.path is not None
    # Later steps never ran.
    assert bundle.listed == 0
    assert env == {}


@pytest.mark.asyncio
async def test_manifest_failure_aborts_before_environment(tmp_path: Path) -> None:
    env: dict[str, str] = {}
    provisioner = Provisioner(
        platform="android",
        environment=MappingEnvironment(env),
        bundle=_BrokenManifestBundle(),
    )
    root = tmp_path / "fb"

    with pytest.raises(AssetLoadError):
        await provisioner.set_up(root)

    # Directories stay in place; a retry after fixing the bundle deploys.
    assert (root / "tmp").is_dir()
    assert env == {}
    result = await provisioner.set_up(root, bundle=_FakeBundle(), force_redeploy=True)
    assert len(result.deployed) == len(_PAYLOAD)


@pytest.mark.asyncio
async def test_retry_after_failed_first_run_needs_force(tmp_path: Path) -> None:
    # The root exists after a failed first run, so a plain retry skips deployment.
    root = tmp_path / "fb"
    provisioner = Provisioner(platform="android", environment=MappingEnvironment({}), bundle=_BrokenManifestBundle())
    with pytest.raises(AssetLoadError):
        await provisioner.set_up(root)

    result = await provisioner.set_up(root, bundle=_FakeBundle())

    assert result.root_existed is True
    assert result.deployed == ()


def test_asset_target_path_preserves_subdirectories(tmp_path: Path) -> None:
    assert asset_target_path(tmp_path, f"{ASSET_PREFIX}intl/fbintl.conf") == tmp_path / "intl" / "fbintl.conf"


@pytest.mark.parametrize("suffix", ["", "../escape.conf", "intl//x.conf", "intl/./x.conf"])
def test_asset_target_path_rejects_unsafe_names(tmp_path: Path, suffix: str) -> None:
    with pytest.raises(AssetLoadError):
        asset_target_path(tmp_path, f"{ASSET_PREFIX}{suffix}")


@pytest.mark.asyncio
async def test_set_up_embedded_uses_process_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(provision, "current_platform", lambda: "android")
    # Blank values count as unset, and registering them lets monkeypatch
    # restore the real environment after the library writes to it.
    for name in ("FIREBIRD", "FIREBIRD_TMP", "FIREBIRD_LOCK"):
        monkeypatch.setenv(name, "")
    root = tmp_path / "fb"

    result = await provision.set_up_embedded(root, bundle=_FakeBundle())

    assert os.environ["FIREBIRD"] == str(root)
    assert os.environ["FIREBIRD_LOCK"] == str(root / "lock")
    assert result.paths.root == root


@pytest.mark.asyncio
async def test_set_up_embedded_rejects_unsupported_platform(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(provision, "current_platform", lambda: "linux")

    with pytest.raises(UnsupportedPlatformError):
        await provision.set_up_embedded(tmp_path / "fb")
    with pytest.raises(UnsupportedPlatformError):
        provision.get_default_root()

    assert not (tmp_path / "fb").exists()


@pytest.mark.asyncio
async def test_set_up_from_config(tmp_path: Path) -> None:
    env: dict[str, str] = {}
    config = ProvisionConfig(firebird_root=str(tmp_path / "cfg"), firebird_lock=str(tmp_path / "cfg-locks"))

    result = await _provisioner(tmp_path, env).set_up_from_config(config)

    assert result.paths.lock == tmp_path / "cfg-locks"
    assert (tmp_path / "cfg" / "firebird.msg").is_file()
    assert env["FIREBIRD_LOCK"] == str(tmp_path / "cfg-locks")


@pytest.mark.asyncio
async def test_unreadable_asset_raises_asset_load_error(tmp_path: Path) -> None:
    env: dict[str, str] = {}
    root = tmp_path / "fb"

    with pytest.raises(AssetLoadError) as excinfo:
        await _provisioner(tmp_path, env, _UnreadableAssetBundle()).set_up(root)

    assert excinfo.value.asset == f"{ASSET_PREFIX}firebird.conf"
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
    assert env == {}


@pytest.mark.asyncio
async def test_asset_write_failure_raises_filesystem_error(tmp_path: Path) -> None:
    root = tmp_path / "fb"
    (root / "firebird.conf").mkdir(parents=True)
    env = {"FIREBIRD": "/preset"}

    with pytest.raises(FilesystemError) as excinfo:
        await _provisioner(tmp_path, env).set_up(root, force_redeploy=True)

    assert excinfo.value.path == root / "firebird.conf"
    assert env == {"FIREBIRD": "/preset"}


def test_root_resolver_is_public_only_behind_platform_guard(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.delattr(sys, "getandroidapilevel", raising=False)
    monkeypatch.setattr("firebird_embedded._paths.platformdirs.user_data_path", lambda: tmp_path)

    assert not hasattr(fbe, "default_firebird_root")
    assert "default_firebird_root" not in fbe.__all__
    assert "FirebirdPaths" not in fbe.__all__
    with pytest.raises(UnsupportedPlatformError):
        fbe.get_default_root()
    with pytest.raises(UnsupportedPlatformError):
        fbe.Provisioner().default_root()
