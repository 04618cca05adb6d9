"""firebird_embedded - Firebird embedded engine provisioning for Android."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("firebird-embedded")
except PackageNotFoundError:
    __version__ = "0+local"
from firebird_embedded.assets import AssetBundle, DirectoryAssetBundle, PackageAssetBundle
from firebird_embedded.config import ProvisionConfig
from firebird_embedded.environment import Environment, MappingEnvironment
from firebird_embedded.exceptions import (
    AssetLoadError,
    FilesystemError,
    FirebirdEmbeddedError,
    ProvisionConfigError,
    UnsupportedPlatformError,
)
from firebird_embedded.models import ProvisionResult
from firebird_embedded.provision import (
    Provisioner,
    create_dirs,
    deploy_assets,
    get_default_root,
    set_env_vars,
    set_up_embedded,
)

__all__ = [
    "__version__",
    "AssetBundle",
    "AssetLoadError",
    "DirectoryAssetBundle",
    "Environment",
    "FilesystemError",
    "FirebirdEmbeddedError",
    "MappingEnvironment",
    "PackageAssetBundle",
    "ProvisionConfig",
    "ProvisionConfigError",
    "ProvisionResult",
    "Provisioner",
    "UnsupportedPlatformError",
    "create_dirs",
    "deploy_assets",
    "get_default_root",
    "set_env_vars",
    "set_up_embedded",
]
