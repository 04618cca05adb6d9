"""Result model returned by a provisioning run."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from firebird_embedded._paths import FirebirdPaths


class ProvisionResult(BaseModel):
    """Outcome of :meth:`Provisioner.set_up`.

    Parameters
    ----------
    paths : FirebirdPaths
        Directories the engine was configured with.
    root_existed : bool
        Whether the root directory was present before the call.
    deployed : tuple of Path
        Files written by the asset deployer; empty when deployment was skipped.
    env_updated : tuple of str
        Environment variables that were (re)assigned.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    paths: FirebirdPaths
    root_existed: bool
    deployed: tuple[Path, ...] = ()
    env_updated: tuple[str, ...] = ()

    @property
    def redeployed(self) -> bool:
        return bool(self.deployed)
