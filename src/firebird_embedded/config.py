"""Provisioning configuration for firebird_embedded."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from firebird_embedded.exceptions import ProvisionConfigError

_TRUE_WORDS = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "n", "off"})


def _env_bool(name: str, value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_WORDS:
        return True
    if normalized in _FALSE_WORDS:
        return False
    raise ProvisionConfigError(f"{name} must be a boolean word, got {value!r}")


@dataclasses.dataclass(frozen=True)
class ProvisionConfig:
    """Arguments of a provisioning run.

    Parameters
    ----------
    firebird_root : str or None
        Engine root directory. ``None`` selects the ``firebird``
        subdirectory of the application's private data directory.
    firebird_tmp : str or None
        Temporary directory. Defaults to ``<firebird_root>/tmp``.
    firebird_lock : str or None
        Lock directory. Defaults to ``<firebird_root>/lock``.
    force_redeploy : bool
        Copy the payload again and overwrite already set variables.
    """

    firebird_root: str | None = None
    firebird_tmp: str | None = None
    firebird_lock: str | None = None
    force_redeploy: bool = False

    @classmethod
    def from_env(cls, **overrides: Any) -> ProvisionConfig:
        """Create configuration from ``FB_EMBEDDED_*`` environment variables.

        Reads ``FB_EMBEDDED_ROOT``, ``FB_EMBEDDED_TMP``, ``FB_EMBEDDED_LOCK``
        and ``FB_EMBEDDED_FORCE_REDEPLOY``. Blank values count as unset.
        Explicit keyword arguments override environment values.

        Raises
        ------
        ProvisionConfigError
            If ``FB_EMBEDDED_FORCE_REDEPLOY`` is not a boolean word or an
            override names an unknown field.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FB_EMBEDDED_ROOT": "firebird_root",
            "FB_EMBEDDED_TMP": "firebird_tmp",
            "FB_EMBEDDED_LOCK": "firebird_lock",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        if "force_redeploy" not in overrides:
            config_kwargs["force_redeploy"] = _env_bool(
                "FB_EMBEDDED_FORCE_REDEPLOY",
                env.get("FB_EMBEDDED_FORCE_REDEPLOY"),
                False,
            )

        known = {field.name for field in dataclasses.fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ProvisionConfigError(f"Unknown configuration fields: {', '.join(unknown)}")

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
