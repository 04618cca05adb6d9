"""Fixed names shared across firebird_embedded."""

from __future__ import annotations

#: Platform identifier for which provisioning is supported.
SUPPORTED_PLATFORM = "android"

#: Environment variables read by the Firebird embedded engine at load time.
FIREBIRD_ROOT_VAR = "FIREBIRD"
FIREBIRD_TMP_VAR = "FIREBIRD_TMP"
FIREBIRD_LOCK_VAR = "FIREBIRD_LOCK"

#: Subdirectory of the application's private data directory holding the engine files.
ROOT_DIR_NAME = "firebird"
TMP_DIR_NAME = "tmp"
LOCK_DIR_NAME = "lock"

#: Package that ships the bundled payload as package data.
ASSET_PACKAGE = "firebird_embedded"

# Logical asset names starting with this prefix belong to the engine payload.
ASSET_PREFIX = f"{ASSET_PACKAGE}/data/"
