#!/usr/bin/env python3
"""Materialise the Firebird embedded payload into a local directory.

Runs the full provisioning sequence against a directory on the
development machine so the deployed tree can be inspected. The platform
check is satisfied by pretending to be Android, and the environment
variables are collected in memory and printed instead of being set.

Usage
-----
::

    python scripts/deploy_assets.py /tmp/fbroot
    python scripts/deploy_assets.py /tmp/fbroot --force --source ./payload

Options::

    --tmp DIR / --lock DIR   Override the temporary / lock directories
    --source DIR             Deploy from an unpacked payload directory
                             instead of the package data
    --force                  Redeploy even if the root already exists
    --verbose / -v           Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from firebird_embedded import (  # noqa: E402
    DirectoryAssetBundle,
    FirebirdEmbeddedError,
    MappingEnvironment,
    Provisioner,
)
from firebird_embedded._constants import ASSET_PREFIX, SUPPORTED_PLATFORM  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy the Firebird embedded payload into a directory")
    parser.add_argument("root", type=Path, help="Target Firebird root directory")
    parser.add_argument("--tmp", type=Path, default=None, help="Temporary directory (default: ROOT/tmp)")
    parser.add_argument("--lock", type=Path, default=None, help="Lock directory (default: ROOT/lock)")
    parser.add_argument("--source", type=Path, default=None, help="Unpacked payload directory")
    parser.add_argument("--force", action="store_true", help="Redeploy even if ROOT exists")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    env: dict[str, str] = {}
    bundle = DirectoryAssetBundle(args.source, prefix=ASSET_PREFIX) if args.source else None
    provisioner = Provisioner(
        platform=SUPPORTED_PLATFORM,
        environment=MappingEnvironment(env),
        bundle=bundle,
    )
    try:
        result = await provisioner.set_up(args.root, args.tmp, args.lock, force_redeploy=args.force)
    except FirebirdEmbeddedError as exc:
        print(f"Deployment failed: {exc}", file=sys.stderr)
        return 1

    if result.deployed:
        print(f"Deployed {len(result.deployed)} files:")
        for path in result.deployed:
            print(f"  {path}")
    else:
        print(f"{result.paths.root} already exists, nothing deployed (use --force to redeploy)")
    print("Environment:")
    for name, value in env.items():
        print(f"  {name}={value}")
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
