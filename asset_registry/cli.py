#!/usr/bin/env python3
"""
Asset Registry Inspector
========================

Decodes an asset registry file, prints a summary and optionally dumps the
decoded tree as JSON or checks that re-encoding reproduces the input.

Usage:
------
    asset-registry AssetRegistry.bin
    asset-registry AssetRegistry.bin --json registry.json
    asset-registry AssetRegistry.bin --verify
    asset-registry AssetRegistry.bin --verbose       # debug logging
"""

import argparse
import dataclasses
import json
import logging
import sys
from enum import Enum
from typing import Any

from .errors import AssetRegistryError
from .registry import AssetRegistry, encode_asset_registry, read_asset_registry
from .store_data import StringPool
from .version import LATEST_VERSION


# =============================================================================
# JSON CONVERSION
# =============================================================================

def to_jsonable(value: Any) -> Any:
    """Convert decoded records into plain JSON types."""
    if isinstance(value, StringPool):
        return {"offsets": list(value.offsets), "strings": value.strings}
    if isinstance(value, Enum):
        return value.name
    if dataclasses.is_dataclass(value):
        return {f.name: to_jsonable(getattr(value, f.name))
                for f in dataclasses.fields(value) if f.repr}
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def registry_to_dict(registry: AssetRegistry) -> dict:
    result = to_jsonable(registry)
    result["tail"] = {"size": len(registry.tail)}
    return result


# =============================================================================
# REPORTING
# =============================================================================

def print_summary(path: str, registry: AssetRegistry):
    print("=" * 70)
    print(f"Asset Registry: {path}")
    print("=" * 70)
    header = registry.header
    print(f"  Version:                 {header.version.name} ({int(header.version)})")
    if header.filter_editor_only_data is not None:
        print(f"  Filter editor-only data: {header.filter_editor_only_data}")

    names = registry.names
    print("\nNames batch:")
    print(f"  Names:        {len(names)}")
    print(f"  String bytes: {names.string_bytes}")
    print(f"  Hash version: 0x{names.hash_version:016X}")

    print("\nStore data:")
    for name, count in registry.store.counts().items():
        print(f"  {name + ':':<26}{count}")

    print(f"\nAssets: {len(registry.assets.assets)}")
    for asset in registry.assets.assets[:10]:
        try:
            label = f"{registry.name_of(asset.package_name)}.{registry.name_of(asset.asset_name)}"
        except IndexError:
            label = f"<name index out of range: {asset.package_name.index}>"
        print(f"  {label}")
    if len(registry.assets.assets) > 10:
        print(f"  ... {len(registry.assets.assets) - 10} more")

    print(f"\nUndecoded tail: {len(registry.tail)} bytes")


def verify_roundtrip(original: bytes, registry: AssetRegistry) -> bool:
    """Re-encode `registry` and compare with the bytes it was decoded from."""
    rebuilt = encode_asset_registry(registry)
    if rebuilt == original:
        print(f"Round-trip OK: {len(rebuilt)} bytes identical")
        return True

    print(f"Round-trip MISMATCH: original {len(original)} bytes, "
          f"rebuilt {len(rebuilt)} bytes")
    for i in range(min(len(original), len(rebuilt))):
        if original[i] != rebuilt[i]:
            print(f"  First difference at byte 0x{i:X}: got 0x{rebuilt[i]:02X}, "
                  f"expected 0x{original[i]:02X}")
            break
    return False


# =============================================================================
# MAIN
# =============================================================================

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Decode and inspect an asset registry file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  asset-registry AssetRegistry.bin
  asset-registry AssetRegistry.bin --json registry.json --verify
        """
    )
    parser.add_argument('input', help='Asset registry file')
    parser.add_argument('--json', metavar='OUT', help='Write the decoded tree as JSON')
    parser.add_argument('--verify', action='store_true',
                        help='Check that re-encoding reproduces the input byte-for-byte')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s')

    try:
        registry = read_asset_registry(args.input)
    except OSError as e:
        print(f"ERROR: cannot read {args.input}: {e}")
        return 1
    except AssetRegistryError as e:
        print(f"ERROR: {type(e).__name__}: {e}")
        return 1

    print_summary(args.input, registry)

    if args.json:
        with open(args.json, 'w') as f:
            json.dump(registry_to_dict(registry), f, indent=2)
        print(f"\nWrote JSON to {args.json}")

    if args.verify:
        print()
        if registry.header.version != LATEST_VERSION:
            print(f"Cannot verify: {registry.header.version.name} is older than "
                  f"{LATEST_VERSION.name} and only the latest layout is written")
            return 1
        with open(args.input, 'rb') as f:
            original = f.read()
        if not verify_roundtrip(original, registry):
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
