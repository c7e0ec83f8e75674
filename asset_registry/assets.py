"""
Asset records stored after the tag store.

These have no special encoding: every field is a NameReference, a u64 tag
map handle, an FString or a counted list of the same. Field presence follows
the registry version through ASSET_DATA_FIELDS.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .binary import BinaryReader, BinaryWriter
from .fstring import read_fstring, write_fstring
from .primitives import NameReference
from .version import (LATEST_VERSION, AssetRegistryVersion, FieldSpec,
                      read_fields, write_fields)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SoftObjectPath:
    asset_path_name: NameReference
    sub_path: str

    def write(self, writer: BinaryWriter):
        self.asset_path_name.write(writer)
        write_fstring(writer, self.sub_path)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'SoftObjectPath':
        asset_path_name = NameReference.read(reader)
        sub_path = read_fstring(reader, "soft_object_path.sub_path")
        return cls(asset_path_name, sub_path)


@dataclass
class AssetBundleEntry:
    bundle_name: NameReference
    bundle_assets: List[SoftObjectPath] = field(default_factory=list)

    def write(self, writer: BinaryWriter):
        self.bundle_name.write(writer)
        writer.write_u32(len(self.bundle_assets))
        for path in self.bundle_assets:
            path.write(writer)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'AssetBundleEntry':
        bundle_name = NameReference.read(reader)
        count = reader.read_u32("bundle.count")
        # name reference (8) + shortest FString (5)
        reader.require(count, 13, "bundle.count")
        return cls(bundle_name, [SoftObjectPath.read(reader) for _ in range(count)])


def _read_bundles(reader: BinaryReader) -> List[AssetBundleEntry]:
    count = reader.read_u32("asset.bundles.count")
    reader.require(count, 12, "asset.bundles.count")
    return [AssetBundleEntry.read(reader) for _ in range(count)]


def _write_bundles(writer: BinaryWriter, bundles: List[AssetBundleEntry]):
    writer.write_u32(len(bundles))
    for entry in bundles:
        entry.write(writer)


def _write_name(writer: BinaryWriter, name: NameReference):
    name.write(writer)


ASSET_DATA_FIELDS = (
    FieldSpec("object_path", NameReference.read, _write_name,
              removed=AssetRegistryVersion.REMOVE_ASSET_PATH_FNAMES),
    FieldSpec("package_path", NameReference.read, _write_name),
    FieldSpec("asset_class_package", NameReference.read, _write_name,
              introduced=AssetRegistryVersion.CLASS_PATHS),
    FieldSpec("asset_class", NameReference.read, _write_name),
    FieldSpec("package_name", NameReference.read, _write_name),
    FieldSpec("asset_name", NameReference.read, _write_name),
    FieldSpec("tags", lambda r: r.read_u64("asset.tags"),
              lambda w, v: w.write_u64(v)),
    FieldSpec("bundles", _read_bundles, _write_bundles),
)

# Smallest possible record at any readable version: 5 names, tags, bundle count.
_MIN_ASSET_DATA_SIZE = 5 * 8 + 8 + 4


@dataclass
class AssetData:
    """
    One asset record. `object_path` only exists before
    REMOVE_ASSET_PATH_FNAMES, `asset_class_package` only from CLASS_PATHS on.
    `tags` is the opaque 64-bit handle of the asset's tag map.
    """
    package_path: NameReference
    asset_class: NameReference
    package_name: NameReference
    asset_name: NameReference
    tags: int = 0
    bundles: List[AssetBundleEntry] = field(default_factory=list)
    asset_class_package: Optional[NameReference] = None
    object_path: Optional[NameReference] = None

    def write(self, writer: BinaryWriter,
              version: AssetRegistryVersion = LATEST_VERSION):
        write_fields(writer, version, ASSET_DATA_FIELDS, vars(self))

    @classmethod
    def read(cls, reader: BinaryReader,
             version: AssetRegistryVersion = LATEST_VERSION) -> 'AssetData':
        return cls(**read_fields(reader, version, ASSET_DATA_FIELDS))


@dataclass
class AssetDataCollection:
    assets: List[AssetData] = field(default_factory=list)

    def write(self, writer: BinaryWriter,
              version: AssetRegistryVersion = LATEST_VERSION):
        writer.write_u32(len(self.assets))
        for asset in self.assets:
            asset.write(writer, version)

    @classmethod
    def read(cls, reader: BinaryReader,
             version: AssetRegistryVersion = LATEST_VERSION) -> 'AssetDataCollection':
        count = reader.read_u32("assets.count")
        logger.debug("AssetDataCollection: %d assets", count)
        reader.require(count, _MIN_ASSET_DATA_SIZE, "assets.count")
        return cls([AssetData.read(reader, version) for _ in range(count)])
