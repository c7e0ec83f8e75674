"""
Asset Registry Version & Header
===============================

Header layout:

    [16-byte GUID]          four little-endian u32 of the registry GUID
    [u32 version]
    [version-gated fields]  see HEADER_FIELDS

Which optional fields are present is decided by one ordered table of
FieldSpec entries per record, each naming the version that introduced the
field (and, for dropped fields, the version that removed it). Readers and
writers both walk the same table with the record's version, so the gate for
every field lives in exactly one place.
"""

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Sequence, Union

from .binary import BinaryReader, BinaryWriter
from .errors import EncodeError, MalformedMagic, UnsupportedVersion
from .primitives import read_legacy_bool, write_legacy_bool

logger = logging.getLogger(__name__)


class AssetRegistryVersion(IntEnum):
    PRE_VERSIONING = 0                            # before file versioning
    HARD_SOFT_DEPENDENCIES = 1                    # first versioned runtime registry
    ADD_ASSET_REGISTRY_STATE = 2                  # piecemeal registry state serialization
    CHANGED_ASSET_DATA = 3                        # asset data format change
    REMOVED_MD5_HASH = 4                          # MD5 hash removed from package data
    ADDED_HARD_MANAGE = 5                         # hard/soft manage references
    ADDED_COOKED_MD5_HASH = 6                     # cooked package MD5 hash
    ADDED_DEPENDENCY_FLAGS = 7                    # per-dependency property flags
    FIXED_TAGS = 8                                # names batch + store data tag layout
    WORKSPACE_DOMAIN = 9
    PACKAGE_IMPORTED_CLASSES = 10
    PACKAGE_FILE_SUMMARY_VERSION_CHANGE = 11
    OBJECT_RESOURCE_OPTIONAL_VERSION_CHANGE = 12
    ADDED_CHUNK_HASHES = 13
    CLASS_PATHS = 14                              # asset class becomes package + name
    REMOVE_ASSET_PATH_FNAMES = 15                 # object path dropped from asset data
    ADDED_HEADER = 16                             # editor-only-data flag in the header


LATEST_VERSION = AssetRegistryVersion.ADDED_HEADER

# Oldest version whose body (names batch, store data) AssetRegistry.read
# understands. Headers of older versions still decode.
OLDEST_READABLE_VERSION = AssetRegistryVersion.FIXED_TAGS

ASSET_REGISTRY_GUID = struct.pack('<4I', 0x717F9EE7, 0xE9B0493A, 0x88B39132, 0x1B388107)


# =============================================================================
# VERSION GATES
# =============================================================================

@dataclass(frozen=True)
class FieldSpec:
    """
    One serialized field of a versioned record.

    The field is present for versions in [introduced, removed).
    """
    name: str
    read: Callable[[BinaryReader], Any]
    write: Callable[[BinaryWriter, Any], None]
    introduced: AssetRegistryVersion = AssetRegistryVersion.PRE_VERSIONING
    removed: Optional[AssetRegistryVersion] = None

    def present(self, version: AssetRegistryVersion) -> bool:
        if version < self.introduced:
            return False
        return self.removed is None or version < self.removed


def present_fields(table: Sequence[FieldSpec], version: AssetRegistryVersion):
    """Return the names of the fields serialized at `version`, in order."""
    return [spec.name for spec in table if spec.present(version)]


def read_fields(reader: BinaryReader, version: AssetRegistryVersion,
                table: Sequence[FieldSpec]) -> Dict[str, Any]:
    """
    Read every field of `table` present at `version`.

    Returns:
        Dict of field name to value. Absent fields map to None.
    """
    values = {}
    for spec in table:
        values[spec.name] = spec.read(reader) if spec.present(version) else None
    return values


def write_fields(writer: BinaryWriter, version: AssetRegistryVersion,
                 table: Sequence[FieldSpec], values: Dict[str, Any]):
    """
    Write every field of `table` present at `version`.

    Raises:
        EncodeError: if a present field has no value.
    """
    for spec in table:
        if not spec.present(version):
            continue
        value = values.get(spec.name)
        if value is None:
            raise EncodeError(f"field {spec.name!r} is required at version "
                              f"{version.name}")
        spec.write(writer, value)


# =============================================================================
# VERSION + HEADER
# =============================================================================

def read_version(reader: BinaryReader) -> AssetRegistryVersion:
    """
    Read and check the GUID and version ordinal.

    Every known version is accepted here, including those older than
    OLDEST_READABLE_VERSION; only unknown ordinals raise UnsupportedVersion.
    """
    pos = reader.tell()
    guid = reader.read_bytes(16, "header.guid")
    if guid != ASSET_REGISTRY_GUID:
        raise MalformedMagic("not an asset registry: GUID mismatch",
                             field="header.guid", expected=ASSET_REGISTRY_GUID,
                             actual=guid, offset=pos)

    pos = reader.tell()
    raw = reader.read_u32("header.version")
    try:
        version = AssetRegistryVersion(raw)
    except ValueError:
        raise UnsupportedVersion("unknown asset registry version",
                                 field="header.version",
                                 expected=int(LATEST_VERSION), actual=raw,
                                 offset=pos) from None
    logger.debug("AssetRegistry version %s (%d)", version.name, raw)
    return version


def write_version(writer: BinaryWriter, version: AssetRegistryVersion):
    writer.write_bytes(ASSET_REGISTRY_GUID)
    writer.write_u32(int(version))


HEADER_FIELDS = (
    FieldSpec("filter_editor_only_data",
              lambda r: read_legacy_bool(r, "header.filter_editor_only_data"),
              write_legacy_bool,
              introduced=AssetRegistryVersion.ADDED_HEADER),
)


@dataclass(frozen=True)
class AssetRegistryHeader:
    """Version of the registry plus the fields that version carries."""
    version: AssetRegistryVersion = LATEST_VERSION
    filter_editor_only_data: Optional[bool] = False

    def upgraded(self) -> 'AssetRegistryHeader':
        """Return the newest-version header holding the same field values."""
        return AssetRegistryHeader(
            version=LATEST_VERSION,
            filter_editor_only_data=bool(self.filter_editor_only_data))

    def write(self, writer: BinaryWriter):
        if self.version != LATEST_VERSION:
            raise EncodeError(f"only {LATEST_VERSION.name} can be written, "
                              f"got {AssetRegistryVersion(self.version).name}")
        write_version(writer, self.version)
        write_fields(writer, self.version, HEADER_FIELDS,
                     {"filter_editor_only_data": self.filter_editor_only_data})

    @classmethod
    def read(cls, reader: BinaryReader) -> 'AssetRegistryHeader':
        version = read_version(reader)
        values = read_fields(reader, version, HEADER_FIELDS)
        return cls(version=version, **values)

    def to_bytes(self) -> bytes:
        writer = BinaryWriter()
        self.write(writer)
        return writer.get_bytes()

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray]) -> 'AssetRegistryHeader':
        return cls.read(BinaryReader(data))
