"""
Asset Registry Container
========================

Top-level layout of an asset registry file:

| Part        | Codec               |
|-------------|---------------------|
| Header      | AssetRegistryHeader |
| Names       | NamesBatch          |
| Tag store   | StoreData           |
| Assets      | AssetDataCollection |
| Tail        | raw bytes           |

The tail holds the dependency and package-data sections, which are carried
verbatim so a decoded file re-encodes to the same bytes.
"""

import logging
from dataclasses import dataclass, field
from typing import Union

from .assets import AssetDataCollection
from .binary import BinaryReader, BinaryWriter
from .errors import UnsupportedVersion
from .names_batch import NamesBatch
from .primitives import NameReference, format_name
from .store_data import StoreData
from .version import (ASSET_REGISTRY_GUID, OLDEST_READABLE_VERSION,
                      AssetRegistryHeader)

logger = logging.getLogger(__name__)


@dataclass
class AssetRegistry:
    header: AssetRegistryHeader = field(default_factory=AssetRegistryHeader)
    names: NamesBatch = field(default_factory=NamesBatch)
    store: StoreData = field(default_factory=StoreData)
    assets: AssetDataCollection = field(default_factory=AssetDataCollection)
    tail: bytes = b''

    def name_of(self, ref: NameReference) -> str:
        """Resolve a name reference against this registry's names batch."""
        return format_name(self.names.lookup, ref)

    def write(self, writer: BinaryWriter):
        self.header.write(writer)
        self.names.write(writer)
        self.store.write(writer)
        self.assets.write(writer, self.header.version)
        writer.write_bytes(self.tail)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'AssetRegistry':
        pos = reader.tell()
        header = AssetRegistryHeader.read(reader)
        if header.version < OLDEST_READABLE_VERSION:
            raise UnsupportedVersion(
                f"{header.version.name} predates the fixed tag layout",
                field="header.version", expected=int(OLDEST_READABLE_VERSION),
                actual=int(header.version), offset=pos + len(ASSET_REGISTRY_GUID))
        names = NamesBatch.read(reader)
        logger.debug("names batch ends at 0x%X", reader.tell())
        store = StoreData.read(reader)
        logger.debug("store data ends at 0x%X", reader.tell())
        assets = AssetDataCollection.read(reader, header.version)
        tail = reader.read_bytes(reader.remaining(), "tail")
        return cls(header=header, names=names, store=store,
                   assets=assets, tail=tail)


def decode_asset_registry(data: Union[bytes, bytearray]) -> AssetRegistry:
    return AssetRegistry.read(BinaryReader(data))


def encode_asset_registry(registry: AssetRegistry) -> bytes:
    writer = BinaryWriter()
    registry.write(writer)
    return writer.get_bytes()


def read_asset_registry(path: str) -> AssetRegistry:
    """Load and decode an asset registry file."""
    with open(path, 'rb') as f:
        data = f.read()
    logger.info("Read %s (%d bytes)", path, len(data))
    return decode_asset_registry(data)


def write_asset_registry(registry: AssetRegistry, path: str) -> int:
    """
    Encode `registry` and write it to `path`.

    Returns:
        Number of bytes written.
    """
    data = encode_asset_registry(registry)
    with open(path, 'wb') as f:
        f.write(data)
    logger.info("Wrote %s (%d bytes)", path, len(data))
    return len(data)
