"""Codec for engine asset registry files."""

from .assets import AssetBundleEntry, AssetData, AssetDataCollection, SoftObjectPath
from .binary import BinaryReader, BinaryWriter
from .errors import (AssetRegistryError, DecodeError, EncodeError,
                     InconsistentLength, InvalidEncoding, InvalidTermination,
                     InvalidValue, MalformedMagic, OversizedField,
                     UnexpectedEof, UnknownTag, UnsupportedVersion)
from .fstring import (MAX_STRING_SERIALIZATION_SIZE, decode_fstring,
                      encode_fstring, read_fstring, write_fstring)
from .name_header import SerializedNameHeader
from .names_batch import NamesBatch
from .primitives import (DisplayNameEntryId, ExportPath, NameReference,
                         NumberedPair, NumberlessExportPath, NumberlessPair,
                         TextBlob, ValueId, ValueKind, format_name)
from .registry import (AssetRegistry, decode_asset_registry,
                       encode_asset_registry, read_asset_registry,
                       write_asset_registry)
from .store_data import BEGIN_MAGIC, END_MAGIC, StoreData, StringPool
from .version import (ASSET_REGISTRY_GUID, LATEST_VERSION,
                      OLDEST_READABLE_VERSION, AssetRegistryHeader,
                      AssetRegistryVersion)
