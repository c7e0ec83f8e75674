"""Unit tests for the fixed-shape primitive records."""

import struct

import pytest

from asset_registry.binary import BinaryReader, BinaryWriter
from asset_registry.errors import (EncodeError, InvalidEncoding,
                                   InvalidTermination, InvalidValue,
                                   OversizedField, UnknownTag)
from asset_registry.primitives import (MAX_VALUE_INDEX, DisplayNameEntryId,
                                       ExportPath, NameReference, NumberedPair,
                                       NumberlessExportPath, NumberlessPair,
                                       TextBlob, ValueId, ValueKind,
                                       format_name, read_legacy_bool,
                                       write_legacy_bool)


def _encode(record) -> bytes:
    writer = BinaryWriter()
    record.write(writer)
    return writer.get_bytes()


class TestValueId:
    """Packing of the 3-bit kind and 29-bit index."""

    def test_pack_layout(self) -> None:
        assert ValueId(ValueKind.NAME, 5).pack() == (5 << 3) | 2
        assert ValueId(ValueKind.POINTER, 0).pack() == 1
        assert ValueId.none().pack() == 0

    def test_unpack(self) -> None:
        assert ValueId.unpack(0x29) == ValueId(ValueKind.POINTER, 5)
        assert ValueId.unpack(MAX_VALUE_INDEX << 3 | 2) == ValueId(ValueKind.NAME, MAX_VALUE_INDEX)

    @pytest.mark.parametrize("kind", [3, 4, 5, 6, 7])
    def test_unknown_kinds_are_rejected(self, kind: int) -> None:
        with pytest.raises(UnknownTag) as exc_info:
            ValueId.unpack(kind)
        assert exc_info.value.actual == kind

    def test_none_with_index_is_rejected_on_decode(self) -> None:
        with pytest.raises(InvalidValue):
            ValueId.unpack(1 << 3)

    def test_none_with_index_is_rejected_on_construction(self) -> None:
        with pytest.raises(EncodeError):
            ValueId(ValueKind.NONE, 1)

    def test_index_overflow_is_rejected(self) -> None:
        with pytest.raises(EncodeError):
            ValueId(ValueKind.NAME, MAX_VALUE_INDEX + 1)

    def test_plain_int_kind_is_rejected(self) -> None:
        with pytest.raises(EncodeError):
            ValueId(2, 1)

    def test_read_reports_offset(self) -> None:
        reader = BinaryReader(b"\x00\x00\x00\x00" + struct.pack('<I', 7))
        reader.read_u32("skip")
        with pytest.raises(UnknownTag) as exc_info:
            ValueId.read(reader)
        assert exc_info.value.offset == 4


class TestRecords:
    """Field order of the composite records."""

    def test_name_reference(self) -> None:
        assert _encode(NameReference(3, 1)) == struct.pack('<II', 3, 1)

    def test_numbered_pair_roundtrip(self) -> None:
        pair = NumberedPair(NameReference(4, 2), ValueId(ValueKind.NAME, 9))
        data = _encode(pair)
        assert data == struct.pack('<III', 4, 2, (9 << 3) | 2)
        assert NumberedPair.read(BinaryReader(data)) == pair

    def test_numberless_pair_roundtrip(self) -> None:
        pair = NumberlessPair(DisplayNameEntryId(4), ValueId(ValueKind.POINTER, 1))
        data = _encode(pair)
        assert data == struct.pack('<II', 4, (1 << 3) | 1)
        assert NumberlessPair.read(BinaryReader(data)) == pair

    def test_export_path_order(self) -> None:
        path = ExportPath(NameReference(1), NameReference(2, 5), NameReference(3))
        data = _encode(path)
        assert data == struct.pack('<6I', 1, 0, 2, 5, 3, 0)
        assert ExportPath.read(BinaryReader(data)) == path

    def test_numberless_export_path_order(self) -> None:
        path = NumberlessExportPath(DisplayNameEntryId(7), DisplayNameEntryId(8),
                                    DisplayNameEntryId(9))
        data = _encode(path)
        assert data == struct.pack('<3I', 7, 8, 9)
        assert NumberlessExportPath.read(BinaryReader(data)) == path


class TestTextBlob:
    """NUL-terminated, length-prefixed text."""

    def test_from_text(self) -> None:
        blob = TextBlob.from_text("Hello World!")
        assert _encode(blob) == struct.pack('<I', 13) + b"Hello World!\x00"
        assert blob.text == "Hello World!"

    def test_read_keeps_raw_bytes(self) -> None:
        data = struct.pack('<I', 4) + b"ab\x00\x00"
        blob = TextBlob.read(BinaryReader(data))
        assert blob.raw == b"ab\x00\x00"
        assert _encode(blob) == data

    def test_zero_length_is_rejected(self) -> None:
        with pytest.raises(InvalidTermination):
            TextBlob.read(BinaryReader(struct.pack('<I', 0)))

    def test_missing_terminator_is_rejected(self) -> None:
        with pytest.raises(InvalidTermination):
            TextBlob.read(BinaryReader(struct.pack('<I', 2) + b"ab"))

    def test_oversized_length_is_rejected(self) -> None:
        with pytest.raises(OversizedField):
            TextBlob.read(BinaryReader(struct.pack('<I', 0xFFFFFFFF)))

    def test_invalid_utf8_text(self) -> None:
        with pytest.raises(InvalidEncoding):
            TextBlob(b"\xff\x00").text

    def test_write_requires_terminator(self) -> None:
        with pytest.raises(EncodeError):
            _encode(TextBlob(b"abc"))


class TestLegacyBool:
    """Bools stored as 32-bit integers."""

    def test_roundtrip(self) -> None:
        writer = BinaryWriter()
        write_legacy_bool(writer, True)
        write_legacy_bool(writer, False)
        reader = BinaryReader(writer.get_bytes())
        assert read_legacy_bool(reader) is True
        assert read_legacy_bool(reader) is False

    def test_other_values_are_rejected(self) -> None:
        with pytest.raises(InvalidValue):
            read_legacy_bool(BinaryReader(struct.pack('<I', 2)))


class TestFormatName:
    """Rendering of numbered names."""

    NAMES = ["None", "Cube"]

    def test_number_zero_has_no_suffix(self) -> None:
        assert format_name(self.NAMES.__getitem__, NameReference(1)) == "Cube"

    def test_number_is_one_more_than_suffix(self) -> None:
        assert format_name(self.NAMES.__getitem__, NameReference(1, 1)) == "Cube_0"
        assert format_name(self.NAMES.__getitem__, NameReference(1, 3)) == "Cube_2"
