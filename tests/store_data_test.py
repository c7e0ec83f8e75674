"""Unit tests for the tag/value store and its string pools."""

import struct

import pytest

from asset_registry.errors import (EncodeError, InconsistentLength,
                                   InvalidEncoding, InvalidTermination,
                                   MalformedMagic, OversizedField, UnknownTag)
from asset_registry.primitives import (DisplayNameEntryId, ExportPath,
                                       NameReference, NumberedPair,
                                       NumberlessExportPath, NumberlessPair,
                                       TextBlob, ValueId, ValueKind)
from asset_registry.store_data import (BEGIN_MAGIC, COUNT_FIELDS, END_MAGIC,
                                       StoreData, StringPool, derive_ranges)


def _sample_store() -> StoreData:
    return StoreData(
        pairs=[NumberedPair(NameReference(1, 2), ValueId(ValueKind.NAME, 0)),
               NumberedPair(NameReference(3), ValueId.none())],
        numberless_pairs=[NumberlessPair(DisplayNameEntryId(4), ValueId(ValueKind.POINTER, 1))],
        ansi_strings=StringPool.from_strings(["abcd", "hello"], is_wide=False),
        wide_strings=StringPool.from_strings(["Grüße", "x"], is_wide=True),
        numberless_names=[DisplayNameEntryId(5)],
        names=[NameReference(6, 1)],
        numberless_export_paths=[NumberlessExportPath(DisplayNameEntryId(1),
                                                      DisplayNameEntryId(2),
                                                      DisplayNameEntryId(3))],
        export_paths=[ExportPath(NameReference(1), NameReference(2), NameReference(3))],
        texts=[TextBlob.from_text("NSLOCTEXT(\"\", \"Key\", \"Value\")")],
    )


class TestDeriveRanges:
    """Lengths are derived from consecutive offsets and the pool total."""

    def test_two_strings(self) -> None:
        assert derive_ranges([0, 5], 11) == [(0, 5), (5, 11)]

    def test_empty_pool(self) -> None:
        assert derive_ranges([], 0) == []

    def test_bytes_without_offsets_are_rejected(self) -> None:
        with pytest.raises(InconsistentLength):
            derive_ranges([], 3)

    def test_first_offset_must_be_zero(self) -> None:
        with pytest.raises(InconsistentLength):
            derive_ranges([1, 5], 11)

    def test_repeated_offset_is_rejected(self) -> None:
        with pytest.raises(InconsistentLength):
            derive_ranges([0, 0], 11)

    def test_descending_offsets_are_rejected(self) -> None:
        with pytest.raises(InconsistentLength):
            derive_ranges([0, 6, 5], 11)

    def test_offset_beyond_total_is_rejected(self) -> None:
        with pytest.raises(InconsistentLength):
            derive_ranges([0, 12], 11)

    def test_errors_point_at_the_offending_offset(self) -> None:
        with pytest.raises(InconsistentLength) as exc_info:
            derive_ranges([0, 12], 11, offsets_pos=100)
        assert exc_info.value.offset == 104

    def test_errors_without_position(self) -> None:
        with pytest.raises(InconsistentLength) as exc_info:
            derive_ranges([0, 0], 11)
        assert exc_info.value.offset is None

    def test_last_offset_at_total_is_rejected(self) -> None:
        """The last string would be empty, with no room for its terminator."""
        with pytest.raises(InconsistentLength):
            derive_ranges([0, 11], 11)


class TestStringPool:
    """Pool construction validates every derived string."""

    def test_ansi_pool(self) -> None:
        pool = StringPool(False, (0, 5), b"abcd\x00hello\x00")
        assert pool.strings == ["abcd", "hello"]
        assert pool.total == 11
        assert pool[1] == "hello"
        assert len(pool) == 2

    def test_wide_pool_counts_units(self) -> None:
        pool = StringPool.from_strings(["Grüße", "x"], is_wide=True)
        assert pool.offsets == (0, 6)
        assert pool.total == 8
        assert len(pool.data) == 16
        assert list(pool) == ["Grüße", "x"]

    def test_missing_terminator_is_rejected(self) -> None:
        with pytest.raises(InvalidTermination):
            StringPool(False, (0,), b"abc")

    def test_wide_blob_with_odd_length_is_rejected(self) -> None:
        with pytest.raises(InconsistentLength):
            StringPool(True, (0,), b"a\x00\x00")

    def test_wide_lone_surrogate_is_rejected(self) -> None:
        with pytest.raises(InvalidEncoding):
            StringPool(True, (0,), b"\x00\xd8\x00\x00")

    def test_unencodable_ansi_string_is_rejected(self) -> None:
        with pytest.raises(EncodeError):
            StringPool.from_strings(["一"], is_wide=False)


class TestStoreData:
    """Full store layout, magics and count validation."""

    def test_empty_store(self) -> None:
        data = StoreData().to_bytes()
        assert data == (struct.pack('<I', BEGIN_MAGIC) + b"\x00" * 4 * len(COUNT_FIELDS)
                        + struct.pack('<I', END_MAGIC))
        assert StoreData.from_bytes(data) == StoreData()

    def test_count_header_order(self) -> None:
        data = _sample_store().to_bytes()
        counts = struct.unpack_from('<11I', data, 4)
        assert counts == (1, 1, 1, 1, 1, 2, 2, 11, 8, 1, 2)

    def test_roundtrip(self) -> None:
        store = _sample_store()
        data = store.to_bytes()
        decoded = StoreData.from_bytes(data)
        assert decoded == store
        assert decoded.ansi_strings.strings == ["abcd", "hello"]
        assert decoded.wide_strings.strings == ["Grüße", "x"]
        assert decoded.to_bytes() == data

    def test_begin_magic_mismatch(self) -> None:
        data = b"\x00\x00\x00\x00" + StoreData().to_bytes()[4:]
        with pytest.raises(MalformedMagic) as exc_info:
            StoreData.from_bytes(data)
        assert exc_info.value.expected == BEGIN_MAGIC
        assert exc_info.value.actual == 0

    def test_end_magic_mismatch(self) -> None:
        data = bytearray(_sample_store().to_bytes())
        data[-1] ^= 0xFF
        with pytest.raises(MalformedMagic) as exc_info:
            StoreData.from_bytes(bytes(data))
        assert exc_info.value.field == "store.end_magic"

    def test_unknown_value_kind_in_pairs(self) -> None:
        data = bytearray(_sample_store().to_bytes())
        # value id of the last numbered pair sits just before the end magic
        struct.pack_into('<I', data, len(data) - 8, 5)
        with pytest.raises(UnknownTag):
            StoreData.from_bytes(bytes(data))

    def test_huge_count_is_rejected_before_allocating(self) -> None:
        counts = [0] * len(COUNT_FIELDS)
        counts[COUNT_FIELDS.index("names")] = 1000
        data = struct.pack('<I11I', BEGIN_MAGIC, *counts) + struct.pack('<I', END_MAGIC)
        with pytest.raises(OversizedField):
            StoreData.from_bytes(data)

    def test_pool_offset_errors_carry_input_position(self) -> None:
        """Magic and counts take 48 bytes; the ANSI offsets follow directly."""
        store = StoreData(ansi_strings=StringPool.from_strings(["abcd", "hello"], is_wide=False))
        data = bytearray(store.to_bytes())
        struct.pack_into('<I', data, 52, 0)
        with pytest.raises(InconsistentLength) as exc_info:
            StoreData.from_bytes(bytes(data))
        assert exc_info.value.offset == 52

    def test_pool_terminator_errors_carry_input_position(self) -> None:
        store = StoreData(ansi_strings=StringPool.from_strings(["abcd", "hello"], is_wide=False))
        data = bytearray(store.to_bytes())
        # buffer starts after the two offsets; "abcd" ends at buffer unit 4
        data[56 + 4] = ord("x")
        with pytest.raises(InvalidTermination) as exc_info:
            StoreData.from_bytes(bytes(data))
        assert exc_info.value.offset == 60

    def test_wide_pool_encoding_errors_carry_input_position(self) -> None:
        store = StoreData(wide_strings=StringPool.from_strings(["x"], is_wide=True))
        data = bytearray(store.to_bytes())
        data[52:56] = b"\x00\xd8\x00\x00"
        with pytest.raises(InvalidEncoding) as exc_info:
            StoreData.from_bytes(bytes(data))
        assert exc_info.value.offset == 52

    def test_swapped_pools_are_rejected(self) -> None:
        store = StoreData(ansi_strings=StringPool(is_wide=True),
                          wide_strings=StringPool(is_wide=False))
        with pytest.raises(EncodeError):
            store.to_bytes()
