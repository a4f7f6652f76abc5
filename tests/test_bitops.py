import math

import pytest

from bitops import BitPacker, encode_next_byte


def test_encode_next_byte_full_group_at_boundary():
    encoded, _, counter = encode_next_byte(0b101101, 6)
    assert encoded == 0x40 | 0b101101
    assert counter == 0


def test_encode_next_byte_takes_top_bits():
    encoded, bits, counter = encode_next_byte(0xFF, 8)
    assert encoded == 0x7F
    assert counter == 2
    assert bits & 0b11 == 0b11


def test_encode_next_byte_pads_partial_group():
    encoded, bits, counter = encode_next_byte(0b11, 2)
    assert encoded == 0x40 | 0b110000
    assert counter == 0


def test_encode_next_byte_no_pending_bits_raises():
    with pytest.raises(ValueError):
        _ = encode_next_byte(0, 0)


def test_single_zero_byte_packs_to_two_bytes():
    out = BitPacker().pack(b"\x00")
    assert out == b"\x40\x40"
    assert all(b & 0xC0 == 0x40 for b in out)


def test_single_ff_byte():
    assert BitPacker().pack(b"\xff") == b"\x7f\x70"


def test_known_vector_regroups_bits():
    # 00010010 00110100 01010110 -> 000100 100011 010001 010110
    assert BitPacker().pack(b"\x12\x34\x56") == bytes([0x44, 0x63, 0x51, 0x56])


def test_leading_high_bit_does_not_leak():
    assert BitPacker().pack(b"\x80\x00\x00") == bytes([0x60, 0x40, 0x40, 0x40])


@pytest.mark.parametrize("n", [0, 1, 2, 3, 4, 5, 6, 100, 1001])
def test_output_length_is_ceil_of_bits(n, payload):
    out = BitPacker().pack(payload(n))
    assert len(out) == math.ceil(8 * n / 6)
    assert all(0x40 <= b <= 0x7F for b in out)


def test_drain_output_is_prefix_of_full_output(payload):
    data = payload(50, seed=7)
    full = BitPacker().pack(data)
    packer = BitPacker()
    drained = bytearray()
    for k, byte in enumerate(data, start=1):
        packer.feed(byte)
        drained.extend(packer.drain_ready())
        assert full.startswith(bytes(drained))
        assert packer.bit_counter == 8 * k - 6 * len(drained)
        assert packer.bit_counter < 6


def test_flush_without_feed_is_empty():
    assert list(BitPacker().flush()) == []


def test_reset_drops_pending_bits():
    packer = BitPacker()
    packer.feed(0xAB)
    list(packer.drain_ready())
    packer.reset()
    assert (packer.bits, packer.bit_counter) == (0, 0)
    assert packer.pack(b"\x00") == b"\x40\x40"


def test_feed_rejects_non_byte():
    packer = BitPacker()
    with pytest.raises(ValueError):
        packer.feed(256)
    with pytest.raises(ValueError):
        packer.feed(-1)
