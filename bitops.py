from typing import Iterator, Tuple

SIX_BIT_MASK = 0x3F  #: Payload bits carried by one encoded byte
CHANNEL_BITS = 0x40  #: High-bit pattern ``01`` forced onto every encoded byte


def encode_next_byte(bits: int, bit_counter: int) -> Tuple[int, int, int]:
    """Extract the next 6-bit group from a bit accumulator.

    With at least 6 pending bits the topmost 6 valid bits are taken. With
    fewer (only on the final flush) the remaining low bits are moved to the
    top of the 6-bit field and the gap is zero filled.

    The consumed bits are discarded by reducing ``bits`` modulo the mask
    used for the extraction. Bits above the valid window may survive this
    reduction, but they are never selected by a later mask.

    :param bits: Accumulator register.
    :type bits: int
    :param bit_counter: Number of valid low-order bits in ``bits``.
    :type bit_counter: int
    :returns: Tuple ``(encoded_byte, new_bits, new_bit_counter)``.
    :rtype: Tuple[int, int, int]
    :raises ValueError: If there are no pending bits.
    """
    if bit_counter <= 0:
        raise ValueError("No pending bits to encode")
    bit_mask = SIX_BIT_MASK
    if bit_counter >= 6:
        shift = bit_counter - 6
        bit_mask <<= shift
        value = (bits & bit_mask) >> shift
        bit_counter -= 6
    else:
        shift = 6 - bit_counter
        bit_mask >>= shift
        value = (bits & bit_mask) << shift
        bit_counter = 0
    return value | CHANNEL_BITS, bits % bit_mask, bit_counter


class BitPacker:
    """Stateful 8-bit to 6-bit packer.

    Bytes are appended to the low end of an accumulator and leave it from
    the top in 6-bit groups, each tagged with ``0x40``.

    :ivar bits: Accumulator holding bits not yet emitted.
    :type bits: int
    :ivar bit_counter: Number of valid pending bits in ``bits`` (0-13).
    :type bit_counter: int
    """

    def __init__(self):
        """Initialize an empty packer.

        :returns: None
        :rtype: None
        """
        self.bits = 0
        self.bit_counter = 0

    def reset(self):
        """Drop all pending bits."""
        self.bits = 0
        self.bit_counter = 0

    def feed(self, byte: int):
        """Append the 8 bits of ``byte`` to the accumulator.

        :param byte: Payload byte.
        :type byte: int
        :returns: None
        :rtype: None
        :raises ValueError: If ``byte`` is outside ``0..255``.
        """
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"Not a byte value: {byte}")
        self.bits = self.bits * 256 + byte
        self.bit_counter += 8

    def _extract_one(self) -> int:
        encoded, self.bits, self.bit_counter = encode_next_byte(
            self.bits, self.bit_counter
        )
        return encoded

    def drain_ready(self) -> Iterator[int]:
        """Yield encoded bytes while at least 6 bits are pending.

        :returns: Lazy sequence of encoded bytes.
        :rtype: Iterator[int]
        """
        while self.bit_counter > 5:
            yield self._extract_one()

    def flush(self) -> Iterator[int]:
        """Yield encoded bytes until no bits are pending.

        The last byte is padded on the right with zero bits.

        :returns: Lazy sequence of encoded bytes.
        :rtype: Iterator[int]
        """
        while self.bit_counter > 0:
            yield self._extract_one()

    def pack(self, data: bytes) -> bytes:
        """Encode a whole buffer, flushing the tail.

        :param data: Raw payload.
        :type data: bytes
        :returns: ``ceil(8 * len(data) / 6)`` encoded bytes.
        :rtype: bytes
        """
        out = bytearray()
        for byte in data:
            self.feed(byte)
            out.extend(self.drain_ready())
        out.extend(self.flush())
        return bytes(out)
