from enum import IntEnum
from typing import BinaryIO, Iterable

from bitops import BitPacker, CHANNEL_BITS

START_MARKER = b"\x1f\x3c"  #: Opens every teleprogram block
BANKS = (2, 3)  #: Memory banks the decoder can load into
MAX_ADDRESS = 0xFFFF
BANK3_FLAG = 0x10  #: Bank select bit inside the first header byte


class EndMarker(IntEnum):
    """Byte closing a block; it tells the decoder what to do next.

    ``END_PROGRAM_WITH_START`` is known only from old notes and is never
    written by this tool.
    """

    END_PROGRAM_DEFAULT = 0x21
    END_DATA_BLOCK = 0x22
    END_PROGRAM_WITH_START = 0x28
    END_PROGRAM = 0x29
    END_PROGRAM_THEN_BASIC = 0x2A


def encode_load_address(address: int, bank: int) -> bytes:
    """Encode a load address and bank into the 3-byte block header.

    The address is split into base-64 digits, most significant digit first:

    - ``0 1 0 b a15 a14 a13 a12``
    - ``0 1 a11 a10 a9 a8 a7 a6``
    - ``0 1 a5 a4 a3 a2 a1 a0``

    where ``b`` is set for bank 3.

    :param address: Load address in decoder memory.
    :type address: int
    :param bank: Target bank, 2 or 3.
    :type bank: int
    :returns: Encoded header.
    :rtype: bytes
    :raises ValueError: If the address does not fit 16 bits or the bank
        is unknown.
    """
    if not 0 <= address <= MAX_ADDRESS:
        raise ValueError(f"Load address out of range: {address:#x}")
    if bank not in BANKS:
        raise ValueError(f"Load bank must be 2 or 3, got {bank}")
    b3 = (address % 64) | CHANNEL_BITS
    address //= 64
    b2 = (address % 64) | CHANNEL_BITS
    address //= 64
    b1 = (address % 64) | CHANNEL_BITS
    if bank == 3:
        b1 |= BANK3_FLAG
    return bytes((b1, b2, b3))


class BlockWriter:
    """Writes framed blocks to a binary output stream.

    :ivar out: Destination stream.
    :type out: BinaryIO
    """

    def __init__(self, out: BinaryIO):
        self.out = out

    def write_block(
        self,
        address: int,
        bank: int,
        payload: Iterable[int],
        end_marker: EndMarker,
    ) -> None:
        """Write one block: start marker, header, packed payload, end marker.

        :param address: Load address of the first payload byte.
        :type address: int
        :param bank: Target bank, 2 or 3.
        :type bank: int
        :param payload: Raw payload bytes (may be empty).
        :type payload: Iterable[int]
        :param end_marker: Byte closing the block.
        :type end_marker: EndMarker
        :returns: None
        :rtype: None
        """
        self.out.write(START_MARKER)
        self.out.write(encode_load_address(address, bank))
        packer = BitPacker()
        for byte in payload:
            packer.feed(byte)
            self.out.write(bytes(packer.drain_ready()))
        self.out.write(bytes(packer.flush()))
        self.out.write(bytes((int(end_marker),)))


def read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read exactly ``size`` bytes from ``stream``.

    :param stream: Source stream.
    :type stream: BinaryIO
    :param size: Number of bytes to read.
    :type size: int
    :returns: The bytes read.
    :rtype: bytes
    :raises EOFError: If the stream ends before ``size`` bytes were read.
    """
    data = bytearray()
    while len(data) < size:
        chunk = stream.read(size - len(data))
        if not chunk:
            raise EOFError(
                f"Unexpected end of input: wanted {size} bytes, got {len(data)}"
            )
        data.extend(chunk)
    return bytes(data)
