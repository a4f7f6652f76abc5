from typing import BinaryIO, Callable, List, Optional

from framing import (
    BANKS,
    MAX_ADDRESS,
    BlockWriter,
    EndMarker,
    read_exact,
)
from progress import (
    MAX_ROW,
    MIN_ROW,
    PROGRESS_BLOCKS,
    PlannedBlock,
    ProgressSplitter,
    split_payload,
)

DEFAULT_LOAD_ADDRESS = 0x8100
DEFAULT_BANK = 2
MIN_PROGRESS_SIZE = PROGRESS_BLOCKS - 1  #: Smallest payload a bar can cover


class ArgumentError(ValueError):
    """Raised when conversion settings or the payload size are unusable."""


class Converter:
    """Turns a binary image into a Mupid teleprogram.

    Without a progress row the whole payload is written as one block that
    ends the program. With a row the payload is split into
    ``PROGRESS_BLOCKS`` data blocks, each followed by one progress bar cell,
    and a final empty block ends the program.

    :ivar start_address: Load address of the first payload byte.
    :type start_address: int
    :ivar bank: Target bank, 2 or 3.
    :type bank: int
    :ivar progress_row: Terminal row of the progress bar, or ``None``.
    :type progress_row: Optional[int]
    """

    def __init__(
        self,
        start_address: int = DEFAULT_LOAD_ADDRESS,
        bank: int = DEFAULT_BANK,
        progress_row: Optional[int] = None,
    ):
        """Validate and store the conversion settings.

        :param start_address: Load address (``0..0xFFFF``).
        :type start_address: int
        :param bank: Target bank, 2 or 3.
        :type bank: int
        :param progress_row: Progress bar row (1-24), ``None`` to disable.
        :type progress_row: Optional[int]
        :returns: None
        :rtype: None
        :raises ArgumentError: If any setting is out of range.
        """
        if not 0 <= start_address <= MAX_ADDRESS:
            raise ArgumentError(
                f"Load address out of range: {start_address:#x}"
            )
        if bank not in BANKS:
            raise ArgumentError(f"Load bank is only 2 or 3, got {bank}")
        if progress_row is not None and not (
            MIN_ROW <= progress_row <= MAX_ROW
        ):
            raise ArgumentError(
                f"Progress row must be between {MIN_ROW} and {MAX_ROW}, "
                f"got {progress_row}"
            )
        self.start_address = start_address
        self.bank = bank
        self.progress_row = progress_row

    def plan(self, size: int) -> List[PlannedBlock]:
        """Lay out the blocks for a payload of ``size`` bytes.

        :param size: Payload size in bytes.
        :type size: int
        :returns: Planned blocks in output order.
        :rtype: List[PlannedBlock]
        :raises ArgumentError: If the payload does not fit in memory above
            the load address, or is too small for a progress bar.
        """
        if size < 0:
            raise ArgumentError(f"Negative payload size: {size}")
        if self.start_address + size > MAX_ADDRESS + 1:
            raise ArgumentError(
                f"Payload of {size} bytes does not fit above "
                f"{self.start_address:#06x}"
            )
        if self.progress_row is None:
            return [
                PlannedBlock(
                    self.start_address, 0, size, EndMarker.END_PROGRAM
                )
            ]
        if size < MIN_PROGRESS_SIZE:
            raise ArgumentError(
                f"Progress bar needs at least {MIN_PROGRESS_SIZE} bytes "
                f"of input, got {size}"
            )
        return split_payload(size, self.start_address)

    def convert(
        self,
        source: BinaryIO,
        out: BinaryIO,
        size: int,
        preload: Optional[bytes] = None,
        on_block: Optional[Callable[[int, PlannedBlock], None]] = None,
    ) -> List[PlannedBlock]:
        """Convert ``size`` bytes from ``source`` into ``out``.

        The plan is validated before anything is written.

        :param source: Input stream positioned at the payload start.
        :type source: BinaryIO
        :param out: Output stream.
        :type out: BinaryIO
        :param size: Number of payload bytes to read.
        :type size: int
        :param preload: Optional bytes copied verbatim before the blocks
                        (e.g. a loading screen).
        :type preload: Optional[bytes]
        :param on_block: Optional callback ``on_block(index, block)`` called
                         after each block is written.
        :type on_block: Optional[Callable[[int, PlannedBlock], None]]
        :returns: The plan that was written.
        :rtype: List[PlannedBlock]
        :raises ArgumentError: If the payload cannot be planned.
        :raises EOFError: If ``source`` holds fewer than ``size`` bytes.
        """
        plan = self.plan(size)
        if preload:
            out.write(preload)
        writer = BlockWriter(out)
        if self.progress_row is not None:
            ProgressSplitter(writer, self.progress_row).write(
                source, plan, self.bank, on_block=on_block
            )
            return plan

        block = plan[0]
        writer.write_block(
            block.address,
            self.bank,
            read_exact(source, block.length),
            block.end_marker,
        )
        if on_block is not None:
            on_block(0, block)
        return plan
