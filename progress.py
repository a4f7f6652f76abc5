from typing import BinaryIO, Callable, List, NamedTuple, Optional

from framing import BlockWriter, EndMarker, read_exact

PROGRESS_BLOCKS = 40  #: Data blocks written when a progress bar is shown
BAR_CELLS = PROGRESS_BLOCKS - 1
MIN_ROW = 1
MAX_ROW = 24


class PlannedBlock(NamedTuple):
    """One block of a conversion plan.

    :ivar address: Load address of the block payload.
    :ivar offset: Offset of the payload slice in the input.
    :ivar length: Payload length in bytes.
    :ivar end_marker: Byte closing the block.
    :ivar column: Progress bar cell drawn after the block, 0 for none.
    """

    address: int
    offset: int
    length: int
    end_marker: EndMarker
    column: int = 0


def _check_row(row: int) -> None:
    if not MIN_ROW <= row <= MAX_ROW:
        raise ValueError(
            f"Progress row must be between {MIN_ROW} and {MAX_ROW}, got {row}"
        )


def start_bar(row: int) -> bytes:
    """Terminal sequence drawing an empty progress bar on ``row``.

    The cursor is left at the start of the bar.

    :param row: Terminal row (1-24).
    :type row: int
    :returns: Control sequence.
    :rtype: bytes
    """
    _check_row(row)
    return bytes(
        (
            0x1F, 0x40 + row, 0x41,
            0x1D, ord("Q"), 0x12, 0x40 + BAR_CELLS,
            0x1F, 0x40 + row, 0x41,
        )
    )


def step_bar(row: int, col: int) -> bytes:
    """Terminal sequence filling the progress bar cell at ``(row, col)``.

    :param row: Terminal row (1-24).
    :type row: int
    :param col: Bar column, starting at 1.
    :type col: int
    :returns: Control sequence.
    :rtype: bytes
    """
    _check_row(row)
    return bytes((0x1F, 0x40 + row, 0x40 + col, 0x1D, 0x82, 127))


def split_payload(
    size: int, start_address: int, block_count: int = PROGRESS_BLOCKS
) -> List[PlannedBlock]:
    """Plan the blocks of a progress-bar conversion.

    The nominal block size is ``size // block_count + 1`` and the last data
    block takes the remainder. Slices are clamped to the payload, so on
    small inputs the trailing blocks are empty. Empty blocks are addressed
    at the last payload byte, never past it. The plan ends with a
    zero-length block at ``start_address`` which terminates the program.

    :param size: Payload size in bytes.
    :type size: int
    :param start_address: Load address of the first payload byte.
    :type start_address: int
    :param block_count: Number of data blocks.
    :type block_count: int
    :returns: ``block_count + 1`` planned blocks.
    :rtype: List[PlannedBlock]
    :raises ValueError: If ``size`` is negative.
    """
    if size < 0:
        raise ValueError(f"Negative payload size: {size}")
    block_size = size // block_count + 1
    last = max(size - 1, 0)
    plan: List[PlannedBlock] = []
    for i in range(block_count):
        offset = min(i * block_size, size)
        if i == block_count - 1:
            end = size
        else:
            end = min(offset + block_size, size)
        plan.append(
            PlannedBlock(
                start_address + min(offset, last),
                offset,
                end - offset,
                EndMarker.END_DATA_BLOCK,
                i + 1,
            )
        )
    plan.append(PlannedBlock(start_address, size, 0, EndMarker.END_PROGRAM))
    return plan


class ProgressSplitter:
    """Writes a planned sequence of blocks with progress bar markup.

    :ivar writer: Block writer owning the output stream.
    :type writer: BlockWriter
    :ivar row: Terminal row of the progress bar.
    :type row: int
    """

    def __init__(self, writer: BlockWriter, row: int):
        _check_row(row)
        self.writer = writer
        self.row = row

    def write(
        self,
        source: BinaryIO,
        plan: List[PlannedBlock],
        bank: int,
        on_block: Optional[Callable[[int, PlannedBlock], None]] = None,
    ) -> None:
        """Draw the bar, then write every planned block from ``source``.

        Payload slices are read from ``source`` in plan order, so the plan
        offsets must be consecutive.

        :param source: Input stream positioned at the payload start.
        :type source: BinaryIO
        :param plan: Blocks to write, e.g. from :func:`split_payload`.
        :type plan: List[PlannedBlock]
        :param bank: Target bank, 2 or 3.
        :type bank: int
        :param on_block: Optional callback ``on_block(index, block)`` called
                         after each block is written.
        :type on_block: Optional[Callable[[int, PlannedBlock], None]]
        :returns: None
        :rtype: None
        :raises EOFError: If ``source`` is shorter than the plan.
        """
        out = self.writer.out
        out.write(start_bar(self.row))
        for index, block in enumerate(plan):
            payload = read_exact(source, block.length)
            self.writer.write_block(
                block.address, bank, payload, block.end_marker
            )
            if block.column:
                out.write(step_bar(self.row, block.column))
            if on_block is not None:
                on_block(index, block)
