import argparse
import os
import sys

from typing import List, Optional

from converter import (
    DEFAULT_BANK,
    DEFAULT_LOAD_ADDRESS,
    ArgumentError,
    Converter,
)
from framing import BANKS, MAX_ADDRESS
from progress import MAX_ROW, MIN_ROW, PlannedBlock

OUTPUT_SUFFIX = ".btx"  #: Extension of written teleprograms

EXIT_USAGE = 1
EXIT_BAD_ARGUMENT = 2
EXIT_IO_ERROR = 4


def _hex_address(text: str) -> int:
    """Parse a load address given in hex, with or without ``0x``.

    :param text: Raw flag value.
    :type text: str
    :returns: Parsed address.
    :rtype: int
    :raises argparse.ArgumentTypeError: If the value is not a 16-bit hex
        number.
    """
    try:
        value = int(text, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Error parsing load address '{text}'"
        )
    if not 0 <= value <= MAX_ADDRESS:
        raise argparse.ArgumentTypeError(
            f"Load address {text} does not fit 16 bits"
        )
    return value


def _bank(text: str) -> int:
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Error parsing load bank '{text}'")
    if value not in BANKS:
        raise argparse.ArgumentTypeError("Load Bank is only 2 or 3")
    return value


def _row(text: str) -> int:
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Error parsing progress row '{text}'"
        )
    if not MIN_ROW <= value <= MAX_ROW:
        raise argparse.ArgumentTypeError(
            f"Progress row must be between {MIN_ROW} and {MAX_ROW}"
        )
    return value


def get_parser():
    """Create and configure the CLI argument parser.

    Help is handled by :func:`main` so that it exits with ``EXIT_USAGE``.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="bin2btx",
        description=(
            "Convert Z80 binary code to Mupid Teleprogram format in BTX code"
        ),
        add_help=False,
    )
    parser.add_argument("input", nargs="?", help="Binary file to convert")
    parser.add_argument(
        "stem",
        nargs="?",
        help="Output filename without extension (default: input filename)",
    )
    parser.add_argument(
        "-h", "-?", "--help", action="store_true", help="Print this text"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Set verbose mode"
    )
    parser.add_argument(
        "-l",
        "--load",
        metavar="HEXADDR",
        type=_hex_address,
        default=DEFAULT_LOAD_ADDRESS,
        help=f"Load address (default: {DEFAULT_LOAD_ADDRESS:04X})",
    )
    parser.add_argument(
        "-b",
        "--bank",
        type=_bank,
        default=DEFAULT_BANK,
        help=f"Load into BANK 2 or 3 (default: {DEFAULT_BANK})",
    )
    parser.add_argument(
        "-p",
        "--progress",
        metavar="ROW",
        type=_row,
        default=None,
        help=f"Show a loading bar on screen row {MIN_ROW}-{MAX_ROW}",
    )
    parser.add_argument(
        "-s",
        "--screen",
        metavar="FILE",
        default=None,
        help="Raw BTX screen copied before the program",
    )
    return parser


def output_path_for(input_path: str, stem: Optional[str] = None) -> str:
    """Build the output path from the output stem or the input path.

    :param input_path: Input file path.
    :type input_path: str
    :param stem: Output path without extension.
    :type stem: Optional[str]
    :returns: Output path ending in ``.btx``.
    :rtype: str
    """
    return (stem or input_path) + OUTPUT_SUFFIX


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    if n < 1024:
        return f"{n} B"
    return f"{n / 1024:.2f} KiB"


def _report_block(index: int, block: PlannedBlock) -> None:
    print(
        f"Block {index:2d}: address {block.address:04X}, "
        f"{block.length} bytes, end {int(block.end_marker):02X}"
    )


def convert_file(
    input_path: str,
    output_path: str,
    converter: Converter,
    screen_path: Optional[str] = None,
    verbose: bool = False,
) -> List[PlannedBlock]:
    """Convert one binary file into a teleprogram file.

    The plan is validated before the output file is created. If writing
    fails, the partial output file is removed.

    :param input_path: Binary file to convert.
    :type input_path: str
    :param output_path: Teleprogram file to write.
    :type output_path: str
    :param converter: Configured converter.
    :type converter: Converter
    :param screen_path: Optional raw screen copied before the program.
    :type screen_path: Optional[str]
    :param verbose: Whether to print every written block.
    :type verbose: bool
    :returns: The written plan.
    :rtype: List[PlannedBlock]
    :raises ArgumentError: If the input cannot be converted with the
        given settings.
    :raises OSError: If a file cannot be read or written.
    :raises EOFError: If the input shrinks while it is being read.
    """
    preload = None
    if screen_path is not None:
        with open(screen_path, "rb") as f:
            preload = f.read()
    with open(input_path, "rb") as fin:
        size = os.fstat(fin.fileno()).st_size
        converter.plan(size)
        try:
            with open(output_path, "wb") as fout:
                plan = converter.convert(
                    fin,
                    fout,
                    size,
                    preload=preload,
                    on_block=_report_block if verbose else None,
                )
        except BaseException:
            if os.path.exists(output_path):
                os.remove(output_path)
            raise
    if verbose:
        print(f"Input size: {_fmt_bytes(size)}")
        print(
            f"Output size: {_fmt_bytes(os.path.getsize(output_path))} "
            f"written to {output_path}"
        )
    return plan


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments to parse instead of ``sys.argv[1:]``.
    :type argv: Optional[List[str]]
    :returns: Process exit code.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)

    if args.help or args.input is None:
        parser.print_help()
        return EXIT_USAGE

    output_path = output_path_for(args.input, args.stem)
    try:
        converter = Converter(args.load, args.bank, args.progress)
        convert_file(
            args.input,
            output_path,
            converter,
            screen_path=args.screen,
            verbose=args.verbose,
        )
    except ArgumentError as e:
        print(f"[!] {e}", file=sys.stderr)
        return EXIT_BAD_ARGUMENT
    except FileNotFoundError as e:
        print(f"[!] File not found: {e.filename}", file=sys.stderr)
        return EXIT_IO_ERROR
    except (OSError, EOFError) as e:
        print(f"[!] Error converting {args.input}: {e}", file=sys.stderr)
        return EXIT_IO_ERROR
    return 0


if __name__ == "__main__":
    sys.exit(main())
