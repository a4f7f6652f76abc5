import pytest


def test_output_path_for_uses_stem_or_input(m):
    assert m.output_path_for("game.bin") == "game.bin.btx"
    assert m.output_path_for("game.bin", "out/game") == "out/game.btx"


def test_cli_parser_defaults(m):
    ns = m.get_parser().parse_args(["game.bin"])
    assert ns.input == "game.bin"
    assert ns.stem is None
    assert ns.load == 0x8100
    assert ns.bank == 2
    assert ns.progress is None
    assert ns.screen is None
    assert not ns.verbose


def test_cli_parser_accepts_flags(m):
    ns = m.get_parser().parse_args(
        ["-v", "-l", "0x4000", "-b", "3", "-p", "24", "-s", "s.cept",
         "in.bin", "out"]
    )
    assert (ns.input, ns.stem) == ("in.bin", "out")
    assert ns.load == 0x4000
    assert ns.bank == 3
    assert ns.progress == 24
    assert ns.screen == "s.cept"
    assert ns.verbose


def test_hex_address_without_prefix(m):
    assert m.get_parser().parse_args(["-l", "c000", "x"]).load == 0xC000


@pytest.mark.parametrize(
    "argv",
    [
        ["-l", "zz", "x"],
        ["-l", "10000", "x"],
        ["-b", "4", "x"],
        ["-b", "two", "x"],
        ["-p", "0", "x"],
        ["-p", "25", "x"],
    ],
)
def test_bad_flag_exits_with_2(m, argv, capsys):
    with pytest.raises(SystemExit) as exc:
        m.main(argv)
    assert exc.value.code == m.EXIT_BAD_ARGUMENT


@pytest.mark.parametrize("argv", [["-h"], ["-?"], []])
def test_help_and_missing_input_exit_with_1(m, argv, capsys):
    assert m.main(argv) == m.EXIT_USAGE
    assert "bin2btx" in capsys.readouterr().out


def test_fmt_bytes(m):
    assert m._fmt_bytes(0) == "0 B"
    assert m._fmt_bytes(2048) == "2.00 KiB"
