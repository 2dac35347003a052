from __future__ import annotations

from pathlib import Path
import io
import tempfile
import unittest
from contextlib import redirect_stdout

from cmake_node import __version__
from cmake_node.arguments import normalize, parse_arguments
from cmake_node.errors import ArgumentError
from cmake_node.platforms import TargetPlatform


class NormalizeTests(unittest.TestCase):
    def test_expands_clustered_short_flags_in_order(self) -> None:
        self.assertEqual(normalize(["-pcG"]), ["-p", "-c", "-G"])

    def test_splits_long_option_at_first_equals(self) -> None:
        self.assertEqual(normalize(["--node-bin=a=b"]), ["--node-bin", "a=b"])

    def test_leaves_tokens_after_boundary_untouched(self) -> None:
        tokens = normalize(["build", "--", "-pc", "--gen=x"])
        self.assertEqual(tokens, ["build", "--", "-pc", "--gen=x"])

    def test_passes_plain_tokens_through(self) -> None:
        self.assertEqual(normalize(["-p", "configure"]), ["-p", "configure"])


class ParseArgumentsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name).resolve()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_clustered_flags_match_separate_flags(self) -> None:
        clustered = parse_arguments(["-pG", "Ninja", "build"])
        separate = parse_arguments(["-p", "-G", "Ninja", "build"])
        self.assertEqual(clustered, separate)
        self.assertTrue(clustered.production)
        self.assertEqual(clustered.generator, "Ninja")

    def test_equals_form_matches_two_tokens(self) -> None:
        joined = parse_arguments(["--gen=Unix Makefiles", "--arch=x64", "configure"])
        split = parse_arguments(["--gen", "Unix Makefiles", "--arch", "x64", "configure"])
        self.assertEqual(joined, split)

    def test_value_containing_equals_stays_whole(self) -> None:
        options = parse_arguments(["--node-bin=my=node", "build"])
        self.assertEqual(options.node_bin, "my=node")

    def test_passthrough_is_verbatim(self) -> None:
        options = parse_arguments(["configure", "--", "-DFOO=1", "-pG", "--gen=x", "build"])
        self.assertEqual(options.command, "configure")
        self.assertEqual(options.passthrough, ["-DFOO=1", "-pG", "--gen=x", "build"])
        self.assertIsNone(options.generator)

    def test_build_type_is_case_insensitive(self) -> None:
        self.assertEqual(parse_arguments(["-c", "relwithdebinfo"]).build_type, "RelWithDebInfo")

    def test_rejects_unknown_build_type(self) -> None:
        with self.assertRaises(ArgumentError):
            parse_arguments(["-c", "Fast"])

    def test_rejects_unknown_option(self) -> None:
        with self.assertRaises(ArgumentError) as ctx:
            parse_arguments(["-x", "build"])
        self.assertEqual(str(ctx.exception), "Invalid option: -x.")

    def test_rejects_missing_value(self) -> None:
        with self.assertRaises(ArgumentError) as ctx:
            parse_arguments(["-G"])
        self.assertEqual(str(ctx.exception), "Invalid value for -G.")

    def test_rejects_flag_like_value(self) -> None:
        with self.assertRaises(ArgumentError) as ctx:
            parse_arguments(["--gen", "-p", "build"])
        self.assertEqual(str(ctx.exception), "Invalid value for --gen.")

    def test_rejects_second_command(self) -> None:
        with self.assertRaises(ArgumentError) as ctx:
            parse_arguments(["configure", "build"])
        self.assertEqual(str(ctx.exception), "Multiple commands specified.")

    def test_rejects_unknown_architecture(self) -> None:
        with self.assertRaises(ArgumentError):
            parse_arguments(["-A", "sparc"])

    def test_missing_root_raises_file_not_found(self) -> None:
        missing = str(self.root / "missing")
        with self.assertRaises(FileNotFoundError) as ctx:
            parse_arguments(["-r", missing, "build"])
        self.assertEqual(ctx.exception.filename, missing)

    def test_root_is_resolved(self) -> None:
        self.assertEqual(parse_arguments(["-r", str(self.root)]).root, self.root)

    def test_toolchain_replaces_cross_mode(self) -> None:
        toolchain = self.root / "toolchain.cmake"
        toolchain.write_text("")
        options = parse_arguments(["--mingw", "--toolchain", str(toolchain)])
        self.assertIs(options.platform, TargetPlatform.GENERIC)
        self.assertEqual(options.toolchain, toolchain)

    def test_cross_mode_replaces_toolchain(self) -> None:
        toolchain = self.root / "toolchain.cmake"
        toolchain.write_text("")
        options = parse_arguments(["--toolchain", str(toolchain), "--wasm"])
        self.assertIs(options.platform, TargetPlatform.WASM)
        self.assertIsNone(options.toolchain)

    def test_help_exits_with_zero(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer), self.assertRaises(SystemExit) as ctx:
            parse_arguments(["build", "--help"])
        self.assertEqual(ctx.exception.code, 0)
        self.assertIn("Usage: cmake-node", buffer.getvalue())
        self.assertIn("reconfigure", buffer.getvalue())

    def test_version_exits_with_zero(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer), self.assertRaises(SystemExit) as ctx:
            parse_arguments(["-v"])
        self.assertEqual(ctx.exception.code, 0)
        self.assertEqual(buffer.getvalue().strip(), __version__)


if __name__ == "__main__":
    unittest.main()
