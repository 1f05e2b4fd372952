"""
Command-Line Interface Test Suite
=================================

Tests for the algoc, c2algo and algoflow commands, run in-process with
click's CliRunner inside an isolated filesystem.
"""

import json
from pathlib import Path


HELLO = 'ALGORITHM Hello\nBEGIN\n    PRINT("Hello, World!")\nEND.\n'

SYNTAX_ERROR = "ALGORITHM T BEGIN IF (x) PRINT(1) END."

ADD_PROGRAM = (
    "int add(int a, int b) { return a + b; }\n"
    'int main() { printf("%d\\n", add(2,3)); return 0; }'
)


# =============================================================================
# algoc
# =============================================================================

class TestAlgoc:
    """Tests for the Algo to C compiler command."""

    def test_help(self):
        """--help describes the command."""
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Compile USDB Algo source code to C99" in result.output

    def test_version(self):
        from click.testing import CliRunner
        from usdb_algo import __version__
        from usdb_algo.cli.algoc import main

        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_compile_writes_c_file(self):
        """Default output sits next to the input with a .c suffix."""
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["hello.algo"])

            assert result.exit_code == 0, f"Compile failed: {result.output}"
            assert "Compiled hello.algo -> hello.c" in result.output
            c_code = Path("hello.c").read_text()
            assert "// Algorithm: Hello" in c_code
            assert "int main(void) {" in c_code

    def test_explicit_output(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["hello.algo", "-o", "out.c"])

            assert result.exit_code == 0
            assert Path("out.c").exists()
            assert not Path("hello.c").exists()

    def test_stdout_output(self):
        """-o - prints the C code instead of writing a file."""
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["hello.algo", "-o", "-"])

            assert result.exit_code == 0
            assert "int main(void) {" in result.output
            assert "Compiled" not in result.output
            assert not Path("hello.c").exists()

    def test_token_dump(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["--tokens", "hello.algo"])

            assert result.exit_code == 0
            assert result.output.startswith("1:1\tALGORITHM\t")
            assert "\tEOF\t''" in result.output
            assert not Path("hello.c").exists()

    def test_ast_dump(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["--ast", "hello.algo"])

            assert result.exit_code == 0
            assert "Program: Hello" in result.output

    def test_syntax_error(self):
        """A syntax error exits with 1 and writes nothing."""
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.algo").write_text(SYNTAX_ERROR)

            result = runner.invoke(main, ["bad.algo"])

            assert result.exit_code == 1
            assert "Expected 'THEN'" in result.output
            assert "bad.algo: 1 error(s), no output written" in result.output
            assert not Path("bad.c").exists()

    def test_ast_dump_reports_syntax_error(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.algo").write_text(SYNTAX_ERROR)

            result = runner.invoke(main, ["--ast", "bad.algo"])

            assert result.exit_code == 1
            assert "Expected 'THEN'" in result.output

    def test_semantic_error(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("undef.algo").write_text("ALGORITHM T BEGIN y <- 1 END.")

            result = runner.invoke(main, ["undef.algo"])

            assert result.exit_code == 1
            assert "Undefined variable 'y'" in result.output
            assert not Path("undef.c").exists()

    def test_warnings_reported_and_suppressed(self):
        """Warnings never block; -W hides them."""
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        source = "ALGORITHM T FUNCTION f() : INTEGER BEGIN PRINT(1) END BEGIN END."
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("warn.algo").write_text(source)

            result = runner.invoke(main, ["warn.algo"])
            assert result.exit_code == 0
            assert "Function 'f' has no RETURN statement" in result.output
            assert Path("warn.c").exists()

            result = runner.invoke(main, ["-W", "warn.algo"])
            assert result.exit_code == 0
            assert "no RETURN statement" not in result.output

    def test_verbose(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["-v", "hello.algo"])

            assert result.exit_code == 0
            assert "Compiling hello.algo..." in result.output
            assert "Parsed: 0 routines" in result.output

    def test_missing_input(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["nope.algo"])
            assert result.exit_code == 2


# =============================================================================
# c2algo
# =============================================================================

class TestC2Algo:
    """Tests for the C to Algo translator command."""

    def test_help(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Translate C source code into USDB Algo" in result.output

    def test_translate_writes_algo_file(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("add.c").write_text(ADD_PROGRAM)

            result = runner.invoke(main, ["add.c"])

            assert result.exit_code == 0, f"Translation failed: {result.output}"
            assert "Translated add.c -> add.algo" in result.output
            lines = Path("add.algo").read_text().splitlines()
            assert lines[0] == "ALGORITHM TranslatedProgram"
            assert "    PRINT(add(2,3))" in lines

    def test_program_name(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("add.c").write_text(ADD_PROGRAM)

            result = runner.invoke(main, ["add.c", "-n", "Demo", "-o", "-"])

            assert result.exit_code == 0
            assert result.output.startswith("ALGORITHM Demo\n")

    def test_invalid_program_name(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("add.c").write_text(ADD_PROGRAM)

            result = runner.invoke(main, ["add.c", "-n", "1abc"])

            assert result.exit_code == 2
            assert "'1abc' is not a valid algorithm name" in result.output
            assert not Path("add.algo").exists()

    def test_keyword_program_name(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("add.c").write_text(ADD_PROGRAM)

            result = runner.invoke(main, ["add.c", "-n", "Begin"])

            assert result.exit_code == 2
            assert "'Begin' is not a valid algorithm name" in result.output

    def test_source_map_file(self):
        """The source map is written as a JSON list of C line indices."""
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("add.c").write_text(ADD_PROGRAM)

            result = runner.invoke(main, ["add.c", "--source-map", "add.map.json"])

            assert result.exit_code == 0
            source_map = json.loads(Path("add.map.json").read_text())
            assert source_map == [-1, -1, 0, -1, 0, 0, -1, -1, 1, 1]

    def test_include_directory(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("lib").mkdir()
            Path("lib/util.h").write_text("int twice(int a);")
            Path("lib/util.c").write_text("int twice(int a) {\n    return a * 2;\n}")
            Path("main.c").write_text(
                '#include "util.h"\n'
                'int main() {\n    printf("%d\\n", twice(2));\n    return 0;\n}\n'
            )

            result = runner.invoke(main, ["main.c", "-I", "lib", "-o", "-"])

            assert result.exit_code == 0, result.output
            assert "FUNCTION twice(a : INTEGER) : INTEGER" in result.output
            assert "warning:" not in result.output

    def test_missing_include_warns(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("other.c").write_text("int unused;")
            Path("main.c").write_text('#include "nope.h"\nint main() {\n    return 0;\n}\n')

            result = runner.invoke(main, ["main.c"])

            assert result.exit_code == 0
            assert "warning: Could not find included file: nope.h" in result.output
            assert Path("main.algo").exists()

    def test_empty_source(self):
        from click.testing import CliRunner
        from usdb_algo.cli.c2algo import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("empty.c").write_text("")

            result = runner.invoke(main, ["empty.c"])

            assert result.exit_code == 1
            assert "error: Empty C source" in result.output
            assert not Path("empty.algo").exists()


class TestLoadWorkspaceFiles:
    """Tests for collecting include candidates from disk."""

    def test_keys_and_input_exclusion(self, tmp_path):
        from usdb_algo.cli.c2algo import load_workspace_files

        (tmp_path / "main.c").write_text("int main() { return 0; }")
        (tmp_path / "util.h").write_text("int twice(int a);")
        (tmp_path / "notes.txt").write_text("ignored")
        lib = tmp_path / "lib"
        lib.mkdir()
        (lib / "math.c").write_text("int sq(int a) { return a * a; }")

        files = load_workspace_files(tmp_path / "main.c", [lib])

        assert files["util.h"] == "int twice(int a);"
        assert files["math.c"] == "int sq(int a) { return a * a; }"
        assert files["lib/math.c"] == files["math.c"]
        assert "main.c" not in files
        assert "notes.txt" not in files


# =============================================================================
# algoflow
# =============================================================================

class TestAlgoflow:
    """Tests for the flowchart generator command."""

    def test_help(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoflow import main

        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Generate flowcharts for an Algo or C program" in result.output

    def test_algo_input_writes_json(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoflow import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["hello.algo"])

            assert result.exit_code == 0, result.output
            assert "Charted hello.algo -> hello.flow.json" in result.output
            data = json.loads(Path("hello.flow.json").read_text())
            assert data["success"] is True
            assert data["main"]["name"] == "Hello"
            kinds = [node["kind"] for node in data["main"]["nodes"]]
            assert kinds == ["start", "process", "end"]
            assert data["subroutines"] == {}
            assert data["source_map"] is None

    def test_stdout_with_indent(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoflow import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["hello.algo", "-o", "-", "--indent", "2"])

            assert result.exit_code == 0
            assert '\n  "success": true' in result.output
            assert json.loads(result.output)["main"]["routine"] == "main"
            assert not Path("hello.flow.json").exists()

    def test_c_input_by_extension(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoflow import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("add.c").write_text(ADD_PROGRAM)

            result = runner.invoke(main, ["add.c"])

            assert result.exit_code == 0, result.output
            data = json.loads(Path("add.flow.json").read_text())
            assert list(data["subroutines"]) == ["add"]
            assert data["source_map"] == [-1, -1, 0, -1, 0, 0, -1, -1, 1, 1]

    def test_forced_language(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoflow import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.txt").write_text(ADD_PROGRAM)

            result = runner.invoke(main, ["--lang", "c", "prog.txt", "-o", "-"])

            assert result.exit_code == 0
            assert "add" in json.loads(result.output)["subroutines"]

    def test_unknown_language_rejected(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoflow import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.algo").write_text(HELLO)

            result = runner.invoke(main, ["--lang", "pascal", "hello.algo"])

            assert result.exit_code == 2

    def test_syntax_error(self):
        from click.testing import CliRunner
        from usdb_algo.cli.algoflow import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.algo").write_text(SYNTAX_ERROR)

            result = runner.invoke(main, ["bad.algo"])

            assert result.exit_code == 1
            assert "Error: Syntax Error: [ERROR] Line 1" in result.output
            assert not Path("bad.flow.json").exists()

    def test_infer_language(self):
        from usdb_algo.cli.algoflow import infer_language

        assert infer_language(Path("a.algo")) == "algo"
        assert infer_language(Path("a.ALGO")) == "algo"
        assert infer_language(Path("a.c")) == "c"
        assert infer_language(Path("a.h")) == "c"
        assert infer_language(Path("a.txt")) == "algo"
