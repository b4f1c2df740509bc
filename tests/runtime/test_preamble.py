"""
Unit tests for the runtime preamble injected into generated bindings.
"""
import ast
import ctypes

import pytest

from grammargen.runtime import get_preamble


@pytest.fixture
def runtime_env(tmp_path):
    """Create a namespace with the full runtime loaded."""
    env = {"_GRAMMARS_DIR": str(tmp_path), "_LIBRARY_PATH": None}
    exec(get_preamble({"highlight"}), env)
    return env


class FakeQuery:
    """Stands in for tree_sitter.Query; patterns start at the given byte offsets."""

    def __init__(self, language, source):
        if "(((" in source:
            raise SyntaxError("Invalid syntax at offset 0")
        self.language = language
        self.source = source
        starts = []
        pos = 0
        for line in source.split("\n"):
            if line.strip():
                starts.append(pos)
            pos += len(line.encode("utf-8")) + 1
        self._starts = starts
        self.pattern_count = len(starts)
        self.capture_count = 2

    def start_byte_for_pattern(self, index):
        return self._starts[index]

    def capture_name(self, index):
        return ("keyword", "injection.content")[index]


class TestGetPreamble:
    """Tests for preamble assembly."""

    def test_is_valid_python(self):
        """Preamble parses with and without the highlight runtime."""
        ast.parse(get_preamble())
        ast.parse(get_preamble({"highlight"}))

    def test_imports_are_hoisted_once(self):
        """Shared imports appear once, ahead of the definitions."""
        preamble = get_preamble({"highlight"})
        assert preamble.count("from tree_sitter import Language\n") == 1
        assert preamble.index("import ctypes") < preamble.index("class _Extern")

    def test_highlight_runtime_is_optional(self):
        """pydantic and HighlightConfiguration only come with the feature."""
        assert "class HighlightConfiguration" not in get_preamble()
        assert "pydantic" not in get_preamble()
        assert "class HighlightConfiguration" in get_preamble({"highlight"})


class TestIncludeStr:
    """Tests for _include_str."""

    def test_reads_relative_to_grammars_dir(self, runtime_env, tmp_path):
        """Paths resolve against _GRAMMARS_DIR."""
        (tmp_path / "rust" / "queries").mkdir(parents=True)
        (tmp_path / "rust" / "queries" / "highlights.scm").write_text("(identifier) @variable\n", encoding="utf-8")

        assert runtime_env["_include_str"]("rust/queries/highlights.scm") == "(identifier) @variable\n"

    def test_missing_file_raises(self, runtime_env):
        """A missing file surfaces as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            runtime_env["_include_str"]("rust/grammar.js")


class TestExtern:
    """Tests for the foreign entry point wrapper."""

    def test_resolves_symbol_lazily(self, runtime_env):
        """The library is only touched on the first call."""
        class FakeFunc:
            calls = 0

            def __call__(self):
                FakeFunc.calls += 1
                return 0

        class FakeLibrary:
            tree_sitter_rust = FakeFunc()

        runtime_env["_load_library"] = lambda: FakeLibrary
        extern = runtime_env["_Extern"]("tree_sitter_rust")
        assert FakeFunc.calls == 0

        assert extern() == 0
        assert FakeLibrary.tree_sitter_rust.restype is not None
        assert repr(extern) == "_Extern('tree_sitter_rust')"

    def test_null_language_pointer_raises(self, runtime_env):
        """A NULL entry point result raises with the symbol name."""
        def null_extern():
            return None
        null_extern.symbol = "tree_sitter_broken"

        with pytest.raises(RuntimeError, match="tree_sitter_broken"):
            runtime_env["_language"](null_extern)


class TestHighlightConfiguration:
    """Tests for HighlightConfiguration.new with a stand-in Query."""

    def test_pattern_indices(self, runtime_env):
        """Section indices count injection and locals patterns."""
        runtime_env["Query"] = FakeQuery
        config = runtime_env["HighlightConfiguration"].new(
            "lang",
            "(identifier) @variable\n(string) @string\n",
            "(comment) @injection.content\n",
            "(block) @local.scope\n",
        )

        # one injection pattern, then one locals pattern, then two highlights
        assert config.locals_pattern_index == 1
        assert config.highlights_pattern_index == 2
        assert config.query.pattern_count == 4
        assert config.query.source.startswith("(comment)")
        assert config.capture_names == ("keyword", "injection.content")
        assert config.language == "lang"

    def test_empty_optional_queries(self, runtime_env):
        """Empty injections and locals give zero indices."""
        runtime_env["Query"] = FakeQuery
        config = runtime_env["HighlightConfiguration"].new("lang", "(identifier) @variable\n", "", "")

        assert config.locals_pattern_index == 0
        assert config.highlights_pattern_index == 0
        assert config.injections_query == ""
        assert config.locals_query == ""

    def test_query_errors_propagate(self, runtime_env):
        """Malformed query text raises from new()."""
        runtime_env["Query"] = FakeQuery
        with pytest.raises(SyntaxError):
            runtime_env["HighlightConfiguration"].new("lang", "(((", "", "")

    def test_is_frozen(self, runtime_env):
        """A configuration cannot be modified after creation."""
        runtime_env["Query"] = FakeQuery
        config = runtime_env["HighlightConfiguration"].new("lang", "", "", "")
        with pytest.raises(Exception):
            config.highlights_query = "changed"


@pytest.fixture
def python_language_ptr():
    """Raw TSLanguage pointer of the packaged Python grammar."""
    tree_sitter_python = pytest.importorskip("tree_sitter_python")
    get_pointer = ctypes.pythonapi.PyCapsule_GetPointer
    get_pointer.argtypes = [ctypes.py_object, ctypes.c_char_p]
    get_pointer.restype = ctypes.c_void_p
    return get_pointer(tree_sitter_python.language(), b"tree_sitter.Language")


class TestWithTreeSitter:
    """Tests against the real tree_sitter bindings and a packaged grammar."""

    def test_language_wraps_pointer(self, runtime_env, python_language_ptr):
        """_language turns an entry point result into a working Language."""
        from tree_sitter import Language, Parser

        def extern():
            return python_language_ptr
        extern.symbol = "tree_sitter_python"

        language = runtime_env["_language"](extern)

        assert isinstance(language, Language)
        tree = Parser(language).parse(b"x = 1\n")
        assert tree.root_node.type == "module"

    def test_pattern_indices_with_real_query(self, runtime_env, python_language_ptr):
        """Section indices and capture names match a real compiled query."""
        def extern():
            return python_language_ptr
        extern.symbol = "tree_sitter_python"

        language = runtime_env["_language"](extern)
        config = runtime_env["HighlightConfiguration"].new(
            language,
            "(identifier) @variable\n(string) @string\n",
            "(comment) @injection.content\n",
            "(block) @local.scope\n",
        )

        assert config.query.pattern_count == 4
        assert config.locals_pattern_index == 1
        assert config.highlights_pattern_index == 2
        assert config.capture_names == ("injection.content", "local.scope", "variable", "string")

    def test_invalid_node_type_is_rejected(self, runtime_env, python_language_ptr):
        """Unknown node types in a query raise from tree_sitter."""
        def extern():
            return python_language_ptr
        extern.symbol = "tree_sitter_python"

        language = runtime_env["_language"](extern)
        with pytest.raises(Exception):
            runtime_env["HighlightConfiguration"].new(language, "(no_such_node) @x\n", "", "")
