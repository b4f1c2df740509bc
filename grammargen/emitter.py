"""
Binding emitter.

Turns scanned grammar packages into the text of one Python module. Each
package becomes a class used as a namespace:

    class tiny_lang:
        _tree_sitter_tiny_lang = _Extern("tree_sitter_tiny_lang")

        @staticmethod
        def language() -> Language: ...

        GRAMMAR: str = _include_str("tiny-lang/grammar.js")
        NODE_TYPES: str = _include_str("tiny-lang/src/node-types.json")
        HIGHLIGHTS_QUERY: str = ...   # only when the query file exists

        @staticmethod
        def config() -> "HighlightConfiguration": ...   # 'highlight' feature
"""
import ast
import builtins

from .errors import GrammarBuildError
from .package import (
    GRAMMAR_FILE,
    HIGHLIGHTS_QUERY_FILE,
    INJECTIONS_QUERY_FILE,
    LOCALS_QUERY_FILE,
    NODE_TYPES_FILE,
)
from .runtime import HIGHLIGHT_FEATURE, get_preamble

UNRESOLVED_REF_MARKER = "ERROR: unable to determine repo ref"

# Module-level names the emitted file defines next to the preamble
EMITTED_GLOBALS = frozenset({"_GRAMMARS_DIR", "_LIBRARY_PATH", "__all__"})

FILE_HEADER = '''"""
Tree-sitter grammar bindings.

Generated by grammar-bindgen from the grammars directory. Do not edit.
"""
'''

INDENT = "    "


def _docstring_safe(text):
    """Escape text so it can sit inside a triple-quoted docstring."""
    return str(text).replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


def reserved_names(features=()):
    """
    Names a grammar namespace must not take: everything the runtime preamble
    binds at module level, the emitted globals, and the builtins.
    """
    names = set(dir(builtins)) | EMITTED_GLOBALS
    for node in ast.parse(get_preamble(features)).body:
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            names.update((alias.asname or alias.name).split(".")[0] for alias in node.names)
        elif isinstance(node, (ast.FunctionDef, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            names.update(t.id for t in node.targets if isinstance(t, ast.Name))
    return frozenset(names)


def _query_constants(package):
    """(constant name, relative file) for every query file the package has."""
    queries = (
        ("HIGHLIGHTS_QUERY", package.has_highlights, HIGHLIGHTS_QUERY_FILE),
        ("INJECTIONS_QUERY", package.has_injections, INJECTIONS_QUERY_FILE),
        ("LOCALS_QUERY", package.has_locals, LOCALS_QUERY_FILE),
    )
    return [(name, relative) for name, present, relative in queries if present]


class BindingEmitter:
    """Accumulates the generated module text, one package at a time."""

    def __init__(self, grammars_dir, library_path, features=()):
        self.grammars_dir = str(grammars_dir)
        self.library_path = str(library_path) if library_path else None
        self.features = frozenset(features)
        self._modules = []
        self._names = []
        self.reserved = reserved_names(self.features)

    @property
    def highlight(self):
        return HIGHLIGHT_FEATURE in self.features

    def add(self, package):
        if package.module_name in self.reserved:
            raise GrammarBuildError(
                f"Grammar module name '{package.module_name}' shadows a name used by the generated runtime",
                path=package.path,
                suggestion="Rename the grammar directory",
            )
        self._modules.append(self.emit_module(package))
        self._names.append(package.module_name)

    def docstring(self, package):
        name = _docstring_safe(package.name)
        lines = []
        if package.url:
            url = _docstring_safe(package.url)
            lines.append(f"Binds for the `{name} <{url}>`_ tree-sitter grammar.")
        else:
            lines.append(f"Binds for the ``{name}`` tree-sitter grammar.")
        lines.append("")
        if package.revision:
            lines.append("GENERATED INFO")
            lines.append("")
            if package.url:
                lines.append(f"REPO: <{_docstring_safe(package.url)}>")
            lines.append(f"REF: {_docstring_safe(package.revision)}")
        else:
            lines.append(UNRESOLVED_REF_MARKER)

        body = "\n".join(f"{INDENT}{line}" if line else "" for line in lines[1:])
        return f'{INDENT}"""{lines[0]}\n{body}\n{INDENT}"""'

    def emit_module(self, package):
        """Return the class text for one grammar package."""
        module = package.module_name
        extern = f"_{package.symbol}"
        queries = _query_constants(package)

        out = [f"class {module}:", self.docstring(package), ""]

        out.append(f"{INDENT}{extern} = _Extern({package.symbol!r})")
        out.append("")
        out.append(f"{INDENT}@staticmethod")
        out.append(f"{INDENT}def language() -> Language:")
        out.append(f"{INDENT * 2}return _language({module}.{extern})")
        out.append("")

        out.append(f"{INDENT}GRAMMAR: str = _include_str({package.relative(GRAMMAR_FILE)!r})")
        out.append(f"{INDENT}NODE_TYPES: str = _include_str({package.relative(NODE_TYPES_FILE)!r})")
        for name, relative in queries:
            out.append(f"{INDENT}{name}: str = _include_str({package.relative(relative)!r})")

        if self.highlight:
            declared = {name for name, _ in queries}

            def query_arg(name):
                return f"{module}.{name}" if name in declared else '""'

            out.append("")
            out.append(f"{INDENT}@staticmethod")
            out.append(f'{INDENT}def config() -> "HighlightConfiguration":')
            out.append(f"{INDENT * 2}return HighlightConfiguration.new(")
            out.append(f"{INDENT * 3}{module}.language(),")
            out.append(f"{INDENT * 3}{query_arg('HIGHLIGHTS_QUERY')},")
            out.append(f"{INDENT * 3}{query_arg('INJECTIONS_QUERY')},")
            out.append(f"{INDENT * 3}{query_arg('LOCALS_QUERY')},")
            out.append(f"{INDENT * 2})")

        return "\n".join(out) + "\n"

    def render(self):
        """The complete module text: header, runtime preamble, constants, namespaces."""
        parts = [FILE_HEADER, get_preamble(self.features)]
        parts.append(
            f"_GRAMMARS_DIR = {self.grammars_dir!r}\n"
            f"_LIBRARY_PATH = {self.library_path!r}\n"
        )
        parts.extend(self._modules)
        exports = "".join(f"{INDENT}{name!r},\n" for name in self._names)
        parts.append(f"__all__ = [\n{exports}]\n")
        return "\n\n".join(parts)


def emit_bindings(packages, grammars_dir, library_path, features=()):
    """Render the bindings module for packages in the given order."""
    emitter = BindingEmitter(grammars_dir, library_path, features)
    for package in packages:
        emitter.add(package)
    return emitter.render()
