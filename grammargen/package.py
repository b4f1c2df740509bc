"""
Grammar package model.

A grammar package is one subdirectory of the grammars root. Its directory name
is its identity; everything else is derived from the files it contains.
"""
import keyword
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

PARSER_SOURCE = "src/parser.c"
SCANNER_C_SOURCE = "src/scanner.c"
SCANNER_CPP_SOURCE = "src/scanner.cc"
GRAMMAR_FILE = "grammar.js"
NODE_TYPES_FILE = "src/node-types.json"
HIGHLIGHTS_QUERY_FILE = "queries/highlights.scm"
INJECTIONS_QUERY_FILE = "queries/injections.scm"
LOCALS_QUERY_FILE = "queries/locals.scm"

_NON_IDENTIFIER = re.compile(r"\W", re.ASCII)


def symbol_suffix(dir_name):
    """Directory name with every non-identifier character replaced by '_'."""
    return _NON_IDENTIFIER.sub("_", dir_name)


def module_name_for(dir_name):
    """
    Derive a Python identifier from a grammar directory name.

    'tiny-lang' -> 'tiny_lang', '1c' -> '_1c', 'lambda' -> 'lambda_'
    """
    name = symbol_suffix(dir_name)
    if not name or name[0].isdigit():
        name = "_" + name
    if keyword.iskeyword(name):
        name = name + "_"
    return name


class GrammarPackage(BaseModel):
    """One discovered grammar package and what it provides."""
    name: str
    path: Path
    module_name: str
    symbol: str
    has_parser: bool = False
    has_scanner_c: bool = False
    has_scanner_cpp: bool = False
    has_highlights: bool = False
    has_injections: bool = False
    has_locals: bool = False
    url: Optional[str] = None
    revision: Optional[str] = None

    @classmethod
    def from_directory(cls, path):
        path = Path(path)
        name = path.name
        return cls(
            name=name,
            path=path,
            module_name=module_name_for(name),
            symbol=f"tree_sitter_{symbol_suffix(name)}",
            has_parser=(path / PARSER_SOURCE).is_file(),
            has_scanner_c=(path / SCANNER_C_SOURCE).is_file(),
            has_scanner_cpp=(path / SCANNER_CPP_SOURCE).is_file(),
            has_highlights=(path / HIGHLIGHTS_QUERY_FILE).is_file(),
            has_injections=(path / INJECTIONS_QUERY_FILE).is_file(),
            has_locals=(path / LOCALS_QUERY_FILE).is_file(),
        )

    @property
    def src_dir(self):
        return self.path / "src"

    def source(self, relative):
        return self.path / relative

    def watch_paths(self):
        """
        Existing directories whose entries decide what gets emitted for this
        package: the package itself, src/ and queries/.

        Adding or removing a query or scanner file changes the mtime of the
        directory holding it, even when the file's own path was never seen.
        """
        candidates = (self.path, self.src_dir, self.path / "queries")
        return [p for p in candidates if p.is_dir()]

    def relative(self, relative):
        """Path of a package file relative to the grammars root, '/'-separated."""
        return f"{self.name}/{relative}"
