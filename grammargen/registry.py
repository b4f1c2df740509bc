"""
Module registry (.gitmodules) reader.

Records are groups of three non-blank lines:

    [submodule "grammars/tree-sitter-rust"]
        path = grammars/tree-sitter-rust
        url = https://github.com/tree-sitter/tree-sitter-rust

The group header is ignored. The last segment of the path is matched against
grammar directory names. A trailing group of fewer than three lines is
dropped without error.
"""
from lark import Lark, Transformer

from .errors import GrammarBuildError, describe_os_error

registry_grammar = r"""
    start: (LINE | _NL)*

    LINE: /[^\r\n]+/
    _NL: /\r?\n|\r/
"""

_PATH_PREFIX = "path = "
_URL_PREFIX = "url = "


class ModuleRegistry:
    """Read-only mapping of grammar directory name -> upstream URL."""

    def __init__(self, modules=None):
        self._modules = dict(modules or {})

    def url_for(self, name):
        return self._modules.get(name)

    def items(self):
        return self._modules.items()

    def __contains__(self, name):
        return name in self._modules

    def __len__(self):
        return len(self._modules)

    def __repr__(self):
        return f"ModuleRegistry({self._modules!r})"


class RegistryTransformer(Transformer):
    """Groups trimmed non-blank lines into (header, path, url) records."""

    def start(self, items):
        lines = [line for line in items if line]
        modules = {}
        # zip over one iterator consumes three lines per record and stops
        # once fewer than three remain
        it = iter(lines)
        for _group, path, url in zip(it, it, it):
            path = path.removeprefix(_PATH_PREFIX)
            url = url.removeprefix(_URL_PREFIX)
            segments = [s for s in path.split("/") if s]
            if segments:
                modules[segments[-1]] = url
        return ModuleRegistry(modules)

    def LINE(self, token):
        return str(token).strip()


_parser = Lark(registry_grammar, parser="lalr")


def parse_registry(text):
    """Parse registry text into a ModuleRegistry."""
    tree = _parser.parse(text)
    return RegistryTransformer().transform(tree)


def load_registry(path):
    """
    Read and parse the registry file.

    Raises:
        GrammarBuildError: If the file is missing or unreadable.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            contents = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise GrammarBuildError(
            "Unable to read module registry",
            path=path,
            context=describe_os_error(e) if isinstance(e, OSError) else str(e),
            suggestion="Grammar packages must be registered as git submodules in .gitmodules",
        ) from e
    return parse_registry(contents)
