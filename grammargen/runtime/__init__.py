# Generated-binding runtime
"""
Runtime modules that get injected into the generated bindings file.

These are real Python files that provide IDE support and testability,
but are concatenated into a single preamble string at generation time so
the generated file does not import grammargen.
"""

import os

HIGHLIGHT_FEATURE = "highlight"


def get_preamble(features=()):
    """
    Read and concatenate the runtime modules into a single preamble string.

    Top-level imports of every module are hoisted and de-duplicated. The
    highlight runtime is only included when the 'highlight' feature is on,
    so without it the generated file never imports pydantic.
    """
    runtime_dir = os.path.dirname(__file__)

    # Order matters - dependencies must come first
    modules = [
        'library.py',          # _Extern, _language
        'include.py',          # _include_str
    ]
    if HIGHLIGHT_FEATURE in features:
        modules.append('highlight.py')  # HighlightConfiguration

    imports = []
    bodies = []
    for module in modules:
        path = os.path.join(runtime_dir, module)
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
        module_imports, body = _split_imports(content)
        for line in module_imports:
            if line not in imports:
                imports.append(line)
        bodies.append(body.strip('\n'))

    plain = [i for i in imports if i.startswith('import ')]
    from_ = [i for i in imports if i.startswith('from ')]
    header = '\n'.join(plain) + '\n\n' + '\n'.join(from_)
    return header + '\n\n\n' + '\n\n\n'.join(bodies) + '\n'


def _split_imports(content):
    """Separate top-level single-line imports from the rest of a module."""
    imports = []
    body = []
    for line in content.split('\n'):
        if line.startswith('import ') or line.startswith('from '):
            imports.append(line)
        else:
            body.append(line)
    return imports, '\n'.join(body)
