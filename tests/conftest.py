"""
Shared fixtures: on-disk grammar trees and a recording toolchain, so the
generator can be exercised without a C compiler.
"""
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import setuptools  # noqa: F401,E402
from distutils.errors import CompileError  # noqa: E402

from grammargen.config import GeneratorConfig  # noqa: E402

QUERY_FILES = {
    'highlights': 'highlights.scm',
    'injections': 'injections.scm',
    'locals': 'locals.scm',
}


def write(path, text=''):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def make_grammar(grammars_dir, name, parser=True, scanner_c=False, scanner_cpp=False,
                 queries=(), grammar=True, node_types=True):
    """Create a grammar package directory with the requested files."""
    root = Path(grammars_dir) / name
    root.mkdir(parents=True, exist_ok=True)
    if parser:
        write(root / 'src' / 'parser.c', f'/* parser for {name} */\n')
    if scanner_c:
        write(root / 'src' / 'scanner.c', '/* scanner */\n')
    if scanner_cpp:
        write(root / 'src' / 'scanner.cc', '// scanner\n')
    if grammar:
        write(root / 'grammar.js', f'module.exports = grammar({{ name: "{name}" }});\n')
    if node_types:
        write(root / 'src' / 'node-types.json', '[]\n')
    for query in queries:
        write(root / 'queries' / QUERY_FILES[query], f'; {query} for {name}\n')
    return root


def registry_text(entries):
    """.gitmodules text for {name: url}."""
    blocks = []
    for name, url in entries.items():
        blocks.append(
            f'[submodule "grammars/{name}"]\n'
            f'\tpath = grammars/{name}\n'
            f'\turl = {url}\n'
        )
    return '\n'.join(blocks)


def write_ref(project_root, name, branch, revision):
    return write(
        Path(project_root) / '.git' / 'modules' / 'grammars' / name / 'refs' / 'heads' / branch,
        revision + '\n',
    )


class FakeToolchain:
    """Records what would be compiled instead of invoking a compiler."""

    def __init__(self, rejected_flags=(), fail_job=None):
        self.rejected_flags = set(rejected_flags)
        self.fail_job = fail_job
        self.probes = []
        self.compiled = {}
        self.flags = {}
        self.includes = {}
        self.archives = {}
        self.linked = None

    def supported_flags(self, flags, cpp=False):
        self.probes.append((tuple(flags), cpp))
        return [f for f in flags if f not in self.rejected_flags]

    def compile(self, job, flags):
        if job.name == self.fail_job:
            raise CompileError(f"command 'gcc' failed with exit code 1 ({job.name})")
        self.compiled[job.name] = list(job.sources)
        self.flags[job.name] = list(flags)
        self.includes[job.name] = list(job.include_dirs)
        return [str(s.with_suffix('.o')) for s in job.sources]

    def archive(self, objects, name, output_dir):
        path = Path(output_dir) / f'lib{name}.a'
        path.write_bytes(b'!<arch>\n')
        self.archives[name] = list(objects)
        return path

    def link_shared(self, objects, name, output_dir, cpp=False):
        path = Path(output_dir) / f'lib{name}.so'
        path.write_bytes(b'')
        self.linked = (list(objects), cpp)
        return path


@pytest.fixture
def toolchain():
    return FakeToolchain()


@pytest.fixture
def project(tmp_path):
    """An empty project root with a grammars directory and an empty registry."""
    (tmp_path / 'grammars').mkdir()
    write(tmp_path / '.gitmodules', '')
    return tmp_path


@pytest.fixture
def config(project):
    return GeneratorConfig.from_env(project_root=project, environ={})
