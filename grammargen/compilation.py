"""
Native compilation of grammar sources.

Sources from every grammar package are collected into three aggregate jobs
(parser units, C scanner units, C++ scanner units). Each job is compiled once
into a static archive, then all objects are linked into one shared library
that the generated bindings load with ctypes.
"""
import os
import tempfile
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

import setuptools  # noqa: F401  (installs its distutils in place of the stdlib one)
from distutils.ccompiler import new_compiler
from distutils.errors import CCompilerError, DistutilsExecError, DistutilsPlatformError
from distutils.sysconfig import customize_compiler

from .errors import GrammarBuildError
from .log import debug_log
from .package import PARSER_SOURCE, SCANNER_C_SOURCE, SCANNER_CPP_SOURCE

PARSER_JOB = "parser_c"
SCANNER_C_JOB = "scanner_c"
SCANNER_CPP_JOB = "scanner_cpp"

COMMON_WARNING_FLAGS = ("-Wno-unused-parameter", "-Wno-unused-but-set-variable")
PARSER_WARNING_FLAGS = COMMON_WARNING_FLAGS + ("-Wno-trigraphs",)


class CompilationJob:
    """
    One aggregate compilation unit.

    Sources and include directories are append-only while grammars are being
    scanned; the job is compiled exactly once afterwards.
    """

    def __init__(self, name, cpp=False):
        self.name = name
        self.cpp = cpp
        self.sources: List[Path] = []
        self.include_dirs: List[Path] = []
        self.candidate_flags: List[str] = []

    def include(self, path):
        path = Path(path)
        if path not in self.include_dirs:
            self.include_dirs.append(path)
        return self

    def file(self, path):
        self.sources.append(Path(path))
        return self

    def flag_if_supported(self, flag):
        """Request a flag; it is dropped at compile time if the toolchain rejects it."""
        if flag not in self.candidate_flags:
            self.candidate_flags.append(flag)
        return self

    def __repr__(self):
        return f"CompilationJob({self.name!r}, sources={len(self.sources)})"


class CompilationJobs(NamedTuple):
    parser: CompilationJob
    scanner_c: CompilationJob
    scanner_cpp: CompilationJob


class CompiledArtifacts(NamedTuple):
    archives: Dict[str, Path]
    shared_library: Optional[Path]


def new_jobs(project_root):
    """Create the three empty jobs with their shared configuration."""
    parser = CompilationJob(PARSER_JOB).include(project_root)
    for flag in PARSER_WARNING_FLAGS:
        parser.flag_if_supported(flag)

    scanner_c = CompilationJob(SCANNER_C_JOB).include(project_root)
    scanner_cpp = CompilationJob(SCANNER_CPP_JOB, cpp=True).include(project_root)
    for flag in COMMON_WARNING_FLAGS:
        scanner_c.flag_if_supported(flag)
        scanner_cpp.flag_if_supported(flag)

    return CompilationJobs(parser, scanner_c, scanner_cpp)


def collect_sources(packages, jobs, triggers=None):
    """Add every present source file of every package to its job."""
    for package in packages:
        probes = (
            (jobs.parser, package.has_parser, PARSER_SOURCE),
            (jobs.scanner_c, package.has_scanner_c, SCANNER_C_SOURCE),
            (jobs.scanner_cpp, package.has_scanner_cpp, SCANNER_CPP_SOURCE),
        )
        for job, present, relative in probes:
            if not present:
                continue
            path = package.source(relative)
            job.include(package.src_dir)
            job.file(path)
            if triggers is not None:
                triggers.add(path)
    return jobs


class DistutilsToolchain:
    """C/C++ toolchain backed by the setuptools distutils CCompiler."""

    def __init__(self, build_dir):
        self.build_dir = Path(build_dir)
        try:
            self.compiler = new_compiler()
            customize_compiler(self.compiler)
        except DistutilsPlatformError as e:
            raise GrammarBuildError(
                "No usable C compiler found",
                context=str(e),
                suggestion="Install a C/C++ toolchain (gcc, clang or MSVC)",
            ) from e
        self._flag_cache = {}

    def supported_flags(self, flags, cpp=False):
        """Return the subset of flags the compiler accepts, probing each once."""
        return [flag for flag in flags if self._supports(flag, cpp)]

    def _supports(self, flag, cpp):
        key = (flag, cpp)
        if key not in self._flag_cache:
            self._flag_cache[key] = self._probe(flag, cpp)
        return self._flag_cache[key]

    def _probe(self, flag, cpp):
        extra = [flag]
        if self.compiler.compiler_type != "msvc":
            extra.append("-Werror")
        with tempfile.TemporaryDirectory(prefix="flag-probe-") as tmp:
            source = os.path.join(tmp, "probe.cc" if cpp else "probe.c")
            with open(source, "w") as f:
                f.write("int main(void) { return 0; }\n")
            try:
                self.compiler.compile([source], output_dir=tmp, extra_postargs=extra)
            except (CCompilerError, DistutilsExecError):
                debug_log(f"Compiler rejected {flag}, dropping it")
                return False
        return True

    def compile(self, job, flags):
        obj_dir = self.build_dir / "obj" / job.name
        return self.compiler.compile(
            [str(s) for s in job.sources],
            output_dir=str(obj_dir),
            include_dirs=[str(d) for d in job.include_dirs],
            extra_postargs=list(flags),
        )

    def archive(self, objects, name, output_dir):
        self.compiler.create_static_lib(objects, name, output_dir=str(output_dir))
        return Path(self.compiler.library_filename(name, output_dir=str(output_dir)))

    def link_shared(self, objects, name, output_dir, cpp=False):
        filename = self.compiler.library_filename(name, lib_type="shared", output_dir=str(output_dir))
        self.compiler.link_shared_object(objects, filename, target_lang="c++" if cpp else "c")
        return Path(filename)


def compile_jobs(jobs, toolchain, out_dir, library_name):
    """
    Compile each job into its archive and link all objects into one library.

    A job with no sources still produces an (empty) archive. The shared
    library is only linked when at least one object exists.

    Raises:
        GrammarBuildError: On any compile, archive or link failure.
    """
    out_dir = Path(out_dir)
    archives = {}
    all_objects = []
    for job in jobs:
        flags = toolchain.supported_flags(job.candidate_flags, cpp=job.cpp)
        debug_log(f"Compiling {job.name}: {len(job.sources)} file(s), flags {flags}")
        try:
            objects = toolchain.compile(job, flags) if job.sources else []
            archives[job.name] = toolchain.archive(objects, job.name, out_dir)
        except (CCompilerError, DistutilsExecError) as e:
            raise GrammarBuildError(
                f"Native compilation of '{job.name}' failed",
                context=str(e),
                suggestion="A vendored grammar source does not compile; fix or remove that grammar",
            ) from e
        all_objects.extend(objects)

    shared_library = None
    if all_objects:
        try:
            shared_library = toolchain.link_shared(
                all_objects, library_name, out_dir, cpp=bool(jobs.scanner_cpp.sources)
            )
        except (CCompilerError, DistutilsExecError) as e:
            raise GrammarBuildError(
                f"Linking '{library_name}' failed",
                context=str(e),
            ) from e
    return CompiledArtifacts(archives, shared_library)
