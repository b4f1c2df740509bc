import os
from pathlib import Path
from typing import List, NamedTuple, Optional

from grammargen.compilation import (
    CompiledArtifacts,
    DistutilsToolchain,
    collect_sources,
    compile_jobs,
    new_jobs,
)
from grammargen.emitter import emit_bindings
from grammargen.errors import GrammarBuildError, describe_os_error
from grammargen.log import debug_log, warn
from grammargen.package import GrammarPackage
from grammargen.refs import ref_watch_paths, resolve_revision
from grammargen.registry import load_registry
from grammargen.scanner import check_unique_module_names, scan_grammars
from grammargen.triggers import RebuildTriggers, build_stamp, is_up_to_date


class GenerationResult(NamedTuple):
    packages: List[GrammarPackage]
    output_path: Path
    depfile_path: Path
    artifacts: CompiledArtifacts


def resolve_metadata(packages, registry, git_dir, triggers=None):
    """Attach upstream URL and checked-out revision to every package."""
    for package in packages:
        if triggers is not None:
            for path in ref_watch_paths(git_dir, package.name):
                triggers.add(path)
        package.url = registry.url_for(package.name)
        if package.url is None:
            debug_log(f"No registry entry for '{package.name}'")
        package.revision = resolve_revision(git_dir, package.name)
        if package.revision is None:
            warn(f"Unable to determine repo ref for '{package.name}'")
    return packages


def config_stamp(config):
    return build_stamp(config.features, config.library_name)


def write_once(path, text):
    """
    Write text to path in a single step.

    The content goes to a temporary file in the same directory first and is
    then renamed over the target, so readers never see a partial file.
    """
    path = Path(path)
    # created with umask-derived permissions
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        try:
            with open(tmp, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            os.replace(tmp, path)
        except BaseException:
            if tmp.exists():
                tmp.unlink()
            raise
    except OSError as e:
        raise GrammarBuildError(
            "Unable to write generated output",
            path=path,
            context=describe_os_error(e),
        ) from e


def generate(config, toolchain=None):
    """
    Run one full generation pass: scan, compile, resolve metadata, emit, write.

    Every failure before the final write raises GrammarBuildError and leaves
    any previous output untouched.
    """
    # STEP 1: SCAN
    packages = scan_grammars(config.grammars_dir)
    check_unique_module_names(packages)
    debug_log(f"Found {len(packages)} grammar package(s) in {config.grammars_dir}")

    triggers = RebuildTriggers(stamp=config_stamp(config))
    triggers.add(config.grammars_dir)
    for package in packages:
        for path in package.watch_paths():
            triggers.add(path)

    # STEP 2: COMPILE
    jobs = collect_sources(packages, new_jobs(config.project_root), triggers)
    try:
        config.out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise GrammarBuildError(
            "Unable to create output directory",
            path=config.out_dir,
            context=describe_os_error(e),
        ) from e
    if toolchain is None:
        toolchain = DistutilsToolchain(config.out_dir)
    artifacts = compile_jobs(jobs, toolchain, config.out_dir, config.library_name)

    # STEP 3: METADATA
    registry = load_registry(config.registry_path)
    triggers.add(config.registry_path)
    resolve_metadata(packages, registry, config.git_dir, triggers)

    # STEP 4: EMIT
    text = emit_bindings(
        packages,
        grammars_dir=config.grammars_dir,
        library_path=artifacts.shared_library,
        features=config.features,
    )

    # STEP 5: WRITE
    write_once(config.output_path, text)
    write_once(config.depfile_path, triggers.depfile_text(config.output_path))

    return GenerationResult(packages, config.output_path, config.depfile_path, artifacts)


def generate_if_changed(config, toolchain=None) -> Optional[GenerationResult]:
    """Like generate(), but returns None without doing anything if up to date."""
    if is_up_to_date(config.output_path, config.depfile_path, config_stamp(config)):
        debug_log(f"{config.output_path} is up to date")
        return None
    return generate(config, toolchain)
