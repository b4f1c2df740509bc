"""
Checked-out revision lookup for grammar submodules.

Purely informational: a missing ref file degrades the generated docstring,
it never fails the build.
"""
from pathlib import Path

from .log import debug_log

REF_BRANCHES = ("master", "main")


def ref_heads_dir(git_dir, name):
    return Path(git_dir) / "modules" / "grammars" / name / "refs" / "heads"


def ref_watch_paths(git_dir, name):
    """
    Paths whose change can alter the revision resolved for `name`.

    The existing ref files, plus the closest existing directory on the way
    from refs/heads up to the git directory, so a ref that appears later is
    noticed too.
    """
    git_dir = Path(git_dir)
    heads = ref_heads_dir(git_dir, name)
    paths = [heads / branch for branch in REF_BRANCHES if (heads / branch).is_file()]
    directory = heads
    while True:
        if directory.is_dir():
            paths.append(directory)
            break
        if directory == git_dir:
            break
        directory = directory.parent
    return paths


def resolve_revision(git_dir, name):
    """
    Return the commit id checked out for grammar `name`, or None.

    Looks at refs/heads/master, then refs/heads/main, under the submodule's
    git metadata directory and returns the trimmed first line.
    """
    heads = ref_heads_dir(git_dir, name)
    for branch in REF_BRANCHES:
        ref_path = heads / branch
        if not ref_path.is_file():
            continue
        try:
            with open(ref_path, "r", encoding="utf-8") as f:
                first_line = f.readline().strip()
        except (OSError, UnicodeDecodeError) as e:
            debug_log(f"Could not read {ref_path}: {e}")
            return None
        return first_line or None
    return None
