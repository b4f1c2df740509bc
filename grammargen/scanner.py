"""
Grammar directory scanner.

Every immediate subdirectory of the grammars root is a candidate grammar
package. Files at the root level are ignored.
"""
import os

from .errors import GrammarBuildError, describe_os_error
from .package import GrammarPackage


def scan_grammars(grammars_dir):
    """
    List the grammar packages under grammars_dir, sorted by directory name.

    Raises:
        GrammarBuildError: If the root or any entry cannot be listed or stat-ed.
    """
    packages = []
    try:
        with os.scandir(grammars_dir) as entries:
            for entry in entries:
                if not entry.is_dir():
                    continue
                packages.append(GrammarPackage.from_directory(entry.path))
    except OSError as e:
        raise GrammarBuildError(
            "Unable to scan grammars directory",
            path=getattr(e, "filename", None) or grammars_dir,
            context=describe_os_error(e),
            suggestion="Check that the grammars directory exists and is readable",
        ) from e

    packages.sort(key=lambda p: p.name)
    return packages


def check_unique_module_names(packages):
    """Raise if two directory names normalize to the same module name."""
    seen = {}
    for package in packages:
        other = seen.get(package.module_name)
        if other is not None:
            raise GrammarBuildError(
                f"Grammar directories '{other}' and '{package.name}' both map "
                f"to module '{package.module_name}'",
                path=package.path,
                suggestion="Rename one of the grammar directories",
            )
        seen[package.module_name] = package.name
