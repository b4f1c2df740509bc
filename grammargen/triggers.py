"""
Rebuild triggers.

Every consumed input is recorded so the surrounding build only re-runs the
generator when one of them changes. The list is persisted as a Make-style
depfile next to the generated output. Settings that shape the output without
being files (the feature set, the library name) go into a stamp comment on
the first line of the depfile.
"""
import os
from pathlib import Path

from .log import debug_log

STAMP_PREFIX = "# bindgen: "


def build_stamp(features, library_name):
    """One-line summary of the non-file settings that shape the output."""
    return f"features={','.join(sorted(features))} library={library_name}"


class RebuildTriggers:
    def __init__(self, stamp=""):
        self.stamp = stamp
        self._paths = []

    def add(self, path):
        path = Path(path)
        if path not in self._paths:
            self._paths.append(path)
            debug_log(f"rerun-if-changed={path}")

    @property
    def paths(self):
        return list(self._paths)

    def __len__(self):
        return len(self._paths)

    def depfile_text(self, target):
        header = f"{STAMP_PREFIX}{self.stamp}\n" if self.stamp else ""
        deps = " \\\n  ".join(_escape(p) for p in self._paths)
        if deps:
            return f"{header}{_escape(target)}: \\\n  {deps}\n"
        return f"{header}{_escape(target)}:\n"


def _escape(path):
    return str(path).replace("\\", "/").replace(" ", "\\ ")


def _read_lines(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read().split("\n")


def read_stamp(path):
    """The stamp recorded in a depfile, or '' when it has none."""
    for line in _read_lines(path):
        if line.startswith(STAMP_PREFIX):
            return line[len(STAMP_PREFIX):]
    return ""


def read_depfile(path):
    """Return the dependency paths listed in a depfile written by depfile_text."""
    text = "\n".join(line for line in _read_lines(path) if not line.startswith("#"))
    text = text.replace("\\\n", " ")
    _, _, deps = text.partition(": ")
    result = []
    current = ""
    for token in deps.split(" "):
        if token.endswith("\\"):
            current += token[:-1] + " "
            continue
        current += token
        current = current.strip()
        if current:
            result.append(Path(current))
        current = ""
    return result


def is_up_to_date(output, depfile, stamp=""):
    """
    True when the output exists, was generated with the same stamp, and no
    recorded dependency changed since.

    A missing output, missing depfile, or vanished dependency forces a rebuild.
    """
    output, depfile = Path(output), Path(depfile)
    if not output.is_file() or not depfile.is_file():
        return False
    recorded = read_stamp(depfile)
    if recorded != stamp:
        debug_log(f"Settings changed since last generation ({recorded!r} -> {stamp!r})")
        return False
    built_at = os.path.getmtime(output)
    for dep in read_depfile(depfile):
        if not dep.exists() or os.path.getmtime(dep) > built_at:
            debug_log(f"{dep} changed since last generation")
            return False
    return True
