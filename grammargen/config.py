"""
Generator configuration.

Defaults follow the repository layout: grammars under <root>/grammars,
submodules registered in <root>/.gitmodules, git metadata in <root>/.git.
The surrounding build may point the output somewhere else with OUT_DIR.
"""
import os
from pathlib import Path
from typing import FrozenSet, Optional

from pydantic import BaseModel, field_validator, model_validator

from .runtime import HIGHLIGHT_FEATURE

BUILD_DIR = "__bindgen_build__"
KNOWN_FEATURES = frozenset({HIGHLIGHT_FEATURE})
DEFAULT_FEATURES = frozenset({HIGHLIGHT_FEATURE})

OUT_DIR_ENV = "OUT_DIR"
FEATURES_ENV = "BINDGEN_FEATURES"


def parse_features(value):
    """'highlight, foo' -> {'highlight', 'foo'}; empty string -> empty set."""
    return frozenset(f.strip() for f in value.split(",") if f.strip())


class GeneratorConfig(BaseModel):
    """Where to read grammars from and where to write artifacts to."""
    project_root: Path
    grammars_dir: Optional[Path] = None
    registry_path: Optional[Path] = None
    git_dir: Optional[Path] = None
    out_dir: Optional[Path] = None
    output_name: str = "grammars.py"
    library_name: str = "grammars"
    features: FrozenSet[str] = DEFAULT_FEATURES

    @field_validator("features")
    @classmethod
    def check_features(cls, value):
        unknown = set(value) - KNOWN_FEATURES
        if unknown:
            raise ValueError(f"unknown feature(s): {', '.join(sorted(unknown))}")
        return frozenset(value)

    @model_validator(mode="after")
    def fill_defaults(self):
        root = self.project_root = self.project_root.absolute()
        defaults = {
            "grammars_dir": root / "grammars",
            "registry_path": root / ".gitmodules",
            "git_dir": root / ".git",
            "out_dir": root / BUILD_DIR,
        }
        for field, default in defaults.items():
            value = getattr(self, field)
            # relative paths are taken from the project root
            setattr(self, field, root / value if value is not None else default)
        return self

    @classmethod
    def from_env(cls, project_root=None, environ=None, **overrides):
        """
        Build a config from the environment, with explicit overrides winning.

        Overrides whose value is None are ignored so CLI arguments can be
        passed straight through.
        """
        environ = os.environ if environ is None else environ
        values = {"project_root": Path(project_root or os.getcwd())}
        if environ.get(OUT_DIR_ENV):
            values["out_dir"] = Path(environ[OUT_DIR_ENV])
        if FEATURES_ENV in environ:
            values["features"] = parse_features(environ[FEATURES_ENV])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def output_path(self):
        return self.out_dir / self.output_name

    @property
    def depfile_path(self):
        return self.output_path.with_suffix(".d")
