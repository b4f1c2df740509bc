# Grammar binding generator - core components
"""
Core modules for the grammar binding generator:
- errors: GrammarBuildError
- package: GrammarPackage model and module-name derivation
- scanner: grammar directory discovery
- compilation: aggregate native compilation jobs
- registry: .gitmodules parsing (lark)
- refs: checked-out revision lookup
- emitter: generated bindings text
- runtime: preamble injected into the generated file
"""

from .errors import GrammarBuildError
from .package import GrammarPackage
from .scanner import scan_grammars
from .registry import ModuleRegistry, load_registry, parse_registry
from .refs import resolve_revision
from .emitter import BindingEmitter, emit_bindings
from .config import GeneratorConfig

__all__ = [
    'GrammarBuildError',
    'GrammarPackage',
    'scan_grammars',
    'ModuleRegistry',
    'load_registry',
    'parse_registry',
    'resolve_revision',
    'BindingEmitter',
    'emit_bindings',
    'GeneratorConfig',
]
