import argparse
import sys

from pydantic import ValidationError

from generator import generate, generate_if_changed
from grammargen.config import GeneratorConfig, parse_features
from grammargen.errors import GrammarBuildError
from grammargen.log import log, set_verbose
from grammargen.registry import load_registry
from grammargen.scanner import scan_grammars

FLAG_COLUMNS = (
    ("parser", "has_parser"),
    ("scanner.c", "has_scanner_c"),
    ("scanner.cc", "has_scanner_cpp"),
    ("highlights", "has_highlights"),
    ("injections", "has_injections"),
    ("locals", "has_locals"),
)


def load_config(args):
    features = None
    if getattr(args, "features", None) is not None:
        features = parse_features(args.features)
    if getattr(args, "no_highlight", False):
        features = (features if features is not None else frozenset({"highlight"})) - {"highlight"}
    try:
        return GeneratorConfig.from_env(
            project_root=args.root,
            grammars_dir=args.grammars,
            out_dir=getattr(args, "out_dir", None),
            features=features,
        )
    except ValidationError as e:
        print(f"Error: Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(2)


def cmd_build(args):
    config = load_config(args)
    try:
        if args.if_changed:
            result = generate_if_changed(config)
        else:
            result = generate(config)
    except GrammarBuildError as e:
        print(f"Error: Generation Failed:\n{e}", file=sys.stderr)
        sys.exit(1)

    if result is None:
        log(f"{config.output_path} is up to date, nothing to do")
        return

    log(f"Generated bindings for {len(result.packages)} grammar(s)")
    for name, archive in result.artifacts.archives.items():
        log(f"   - {archive.name} ({name})")
    if result.artifacts.shared_library:
        log(f"   - {result.artifacts.shared_library.name} (shared library)")
    log(f"📁 Output: {result.output_path}")


def cmd_scan(args):
    config = load_config(args)
    try:
        packages = scan_grammars(config.grammars_dir)
    except GrammarBuildError as e:
        print(f"Error: Scan Failed:\n{e}", file=sys.stderr)
        sys.exit(1)

    for package in packages:
        present = [label for label, attr in FLAG_COLUMNS if getattr(package, attr)]
        print(f"{package.name}\t{package.module_name}\t{', '.join(present) or '-'}")


def cmd_registry(args):
    config = load_config(args)
    try:
        registry = load_registry(config.registry_path)
    except GrammarBuildError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for name, url in sorted(registry.items()):
        print(f"{name}\t{url}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Tree-sitter grammar binding generator")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    parser.add_argument("--root", help="Project root (default: current directory)")
    parser.add_argument("--grammars", help="Grammars directory (default: <root>/grammars)")
    subparsers = parser.add_subparsers(dest="command")

    build = subparsers.add_parser("build", help="Compile grammars and generate bindings")
    build.add_argument("--out-dir", help="Output directory (default: $OUT_DIR or <root>/__bindgen_build__)")
    build.add_argument("--features", help="Comma-separated features to enable (default: highlight)")
    build.add_argument("--no-highlight", action="store_true", help="Do not emit highlight configuration constructors")
    build.add_argument("--if-changed", action="store_true", help="Skip generation when no grammar source changed")

    subparsers.add_parser("scan", help="List discovered grammar packages")
    subparsers.add_parser("registry", help="Print the grammar name -> URL registry")

    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    if args.command == "build": cmd_build(args)
    elif args.command == "scan": cmd_scan(args)
    elif args.command == "registry": cmd_registry(args)
    else: parser.print_help()


if __name__ == "__main__":
    main()
