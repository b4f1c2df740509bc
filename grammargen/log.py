"""
Console logging for the generator. Everything goes to stderr so stdout stays
free for command output.
"""
import sys

# Global verbose flag
_VERBOSE = False


def set_verbose(value):
    """Set the global verbose flag."""
    global _VERBOSE
    _VERBOSE = value


def log(message):
    """Log informational messages to stderr."""
    print(f"\033[92m\033[1mINFO:\033[0m {message}", file=sys.stderr)


def warn(message):
    """Log a degraded-but-not-fatal condition to stderr."""
    print(f"\033[93m\033[1mWARN:\033[0m {message}", file=sys.stderr)


def debug_log(message):
    """Log a debug message to stderr if verbose mode is enabled."""
    if _VERBOSE:
        print(f"\033[94mDEBUG:\033[0m {message}", file=sys.stderr)
