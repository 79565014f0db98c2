"""
Diagnostic output for taleweave.

Messages go to stderr as single coloured lines so generated text on stdout
stays clean.
"""
import sys

# Global verbose flag
_VERBOSE = False


def set_verbose(value):
    """Set the global verbose flag."""
    global _VERBOSE
    _VERBOSE = bool(value)


def debug_log(message):
    """Log a debug message to stderr if verbose mode is enabled."""
    if _VERBOSE:
        print(f"\033[94mDEBUG:\033[0m {message}", file=sys.stderr)


def log(message):
    """Log informational messages to stderr."""
    print(f"\033[92m\033[1mINFO:\033[0m {message}", file=sys.stderr)


def warn_log(message):
    """Log a non-fatal grammar problem to stderr."""
    print(f"\033[93mWARNING:\033[0m {message}", file=sys.stderr)
