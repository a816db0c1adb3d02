"""multicov - multi-process coverage collection and merging.

Instrumented source is cached by content identity, every process persists
its own coverage snapshot at exit, and a later reporting pass merges the
snapshots, remaps them through source maps and enforces thresholds.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
