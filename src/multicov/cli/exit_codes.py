"""Exit codes for the multicov CLI.

- 0: Success (coverage meets every threshold)
- 1: Coverage below a threshold
- 2: Runtime error (instrumentation or persistence failure)
- 3: Invalid usage (bad arguments, missing or invalid config)
"""

from __future__ import annotations

EXIT_SUCCESS = 0
EXIT_THRESHOLD_FAILED = 1
EXIT_RUNTIME_ERROR = 2
EXIT_INVALID_USAGE = 3
