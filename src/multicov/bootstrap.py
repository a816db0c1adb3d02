"""Start coverage in a measured process.

Call :func:`process_startup` from ``sitecustomize`` (or any module imported
at interpreter start). It does nothing unless ``MULTICOV_CONFIG`` holds a
config, so it is safe to leave installed permanently::

    # sitecustomize.py
    import multicov.bootstrap
    multicov.bootstrap.process_startup()

A config exported by a measured parent is marked ``is_child_process`` and only
wraps the process. Any other config starts a new run: the temp directory is
cleaned and the ``all`` baseline recorded before wrapping.
"""

from __future__ import annotations

from typing import Mapping, Optional

from multicov.config.loader import config_from_environment
from multicov.core.errors import ConfigError
from multicov.core.logging import get_logger
from multicov.session import Session

LOGGER = get_logger(__name__)

_active_session: Optional[Session] = None


def process_startup(environ: Optional[Mapping[str, str]] = None) -> Optional[Session]:
    """Measure the current process if a config asks for coverage.

    Calling it more than once returns the same session.

    Args:
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        The active session, or None when coverage was not requested or the
        inherited config is unusable.
    """
    global _active_session
    if _active_session is not None:
        return _active_session

    try:
        config = config_from_environment(environ)
        if config is None:
            return None
        session = Session(config)
        if config.is_child_process:
            _active_session = session.wrap()
        else:
            _active_session = session.start()
    except ConfigError as e:
        LOGGER.warning(f"Not measuring coverage: {e}")
        return None

    LOGGER.debug(f"Measuring coverage in process {_active_session.process_info.uuid}")
    return _active_session
