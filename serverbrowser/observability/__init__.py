"""
Observability Layer

RESPONSIBILITY: Logging setup and Prometheus metrics
ALLOWED INPUTS: Counters and log records from any layer
OUTPUTS: stderr log stream, /metrics exposition

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Block or delay other layer operations
"""

import logging

LOG_FORMAT = 'serverbrowser: [%(levelname)s] %(name)s: %(message)s'


def setup_logging(verbose=False, stream=None):
    """Sets up the root logger.

    Args:
      verbose: If true, log DEBUG messages as well.
      stream: Where to write; defaults to stderr.
    """
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger('')
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # httpx logs every request at INFO; one per minute is noise
    logging.getLogger('httpx').setLevel(logging.WARNING)
    return handler
