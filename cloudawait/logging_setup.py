"""CLI logging setup: simple %(message)s format for standalone commands."""

import logging
import sys

from cloudawait.redact import SecretRedactingFilter


def setup_cli_logging(verbose=False):
    """Configure root logger with plain message format for CLI commands.

    Produces output identical to print(). With *verbose*, DEBUG records from
    the predicates (one line per status check) are shown too.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
    # Libcloud and httpx are chatty at DEBUG
    for name in ("libcloud", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
