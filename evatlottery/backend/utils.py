import os
import logging
from typing import Optional

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Ensure environment variables from .env are loaded when this module is imported.
load_dotenv()


def open_session(api_key: Optional[str] = None) -> requests.Session:
    """Open a requests session for the workflow-automation webhooks.

    Parameters
    ----------
    api_key : Optional[str]
        Shared secret sent as ``X-API-Key``. Falls back to
        ``WEBHOOK_API_KEY``; the session is unauthenticated when neither is set.

    Returns
    -------
    requests.Session
        Session with JSON headers (and the key, when configured) applied.
    """
    session = requests.Session()
    session.headers.update(
        {"Accept": "application/json", "Content-Type": "application/json"}
    )
    key = api_key or os.environ.get("WEBHOOK_API_KEY")
    if key:
        session.headers["X-API-Key"] = key
        # Never log the key itself
        logger.debug("Webhook session configured with an API key")
    else:
        logger.debug("Webhook session configured without an API key")
    return session
