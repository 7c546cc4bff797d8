"""Local configuration for specsync."""

from __future__ import annotations

import os


DEFAULT_SERVER_URL = "http://localhost:8080/rest/1"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_S = 0.5
DEFAULT_USER_AGENT = "specsync/0.1"
DEFAULT_LOCALE = "en-US"
DEFAULT_XML_DOCTYPE = "DOCBOOK_45"

# Ids of well known entities on the backend.
DEFAULT_CSP_PROPERTY_ID = 15
DEFAULT_ADDED_BY_PROPERTY_ID = 14
DEFAULT_WRITER_CATEGORY_ID = 12

SPECSYNC_SERVER_URL = os.getenv("SPECSYNC_SERVER_URL", DEFAULT_SERVER_URL).rstrip("/")
SPECSYNC_TIMEOUT_S = float(os.getenv("SPECSYNC_TIMEOUT_S", str(DEFAULT_TIMEOUT_S)))
SPECSYNC_MAX_RETRIES = int(os.getenv("SPECSYNC_MAX_RETRIES", str(DEFAULT_MAX_RETRIES)))
SPECSYNC_BACKOFF_S = float(os.getenv("SPECSYNC_BACKOFF_S", str(DEFAULT_BACKOFF_S)))
SPECSYNC_USER_AGENT = os.getenv("SPECSYNC_USER_AGENT", DEFAULT_USER_AGENT)
SPECSYNC_DEFAULT_LOCALE = os.getenv("SPECSYNC_DEFAULT_LOCALE", DEFAULT_LOCALE)
SPECSYNC_XML_DOCTYPE = os.getenv("SPECSYNC_XML_DOCTYPE", DEFAULT_XML_DOCTYPE)

SPECSYNC_CSP_PROPERTY_ID = int(os.getenv("SPECSYNC_CSP_PROPERTY_ID", str(DEFAULT_CSP_PROPERTY_ID)))
SPECSYNC_ADDED_BY_PROPERTY_ID = int(
    os.getenv("SPECSYNC_ADDED_BY_PROPERTY_ID", str(DEFAULT_ADDED_BY_PROPERTY_ID))
)
SPECSYNC_WRITER_CATEGORY_ID = int(
    os.getenv("SPECSYNC_WRITER_CATEGORY_ID", str(DEFAULT_WRITER_CATEGORY_ID))
)
