"""Internal constants shared across the library."""

import re

DEFAULT_HOST = "stream.datasift.com"
DEFAULT_BASE_PATH = "/multi"
USER_AGENT = "pymultistream"

LINE_DELIMITER = "\n"
# Heartbeat the server sends between records (a lone CRLF).
KEEPALIVE_LINE = "\r"

# Failure message the server sends in reply to our own stop control message.
STOP_ACKNOWLEDGMENT = "A stop message was received. You will now be disconnected"

# ------------------------------------------------------------------
# Status message patterns.  Group 1 captures the stream hash.
# ------------------------------------------------------------------

SUBSCRIBED_PATTERN = re.compile(r"successfully subscribed to hash (\S+)", re.IGNORECASE)
MISSING_HASH_PATTERN = re.compile(r"The hash (\S+) doesn't exist", re.IGNORECASE)
