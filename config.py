# config.py
"""
Global configuration settings for reqsmith.
Modify these values to change the default behavior of the tool.
Values from a --settings file and command-line flags take precedence.
"""

# --- Protocol Defaults ---
# Protocol name and version stamped on requests built from parts.
DEFAULT_PROTOCOL = "HTTP"
DEFAULT_PROTOCOL_VERSION = "1.1"

# Scheme assumed when a raw message only carries a Host header
# (port 443 always selects https).
DEFAULT_SCHEME = "http"

# --- Logging and Verbosity ---
# Set to True for an [INFO] line per built request.
# Can be overridden by the --verbose command-line flag.
VERBOSE_MODE = False

# Set to True for [DEBUG] details (parser rejections, body normalization).
# Can be overridden by the --debug command-line flag.
DEBUG_MODE = False

# --- API Server ---
# Bind address for `main.py serve`.
API_HOST = "127.0.0.1"
API_PORT = 8000
