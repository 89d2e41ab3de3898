"""Application-wide constants.

GitHub endpoints, the OAuth client used for device-flow login, and the
default Gist naming used when no explicit document is configured.
"""

APP_NAME = "gistsync"

# OAuth app registered for device-flow login (public client, no secret)
OAUTH_CLIENT_ID = "Ov23lihQJhLB6hCnEIvS"
OAUTH_SCOPES = ("gist",)

GITHUB_API_URL = "https://api.github.com"
DEVICE_CODE_URL = "https://github.com/login/device/code"
ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

USER_AGENT = "gistsync"

DEFAULT_GIST_FILE_NAME = "GistGet.yaml"
DEFAULT_GIST_DESCRIPTION = "GistGet Packages"

# Seconds added to the poll interval on a slow_down response (RFC 8628 3.5)
SLOW_DOWN_INCREMENT = 5
