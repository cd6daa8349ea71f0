"""Process exit codes of the ``apiflow`` command.

Scripts can branch on the status of ``apiflow call`` instead of parsing
stderr: 4 means the API said 404, 5 any other error status, 6 that the
request never got an answer.
"""

EXIT_SUCCESS = 0
EXIT_GENERIC_FAILURE = 1
EXIT_INVALID_USAGE = 2

# HTTP 401 or 403
EXIT_AUTH_FAILURE = 3
# unknown endpoint id, or HTTP 404
EXIT_NOT_FOUND = 4
EXIT_SERVER_ERROR = 5
# timeout or connection failure
EXIT_CONNECTION_ERROR = 6

EXIT_PLUGIN_ERROR = 10
