"""Error taxonomy for helper launches.

Both errors are local to a single trigger: the coordinator surfaces them to
the user and drops the trigger, it never retries.  A stale delayed publish
reaching a helper that changed state in the meantime is *not* an error and
has no type here.
"""

__all__ = ["LaunchError", "HelperNotInstalled", "LaunchRejected"]


class LaunchError(Exception):  # pylint: disable=too-few-public-methods
    """Base-class for predictable launch failures."""

    code = "launch_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class HelperNotInstalled(LaunchError):
    """The resolved helper path does not exist on disk."""

    code = "not_found"

    def __init__(self, path):
        super().__init__(f"Helper app not found at {path}")
        self.path = path


class LaunchRejected(LaunchError):
    """The OS refused to start the helper process."""

    code = "os_rejected"

    def __init__(self, diagnostic: str):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic
