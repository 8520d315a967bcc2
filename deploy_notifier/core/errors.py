"""Custom exception hierarchy for Deploy Notifier."""


class DeployNotifierError(Exception):
    """Base error type."""


class ConfigError(DeployNotifierError):
    pass


class ChatError(DeployNotifierError):
    pass


class ScmError(DeployNotifierError):
    pass


class DeployCancelled(DeployNotifierError):
    """Raised when someone asks in chat to cancel the running deploy."""
    pass


class DeployCommandFailed(DeployNotifierError):
    """Raised when the wrapped deploy command exits non-zero."""

    def __init__(self, returncode: int) -> None:
        super().__init__(f"Deploy command exited with status {returncode}")
        self.returncode = returncode
