"""Errors raised by the subscription store."""


class StoreError(Exception):
    """Base class for subscription store failures."""


class StoreConnectionError(StoreError):
    """Redis could not be reached or the connection dropped mid-command."""


class StoreCommandError(StoreError):
    """A Redis command failed or returned an unexpected reply."""


class ExpirationNotSetError(StoreError):
    """The subscription key did not exist, so no expiration was applied."""

    def __init__(self, key: str):
        super().__init__(f"Timeout could not be set for {key}")
        self.key = key
