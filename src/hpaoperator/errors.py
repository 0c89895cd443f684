"""Exceptions raised by the HPA annotation operator."""


class InvalidAnnotationError(ValueError):
    """An annotation value failed validation."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason


class StoreError(Exception):
    """Base class for object store failures the reconciler understands."""


class AlreadyExistsError(StoreError):
    """The object store already holds an object with this name."""
