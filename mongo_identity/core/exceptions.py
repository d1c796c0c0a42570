"""
Exceptions for programmer errors and misconfiguration.

Domain failures (duplicate names, invalid characters, concurrency conflicts)
are never raised; they come back as IdentityResult values.
"""


class IdentityException(Exception):
    """Base class for identity exceptions."""


class ArgumentNullError(IdentityException, ValueError):
    """A required argument was None."""

    def __init__(self, param_name: str):
        self.param_name = param_name
        super().__init__(f"Value cannot be None. (Parameter '{param_name}')")


class ObjectDisposedError(IdentityException, RuntimeError):
    """An operation was attempted on a disposed manager or store."""

    def __init__(self, object_name: str):
        self.object_name = object_name
        super().__init__(f"Cannot access a disposed object. Object name: '{object_name}'.")


class NotSupportedError(IdentityException, NotImplementedError):
    """The store does not implement the capability an operation needs."""


class StoreConfigurationError(IdentityException, TypeError):
    """A store was constructed with entity types it cannot handle."""


class RoleNotFoundError(IdentityException, LookupError):
    """A role membership referenced a role that does not exist."""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role {role_name} does not exist.")
