class UserFocusError(Exception):
    pass


class TransientStoreFailure(UserFocusError):
    """A load or save against the session store hit an I/O error."""


class CorruptPersistedState(UserFocusError):
    """A stored record could not be decoded into a model."""
