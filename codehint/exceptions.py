"""Exception types raised by Codehint."""


class CodehintError(Exception):
    """Base class for Codehint errors."""


class ProfileStoreError(CodehintError):
    """A preference profile could not be read from or written to its backend."""
