class RepoGraphError(Exception):
    """Base class for errors surfaced to callers of repograph."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRepository(RepoGraphError):
    """The path does not contain a git object store."""


class UnresolvableRef(RepoGraphError):
    """A branch, ref or commit id does not exist in the repository."""


class ObjectReadFailure(RepoGraphError):
    """An object is missing, corrupt or of an unexpected type."""
