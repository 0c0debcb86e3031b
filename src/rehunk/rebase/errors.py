"""Errors raised by the rebase engine."""


class RebaseError(Exception):
    """Base class for every engine error."""


class ParseError(RebaseError):
    """A diff chunk has a shape the engine cannot represent (e.g. a merge diff)."""


class NotFoundError(RebaseError):
    """A referenced change index, commit hash or path does not exist."""


class InvalidOperationError(RebaseError):
    """The operation would leave the session or the history inconsistent."""


class SuggestionMappingError(RebaseError):
    """A regrouping response does not map onto the current changes."""
