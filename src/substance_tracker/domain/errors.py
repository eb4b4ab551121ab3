"""Error types raised by the tracker core."""


class TrackerError(Exception):
    """Base class for tracker errors."""


class ValidationError(TrackerError):
    """Invalid domain input, such as an empty name or a negative mass."""


class ParseError(TrackerError):
    """Malformed persisted or imported JSON document."""


class NotFoundError(TrackerError):
    """Referenced substance or entry does not exist."""
