# exceptions.py

class DriveScribeError(Exception):
    """Base class for errors raised while serving gallery requests."""
    pass

class RetrievalError(DriveScribeError):
    """The storage provider failed before a file or listing was fully retrieved."""
    pass

class NotFoundError(RetrievalError):
    """The storage provider does not know the requested id."""
    pass

class UnsupportedMediaError(DriveScribeError):
    """The file is not an image and cannot be transcribed."""
    pass

class InferenceError(DriveScribeError):
    """The inference provider failed or returned a malformed response."""
    pass
