"""Exceptions raised at the persistence and network boundaries."""


class CharacterSheetError(Exception):
    pass


class DocumentFormatError(CharacterSheetError):
    """A serialized document could not be parsed or has an unsupported version."""


class ImportFormatError(DocumentFormatError):
    """An import file was rejected. Nothing was written."""


class RemoteError(CharacterSheetError):
    """A remote operation failed. Local state is left untouched."""

    def __init__(self, message: str, status_code: int | None = None, retryable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class AuthExpiredError(RemoteError):
    """The bearer credential was rejected; the cached identity has been cleared."""

    def __init__(self, message: str = "Authentication expired"):
        super().__init__(message, status_code=401, retryable=False)


class RemoteNotFoundError(RemoteError):
    def __init__(self, message: str):
        super().__init__(message, status_code=404, retryable=False)


class SaveInProgressError(CharacterSheetError):
    """A cloud save is already in flight for this session."""
