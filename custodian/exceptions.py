"""Custom exception classes for the file custodian bot."""


class CustodianError(Exception):
    """
    Base exception class for all custodian errors.
    """
    pass


class ConfigurationError(CustodianError):
    """
    Raised when the configuration file is missing, unreadable or invalid.
    """
    pass


class TransportError(CustodianError):
    """
    Raised when a remote file cannot be resolved or downloaded.
    """
    pass


class MalformedResponseError(TransportError):
    """
    Raised when the file server answers with an error object instead of file bytes.
    """
    pass


class OversizeFileError(CustodianError):
    """
    Raised when a file exceeds the maximum accepted size.
    """

    def __init__(self, size: int, limit: int):
        super().__init__(f"File size {size} exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class DuplicateFileError(CustodianError):
    """
    Raised when the owner already stored a file with the same name and type.
    """
    pass


class StorageError(CustodianError):
    """
    Raised when the relational or the document store fails.
    """
    pass


class PermissionDeniedError(CustodianError):
    """
    Raised when a user accesses a file they neither own nor administer.
    """
    pass


class NotFoundError(CustodianError):
    """
    Raised when a requested file or user does not exist.
    """
    pass


class MalformedInputError(CustodianError):
    """
    Raised when a command argument or a callback token cannot be parsed.
    """
    pass


class AuditSinkError(CustodianError):
    """
    Raised when the external audit spreadsheet rejects a write.
    """
    pass
