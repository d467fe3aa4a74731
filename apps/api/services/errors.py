"""Errors raised by the media services and mapped to HTTP responses by the routes"""


class MediaError(Exception):
    """Base class for media lifecycle errors"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MediaError):
    """Request is malformed or violates a configured limit"""
    status_code = 400


class UploadValidationError(ValidationError):
    """Unsupported kind, oversized or missing file"""


class StorageWriteError(MediaError):
    """Local disk failure or cloud rejection while storing an upload"""
    status_code = 500


class NotFoundError(MediaError):
    status_code = 404


class PermissionDeniedError(MediaError):
    status_code = 403


class PortfolioInUseError(MediaError):
    """Portfolio is the link target of an active carousel album"""
    status_code = 400
