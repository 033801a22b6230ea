from typing import Optional


class PlantAppError(Exception):
    """Base class for every error raised by the app and the record service."""


# ---------------------------------------------
# app side: photo -> recognition
# ---------------------------------------------
class ImageProcessingError(PlantAppError):
    """The source photo could not be read or re-encoded."""


class RecognitionUnavailableError(PlantAppError):
    """Transport failure, timeout or an unusable recognition service."""


class PlantNotRecognizedError(PlantAppError):
    """A valid answer with nothing usable in it. Expected, user-recoverable."""


class RecognitionProtocolError(PlantAppError):
    """The recognition service answered with a body we cannot interpret."""


# ---------------------------------------------
# app side: record gateway
# ---------------------------------------------
class RecordSubmissionError(PlantAppError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthRequiredError(PlantAppError):
    """No access token, or the store rejected it."""


# ---------------------------------------------
# server side: record store
# ---------------------------------------------
class ValidationError(PlantAppError):
    pass


class NotFoundError(PlantAppError):
    pass
