class ADEGuardError(Exception):
    """Base class for every failure the core reports to its caller."""


class InvalidInputError(ADEGuardError):
    """Rejected before any network call is made."""


class AttachmentTooLargeError(InvalidInputError):
    pass


class UnsupportedMediaTypeError(InvalidInputError):
    pass


class AnalysisFailedError(ADEGuardError):
    """The model call did not produce a usable result."""


class TransportError(AnalysisFailedError):
    """The Gemini service or the network failed."""


class SchemaViolationError(AnalysisFailedError):
    """The service answered, but the payload is empty or malformed."""


class DeviceAccessError(ADEGuardError):
    """Microphone permission denied or no capture device available."""
