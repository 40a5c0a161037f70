class ProctoringError(Exception):
    """Base class for everything the proctoring pipeline raises."""


class CameraUnavailable(ProctoringError):
    """Camera permission denied or no capture device."""


class ModelLoadError(ProctoringError):
    pass


class ModelLoadTimeout(ModelLoadError):
    pass


class ModelLoadFailure(ModelLoadError):
    pass


class InferenceError(ProctoringError):
    """A single frame could not be analyzed."""


class SessionError(ProctoringError):
    """Reported by, or raised while driving, the voice call session."""


class PersistenceFailure(ProctoringError):
    pass
