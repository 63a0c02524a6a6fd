class MkquizError(Exception):
    """Base class for every error the tool reports to the operator."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


class ConfigError(MkquizError):
    pass


class FileSystemError(MkquizError):
    pass


class ValidationError(MkquizError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class JsonError(MkquizError):
    pass


class TemplateError(MkquizError):
    pass


class QuizOperationError(MkquizError):
    pass


class ExtractionError(MkquizError):
    pass
