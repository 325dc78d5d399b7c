class AnnotationError(Exception):
    """Base class for every failure the annotation core reports upward."""

    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message())
        self.message = str(self)

    @classmethod
    def default_message(cls) -> str:
        return "Annotation operation failed"


class AnnotationValidationError(AnnotationError):
    kind = "validation"

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class AnnotationPermissionError(AnnotationError):
    kind = "permission"

    @classmethod
    def default_message(cls) -> str:
        return "You do not have permission to perform this action"


class AnnotationNotFound(AnnotationError):
    kind = "not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Annotation not found"


class AnnotationTransportError(AnnotationError):
    kind = "transport"

    @classmethod
    def default_message(cls) -> str:
        return "Could not reach the annotation server"
