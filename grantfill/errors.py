class GrantFillError(Exception):
    """Base class for grantfill failures."""


class SurfaceUnreachableError(GrantFillError):
    """Raised when the fill target (URL or source PDF) cannot be opened at all."""
    def __init__(self, target: str, message: str = "fill target unreachable"):
        self.target = target
        self.message = message
        super().__init__(f"{message}: {target}")


class AnswerGenerationError(GrantFillError):
    """Raised when the language model could not draft an answer."""


class GrantRecordError(GrantFillError, ValueError):
    """Raised for malformed grant or profile records."""
