"""Extraction error taxonomy.

Parse failures and cardinality mismatches are not exceptions: the parser
returns a ``ParseResult`` and REFLECT returns a verdict. The classes below
cover the failures that abort an agent invocation. Every one of them is
caught at the agent boundary and converted into a failed ``AgentResult``.
"""


class ExtractionError(ValueError):
    """Base class for failures that abort an agent invocation.

    Attributes:
        message: Human-readable error description.
        stage: Agent step where the failure happened (e.g. ``"validate"``).
    """

    default_stage: str = ""

    def __init__(self, message: str = "", *, stage: str = "") -> None:
        self.message = message
        self.stage = stage or self.default_stage
        super().__init__(message)

    def to_error_dict(self) -> dict[str, str]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "stage": self.stage,
        }


class NoCoordinatesError(ExtractionError):
    """No usable coordinate survived extraction."""

    default_stage = "validate"


class InvalidGeometryError(ExtractionError):
    """Too few vertices for the requested shape."""

    default_stage = "validate"


class CollaboratorError(ExtractionError):
    """A text completion, routing or isochrone call failed or returned nothing."""


class InvocationCancelled(Exception):
    """A newer user turn superseded the running invocation."""
