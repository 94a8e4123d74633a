"""Exceptions raised by the hotel assistant."""


class HotelAssistantError(Exception):
    """Base exception for assistant errors."""

    pass


class ValidationError(HotelAssistantError):
    """Malformed chat request; answered with a 400 before any streaming."""

    pass


class ToolConfigurationError(HotelAssistantError):
    """Tool catalog and handlers disagree; raised at startup."""

    pass


class ToolExecutionError(HotelAssistantError):
    """A tool call failed: unknown tool, bad arguments, or the operation raised."""

    def __init__(self, tool: str, message: str) -> None:
        super().__init__(message)
        self.tool = tool


class ModelProviderError(HotelAssistantError):
    """The language model call itself failed."""

    pass


class LoopExceededError(HotelAssistantError):
    """The model kept requesting tools past the round cap."""

    pass
