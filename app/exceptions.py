"""Exceptions raised by the conversation core."""


class AgentError(Exception):
    """Base class for recruiting agent errors."""


class StreamDecodeError(AgentError):
    """The provider event stream was malformed or ended mid-block."""


class ConversationFailedError(AgentError):
    """A conversation run could not be completed.

    Raised for provider transport errors, turn timeouts and decode failures.
    Tool failures never raise this; they are reported back to the model as
    error results.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
