"""
Custom exception classes for unillm.

Provides specific exceptions for the different ways a request can fail so
callers can tell a bad conversation apart from a provider outage.
"""


class UniLLMError(Exception):
    """Base exception for all unillm errors."""
    pass


class RequestError(UniLLMError):
    """Base exception for requests rejected before reaching a provider."""
    pass


class NoMessagesError(RequestError):
    """Raised when a request is made with an empty message list."""
    def __init__(self, message="No messages provided"):
        super().__init__(message)


class InvalidRoleError(RequestError):
    """Raised when a message carries a role the provider cannot express."""
    def __init__(self, role, message=None):
        self.role = role
        super().__init__(message or f"Unsupported message role: {role!r}")


class TemplateViolationError(RequestError):
    """Raised when a prompt template rejects the conversation.

    The message is the one supplied by the template itself.
    """
    pass


class TransportError(UniLLMError):
    """Raised when the provider API call fails or returns a malformed payload."""
    def __init__(self, message, provider=None, status_code=None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class CallbackError(UniLLMError):
    """Raised when a caller-supplied callback (usage, stream_handler) fails."""
    pass


class ResponseParseError(UniLLMError):
    """Raised when a reply parser cannot parse the model output."""
    def __init__(self, message, text=None):
        self.text = text
        super().__init__(message)


class ConfigurationError(UniLLMError):
    """Raised when configuration is invalid or missing."""
    pass


# User-friendly error messages mapping
USER_FRIENDLY_MESSAGES = {
    NoMessagesError: (
        "Nothing to send\n"
        "The conversation is empty. Add at least one message and try again."
    ),
    InvalidRoleError: (
        "Unsupported message\n"
        "Messages must use the system, user or assistant role (got {role})."
    ),
    TemplateViolationError: (
        "Conversation rejected\n"
        "The prompt template refused this conversation: {error}"
    ),
    TransportError: (
        "AI Service Issue\n"
        "The {provider} service could not complete the request.\n\n"
        "Technical details: {error}"
    ),
    ResponseParseError: (
        "Unreadable reply\n"
        "The model's reply could not be parsed: {error}"
    ),
    ConfigurationError: (
        "Configuration Error\n"
        "{error}"
    ),
}


def get_user_friendly_message(error: Exception) -> str:
    """
    Get a user-friendly error message for an exception.

    Args:
        error: Exception instance

    Returns:
        str: User-friendly error message
    """
    error_type = type(error)
    template = USER_FRIENDLY_MESSAGES.get(error_type)

    if not template:
        # Generic message for unknown errors
        return (
            f"An Error Occurred\n"
            f"{str(error)}\n\n"
            f"Please try again or check your configuration."
        )

    # Format template with error attributes
    try:
        return template.format(
            error=str(error),
            **{k: v for k, v in vars(error).items() if isinstance(v, (str, int, float))}
        )
    except (KeyError, AttributeError):
        # Keep the headline, drop details that need missing attributes
        return f"{template.splitlines()[0]}\n{str(error)}"
