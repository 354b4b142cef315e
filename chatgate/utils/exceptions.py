"""Custom exceptions for the chat gateway."""


class ChatGatewayError(Exception):
    """Base exception for the chat gateway."""
    pass


class ConfigurationError(ChatGatewayError):
    """Settings file error."""
    pass


class ConfigParseError(ChatGatewayError):
    """Stored provider config does not match the provider's shape."""

    def __init__(self, raw_config: str, provider: str = None):
        super().__init__(f"Failed to parse model config: {raw_config}")
        self.raw_config = raw_config
        self.provider = provider


class UnsupportedProviderError(ChatGatewayError):
    """Provider string is unknown, or the operation is unsupported for it."""

    def __init__(self, provider: str, operation: str = None):
        if operation:
            message = f"{operation} is not supported by {provider}"
        else:
            message = f"{provider} is not supported yet"
        super().__init__(message)
        self.provider = provider
        self.operation = operation


class ModelNotSetError(ChatGatewayError):
    """Provider requires a model but the config has none."""

    def __init__(self, provider: str = None):
        super().__init__("Model not set for chat")
        self.provider = provider


class OptionsParseError(ChatGatewayError):
    """Conversation options JSON is invalid for the provider."""

    def __init__(self, raw_options: str, provider: str = None):
        super().__init__(f"Failed to parse conversation options: {raw_options}")
        self.raw_options = raw_options
        self.provider = provider


class ClaudeSystemMessageUnsupportedError(ChatGatewayError):
    """A system-role message reached the Claude message array."""

    def __init__(self):
        super().__init__(
            "Claude doesn't accept system message as part of context, use the 'system' option instead"
        )


class InvalidRoleError(ChatGatewayError):
    """Stored role value has no matching role."""

    def __init__(self, value):
        super().__init__(f"Unknown message role: {value!r}")
        self.value = value


class EmptyChoicesError(ChatGatewayError):
    """Provider returned no choices."""

    def __init__(self, message: str = "Api returned empty choices"):
        super().__init__(message)


class EmptyMessageError(ChatGatewayError):
    """Chosen message carries no text."""

    def __init__(self, message: str = "Api returned empty message"):
        super().__init__(message)


class UpstreamError(ChatGatewayError):
    """Transport failure, non-2xx status, or undecodable response body."""

    def __init__(self, message: str, status_code: int = None, response_text: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class StreamDecodeError(ChatGatewayError):
    """Malformed chunk or event inside a response stream."""

    def __init__(self, message: str, content: str = None):
        super().__init__(message)
        self.content = content


class StreamTerminatedByProviderError(ChatGatewayError):
    """Provider ended the stream with an explicit error event."""

    def __init__(self, message: str, content: str = None):
        super().__init__(message)
        self.content = content
