"""
Classification of OpenAI SDK exceptions.

The only place that inspects SDK exception types; everything above the
infrastructure layer sees ServiceError kinds.
"""

import openai

from nutridecode.domain.shared.errors import ServiceError, ServiceErrorKind

SERVICE_NAME = "openai"


def classify_openai_error(exc: BaseException) -> ServiceError:
    """
    Map an OpenAI SDK (or transport) exception to a ServiceError.

    Example:
        >>> err = classify_openai_error(openai.APITimeoutError(request=request))
        >>> err.kind
        <ServiceErrorKind.TIMEOUT: 'TIMEOUT'>
    """
    if isinstance(exc, ServiceError):
        return exc

    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(exc, openai.APITimeoutError):
        kind = ServiceErrorKind.TIMEOUT
    elif isinstance(exc, openai.APIConnectionError):
        kind = ServiceErrorKind.NETWORK
    elif isinstance(exc, openai.RateLimitError):
        kind = ServiceErrorKind.RATE_LIMIT
    elif isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        kind = ServiceErrorKind.AUTH
    elif isinstance(exc, openai.APIStatusError) and exc.status_code == 429:
        kind = ServiceErrorKind.RATE_LIMIT
    elif isinstance(exc, TimeoutError):
        kind = ServiceErrorKind.TIMEOUT
    elif isinstance(exc, ConnectionError):
        kind = ServiceErrorKind.NETWORK
    else:
        kind = ServiceErrorKind.UNKNOWN

    return ServiceError(f"OpenAI request failed: {exc}", kind=kind, service=SERVICE_NAME)
