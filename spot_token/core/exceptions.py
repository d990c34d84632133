"""
Exception classes for spot-token.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus a details dictionary,
so callers can log the context of a failure without parsing strings.

Exception Hierarchy:
    SpotTokenError (base)
        ConfigError - Configuration file issues
        InvalidEncodingError - Malformed base32 text
        SecretStoreError - Secret version table issues
            EmptyStoreError - No secret versions known
            UnknownSecretVersionError - Requested version not in the table
            InvalidTotpVersionError - Requested version is not an integer
            InvalidSecretPayloadError - Remote secret document is malformed
        ClockUnavailableError - Server time could not be obtained
        NetworkError - Transport failure talking to a remote endpoint
        TokenAcquisitionError - No access token after both request reasons
        AcquisitionCancelledError - Caller cancelled an acquisition
        WebPlayerApiError - Authenticated web-player helper call failed
"""


class SpotTokenError(Exception):
    """
    Base exception for all spot-token errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every spot-token failure with a single
    except clause.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., version, URL).

    Example:
        try:
            result = get_access_token()
        except SpotTokenError as e:
            logger.error(f"Token acquisition failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': Endpoint involved in the error
                     - 'version': Secret version involved in the error
                     - 'status_code': HTTP status returned by the endpoint
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(SpotTokenError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - Explicit config path does not exist
        - config.yaml has invalid YAML syntax
        - A section is not a dictionary
        - Invalid field values (e.g., non-positive timeout)

    Example:
        raise ConfigError(
            "'acquisition.timeout' must be a positive number",
            details={'field': 'acquisition.timeout', 'value': -1}
        )
    """
    pass


class InvalidEncodingError(SpotTokenError):
    """
    Raised when base32 text contains a character outside the alphabet.

    Example:
        raise InvalidEncodingError(
            "Invalid base32 character: '1'",
            details={'character': '1', 'position': 4}
        )
    """
    pass


class SecretStoreError(SpotTokenError):
    """
    Base class for inconsistencies in the secret version table.

    The secret table maps a small integer version to the cipher bytes
    the web player uses to derive its TOTP secret. These errors mean the
    requested version cannot be served from the table.
    """
    pass


class EmptyStoreError(SecretStoreError):
    """
    Raised when the secret table holds no versions at all.

    The table is seeded with built-in versions at construction time and a
    refresh never removes entries, so this only happens when a store is
    explicitly created empty.
    """
    pass


class UnknownSecretVersionError(SecretStoreError):
    """
    Raised when a secret version is not present in the table.

    Example:
        raise UnknownSecretVersionError(
            "No secret cipher available for version 99",
            details={'version': 99, 'available': [13, 14, 61]}
        )
    """
    pass


class InvalidTotpVersionError(SecretStoreError):
    """Raised when a requested TOTP version is not an integer."""
    pass


class InvalidSecretPayloadError(SecretStoreError):
    """
    Raised when a remote secret document fails validation.

    The document must be a JSON object whose keys are decimal integer
    strings and whose values are lists of integers. Validation is
    all-or-nothing: when this is raised the table was not modified.

    This is a NON-CRITICAL error during acquisition - the refresh is
    abandoned and the existing table keeps serving requests.
    """
    pass


class ClockUnavailableError(SpotTokenError):
    """
    Raised when the canonical server time cannot be obtained.

    Common causes:
        - Time source unreachable (network error, timeout)
        - Response has no Date header
        - Date header cannot be parsed

    This is fatal to the acquisition attempt: a code computed against
    the local clock is likely to be rejected.
    """
    pass


class NetworkError(SpotTokenError):
    """
    Raised when a transport failure occurs talking to a remote endpoint.

    Wraps requests exceptions (connection errors, timeouts, TLS failures).
    The only place a NetworkError is recovered is the token request, where
    a failed 'transport' attempt is followed by an 'init' attempt.

    Example:
        raise NetworkError(
            "Request to token endpoint failed: Read timed out",
            details={'url': TOKEN_URL, 'original_error': 'Read timed out'}
        )
    """
    pass


class TokenAcquisitionError(SpotTokenError):
    """
    Raised when neither request reason yields an access token.

    Attributes:
        status_code: HTTP status of the last token response, if any.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class AcquisitionCancelledError(SpotTokenError):
    """Raised when the caller's cancellation event is set mid-acquisition."""
    pass


class WebPlayerApiError(SpotTokenError):
    """
    Raised when an authenticated web-player helper call fails.

    Attributes:
        status_code: HTTP status returned by the endpoint, or None when
                     the payload itself was unusable.

    Example:
        raise WebPlayerApiError(
            "HTTP 401: token expired",
            details={'track_id': '4cOdK2wGLETKBW3PvgPWqT'},
            status_code=401
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None
    ) -> None:
        """
        Initialize the web-player API error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            status_code: HTTP status code of the failed response.
        """
        super().__init__(message, details)
        self.status_code = status_code
