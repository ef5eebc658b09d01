"""Identity-provider exceptions for error handling."""


class IdentityProviderError(Exception):
    """Base exception for all identity provider operations."""
    pass


class KeycloakAPIError(IdentityProviderError):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class KeycloakUnavailableError(IdentityProviderError):
    """Keycloak could not be reached or did not answer within REQUEST_TIMEOUT."""
    pass


class UserAlreadyExistsError(IdentityProviderError):
    """User creation failed - username or email already exists."""
    pass


class UserNotFoundError(IdentityProviderError):
    """User lookup failed - account id does not exist."""
    pass
