"""
Access token acquisition for the Spotify web player.

This module sequences every step needed to obtain an anonymous web-player
access token:

    1. Refresh the secret table from the remote document (best effort)
    2. Resolve the secret version (requested or latest)
    3. Derive the TOTP secret for that version
    4. Read the server's clock from a Date header
    5. Generate the TOTP
    6. Request a token with reason=transport, then reason=init on failure
    7. Optionally validate the token against the Web API

Usage:
    from spot_token.webplayer.acquire import TokenAcquirer, AcquireOptions

    acquirer = TokenAcquirer.from_config(load_config())
    result = acquirer.get_access_token(AcquireOptions(verify_token=False))
    print(result.access_token, result.expires_at)

    # Or through the module-level default acquirer:
    from spot_token import get_access_token
    result = get_access_token(totp_version=None)

Cancellation:
    get_access_token() accepts a threading.Event. Each step checks it, and
    while a network call is in flight the caller waits on both the call and
    the event. Setting the event makes the acquisition fail fast with
    AcquisitionCancelledError; the abandoned request finishes in the
    background within its timeout.

Thread Safety:
    A TokenAcquirer may be shared between threads. The secret store is the
    only shared mutable state and swaps snapshots atomically.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import requests

from spot_token.core.config import (
    DEFAULT_TIMEOUT,
    DEFAULT_TOTP_VERSION,
    SECRET_DICT_URL,
    Config,
)
from spot_token.core.exceptions import (
    AcquisitionCancelledError,
    NetworkError,
    TokenAcquisitionError,
)
from spot_token.core.logger import get_logger
from spot_token.totp.otp import generate_totp
from spot_token.webplayer.clock import ServerClock
from spot_token.webplayer.secret_store import (
    RefreshOutcome,
    SecretVersionStore,
    derive_secret,
    refresh_secrets,
    resolve_version,
)
from spot_token.webplayer.session import create_session
from spot_token.webplayer.token import (
    REASON_INIT,
    REASON_TRANSPORT,
    TokenRequester,
    TokenResponse,
    TokenResult,
    build_token_params,
)
from spot_token.webplayer.validator import TokenValidator


logger = get_logger(__name__)

T = TypeVar("T")

# How often a cancellable wait re-checks the cancellation event
CANCEL_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class AcquireOptions:
    """
    Per-call acquisition options.

    Attributes:
        totp_version: Secret version to sign with. None uses the highest
                      version known after the refresh.
        download_secrets: Refresh the secret table before acquiring.
        secret_dict_url: Remote secret document URL.
        verify_token: Validate the token against the Web API. When False
                      the result's is_valid is None.
    """
    totp_version: Any = DEFAULT_TOTP_VERSION
    download_secrets: bool = True
    secret_dict_url: str = SECRET_DICT_URL
    verify_token: bool = True


class TokenAcquirer:
    """
    Orchestrates secret refresh, TOTP generation and token requests.

    Components are injected so each can be replaced in tests; from_config()
    wires the production ones around a single requests.Session.

    Attributes:
        store: Shared secret version table.
        clock: Server time source.
        requester: Token endpoint client.
        validator: Web API token validator.
        timeout: Timeout for the secret document download.
    """

    def __init__(
        self,
        store: SecretVersionStore,
        session: requests.Session,
        clock: ServerClock,
        requester: TokenRequester,
        validator: TokenValidator,
        timeout: float = DEFAULT_TIMEOUT,
        client_clock: Callable[[], float] = time.time,
        default_options: AcquireOptions | None = None
    ) -> None:
        self.store = store
        self.session = session
        self.clock = clock
        self.requester = requester
        self.validator = validator
        self.timeout = timeout
        self.default_options = default_options or AcquireOptions()
        self._client_clock = client_clock
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Config,
        store: SecretVersionStore | None = None,
        session: requests.Session | None = None
    ) -> "TokenAcquirer":
        """
        Build an acquirer from application configuration.

        Args:
            config: Loaded configuration.
            store: Secret table to use; a new built-in seeded store by default.
            session: HTTP session; one carrying the configured User-Agent
                     and sp_dc cookie by default.
        """
        webplayer = config.webplayer
        acquisition = config.acquisition
        if session is None:
            session = create_session(webplayer.user_agent, webplayer.sp_dc)

        return cls(
            store=store if store is not None else SecretVersionStore(),
            session=session,
            clock=ServerClock(session, webplayer.server_time_url, acquisition.timeout),
            requester=TokenRequester(session, webplayer.token_url, acquisition.timeout),
            validator=TokenValidator(acquisition.timeout, webplayer.user_agent),
            timeout=acquisition.timeout,
            default_options=AcquireOptions(
                totp_version=acquisition.totp_version,
                download_secrets=acquisition.download_secrets,
                secret_dict_url=webplayer.secrets_url,
                verify_token=acquisition.verify_token,
            ),
        )

    # =========================================================================
    # Acquisition
    # =========================================================================

    def get_access_token(
        self,
        options: AcquireOptions | None = None,
        cancel_event: threading.Event | None = None
    ) -> TokenResult:
        """
        Acquire a web-player access token.

        Args:
            options: Per-call options; the acquirer's defaults when None.
            cancel_event: Optional event; when set, the acquisition stops
                          with AcquisitionCancelledError.

        Returns:
            TokenResult with token, expiry, client id and validity.

        Raises:
            InvalidTotpVersionError: If the requested version is not an integer.
            UnknownSecretVersionError: If the requested version is unknown.
            ClockUnavailableError: If the server time cannot be obtained.
            NetworkError: On transport failure outside the reason fallback.
            TokenAcquisitionError: If no token is returned for either reason.
            AcquisitionCancelledError: If cancel_event is set.
        """
        options = options or self.default_options

        if options.download_secrets:
            self._call(cancel_event, self.refresh_secrets, options.secret_dict_url)

        self._check_cancelled(cancel_event)
        version = resolve_version(self.store, options.totp_version)
        secret = derive_secret(self.store, version)

        server_time = self._call(cancel_event, self.clock.now)
        totp = generate_totp(secret.base32_secret, server_time)
        client_time_ms = int(self._client_clock() * 1000)

        logger.debug(f"Requesting token with secret version {version}")
        params = build_token_params(totp, version, server_time, client_time_ms, REASON_TRANSPORT)
        response = self._request_with_fallback(params, cancel_event)

        if not response.has_token:
            raise TokenAcquisitionError(
                "Unable to fetch access token",
                details={"status_code": response.status, "version": version},
                status_code=response.status
            )

        result = TokenResult.from_token_body(response.body)
        if options.verify_token:
            is_valid = self._call(
                cancel_event, self.validator.is_valid, result.access_token, result.client_id
            )
            result = TokenResult.from_token_body(response.body, is_valid=is_valid)

        logger.info(
            f"Access token acquired (version {version}, expires at {result.expires_at})"
        )
        return result

    def refresh_secrets(self, url: str = SECRET_DICT_URL) -> RefreshOutcome:
        """Refresh the secret table; failures are returned, not raised."""
        return refresh_secrets(self.store, self.session, url, self.timeout)

    def _request_with_fallback(
        self,
        params: dict[str, Any],
        cancel_event: threading.Event | None
    ) -> TokenResponse:
        """
        Request with reason=transport, then once more with reason=init.

        A transport-level failure of the first attempt counts as a failed
        attempt. The init attempt's errors propagate.
        """
        try:
            response = self._call(cancel_event, self.requester.request, params)
        except NetworkError as e:
            logger.warning(f"Token request (reason={REASON_TRANSPORT}) failed: {e.message}")
            response = None

        if response is not None and response.has_token:
            return response

        if response is not None:
            logger.warning(
                f"No token for reason={REASON_TRANSPORT} (HTTP {response.status}), "
                f"retrying with reason={REASON_INIT}"
            )
        return self._call(cancel_event, self.requester.request, {**params, "reason": REASON_INIT})

    # =========================================================================
    # Cancellation
    # =========================================================================

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AcquisitionCancelledError("Token acquisition cancelled")

    def _call(
        self,
        cancel_event: threading.Event | None,
        func: Callable[..., T],
        *args: Any
    ) -> T:
        """
        Run a network step, honouring the cancellation event.

        Without an event the step runs inline. With one, the step runs on a
        worker thread and the caller returns as soon as either the step
        completes or the event is set.
        """
        self._check_cancelled(cancel_event)
        if cancel_event is None:
            return func(*args)

        future = self._get_executor().submit(func, *args)
        while not future.done():
            if cancel_event.wait(CANCEL_POLL_INTERVAL):
                future.cancel()
                raise AcquisitionCancelledError("Token acquisition cancelled")
        return future.result()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=4, thread_name_prefix="spot-token"
                )
            return self._executor

    def close(self) -> None:
        """Release the worker threads and the HTTP session."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None
        self.session.close()


# =============================================================================
# Module-level default acquirer
# =============================================================================

_default_acquirer: TokenAcquirer | None = None
_default_lock = threading.Lock()


def get_default_acquirer() -> TokenAcquirer:
    """Return the process-wide acquirer built from default configuration."""
    global _default_acquirer
    with _default_lock:
        if _default_acquirer is None:
            _default_acquirer = TokenAcquirer.from_config(Config())
        return _default_acquirer


def get_access_token(
    totp_version: Any = DEFAULT_TOTP_VERSION,
    download_secrets: bool = True,
    secret_dict_url: str = SECRET_DICT_URL,
    verify_token: bool = True,
    cancel_event: threading.Event | None = None
) -> TokenResult:
    """
    Acquire a web-player access token with the default acquirer.

    See TokenAcquirer.get_access_token() for the steps and errors.
    """
    options = AcquireOptions(
        totp_version=totp_version,
        download_secrets=download_secrets,
        secret_dict_url=secret_dict_url,
        verify_token=verify_token,
    )
    return get_default_acquirer().get_access_token(options, cancel_event=cancel_event)
