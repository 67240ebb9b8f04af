from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, TextIO
from urllib.parse import parse_qsl, urlencode

import httpx
from oauthlib import oauth1

from .options import DEFAULT_COMMAND, RequestConfig
from .output import OutputSink
from .rcfile import PROFILE_FIELDS, RCFile, load_rcfile

DEFAULT_TIMEOUT_S = 30.0
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
QUERY_METHODS = ("GET", "HEAD", "DELETE")

REQUEST_TOKEN_PATH = "/oauth/request_token"
AUTHORIZE_PATH = "/oauth/authorize"
ACCESS_TOKEN_PATH = "/oauth/access_token"


class TwurlError(RuntimeError):
    pass


class UnauthorizedError(TwurlError):
    pass


class MissingCredentialError(TwurlError):
    pass


class ProfileNotFoundError(TwurlError):
    pass


class AliasError(TwurlError):
    pass


class ConfigurationError(TwurlError):
    pass


class NoPathFoundError(TwurlError):
    pass


@dataclass(frozen=True)
class TwurlHTTPError(TwurlError):
    status_code: int
    body: str

    def __str__(self) -> str:  # pragma: no cover
        return f"HTTP {self.status_code}: {self.body}"


class OAuth1Auth(httpx.Auth):
    """Signs each outgoing request with an oauthlib OAuth 1.0a client."""

    requires_request_body = True

    def __init__(self, signer: oauth1.Client) -> None:
        self._signer = signer

    def auth_flow(self, request: httpx.Request) -> Iterator[httpx.Request]:
        body: str | None = None
        headers: dict[str, str] | None = None
        # Form-encoded parameters take part in the signature base string.
        if request.content and request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPE):
            body = request.content.decode("utf-8")
            headers = {"Content-Type": FORM_CONTENT_TYPE}
        _, signed_headers, _ = self._signer.sign(str(request.url), http_method=request.method, body=body, headers=headers)
        request.headers["Authorization"] = signed_headers["Authorization"]
        yield request


def _trace_hooks(sink: OutputSink) -> dict[str, list[Any]]:
    def on_request(request: httpx.Request) -> None:
        sink.puts(f"-> {request.method} {request.url}")
        for key, value in request.headers.items():
            sink.puts(f"-> {key}: {value}")
        if request.content:
            sink.puts(f"-> {request.content.decode('utf-8', errors='replace')}")

    def on_response(response: httpx.Response) -> None:
        sink.puts(f"<- {response.http_version} {response.status_code} {response.reason_phrase}")
        for key, value in response.headers.items():
            sink.puts(f"<- {key}: {value}")

    return {"request": [on_request], "response": [on_response]}


def _proxy_url(proxy: str | None) -> str | None:
    if not proxy:
        return None
    if "://" in proxy:
        return proxy
    return f"http://{proxy}"


class OAuthClient:
    """
    One set of OAuth credentials (consumer + optional access token) and the
    means to sign requests with them.
    """

    def __init__(
        self,
        *,
        rcfile: RCFile,
        username: str | None = None,
        consumer_key: str | None = None,
        consumer_secret: str | None = None,
        token: str | None = None,
        secret: str | None = None,
        password: str | None = None,
    ) -> None:
        self.rcfile = rcfile
        self.username = username
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.token = token
        self.secret = secret
        self.password = password
        self.timeout_s = DEFAULT_TIMEOUT_S
        self._transport: httpx.BaseTransport | None = None

    # -- loading -----------------------------------------------------------

    @classmethod
    def load_from_options(cls, config: RequestConfig, *, rcfile: RCFile | None = None) -> "OAuthClient":
        rcfile = rcfile if rcfile is not None else load_rcfile()
        if rcfile.has_profile(config.username, config.consumer_key):
            return cls.load_client_for_username_and_consumer_key(rcfile, config.username, config.consumer_key)  # type: ignore[arg-type]
        if config.username and config.command != "authorize":
            return cls.load_client_for_username(rcfile, config.username)
        if config.command == "authorize":
            return cls.load_new_client_from_options(rcfile, config)
        if config.command == DEFAULT_COMMAND and all(
            (config.consumer_key, config.consumer_secret, config.access_token, config.token_secret)
        ):
            return cls(rcfile=rcfile, **config.oauth_client_options())
        return cls.load_default_client(rcfile)

    @classmethod
    def _from_profile(cls, rcfile: RCFile, profile: dict[str, Any]) -> "OAuthClient":
        return cls(rcfile=rcfile, **{k: profile.get(k) for k in PROFILE_FIELDS})

    @classmethod
    def load_client_for_username_and_consumer_key(cls, rcfile: RCFile, username: str, consumer_key: str) -> "OAuthClient":
        profile = rcfile.profile(username, consumer_key)
        if profile is None:
            raise ProfileNotFoundError(f"No profile for {username} with consumer key {consumer_key}")
        return cls._from_profile(rcfile, profile)

    @classmethod
    def load_client_for_username(cls, rcfile: RCFile, username: str) -> "OAuthClient":
        user_profiles = rcfile.get(username)
        if not user_profiles:
            raise ProfileNotFoundError(f"No profile for {username}")
        if len(user_profiles) > 1:
            raise ProfileNotFoundError(
                f"There is more than one consumer key associated with {username}. "
                "Please specify which consumer key you want as well."
            )
        return cls._from_profile(rcfile, next(iter(user_profiles.values())))

    @classmethod
    def load_new_client_from_options(cls, rcfile: RCFile, config: RequestConfig) -> "OAuthClient":
        if not config.consumer_key or not config.consumer_secret:
            raise MissingCredentialError("A consumer key and consumer secret are required to authorize (use -c and -s).")
        return cls(rcfile=rcfile, **config.oauth_client_options())

    @classmethod
    def load_default_client(cls, rcfile: RCFile) -> "OAuthClient":
        default = rcfile.default_profile
        if default is None:
            raise UnauthorizedError("You must authorize first")
        return cls.load_client_for_username_and_consumer_key(rcfile, *default)

    # -- state -------------------------------------------------------------

    @property
    def needs_to_authorize(self) -> bool:
        return self.token is None or self.secret is None

    def to_profile(self) -> dict[str, str | None]:
        return {
            "username": self.username,
            "consumer_key": self.consumer_key,
            "consumer_secret": self.consumer_secret,
            "token": self.token,
            "secret": self.secret,
        }

    def save(self) -> None:
        if not self.username:
            raise ProfileNotFoundError("Cannot save a profile without a username")
        self.rcfile.save_profile(self.to_profile())

    # -- transport ---------------------------------------------------------

    def _signer(self, **kwargs: Any) -> oauth1.Client:
        if not self.consumer_key or not self.consumer_secret:
            raise MissingCredentialError("Missing consumer key or consumer secret")
        kwargs.setdefault("resource_owner_key", self.token)
        kwargs.setdefault("resource_owner_secret", self.secret)
        return oauth1.Client(self.consumer_key, client_secret=self.consumer_secret, **kwargs)

    def _http_client(self, config: RequestConfig) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout_s,
            proxy=_proxy_url(config.proxy),
            transport=self._transport,
            event_hooks=_trace_hooks(config.diagnostics) if config.trace else None,
        )

    @contextmanager
    def perform_request_from_options(self, config: RequestConfig) -> Iterator[httpx.Response]:
        if not config.path:
            raise NoPathFoundError("No request path given")
        method = config.resolved_request_method().upper()
        url = config.base_url + config.path
        headers = {k: v for k, v in config.headers.items() if v is not None}

        params = None
        data = None
        if config.data:
            if method in QUERY_METHODS:
                params = {k: v or "" for k, v in config.data.items()}
            else:
                data = {k: v or "" for k, v in config.data.items()}

        auth = OAuth1Auth(self._signer())
        with self._http_client(config) as http:
            try:
                with http.stream(method, url, params=params, data=data, headers=headers, auth=auth) as response:
                    yield response
            except httpx.HTTPError as e:
                raise TwurlError(f"Request failed: {e}") from e

    def _token_request(self, config: RequestConfig, path: str, *, data: dict[str, str] | None = None, **signer_kwargs: Any) -> dict[str, str]:
        auth = OAuth1Auth(self._signer(**signer_kwargs))
        with self._http_client(config) as http:
            try:
                resp = http.request("POST", config.base_url + path, data=data, auth=auth)
            except httpx.HTTPError as e:
                raise TwurlError(f"Request failed: {e}") from e
        if resp.status_code == 401:
            detail = resp.text.strip()
            raise UnauthorizedError(f"Unauthorized: {detail}" if detail else "Unauthorized")
        if resp.status_code >= 400:
            raise TwurlHTTPError(resp.status_code, resp.text)
        return dict(parse_qsl(resp.text))

    # -- authorization -----------------------------------------------------

    def exchange_credentials_for_access_token(self, config: RequestConfig, *, stdin: TextIO | None = None) -> None:
        response: dict[str, str] | None = None
        if self.username and self.password:
            try:
                response = self._token_request(
                    config,
                    ACCESS_TOKEN_PATH,
                    data={
                        "x_auth_username": self.username,
                        "x_auth_password": self.password,
                        "x_auth_mode": "client_auth",
                    },
                    resource_owner_key=None,
                    resource_owner_secret=None,
                )
            except UnauthorizedError:
                response = None
        if response is None:
            response = self.perform_pin_authorize_workflow(config, stdin=stdin)

        token = response.get("oauth_token")
        secret = response.get("oauth_token_secret")
        if not token or not secret:
            raise UnauthorizedError("The access token response did not include a token and secret")
        self.token = token
        self.secret = secret
        if not self.username:
            self.username = response.get("screen_name")

    def perform_pin_authorize_workflow(self, config: RequestConfig, *, stdin: TextIO | None = None) -> dict[str, str]:
        request_token = self._token_request(
            config,
            REQUEST_TOKEN_PATH,
            resource_owner_key=None,
            resource_owner_secret=None,
            callback_uri="oob",
        )
        oauth_token = request_token.get("oauth_token")
        oauth_token_secret = request_token.get("oauth_token_secret")
        if not oauth_token or not oauth_token_secret:
            raise UnauthorizedError("The request token response did not include a token and secret")

        authorize_url = f"{config.base_url}{AUTHORIZE_PATH}?{urlencode({'oauth_token': oauth_token})}"
        config.output.puts(f"Go to {authorize_url} and paste in the supplied PIN")
        pin = (stdin if stdin is not None else sys.stdin).readline().strip()
        if not pin:
            raise UnauthorizedError("No PIN given")

        return self._token_request(
            config,
            ACCESS_TOKEN_PATH,
            resource_owner_key=oauth_token,
            resource_owner_secret=oauth_token_secret,
            verifier=pin,
        )
