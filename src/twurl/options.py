from __future__ import annotations

from dataclasses import dataclass, field

from .output import STDERR, STDOUT, OutputSink

DEFAULT_COMMAND = "request"
DEFAULT_REQUEST_METHOD = "get"
DEFAULT_HOST = "api.twitter.com"
DEFAULT_PROTOCOL = "https"


@dataclass
class RequestConfig:
    """
    Per-invocation request configuration.

    host/protocol/request_method hold only what the user set explicitly; the
    resolved_* helpers apply defaults at read time.
    """

    command: str = DEFAULT_COMMAND
    path: str | None = None
    subcommands: list[str] = field(default_factory=list)

    consumer_key: str | None = None
    consumer_secret: str | None = None
    access_token: str | None = None
    token_secret: str | None = None
    username: str | None = None
    password: str | None = None

    host: str | None = None
    protocol: str | None = None
    request_method: str | None = None
    proxy: str | None = None
    data: dict[str, str | None] = field(default_factory=dict)
    headers: dict[str, str | None] = field(default_factory=dict)
    trace: bool = False
    output_sink: OutputSink | None = None

    def resolved_request_method(self) -> str:
        if self.request_method:
            return self.request_method
        return "post" if self.data else DEFAULT_REQUEST_METHOD

    def resolved_host(self) -> str:
        return self.host or DEFAULT_HOST

    def resolved_protocol(self) -> str:
        return self.protocol or DEFAULT_PROTOCOL

    @property
    def base_url(self) -> str:
        return f"{self.resolved_protocol()}://{self.resolved_host()}"

    @property
    def is_ssl(self) -> bool:
        return self.resolved_protocol() == "https"

    @property
    def output(self) -> OutputSink:
        return self.output_sink if self.output_sink is not None else STDOUT

    @property
    def diagnostics(self) -> OutputSink:
        return STDERR

    def oauth_client_options(self) -> dict[str, str | None]:
        return {
            "username": self.username,
            "consumer_key": self.consumer_key,
            "consumer_secret": self.consumer_secret,
            "token": self.access_token,
            "secret": self.token_secret,
            "password": self.password,
        }
