from __future__ import annotations

import argparse
import re
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from ._version import __version__
from .client import OAuthClient, TwurlError, TwurlHTTPError
from .commands import cmd_accounts, cmd_alias, cmd_authorize, cmd_request, cmd_set
from .options import DEFAULT_COMMAND, RequestConfig
from .output import STDERR, captured
from .prompt import prompt_for
from .rcfile import RCFile

SUPPORTED_COMMANDS = ("authorize", "accounts", "alias", "set")
PATH_PATTERN = re.compile(r"^/\w+")
TUTORIAL = Path(__file__).with_name("tutorial.txt")

HANDLERS: dict[str, Callable[[OAuthClient, RequestConfig], None]] = {
    "authorize": cmd_authorize,
    "accounts": cmd_accounts,
    "alias": cmd_alias,
    "set": cmd_set,
    DEFAULT_COMMAND: cmd_request,
}


# -- argument extraction -------------------------------------------------------


def extract_command(arguments: list[str]) -> str:
    if arguments and arguments[0] in SUPPORTED_COMMANDS:
        return arguments.pop(0)
    return DEFAULT_COMMAND


def extract_path(arguments: list[str]) -> str | None:
    for index, argument in enumerate(arguments):
        if PATH_PATTERN.match(argument):
            return arguments.pop(index)
    return None


def extract_arguments(args: Sequence[str]) -> tuple[str, str | None, list[str]]:
    arguments = list(args)
    # Command first: the path scan must only see what is left after it.
    command = extract_command(arguments)
    path = extract_path(arguments)
    return command, path, arguments


# -- flag grammar ----------------------------------------------------------------


def _split_pair(text: str, separator: str) -> tuple[str, str | None]:
    key, found, value = text.partition(separator)
    return key, (value if found else None)


def _set_data(config: RequestConfig, data: str) -> None:
    for pair in filter(None, data.split("&")):
        key, value = _split_pair(pair, "=")
        config.data[key] = value


def _set_header(config: RequestConfig, header: str) -> None:
    key, value = _split_pair(header, ": ")
    config.headers[key] = value or None


def _print_tutorial(config: RequestConfig, _: Any) -> None:
    config.output.puts(TUTORIAL.read_text(encoding="utf-8"))
    raise SystemExit(0)


def _secret(attr: str, label: str) -> Callable[[RequestConfig, str | None], None]:
    def handler(config: RequestConfig, value: str | None) -> None:
        setattr(config, attr, value if value is not None else prompt_for(label, config.output))

    return handler


def _value(attr: str) -> Callable[[RequestConfig, str | None], None]:
    def handler(config: RequestConfig, value: str | None) -> None:
        setattr(config, attr, value)

    return handler


def _set_trace(config: RequestConfig, option_string: str) -> None:
    config.trace = not option_string.startswith("--no-")


def _set_quiet(config: RequestConfig, _: Any) -> None:
    config.output_sink = captured()


def _disable_ssl(config: RequestConfig, _: Any) -> None:
    config.protocol = "http"


def _set_request_method(config: RequestConfig, method: str) -> None:
    config.request_method = method.lower()


@dataclass(frozen=True)
class Flag:
    options: tuple[str, ...]
    help: str
    handler: Callable[[RequestConfig, Any], None]
    # "?" = optional value, None = required value, 0 = no value (handler gets the option string).
    nargs: str | int | None = None
    metavar: str | None = None


FLAG_SECTIONS: tuple[tuple[str, tuple[Flag, ...]], ...] = (
    (
        "Getting started",
        (Flag(("-T", "--tutorial"), "Narrative overview of how to get started using twurl", _print_tutorial, nargs=0),),
    ),
    (
        "Authorization options",
        (
            Flag(("-u", "--username"), "Username of account to authorize (required)", _value("username"), "?", "username"),
            Flag(("-p", "--password"), "Password of account to authorize (required)", _secret("password", "Password"), "?", "password"),
            Flag(("-c", "--consumer-key"), "Your consumer key (required)", _secret("consumer_key", "Consumer key"), "?", "key"),
            Flag(("-s", "--consumer-secret"), "Your consumer secret (required)", _secret("consumer_secret", "Consumer secret"), "?", "secret"),
            Flag(("-a", "--access-token"), "Your access token", _value("access_token"), metavar="token"),
            Flag(("-S", "--token-secret"), "Your token secret", _value("token_secret"), metavar="secret"),
        ),
    ),
    (
        "Common options",
        (
            Flag(("-t", "--trace", "--no-trace"), "Trace request/response traffic (default: --no-trace)", _set_trace, nargs=0),
            Flag(("-d", "--data"), "Sends the specified data in a POST request to the HTTP server.", _set_data, metavar="data"),
            Flag(("-A", "--header"), "Adds the specified header to the request to the HTTP server.", _set_header, metavar="header"),
            Flag(("-H", "--host"), "Specify host to make requests to (default: api.twitter.com)", _value("host"), metavar="host"),
            Flag(("-q", "--quiet"), "Suppress all output (default: output is printed to STDOUT)", _set_quiet, nargs=0),
            Flag(("-U", "--no-ssl"), "Disable SSL (default: SSL is enabled)", _disable_ssl, nargs=0),
            Flag(("-X", "--request-method"), "Request method (default: GET)", _set_request_method, metavar="method"),
            Flag(("-P", "--proxy"), "Specify HTTP proxy to forward requests to (default: No proxy)", _value("proxy"), metavar="proxy"),
        ),
    ),
)


class _FlagAction(argparse.Action):
    def __init__(self, option_strings: list[str], dest: str, handler: Callable[[RequestConfig, Any], None], **kwargs: Any) -> None:
        self.handler = handler
        kwargs.setdefault("default", argparse.SUPPRESS)
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser: argparse.ArgumentParser, namespace: argparse.Namespace, values: Any, option_string: str | None = None) -> None:
        self.handler(namespace.config, option_string if self.nargs == 0 else values)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="twurl",
        add_help=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        usage=textwrap.dedent(
            """\
            twurl authorize -u username -p password --consumer-key KEY --consumer-secret SECRET
                   twurl [options] /1.1/statuses/home_timeline.json"""
        ),
        description=f"Supported commands: {', '.join(sorted(SUPPORTED_COMMANDS))}",
    )

    for heading, flags in FLAG_SECTIONS:
        group = p.add_argument_group(heading)
        for flag in flags:
            group.add_argument(
                *flag.options,
                dest=flag.options[-1].lstrip("-").replace("-", "_"),
                action=_FlagAction,
                handler=flag.handler,
                nargs=flag.nargs,
                metavar=flag.metavar,
                help=flag.help,
            )

    tail = p.add_argument_group("Other")
    tail.add_argument("-h", "--help", action="help", help="Show this message")
    tail.add_argument("-v", "--version", action="version", version=__version__, help="Show version")

    p.add_argument("arguments", nargs="*", help=argparse.SUPPRESS)
    return p


def parse_options(args: Sequence[str]) -> RequestConfig:
    config = RequestConfig()
    namespace = build_parser().parse_intermixed_args(list(args), namespace=argparse.Namespace(config=config))
    # Flags have claimed their values; command and path come from what is left.
    config.command, config.path, config.subcommands = extract_arguments(namespace.arguments)
    return config


# -- dispatch --------------------------------------------------------------------


def _format_http_error(err: TwurlHTTPError) -> str:
    detail = err.body.strip()
    if err.status_code == 401:
        base = "HTTP 401 Unauthorized. Check your consumer key and access token."
    elif err.status_code == 403:
        base = "HTTP 403 Forbidden. You are authenticated but not allowed to access this resource."
    elif err.status_code == 404:
        base = "HTTP 404 Not Found."
    else:
        base = f"HTTP {err.status_code}"
    if detail:
        return f"{base} {detail}"
    return base


def dispatch(config: RequestConfig, *, rcfile: RCFile | None = None) -> int:
    handler = HANDLERS.get(config.command, cmd_request)
    try:
        client = OAuthClient.load_from_options(config, rcfile=rcfile)
        handler(client, config)
    except TwurlHTTPError as e:
        STDERR.puts(f"error: {_format_http_error(e)}")
        return 1
    except TwurlError as e:
        STDERR.puts(f"error: {e}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    config = parse_options(sys.argv[1:] if argv is None else argv)
    return dispatch(config)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
