from __future__ import annotations

from .client import AliasError, ConfigurationError, NoPathFoundError, OAuthClient, ProfileNotFoundError, UnauthorizedError
from .options import RequestConfig

NO_ALIASES_MESSAGE = "No aliases exist. Set one this way: twurl alias h /1.1/statuses/home_timeline.json"
NO_PATH_PROVIDED_MESSAGE = (
    "No path was provided to alias. Paths must start with a forward slash (ex. /1.1/statuses/update.json)."
)
NO_AUTHORIZED_ACCOUNTS_MESSAGE = "No authorized accounts"


def cmd_authorize(client: OAuthClient, config: RequestConfig) -> None:
    if not client.needs_to_authorize:
        config.output.puts("Already authorized")
        return
    client.exchange_credentials_for_access_token(config)
    client.save()
    config.output.puts("Authorization successful")


def cmd_accounts(client: OAuthClient, config: RequestConfig) -> None:
    rcfile = client.rcfile
    if rcfile.is_empty():
        config.output.puts(NO_AUTHORIZED_ACCOUNTS_MESSAGE)
        return
    for account_name in sorted(rcfile.profiles):
        config.output.puts(account_name)
        for consumer_key in rcfile.profiles[account_name]:
            summary = f"  {consumer_key}"
            if rcfile.default_profile == (account_name, consumer_key):
                summary += " (default)"
            config.output.puts(summary)


def cmd_alias(client: OAuthClient, config: RequestConfig) -> None:
    rcfile = client.rcfile
    if not config.subcommands:
        if not rcfile.aliases:
            config.output.puts(NO_ALIASES_MESSAGE)
            return
        for name in sorted(rcfile.aliases):
            config.output.puts(f"{name}: {rcfile.aliases[name]}")
        return

    if len(config.subcommands) > 1:
        raise AliasError(f"Expected one alias name, got {len(config.subcommands)}: {' '.join(config.subcommands)}")

    if not config.path:
        config.output.puts(NO_PATH_PROVIDED_MESSAGE)
        return
    rcfile.set_alias(config.subcommands[0], config.path)


def cmd_set(client: OAuthClient, config: RequestConfig) -> None:
    if not config.subcommands:
        raise ConfigurationError("Missing setting. Usage: twurl set default <username> [consumer_key]")
    setting, *values = config.subcommands
    if setting != "default":
        raise ConfigurationError(f"Unrecognized setting: '{setting}'")
    if len(values) not in (1, 2):
        raise ConfigurationError("Usage: twurl set default <username> [consumer_key]")

    rcfile = client.rcfile
    try:
        if len(values) == 1:
            profile = OAuthClient.load_client_for_username(rcfile, values[0])
        else:
            profile = OAuthClient.load_client_for_username_and_consumer_key(rcfile, values[0], values[1])
    except ProfileNotFoundError as e:
        raise ProfileNotFoundError(f"Unknown account: '{values[-1]}' ({e})") from e
    rcfile.set_default_profile(profile.username, profile.consumer_key)  # type: ignore[arg-type]


def cmd_request(client: OAuthClient, config: RequestConfig) -> None:
    if client.needs_to_authorize:
        raise UnauthorizedError("You need to authorize first.")
    if not config.path:
        config.path = client.rcfile.alias_from_arguments(config.subcommands)
    if not config.path:
        raise NoPathFoundError("No request path given. Paths must start with a forward slash (ex. /1.1/statuses/home_timeline.json).")

    with client.perform_request_from_options(config) as response:
        for chunk in response.iter_text():
            config.output.print(chunk)
