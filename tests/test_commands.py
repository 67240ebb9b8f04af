import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import httpx

from twurl.client import AliasError, ConfigurationError, NoPathFoundError, OAuthClient, ProfileNotFoundError, UnauthorizedError
from twurl.commands import (
    NO_ALIASES_MESSAGE,
    NO_AUTHORIZED_ACCOUNTS_MESSAGE,
    NO_PATH_PROVIDED_MESSAGE,
    cmd_accounts,
    cmd_alias,
    cmd_authorize,
    cmd_request,
    cmd_set,
)
from twurl.options import RequestConfig
from twurl.output import captured
from twurl.rcfile import RCFile


def _profile(username: str, consumer_key: str) -> dict:
    return {
        "username": username,
        "consumer_key": consumer_key,
        "consumer_secret": f"{consumer_key}-secret",
        "token": f"{username}-token",
        "secret": f"{username}-secret",
    }


class _CommandCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.rcfile = RCFile(Path(self._tmp.name) / "twurlrc.json")
        self.client = OAuthClient(rcfile=self.rcfile, username="alice", consumer_key="ck", consumer_secret="cs", token="t", secret="s")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _config(self, **kwargs) -> RequestConfig:
        return RequestConfig(output_sink=captured(), **kwargs)


class TestAuthorize(_CommandCase):
    def test_already_authorized(self) -> None:
        config = self._config(command="authorize")
        cmd_authorize(self.client, config)
        self.assertEqual(config.output.getvalue(), "Already authorized\n")

    def test_exchanges_and_saves(self) -> None:
        client = OAuthClient(rcfile=self.rcfile, username="bob", password="pw", consumer_key="ck", consumer_secret="cs")

        def exchange(config):
            client.token, client.secret = "bt", "bs"

        config = self._config(command="authorize")
        with patch.object(client, "exchange_credentials_for_access_token", side_effect=exchange):
            cmd_authorize(client, config)

        self.assertEqual(config.output.getvalue(), "Authorization successful\n")
        self.assertEqual(self.rcfile.profile("bob", "ck")["token"], "bt")
        self.assertEqual(self.rcfile.default_profile, ("bob", "ck"))


class TestAccounts(_CommandCase):
    def test_lists_accounts_and_marks_default(self) -> None:
        self.rcfile.save_profile(_profile("zed", "ck9"))
        self.rcfile.save_profile(_profile("alice", "ck1"))
        self.rcfile.save_profile(_profile("alice", "ck2"))
        config = self._config(command="accounts")
        cmd_accounts(self.client, config)
        self.assertEqual(config.output.getvalue(), "alice\n  ck1\n  ck2\nzed\n  ck9 (default)\n")

    def test_no_accounts(self) -> None:
        config = self._config(command="accounts")
        cmd_accounts(self.client, config)
        self.assertEqual(config.output.getvalue(), NO_AUTHORIZED_ACCOUNTS_MESSAGE + "\n")


class TestAlias(_CommandCase):
    def test_list_when_empty(self) -> None:
        config = self._config(command="alias")
        cmd_alias(self.client, config)
        self.assertEqual(config.output.getvalue(), NO_ALIASES_MESSAGE + "\n")

    def test_set_and_list(self) -> None:
        cmd_alias(self.client, self._config(command="alias", subcommands=["h"], path="/1.1/statuses/home_timeline.json"))
        cmd_alias(self.client, self._config(command="alias", subcommands=["m"], path="/1.1/statuses/mentions.json"))
        config = self._config(command="alias")
        cmd_alias(self.client, config)
        self.assertEqual(
            config.output.getvalue(),
            "h: /1.1/statuses/home_timeline.json\nm: /1.1/statuses/mentions.json\n",
        )

    def test_name_without_path(self) -> None:
        config = self._config(command="alias", subcommands=["h"])
        cmd_alias(self.client, config)
        self.assertEqual(config.output.getvalue(), NO_PATH_PROVIDED_MESSAGE + "\n")
        self.assertEqual(self.rcfile.aliases, {})

    def test_too_many_names(self) -> None:
        with self.assertRaises(AliasError):
            cmd_alias(self.client, self._config(command="alias", subcommands=["a", "b"], path="/x"))


class TestSet(_CommandCase):
    def test_default_by_username(self) -> None:
        self.rcfile.save_profile(_profile("alice", "ck1"))
        self.rcfile.save_profile(_profile("bob", "ck2"))
        cmd_set(self.client, self._config(command="set", subcommands=["default", "bob"]))
        self.assertEqual(self.rcfile.default_profile, ("bob", "ck2"))

    def test_default_by_username_and_consumer_key(self) -> None:
        self.rcfile.save_profile(_profile("alice", "ck1"))
        self.rcfile.save_profile(_profile("alice", "ck2"))
        cmd_set(self.client, self._config(command="set", subcommands=["default", "alice", "ck2"]))
        self.assertEqual(self.rcfile.default_profile, ("alice", "ck2"))

    def test_unknown_account(self) -> None:
        with self.assertRaises(ProfileNotFoundError) as cm:
            cmd_set(self.client, self._config(command="set", subcommands=["default", "nobody"]))
        self.assertIn("Unknown account: 'nobody'", str(cm.exception))

    def test_unknown_setting(self) -> None:
        with self.assertRaises(ConfigurationError) as cm:
            cmd_set(self.client, self._config(command="set", subcommands=["color", "blue"]))
        self.assertIn("Unrecognized setting: 'color'", str(cm.exception))

    def test_missing_setting(self) -> None:
        with self.assertRaises(ConfigurationError):
            cmd_set(self.client, self._config(command="set"))


class TestRequest(_CommandCase):
    def _mock(self, seen: list) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="hello from the api")

        self.client._transport = httpx.MockTransport(handler)  # type: ignore[attr-defined]

    def test_streams_body_to_output(self) -> None:
        seen: list[httpx.Request] = []
        self._mock(seen)
        config = self._config(path="/1.1/statuses/home_timeline.json")
        cmd_request(self.client, config)
        self.assertEqual(config.output.getvalue(), "hello from the api")
        self.assertEqual(seen[0].url.path, "/1.1/statuses/home_timeline.json")

    def test_alias_supplies_path(self) -> None:
        self.rcfile.set_alias("h", "/1.1/statuses/home_timeline.json")
        seen: list[httpx.Request] = []
        self._mock(seen)
        config = self._config(subcommands=["h"])
        cmd_request(self.client, config)
        self.assertEqual(config.path, "/1.1/statuses/home_timeline.json")
        self.assertEqual(seen[0].url.path, "/1.1/statuses/home_timeline.json")

    def test_no_path(self) -> None:
        with self.assertRaises(NoPathFoundError):
            cmd_request(self.client, self._config(subcommands=["unknown"]))

    def test_requires_authorization(self) -> None:
        client = OAuthClient(rcfile=self.rcfile, consumer_key="ck", consumer_secret="cs")
        with self.assertRaises(UnauthorizedError):
            cmd_request(client, self._config(path="/x"))


if __name__ == "__main__":
    unittest.main()
