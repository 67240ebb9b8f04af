from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from typing import Any, Iterable

from platformdirs import user_config_path

PROFILE_FIELDS = ("username", "consumer_key", "consumer_secret", "token", "secret")


def rcfile_path(path_override: str | Path | None = None) -> Path:
    if path_override is not None:
        return Path(path_override).expanduser()
    if env := os.getenv("TWURL_RCFILE"):
        return Path(env).expanduser()
    return user_config_path("twurl") / "twurlrc.json"


def _empty() -> dict[str, Any]:
    return {"profiles": {}, "configuration": {}, "aliases": {}}


class RCFile:
    """
    Stored OAuth profiles, the default profile and path aliases.

    Layout:
        {"profiles": {username: {consumer_key: {...}}},
         "configuration": {"default_profile": [username, consumer_key]},
         "aliases": {name: path}}
    """

    def __init__(self, path: Path, data: dict[str, Any] | None = None) -> None:
        self.path = path
        self.data = data if data is not None else _empty()
        for key, value in _empty().items():
            if not isinstance(self.data.get(key), dict):
                self.data[key] = value

    @property
    def profiles(self) -> dict[str, dict[str, dict[str, str]]]:
        return self.data["profiles"]

    @property
    def aliases(self) -> dict[str, str]:
        return self.data["aliases"]

    @property
    def default_profile(self) -> tuple[str, str] | None:
        raw = self.data["configuration"].get("default_profile")
        if isinstance(raw, list) and len(raw) == 2:
            return raw[0], raw[1]
        return None

    def is_empty(self) -> bool:
        return not self.profiles

    def get(self, username: str) -> dict[str, dict[str, str]] | None:
        return self.profiles.get(username)

    def has_profile(self, username: str | None, consumer_key: str | None) -> bool:
        if not username or not consumer_key:
            return False
        return consumer_key in self.profiles.get(username, {})

    def profile(self, username: str, consumer_key: str) -> dict[str, str] | None:
        return self.profiles.get(username, {}).get(consumer_key)

    def save_profile(self, profile: dict[str, Any]) -> None:
        username = profile["username"]
        consumer_key = profile["consumer_key"]
        self.profiles.setdefault(username, {})[consumer_key] = {k: profile.get(k) for k in PROFILE_FIELDS}
        if self.default_profile is None:
            self.data["configuration"]["default_profile"] = [username, consumer_key]
        self.save()

    def set_default_profile(self, username: str, consumer_key: str) -> None:
        self.data["configuration"]["default_profile"] = [username, consumer_key]
        self.save()

    def set_alias(self, name: str, path: str) -> None:
        self.aliases[name] = path
        self.save()

    def alias_from_arguments(self, arguments: Iterable[str]) -> str | None:
        for argument in arguments:
            if argument in self.aliases:
                return self.aliases[argument]
        return None

    def save(self) -> Path:
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(self.data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        tmp.replace(path)

        # Best-effort permissions hardening (the file holds secrets).
        try:
            os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
        except OSError:
            pass

        return path


def load_rcfile(path_override: str | Path | None = None) -> RCFile:
    path = rcfile_path(path_override)
    if not path.exists():
        return RCFile(path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        return RCFile(path)
    return RCFile(path, raw)

