# Tests for __main__.py
# Created: 2026-10-13

import json
import logging

import pytest

from authflow.__main__ import main
from authflow.config import get_settings


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("AUTHFLOW_MOCK_DELAY", "0")
    monkeypatch.delenv("AUTHFLOW_MOCK_OAUTH", raising=False)
    get_settings.cache_clear()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield tmp_path
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()


def _last_json(out: str) -> dict:
    return json.loads(out[out.index("{"):])


class TestCli:
    def test_whoami_signed_out(self, capsys):
        assert main(["whoami"]) == 1
        assert "Not signed in." in capsys.readouterr().out

    def test_mock_login_persists_until_logout(self, capsys):
        assert main(["login", "--provider", "github", "--mock"]) == 0
        assert _last_json(capsys.readouterr().out)["id"] == "github_456"

        assert main(["whoami"]) == 0
        assert _last_json(capsys.readouterr().out)["id"] == "github_456"

        assert main(["logout"]) == 0
        assert main(["whoami"]) == 1

    def test_mock_signup_twice(self, capsys):
        assert main(["signup", "--provider", "google"]) == 0
        capsys.readouterr()
        assert main(["signup", "--provider", "google"]) == 1
        assert "already exists" in capsys.readouterr().err

    def test_register_and_signin(self, capsys):
        args = ["--email", "a@b.io", "--username", "alice", "--password", "Secret123"]
        assert main(["register", *args]) == 0
        assert _last_json(capsys.readouterr().out)["username"] == "alice"
        main(["logout"])

        assert main(["signin", "--username", "alice", "--password", "Secret123", "--remember"]) == 0
        assert main(["signin", "--username", "alice", "--password", "Wrong1234"]) == 1
        assert "Invalid username or password" in capsys.readouterr().err

    def test_register_invalid(self, capsys):
        code = main(["register", "--email", "bad", "--username", "al", "--password", "weak"])
        assert code == 1
        assert "valid email" in capsys.readouterr().err

    def test_unknown_command(self):
        with pytest.raises(SystemExit):
            main(["frobnicate"])
