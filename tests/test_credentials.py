"""Tests for the credential provider invocation."""

import json
import subprocess
from pathlib import Path

import pytest

from nuget_gallery import credentials
from nuget_gallery.credentials import CredentialAcquirer
from nuget_gallery.errors import CredentialError

URL = "https://pkgs.example/feed/v2"


class FakeTaskRunner:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    async def run(self, command, args):
        self.calls.append((command, list(args)))
        if self.fail:
            raise subprocess.CalledProcessError(1, command)


def _completed(cmd, stdout="", returncode=0):
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")


def _credentials_json(username="user", password="secret"):
    return json.dumps({"Username": username, "Password": password})


def test_provider_folder_expands_user_profile_and_strips_separators():
    acquirer = CredentialAcquirer("{user-profile}/plugins/cp/\\", platform="linux")

    assert acquirer.resolve_provider_folder() == f"{Path.home()}/plugins/cp"


def test_provider_command_on_windows():
    acquirer = CredentialAcquirer("C:\\tools\\cp\\", platform="win32")

    assert acquirer.provider_command() == ["C:\\tools\\cp\\CredentialProvider.Microsoft.exe"]


def test_provider_command_elsewhere_uses_runtime_host():
    acquirer = CredentialAcquirer("/opt/cp/", platform="linux")

    assert acquirer.provider_command() == ["dotnet", "/opt/cp/CredentialProvider.Microsoft.dll"]


@pytest.mark.asyncio
async def test_silent_success_skips_interactive_login(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return _completed(cmd, _credentials_json())

    monkeypatch.setattr(credentials.subprocess, "run", fake_run)
    runner = FakeTaskRunner()
    acquirer = CredentialAcquirer("/opt/cp", task_runner=runner, platform="linux")

    result = await acquirer.acquire(URL)

    assert result.username == "user"
    assert result.password == "secret"
    assert runner.calls == []
    assert len(calls) == 1
    cmd, kwargs = calls[0]
    assert cmd[2:] == ["-I", "-N", "-F", "Json", "-U", URL]
    assert kwargs["timeout"] == 10.0


@pytest.mark.asyncio
async def test_silent_timeout_falls_back_to_interactive_then_requery(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        if "-I" in cmd:
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])
        return _completed(cmd, _credentials_json("late", "pw"))

    monkeypatch.setattr(credentials.subprocess, "run", fake_run)
    runner = FakeTaskRunner()
    acquirer = CredentialAcquirer("/opt/cp", task_runner=runner, platform="linux")

    result = await acquirer.acquire(URL)

    assert (result.username, result.password) == ("late", "pw")
    assert runner.calls == [
        ("dotnet", ["/opt/cp/CredentialProvider.Microsoft.dll", "-C", "False", "-R", "-U", URL])
    ]
    assert calls[-1][2:] == ["-N", "-F", "Json", "-U", URL]


@pytest.mark.asyncio
async def test_non_zero_exit_falls_back_to_interactive(monkeypatch):
    def fake_run(cmd, **kwargs):
        if "-I" in cmd:
            return _completed(cmd, returncode=1)
        return _completed(cmd, _credentials_json())

    monkeypatch.setattr(credentials.subprocess, "run", fake_run)
    runner = FakeTaskRunner()
    acquirer = CredentialAcquirer("/opt/cp", task_runner=runner, platform="linux")

    await acquirer.acquire(URL)

    assert len(runner.calls) == 1


@pytest.mark.asyncio
async def test_unparsable_output_raises_credential_error(monkeypatch):
    monkeypatch.setattr(
        credentials.subprocess, "run", lambda cmd, **kwargs: _completed(cmd, "not json")
    )
    acquirer = CredentialAcquirer("/opt/cp", task_runner=FakeTaskRunner(), platform="linux")

    with pytest.raises(CredentialError) as excinfo:
        await acquirer.acquire(URL)

    assert str(excinfo.value) == CredentialError.MESSAGE


@pytest.mark.asyncio
async def test_missing_provider_raises_credential_error(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(credentials.subprocess, "run", fake_run)
    acquirer = CredentialAcquirer("/opt/cp", task_runner=FakeTaskRunner(), platform="linux")

    with pytest.raises(CredentialError):
        await acquirer.acquire(URL)


@pytest.mark.asyncio
async def test_failed_interactive_login_raises_credential_error(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(credentials.subprocess, "run", fake_run)
    acquirer = CredentialAcquirer("/opt/cp", task_runner=FakeTaskRunner(fail=True), platform="linux")

    with pytest.raises(CredentialError):
        await acquirer.acquire(URL)


def test_credentials_token_is_basic_auth_value():
    from nuget_gallery.models import Credentials

    assert Credentials("user", "pass").token == "dXNlcjpwYXNz"
