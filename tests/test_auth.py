import json

import pytest
import responses

from mangahub import auth, config
from mangahub.output import CommandError, set_quiet

URL = "http://localhost:8080"
PORT_KEYS = ("API_PORT", "TCP_PORT", "UDP_PORT", "GRPC_PORT", "WEBSOCKET_PORT")


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in PORT_KEYS:
        monkeypatch.delenv(key, raising=False)
    set_quiet(False)
    config.init()
    return tmp_path


def test_register_requires_username(workspace):
    password = "password"
    with pytest.raises(CommandError, match="username is required"):
        auth.register("", "alice@example.com", password, password)


def test_register_requires_email(workspace):
    password = "password"
    with pytest.raises(CommandError, match="email is required"):
        auth.register("alice", "", password, password)


def test_register_password_mismatch_sends_nothing(workspace, capsys):
    password = "password"
    with responses.RequestsMock() as rsps:
        with pytest.raises(CommandError, match="passwords do not match"):
            auth.register("alice", "alice@example.com", password, "secret")
        assert len(rsps.calls) == 0
    assert "Passwords do not match" in capsys.readouterr().out


def test_register_success_saves_token(workspace, capsys):
    password = "password"
    reply = {
        "token": "token",
        "user_id": "u1",
        "username": "alice",
        "email": "alice@example.com",
        "created_at": "2024-01-02T03:04:05Z",
    }
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{URL}/auth/register", json=reply, status=201)
        result = auth.register("alice", "alice@example.com", password, password)
        sent = json.loads(rsps.calls[0].request.body)

    assert result["user_id"] == "u1"
    assert sent == {"username": "alice", "email": "alice@example.com", "password": password}
    cfg = config.load()
    assert cfg.user.username == "alice"
    assert cfg.user.token == "token"
    out = capsys.readouterr().out
    assert "Created: 2024-01-02 03:04:05 UTC" in out
    assert "Account created successfully!" in out


def test_register_conflict(workspace, capsys):
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            f"{URL}/auth/register",
            json={"error": "Username already exists"},
            status=409,
        )
        with pytest.raises(CommandError, match="registration failed"):
            auth.register("alice", "alice@example.com", password, password)
    out = capsys.readouterr().out
    assert "Try: mangahub auth login --username alice" in out
    assert config.load().user.token == ""


def test_register_weak_password_message(workspace, capsys):
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            f"{URL}/auth/register",
            json={"error": "Password too weak: must be at least 8 characters with mixed case and numbers"},
            status=400,
        )
        with pytest.raises(CommandError):
            auth.register("alice", "alice@example.com", password, password)
    assert "Registration failed: Password too weak" in capsys.readouterr().out


def test_register_without_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    password = "password"
    with pytest.raises(CommandError):
        auth.register("alice", "alice@example.com", password, password)
    assert "Configuration not initialized" in capsys.readouterr().out


def test_login_requires_identifier(workspace):
    password = "password"
    with pytest.raises(CommandError, match="username or email is required"):
        auth.login("", "", password)


def test_login_success_saves_token(workspace, capsys):
    password = "password"
    reply = {
        "token": "token",
        "user_id": "u1",
        "username": "alice",
        "email": "alice@example.com",
        "expires_at": "2024-01-02T03:04:05Z",
    }
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{URL}/auth/login", json=reply, status=200)
        auth.login("alice", "", password)
        sent = json.loads(rsps.calls[0].request.body)

    assert sent == {"username": "alice", "password": password}
    assert config.load().user.token == "token"
    out = capsys.readouterr().out
    assert "Welcome back, alice!" in out
    assert "Auto-sync: true" in out


def test_login_by_email_omits_username(workspace, capsys):
    password = "password"
    reply = {"token": "token", "username": "alice"}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{URL}/auth/login", json=reply, status=200)
        auth.login("", "alice@example.com", password)
        sent = json.loads(rsps.calls[0].request.body)
    assert "username" not in sent
    assert sent == {"email": "alice@example.com", "password": password}
    cfg = config.load()
    assert cfg.user.username == "alice"
    assert cfg.user.token == "token"
    assert "Welcome back, alice!" in capsys.readouterr().out


def test_login_invalid_credentials(workspace, capsys):
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{URL}/auth/login", json={"error": "Invalid credentials"}, status=401)
        with pytest.raises(CommandError, match="login failed"):
            auth.login("alice", "", password)
    assert "Login failed: Invalid credentials" in capsys.readouterr().out
    assert config.load().user.token == ""


def test_login_account_not_found(workspace, capsys):
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{URL}/auth/login", json={"error": "Account not found"}, status=401)
        with pytest.raises(CommandError):
            auth.login("", "alice@example.com", password)
    out = capsys.readouterr().out
    assert "Try: mangahub auth register --username alice@example.com --email alice@example.com" in out


def test_logout_when_not_logged_in(workspace, capsys):
    assert auth.logout() is None
    assert "You are not logged in" in capsys.readouterr().out


def test_logout_clears_token(workspace, capsys):
    config.update_user_token("alice", "token")
    assert auth.logout() == "alice"
    cfg = config.load()
    assert cfg.user.token == ""
    assert cfg.user.username == ""
    assert "Goodbye, alice!" in capsys.readouterr().out


def test_logout_without_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(CommandError):
        auth.logout()