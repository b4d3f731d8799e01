"""Account registration, login and logout commands."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from http import HTTPStatus

import requests

from . import config
from .output import CommandError, print_error, print_info, print_success

_ZERO_TIME = "0001-01-01 00:00:00 UTC"
_FRACTION = re.compile(r"\.(\d+)")


def _format_time(value):
    """Render an RFC 3339 timestamp as ``YYYY-MM-DD HH:MM:SS ZONE``."""
    if not isinstance(value, str) or not value.strip():
        return _ZERO_TIME
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    offset = moment.utcoffset()
    zone = "UTC" if not offset else moment.strftime("%z")
    return f"{moment.strftime('%Y-%m-%d %H:%M:%S')} {zone}"


def _json_body(response):
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _server_url():
    try:
        return config.get_server_url()
    except CommandError:
        print_error("Configuration not initialized")
        print("Run: mangahub init")
        raise


def _save_token(username, token):
    try:
        config.update_user_token(username, token)
    except CommandError:
        print("Warning: Failed to save token to config")


def register(username, email, password, confirm_password):
    """Create an account, store its token and return the server's reply."""
    if not username:
        raise CommandError("username is required (--username)")
    if not email:
        raise CommandError("email is required (--email)")
    if password != confirm_password:
        print_error("Passwords do not match")
        raise CommandError("passwords do not match")

    server_url = _server_url()
    try:
        response = requests.post(
            f"{server_url}/auth/register",
            json={"username": username, "email": email, "password": password},
        )
    except requests.RequestException as exc:
        print_error("Registration failed: Server connection error")
        print("Check server status: mangahub server status")
        raise CommandError(str(exc)) from exc

    data = _json_body(response)
    if response.status_code != HTTPStatus.CREATED:
        message = str(data.get("error", ""))
        if "already exists" in message:
            print_error(f"Registration failed: {message}")
            print(f"Try: mangahub auth login --username {username}")
        elif "Invalid email" in message:
            print_error("Registration failed: Invalid email format")
            print("Please provide a valid email address")
        elif "weak" in message or "Password" in message:
            print_error("Registration failed: Password too weak")
            print("Password must be at least 8 characters with mixed case and numbers")
        else:
            print_error(f"Registration failed: {message}")
        raise CommandError("registration failed")

    saved_name = str(data.get("username") or "")
    _save_token(saved_name, str(data.get("token") or ""))

    print_success("Account created successfully!")
    print(f"User ID: {data.get('user_id') or ''}")
    print(f"Username: {saved_name}")
    print(f"Email: {data.get('email') or ''}")
    print(f"Created: {_format_time(data.get('created_at'))}")
    print("\nYou are now logged in!")
    print('Try: mangahub manga search "your favorite manga"')
    return data


def login(username, email, password):
    """Log in by username or email, store the token and return the server's reply."""
    if not username and not email:
        raise CommandError("username or email is required (--username or --email)")

    server_url = _server_url()
    body = {"password": password}
    if username:
        body["username"] = username
    if email:
        body["email"] = email

    try:
        response = requests.post(f"{server_url}/auth/login", json=body)
    except requests.RequestException as exc:
        print_error("Login failed: Server connection error")
        print("Check server status: mangahub server status")
        raise CommandError(str(exc)) from exc

    data = _json_body(response)
    if response.status_code != HTTPStatus.OK:
        message = str(data.get("error", ""))
        if "Invalid credentials" in message:
            print_error("Login failed: Invalid credentials")
            print("Check your username and password")
        elif "not found" in message:
            print_error("Login failed: Account not found")
            identifier = username or email
            print(f"Try: mangahub auth register --username {identifier} --email {email}")
        else:
            print_error(f"Login failed: {message}")
        raise CommandError("login failed")

    saved_name = str(data.get("username") or "")
    _save_token(saved_name, str(data.get("token") or ""))

    print_success("Login successful!")
    print(f"Welcome back, {saved_name}!")
    print("\nSession Details:")
    print(f"  Token expires: {_format_time(data.get('expires_at'))} (24 hours)")
    print("  Permissions: read, write, sync")

    try:
        cfg = config.load()
    except CommandError:
        cfg = config.Config()
    print(f"  Auto-sync: {str(cfg.sync.auto_sync).lower()}")
    print(f"  Notifications: {str(cfg.notifications.enabled).lower()}")

    print("\nReady to use MangaHub! Try:")
    print('  mangahub manga search "your favorite manga"')
    return data


def logout():
    """Forget the stored token; return the user logged out, or None if nobody was."""
    try:
        cfg = config.load()
    except CommandError:
        print_error("Configuration not found")
        print("Run: mangahub init")
        raise

    if not cfg.user.token:
        print_info("You are not logged in")
        return None

    current_user = cfg.user.username
    try:
        config.clear_user_token()
    except CommandError as exc:
        raise CommandError(f"failed to logout: {exc}") from exc

    print_success("Logged out successfully!")
    print(f"Goodbye, {current_user}!")
    print("\nTo login again:")
    print(f"  mangahub auth login --username {current_user}")
    return current_user