"""Commands to start the API server and check whether it is running."""

from __future__ import annotations

import os
import subprocess
from http import HTTPStatus
from pathlib import Path

import requests
from dotenv import load_dotenv

from .output import CommandError, print_error, print_success

DEFAULT_PORT = "8080"
_STATUS_TIMEOUT = 2


def get_server_port():
    """The API port from the environment or a ``.env`` file, else the default."""
    load_dotenv(Path.cwd() / ".env")
    return os.environ.get("API_PORT") or DEFAULT_PORT


def start_server():
    """Run the API server from the working directory and wait for it to exit."""
    print("Starting MangaHub server...")
    project_dir = Path.cwd()
    api_server_path = project_dir / "cmd" / "api-server" / "main.go"
    if not api_server_path.exists():
        raise CommandError(f"API server not found at {api_server_path}")

    try:
        process = subprocess.Popen(["go", "run", str(api_server_path)], cwd=str(project_dir))
    except OSError as exc:
        raise CommandError(f"failed to start server: {exc}") from exc

    port = get_server_port()
    print_success("Server started successfully!")
    print(f"Server is running on http://localhost:{port}")
    print("Press Ctrl+C to stop the server")

    code = process.wait()
    if code != 0:
        raise CommandError(f"exit status {code}")
    return code


def server_status():
    """Report whether the server answers its health check; return True if it does."""
    print("Checking server status...")
    port = get_server_port()
    health_url = f"http://localhost:{port}/health"
    try:
        response = requests.get(health_url, timeout=_STATUS_TIMEOUT)
        running = response.status_code == HTTPStatus.OK
    except requests.RequestException:
        running = False

    if not running:
        print_error("Server is not running")
        print("Start the server with: mangahub server start")
        return False

    print_success("Server is running")
    print(f"Server URL: http://localhost:{port}")
    return True