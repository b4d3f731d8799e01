# mangahub

A Python client library for a MangaHub server, with an in-process event bridge for real-time sync clients.

With it you can:

- register, log in and log out
- search manga, view details, rankings and featured lists
- keep a personal library
- record reading progress
- fan progress and library events out to connected TCP sync clients

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Configuration

`mangahub.config` keeps the client settings in `.mangahub/config.yaml` under the current working directory.

- `config.init()` creates that directory, plus `data/` and `logs/` inside it, and writes a default configuration.
- `config.load()` and `config.save(cfg)` read and write the file as a `Config` dataclass.
- `config.get_server_url()` gives the HTTP base URL.
- `config.update_user_token(username, token)` stores the logged-in user, and `config.clear_user_token()` forgets it.

Ports come from the environment or a `.env` file in the working directory. These are the defaults:

| Variable         | Default |
|------------------|---------|
| `API_PORT`       | 8080    |
| `TCP_PORT`       | 9090    |
| `UDP_PORT`       | 9091    |
| `GRPC_PORT`      | 9092    |
| `WEBSOCKET_PORT` | 9093    |

`mangahub.sync_state` records the active sync connection in `.mangahub/sync_state.yaml`:

- `set_active_connection`, `update_heartbeat`, `clear_active_connection` and `is_connection_active` manage that record. `is_connection_active` treats a heartbeat older than two minutes as stale.
- `acquire_sync_lock` and `release_sync_lock` manage a `sync.lock` file.

## Talking to the server

Every call prints its results to standard output. A failure raises `mangahub.output.CommandError`.

```python
from mangahub import auth, config, library, manga, progress

config.init()

password = "password"
auth.register("alice", "alice@example.com", password, password)
auth.login("alice", "", password)

manga.search("one piece", genre="Action", status="completed", limit=10)
manga.info("13")
manga.list_all()
manga.featured()
manga.ranking("bypopularity", limit=20)

library.add_to_library("13", status="reading", favorite=True)
library.list_library()

progress.update_progress("13", 42, volume=5)
progress.view_progress("13")

auth.logout()
```

The library statuses are `reading`, `completed`, `on_hold`, `dropped` and `plan_to_read`. The default is `plan_to_read`.

`mangahub.output.set_quiet(True)` silences the success and info lines. Error lines are still printed.

`mangahub.mangaview` holds the text rendering used by the manga calls. It has `truncate_string`, `wrap_text`, `render_title_box`, `render_table` and `filter_mangas`, among others.

`mangahub.server` has two helpers:

- `server_status()` requests `http://localhost:<API_PORT>/health` and returns whether it answered 200.
- `start_server()` runs `go run cmd/api-server/main.go` from the working directory and waits for it to exit. It needs the Go toolchain and that file to be present.

## The event bridge

```python
import logging
from mangahub.bridge import Bridge
from mangahub.events import LibraryUpdateEvent, ProgressUpdateEvent

bridge = Bridge(logging.getLogger("bridge"))
bridge.start()
bridge.register_tcp_client(conn, "user1")   # conn: a socket, or anything with write()
bridge.notify_progress_update(ProgressUpdateEvent(user_id="user1", manga_id="13", chapter_id=5))
bridge.notify_library_update(LibraryUpdateEvent(user_id="user1", manga_id="13", action="added"))
bridge.stop()
```

The bridge queues events and sends each one, as a line of JSON, to every connection of that user. It also offers:

- `get_active_user_count`, `get_total_connection_count`, `get_user_devices`, `get_device_count` and `get_all_devices`
- `broadcast_to_user` and `broadcast_to_user_except`
- optional hooks through `set_udp_broadcaster` and `set_session_manager`

`mangahub.events.Event` round-trips through `to_json()` and `Event.from_json()`.

`mangahub.health.HealthHandler(bridge, database)` has two checks. Each returns a `(status_code, body)` pair:

- `healthz()` always answers `(200, {"status": "alive"})`.
- `readyz()` pings the database and answers 503 with a reason when that fails.

## What this package does not do

- It installs no `mangahub` command. The hints it prints, such as "Run: mangahub init", name a command it does not provide.
- It has no functions that open, monitor or close a TCP sync connection, or that query its live status. `sync_state` only stores the connection record.
- It contains no API, TCP or UDP server, and no database layer. It expects a MangaHub server to be running elsewhere.
- It has no UDP notification client.