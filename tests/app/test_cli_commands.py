from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

from typer.testing import CliRunner

from news_aggregator.app import EXIT_STORAGE_FAULT, app
from news_aggregator.errors import StorageIntegrityError
from news_aggregator.infra import Store

runner = CliRunner()


def _seed(db: Path, make_item) -> None:
    store = Store(db)
    store.persist(make_item("https://example.com/1", title="Foo", categories=["tech"]))
    store.persist(make_item("https://example.com/2", title="Bar", categories=["world"]))
    store.close()


def test_init_db_creates_schema(tmp_path: Path) -> None:
    db = tmp_path / "fresh.sqlite"
    result = runner.invoke(app, ["init-db", "--db", str(db)])
    assert result.exit_code == 0, result.output
    assert db.exists()
    assert "categoryToRecord" in result.output


def test_search_prints_matches(tmp_path: Path, make_item) -> None:
    db = tmp_path / "seeded.sqlite"
    _seed(db, make_item)
    result = runner.invoke(app, ["search", "Foo", "--db", str(db)])
    assert result.exit_code == 0, result.output
    assert "Foo" in result.output
    assert "tech" in result.output
    assert "world" not in result.output


def test_search_without_matches(tmp_path: Path, make_item) -> None:
    db = tmp_path / "seeded.sqlite"
    _seed(db, make_item)
    result = runner.invoke(app, ["search", "Nothing", "--db", str(db)])
    assert result.exit_code == 0
    assert "No matching records." in result.output


def test_add_feed_then_list_feeds(tmp_path: Path) -> None:
    config = tmp_path / "config.json"
    first = runner.invoke(
        app,
        ["add-feed", "https://a.example.com/rss", "--interval", "90", "--tag", "categories", "--config", str(config)],
    )
    assert first.exit_code == 0, first.output
    second = runner.invoke(app, ["add-feed", "https://b.example.com/rss", "--config", str(config)])
    assert second.exit_code == 0, second.output

    document = json.loads(config.read_text(encoding="utf-8"))
    assert document == {
        "rss": [
            {"timeout": 90, "url": "https://a.example.com/rss", "itemTags": ["categories"]},
            {"timeout": 60, "url": "https://b.example.com/rss", "itemTags": []},
        ]
    }

    listing = runner.invoke(app, ["feeds", "--config", str(config)])
    assert listing.exit_code == 0, listing.output
    assert "a.example.com" in listing.output
    assert "90s" in listing.output


def test_add_feed_rejects_invalid_interval(tmp_path: Path) -> None:
    config = tmp_path / "config.json"
    result = runner.invoke(
        app, ["add-feed", "https://a.example.com/rss", "--interval", "0", "--config", str(config)]
    )
    assert result.exit_code == 1
    assert not config.exists()


def test_feeds_with_missing_config_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["feeds", "--config", str(tmp_path / "absent.json")])
    assert result.exit_code == 1
    assert "config" in result.output.lower()


def test_serve_refuses_to_start_without_config(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["serve", "--db", str(tmp_path / "db.sqlite"), "--config", str(tmp_path / "absent.json")]
    )
    assert result.exit_code == 1
    assert not (tmp_path / "db.sqlite").exists()


class StubServer:
    instances: list["StubServer"] = []

    def __init__(self, config) -> None:  # noqa: ANN001
        self.config = config
        self.should_exit = False
        self.ran = False
        StubServer.instances.append(self)

    def run(self) -> None:
        self.ran = True


class StubSupervisor:
    fail_with: Exception | None = None

    def __init__(self, store, rules, on_fatal=None) -> None:  # noqa: ANN001
        self.rules = rules
        self.on_fatal = on_fatal
        self.events: list[str] = []
        self.fetcher = SimpleNamespace(close=lambda: self.events.append("fetcher_closed"))

    def start(self) -> None:
        self.events.append("start")

    def stop(self) -> None:
        self.events.append("stop")

    def wait(self, timeout=None) -> bool:  # noqa: ANN001
        return True

    def raise_if_failed(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with


def _write_config(path: Path) -> None:
    path.write_text(
        json.dumps({"rss": [{"timeout": 60, "url": "https://a.example.com/rss", "itemTags": ["guid"]}]}),
        encoding="utf-8",
    )


def test_serve_runs_server_and_stops_pipeline(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "config.json"
    _write_config(config)
    supervisors: list[StubSupervisor] = []

    def build_supervisor(*args, **kwargs):  # noqa: ANN002, ANN003
        supervisors.append(StubSupervisor(*args, **kwargs))
        return supervisors[-1]

    StubServer.instances.clear()
    monkeypatch.setattr("news_aggregator.app.uvicorn.Server", StubServer)
    monkeypatch.setattr("news_aggregator.app.Supervisor", build_supervisor)
    result = runner.invoke(
        app, ["serve", "--db", str(tmp_path / "db.sqlite"), "--config", str(config), "--port", "9999"]
    )
    assert result.exit_code == 0, result.output
    [server] = StubServer.instances
    assert server.ran
    assert server.config.port == 9999
    [supervisor] = supervisors
    assert [rule.url for rule in supervisor.rules] == ["https://a.example.com/rss"]
    assert supervisor.events == ["start", "stop", "fetcher_closed"]


def test_serve_aborts_on_integrity_fault(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "config.json"
    _write_config(config)

    class FailingSupervisor(StubSupervisor):
        fail_with = StorageIntegrityError("could not rollback the transaction")

    monkeypatch.setattr("news_aggregator.app.uvicorn.Server", StubServer)
    monkeypatch.setattr("news_aggregator.app.Supervisor", FailingSupervisor)
    result = runner.invoke(app, ["serve", "--db", str(tmp_path / "db.sqlite"), "--config", str(config)])
    assert result.exit_code == EXIT_STORAGE_FAULT


def test_fatal_callback_asks_server_to_exit(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "config.json"
    _write_config(config)
    captured: list[StubSupervisor] = []

    class CapturingSupervisor(StubSupervisor):
        def __init__(self, *args, **kwargs) -> None:  # noqa: ANN002, ANN003
            super().__init__(*args, **kwargs)
            captured.append(self)

    StubServer.instances.clear()
    monkeypatch.setattr("news_aggregator.app.uvicorn.Server", StubServer)
    monkeypatch.setattr("news_aggregator.app.Supervisor", CapturingSupervisor)
    runner.invoke(app, ["serve", "--db", str(tmp_path / "db.sqlite"), "--config", str(config)])
    captured[0].on_fatal(StorageIntegrityError("boom"))
    assert StubServer.instances[0].should_exit is True
