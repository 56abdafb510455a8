from pathlib import Path

import pytest

from foldbar.bus import EventBus
from foldbar.commands import CommandDispatcher
from foldbar.config import ClientConfig, _deep_merge, config_from_raw, load_config, resolve_config
from foldbar.connection import ConnectionManager
from foldbar.exceptions import ConfigurationError, InvalidEndpointError
from foldbar.observability.logging import LogConfig, setup_logging, teardown_logging
from tests.conftest import FakeFactory

pytestmark = [pytest.mark.unit]


class TestDeepMerge:
    def test_shallow_override(self):
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"client": {"host": "localhost", "port": 7396}}
        override = {"client": {"port": 7397}}
        assert _deep_merge(base, override) == {"client": {"host": "localhost", "port": 7397}}

    def test_base_is_not_mutated(self):
        base = {"client": {"port": 1}}
        _deep_merge(base, {"client": {"port": 2}})
        assert base == {"client": {"port": 1}}

    def test_empty_sides(self):
        assert _deep_merge({}, {"a": 1}) == {"a": 1}
        assert _deep_merge({"a": 1}, {}) == {"a": 1}


class TestLoadConfig:
    def test_no_files_returns_empty_sections(self, tmp_path: Path):
        result = load_config(project_dir=tmp_path / "nope", global_path=tmp_path / "nope.toml")
        assert result == {"client": {}, "logging": {}}

    def test_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[client]\nhost = "folder.lan"\nport = 7000\n')
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "foldbar.toml").write_text("[client]\nport = 7001\n")

        result = load_config(project_dir=project_dir, global_path=global_toml)

        assert result["client"] == {"host": "folder.lan", "port": 7001}

    def test_invalid_toml(self, tmp_path: Path):
        (tmp_path / "foldbar.toml").write_text("[client\n")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(project_dir=tmp_path, global_path=tmp_path / "nope.toml")


class TestResolveConfig:
    def test_defaults(self, tmp_path: Path):
        config = resolve_config(project_dir=tmp_path, global_path=tmp_path / "nope.toml")
        assert config == ClientConfig()
        assert config.url == "ws://localhost:7396/api/websocket"
        assert config.error_delay == 0.75

    def test_file_values(self, tmp_path: Path):
        (tmp_path / "foldbar.toml").write_text(
            "[client]\n"
            'host = "folder.lan"\n'
            "error_delay = 2.5\n"
            "mock = true\n"
            "\n"
            "[logging]\n"
            'level = "DEBUG"\n'
            "console = true\n"
        )
        config = resolve_config(project_dir=tmp_path, global_path=tmp_path / "nope.toml")

        assert config.url == "ws://folder.lan:7396/api/websocket"
        assert config.error_delay == 2.5
        assert config.mock is True
        assert config.log == LogConfig(level="DEBUG", console=True)

    def test_overrides_win_and_none_is_ignored(self, tmp_path: Path):
        (tmp_path / "foldbar.toml").write_text('[client]\nhost = "folder.lan"\nport = 7001\n')
        config = resolve_config(
            project_dir=tmp_path,
            global_path=tmp_path / "nope.toml",
            host=None,
            port=7002,
            mock=None,
        )
        assert config.host == "folder.lan"
        assert config.port == 7002
        assert config.mock is False

    def test_unknown_client_key(self, tmp_path: Path):
        (tmp_path / "foldbar.toml").write_text("[client]\nprot = 1\n")
        with pytest.raises(ConfigurationError, match="prot"):
            resolve_config(project_dir=tmp_path, global_path=tmp_path / "nope.toml")

    @pytest.mark.parametrize(
        ("section", "line", "message"),
        [
            ("client", 'error_delay = "0.75"', "error_delay must be float"),
            ("client", 'port = "7396"', "port must be int"),
            ("client", "port = true", "port must be int"),
            ("client", 'mock = "yes"', "mock must be bool"),
            ("client", "refresh_interval = -1", "must not be negative"),
            ("logging", "retention = 1.5", "retention must be int"),
        ],
    )
    def test_wrong_value_type(self, tmp_path: Path, section, line, message):
        (tmp_path / "foldbar.toml").write_text(f"[{section}]\n{line}\n")
        with pytest.raises(ConfigurationError, match=message):
            resolve_config(project_dir=tmp_path, global_path=tmp_path / "nope.toml")

    def test_integer_seconds_become_floats(self, tmp_path: Path):
        (tmp_path / "foldbar.toml").write_text("[client]\nerror_delay = 2\n")
        config = resolve_config(project_dir=tmp_path, global_path=tmp_path / "nope.toml")
        assert config.error_delay == 2.0
        assert isinstance(config.error_delay, float)

    def test_unknown_logging_key(self):
        with pytest.raises(ConfigurationError, match=r"\[logging\]"):
            config_from_raw({"client": {}, "logging": {"colour": True}})


class TestEndpoint:
    @pytest.mark.parametrize(
        ("config", "url"),
        [
            (ClientConfig(), "ws://localhost:7396/api/websocket"),
            (ClientConfig(host="127.0.0.1", port=7397), "ws://127.0.0.1:7397/api/websocket"),
            (ClientConfig(host="[::1]"), "ws://[::1]:7396/api/websocket"),
            (ClientConfig(path="/ws"), "ws://localhost:7396/ws"),
        ],
    )
    def test_valid(self, config, url):
        assert config.url == url

    @pytest.mark.parametrize(
        "config",
        [
            ClientConfig(host=""),
            ClientConfig(host="bad host"),
            ClientConfig(host="a/b"),
            ClientConfig(port=0),
            ClientConfig(port=70000),
            ClientConfig(port=True),
            ClientConfig(path="api"),
            ClientConfig(path="/a b"),
        ],
    )
    def test_invalid(self, config):
        with pytest.raises(InvalidEndpointError, match="Invalid WebSocket URL"):
            config.url

    def test_invalid_endpoint_is_a_configuration_error(self):
        assert issubclass(InvalidEndpointError, ConfigurationError)


class TestLogging:
    def test_file_sink_receives_foldbar_records(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "foldbar.log"
        handler_ids = setup_logging(LogConfig(file=str(log_file)))
        try:
            ConnectionManager(ClientConfig(port=0), EventBus()).connect()
        finally:
            teardown_logging(handler_ids)

        text = log_file.read_text()
        assert "Refusing to connect" in text
        assert "component=connection" in text

    def test_no_sinks_without_console_or_file(self):
        handler_ids = setup_logging(LogConfig())
        teardown_logging(handler_ids)
        assert handler_ids == []

    @pytest.mark.asyncio
    async def test_url_and_group_are_logged_as_context(self, tmp_path: Path):
        log_file = tmp_path / "foldbar.log"
        manager = ConnectionManager(ClientConfig(), EventBus(), transport_factory=FakeFactory())
        handler_ids = setup_logging(LogConfig(file=str(log_file)))
        try:
            manager.connect()
            CommandDispatcher(manager).pause("gpu")
            await manager.close()
        finally:
            teardown_logging(handler_ids)

        text = log_file.read_text()
        assert "component=connection url=ws://localhost:7396/api/websocket" in text
        assert "component=commands group='gpu'" in text
