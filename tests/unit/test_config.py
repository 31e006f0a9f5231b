"""
Unit tests for ServerConfig and the command-line entry point.
"""

import socket

import pytest

from pyhttpd.__main__ import build_parser, config_from_args, main
from pyhttpd.config import ServerConfig


class TestServerConfig:
    """Tests for ServerConfig defaults and validation."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 4221
        assert config.directory is None
        config.validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"backlog": 0},
        {"buffer_size": 100},
        {"timeout": 0},
        {"shutdown_timeout": -1},
        {"max_line_length": 10},
        {"max_headers": 0},
        {"max_body_size": -1},
        {"compression_level": 10},
        {"log_level": "CHATTY"},
        {"directory": "/definitely/not/a/directory"},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_timeout_none_allowed(self):
        ServerConfig(timeout=None).validate()

    def test_log_level_case_insensitive(self):
        ServerConfig(log_level="debug").validate()

    def test_from_env(self, file_dir):
        config = ServerConfig.from_env({
            "PYHTTPD_HOST": "0.0.0.0",
            "PYHTTPD_PORT": "8080",
            "PYHTTPD_TIMEOUT": "2.5",
            "PYHTTPD_DIRECTORY": str(file_dir),
            "PYHTTPD_LOG_LEVEL": "DEBUG",
            "PYHTTPD_COMPRESSION_LEVEL": "9",
        })

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.timeout == 2.5
        assert config.directory == str(file_dir)
        assert config.log_level == "DEBUG"
        assert config.compression_level == 9

    def test_from_env_empty_uses_defaults(self):
        assert ServerConfig.from_env({}) == ServerConfig()

    def test_from_env_bad_number(self):
        with pytest.raises(ValueError):
            ServerConfig.from_env({"PYHTTPD_PORT": "http"})


class TestCommandLine:
    """Tests for argument parsing and main()."""

    def test_flags(self):
        args = build_parser().parse_args(
            ["--host", "0.0.0.0", "-p", "8080", "-t", "3", "-d", "/tmp", "-l", "debug"]
        )

        assert args.host == "0.0.0.0"
        assert args.port == 8080
        assert args.timeout == 3.0
        assert args.directory == "/tmp"
        assert args.log_level == "DEBUG"

    def test_unset_flags_are_none(self):
        args = build_parser().parse_args([])
        assert (args.host, args.port, args.directory) == (None, None, None)

    def test_flags_override_base(self):
        base = ServerConfig(host="0.0.0.0", port=9000)
        args = build_parser().parse_args(["--port", "8080"])

        config = config_from_args(args, base)

        assert config.port == 8080
        assert config.host == "0.0.0.0"

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("PYHTTPD_PORT", "9000")
        monkeypatch.setenv("PYHTTPD_HOST", "0.0.0.0")
        args = build_parser().parse_args(["--port", "8080"])

        config = config_from_args(args)

        assert config.port == 8080
        assert config.host == "0.0.0.0"

    def test_invalid_choice_exits(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "chatty"])

    def test_main_rejects_missing_directory(self, tmp_path, capsys):
        code = main(["--directory", str(tmp_path / "missing")])

        assert code == 2
        assert "directory does not exist" in capsys.readouterr().err

    def test_main_reports_bind_failure(self):
        busy = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        try:
            port = busy.getsockname()[1]
            assert main(["--port", str(port)]) == 1
        finally:
            busy.close()
