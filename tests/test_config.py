"""
Tests for loading connection settings.
"""

from pathlib import Path

import pytest

import vlmclient.config as config_module
from vlmclient.config import (
    ClientConfig,
    get_client_config,
    load_client_config,
    reload_client_config,
)


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "vlmclient.toml"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def reset_singleton():
    """Each test starts without a cached global config."""
    config_module._client_config = None
    yield
    config_module._client_config = None


class TestLoadClientConfig:
    """Tests for load_client_config()."""

    def test_packaged_defaults(self) -> None:
        config = load_client_config()

        assert config == ClientConfig()
        assert config.host == "localhost"
        assert config.port == 4212
        assert config.read_timeout is None

    def test_custom_file(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
[connection]
host = "vlc.lan"
port = 4300
read_timeout = 2.5
read_chunk_size = 4096
encoding = "latin-1"
""",
        )

        config = load_client_config(path)

        assert config == ClientConfig("vlc.lan", 4300, 2.5, 4096, "latin-1")

    def test_missing_table_uses_defaults(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "[other]\nkey = 1\n")

        assert load_client_config(path) == ClientConfig()

    def test_zero_timeout_blocks(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "[connection]\nread_timeout = 0\n")

        assert load_client_config(path).read_timeout is None

    def test_integer_timeout(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "[connection]\nread_timeout = 10\n")

        assert load_client_config(path).read_timeout == 10.0

    @pytest.mark.parametrize(
        "line",
        [
            "port = 0",
            'port = "4212"',
            "port = true",
            "read_chunk_size = -1",
            "read_timeout = -5",
            'read_timeout = "soon"',
        ],
    )
    def test_invalid_values_fall_back(self, tmp_path: Path, line: str) -> None:
        path = write_config(tmp_path, f"[connection]\n{line}\n")

        assert load_client_config(path) == ClientConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_client_config(tmp_path / "absent.toml")

    def test_session_kwargs(self) -> None:
        config = ClientConfig(read_timeout=3.0, read_chunk_size=512, encoding="latin-1")

        assert config.session_kwargs() == {
            "read_timeout": 3.0,
            "read_chunk_size": 512,
            "encoding": "latin-1",
        }


class TestGlobalConfig:
    """Tests for the lazily loaded global config."""

    def test_get_is_cached(self) -> None:
        first = get_client_config()

        assert first is get_client_config()
        assert first == ClientConfig()

    def test_reload_replaces(self, tmp_path: Path) -> None:
        original = get_client_config()
        path = write_config(tmp_path, '[connection]\nhost = "10.0.0.7"\n')

        reloaded = reload_client_config(path)

        assert reloaded is not original
        assert get_client_config() is reloaded
        assert get_client_config().host == "10.0.0.7"
