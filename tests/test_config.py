"""
Tests for runtime configuration loading.
"""

import pytest

from directed_stake.config import DirectedStakeConfig, environment, load_config
from directed_stake.constants import DEFAULT_RPC_URL
from directed_stake.exceptions import ConfigurationError

from conftest import make_key

PROGRAM_ID = str(make_key("directed-stake-program"))


class TestLoadConfig:

    def test_defaults_with_program_id(self):
        config = load_config(env={"DIRECTED_STAKE_PROGRAM_ID": PROGRAM_ID})
        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.commitment == "confirmed"
        assert str(config.program) == PROGRAM_ID

    def test_program_id_required(self):
        with pytest.raises(ConfigurationError, match="program_id"):
            load_config(env={})

    def test_invalid_program_id(self):
        with pytest.raises(ConfigurationError):
            load_config(env={"DIRECTED_STAKE_PROGRAM_ID": "not a key"})

    def test_env_overrides(self):
        config = load_config(env={
            "DIRECTED_STAKE_PROGRAM_ID": PROGRAM_ID,
            "DIRECTED_STAKE_RPC_URL": "http://localhost:8899",
            "DIRECTED_STAKE_COMMITMENT": "finalized",
            "DIRECTED_STAKE_CONFIRM_TIMEOUT": "12.5",
            "DIRECTED_STAKE_TOKEN_DECIMALS": "6",
            "DIRECTED_STAKE_WALLET_ENV": "MY_WALLET",
        })
        assert config.rpc_url == "http://localhost:8899"
        assert config.commitment == "finalized"
        assert config.confirm_timeout == 12.5
        assert config.token_decimals == 6
        assert config.wallet_env == "MY_WALLET"

    def test_bad_number_in_env(self):
        with pytest.raises(ConfigurationError):
            load_config(env={"DIRECTED_STAKE_PROGRAM_ID": PROGRAM_ID, "DIRECTED_STAKE_POLL_INTERVAL": "fast"})

    def test_explicit_overrides_win(self):
        config = load_config(
            env={"DIRECTED_STAKE_PROGRAM_ID": PROGRAM_ID, "DIRECTED_STAKE_RPC_URL": "http://env"},
            overrides={"rpc_url": "http://flag", "program_id": None},
        )
        assert config.rpc_url == "http://flag"
        assert config.program_id == PROGRAM_ID

    def test_toml_file(self, tmp_path):
        path = tmp_path / "directed_stake.toml"
        path.write_text(
            "[directed_stake]\n"
            f'program_id = "{PROGRAM_ID}"\n'
            'rpc_url = "http://file"\n'
            "token_decimals = 2\n"
        )
        config = load_config(path, env={"DIRECTED_STAKE_RPC_URL": "http://env"})
        assert config.rpc_url == "http://env"
        assert config.token_decimals == 2
        assert config.program_id == PROGRAM_ID

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            DirectedStakeConfig.from_file(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[directed_stake\nprogram_id = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            DirectedStakeConfig.from_file(path)


class TestValidate:

    @pytest.mark.parametrize("field, value", [
        ("commitment", "eventually"),
        ("request_timeout", 0),
        ("confirm_timeout", -1),
        ("poll_interval", 0),
        ("token_decimals", -1),
    ])
    def test_invalid_field(self, field, value):
        config = DirectedStakeConfig(program_id=PROGRAM_ID)
        setattr(config, field, value)
        with pytest.raises(ConfigurationError):
            config.validate()


class TestEnvironment:

    def test_process_env_over_dotenv(self, tmp_path, monkeypatch):
        dotenv = tmp_path / ".env"
        dotenv.write_text("DIRECTED_STAKE_RPC_URL=http://dotenv\nDIRECTED_STAKE_COMMITMENT=processed\n")
        monkeypatch.setenv("DIRECTED_STAKE_RPC_URL", "http://process")
        monkeypatch.delenv("DIRECTED_STAKE_COMMITMENT", raising=False)

        env = environment(str(dotenv))

        assert env["DIRECTED_STAKE_RPC_URL"] == "http://process"
        assert env["DIRECTED_STAKE_COMMITMENT"] == "processed"

    def test_missing_dotenv(self, tmp_path):
        assert "DIRECTED_STAKE_UNSET_KEY" not in environment(str(tmp_path / "missing.env"))
