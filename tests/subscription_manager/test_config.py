"""
Configuration Tests.
"""

import os
from unittest.mock import patch

import pytest
from solders.pubkey import Pubkey

from subscription_manager import ConfigurationError, SubscriptionManagerConfig
from subscription_manager.clients.rpc import DEFAULT_RPC_URL
from subscription_manager.config import NFT_MINT_ENV, PROGRAM_ID_ENV, RPC_TIMEOUT_ENV, RPC_URL_ENV


PROGRAM_ID = Pubkey.new_unique()
NFT_MINT = Pubkey.new_unique()


class TestFromEnv:
    """Tests for SubscriptionManagerConfig.from_env()."""

    def test_minimal(self):
        config = SubscriptionManagerConfig.from_env({PROGRAM_ID_ENV: str(PROGRAM_ID)})

        assert config.program_id == PROGRAM_ID
        assert config.nft_mint is None
        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.request_timeout_seconds == 20.0

    def test_all_values(self):
        config = SubscriptionManagerConfig.from_env({
            PROGRAM_ID_ENV: str(PROGRAM_ID),
            NFT_MINT_ENV: str(NFT_MINT),
            RPC_URL_ENV: "http://localhost:8899",
            RPC_TIMEOUT_ENV: "5",
        })

        assert config.nft_mint == NFT_MINT
        assert config.rpc_url == "http://localhost:8899"
        assert config.request_timeout_seconds == 5.0

    def test_missing_program_id(self):
        with pytest.raises(ConfigurationError, match="Program ID not found") as exc_info:
            SubscriptionManagerConfig.from_env({})

        assert exc_info.value.config_key == PROGRAM_ID_ENV

    def test_empty_program_id(self):
        with pytest.raises(ConfigurationError):
            SubscriptionManagerConfig.from_env({PROGRAM_ID_ENV: ""})

    def test_malformed_program_id(self):
        with pytest.raises(ConfigurationError, match="Invalid") as exc_info:
            SubscriptionManagerConfig.from_env({PROGRAM_ID_ENV: "0xdeadbeef"})

        assert exc_info.value.config_key == PROGRAM_ID_ENV

    def test_malformed_mint(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SubscriptionManagerConfig.from_env({
                PROGRAM_ID_ENV: str(PROGRAM_ID),
                NFT_MINT_ENV: "not-a-mint",
            })

        assert exc_info.value.config_key == NFT_MINT_ENV

    def test_malformed_timeout(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SubscriptionManagerConfig.from_env({
                PROGRAM_ID_ENV: str(PROGRAM_ID),
                RPC_TIMEOUT_ENV: "soon",
            })

        assert exc_info.value.config_key == RPC_TIMEOUT_ENV

    def test_reads_process_environment_after_dotenv(self):
        with patch.dict(os.environ, {PROGRAM_ID_ENV: str(PROGRAM_ID)}), \
                patch("subscription_manager.config.load_dotenv") as mock_load:
            config = SubscriptionManagerConfig.from_env()

        mock_load.assert_called_once()
        assert config.program_id == PROGRAM_ID

    def test_explicit_mapping_skips_dotenv(self):
        with patch("subscription_manager.config.load_dotenv") as mock_load:
            SubscriptionManagerConfig.from_env({PROGRAM_ID_ENV: str(PROGRAM_ID)})

        mock_load.assert_not_called()
