import unittest

from src.modkeeper.config import ConfigError, KeeperSettings, parse_provider_order
from src.modkeeper.resolver import DEFAULT_IPFS_GATEWAYS
from src.modkeeper.state_schema import ProviderId


BASE_ENV = {
    "RPC_URL": "https://rpc.example.org",
    "GAME_ADDRESS": "0x000000000000000000000000000000000000dEaD",
    "BOT_PRIVATE_KEY": "0x" + "11" * 32,
}


class TestKeeperSettings(unittest.TestCase):
    def test_missing_required_values_are_all_named(self):
        with self.assertRaises(ConfigError) as ctx:
            KeeperSettings.from_env({"RPC_URL": "https://rpc.example.org", "BOT_PRIVATE_KEY": "  "})
        message = str(ctx.exception)
        self.assertIn("GAME_ADDRESS", message)
        self.assertIn("BOT_PRIVATE_KEY", message)
        self.assertNotIn("RPC_URL", message)

    def test_defaults(self):
        settings = KeeperSettings.from_env(BASE_ENV)
        self.assertEqual(settings.provider_order, (ProviderId.PERSPECTIVE, ProviderId.CLAUDE))
        self.assertEqual(settings.max_text_chars, 10_000)
        self.assertEqual(settings.provider_max_chars, 5_000)
        self.assertEqual(settings.request_timeout, 10.0)
        self.assertEqual(settings.ipfs_gateways, DEFAULT_IPFS_GATEWAYS)
        self.assertEqual(settings.inline_text_prefix, "meow:text:")
        self.assertIsNone(settings.perspective_api_key)
        self.assertIsNone(settings.chain_id)
        self.assertFalse(settings.dry_run)

    def test_optional_values(self):
        env = dict(
            BASE_ENV,
            CHAIN_ID="8453",
            PERSPECTIVE_API_KEY="pk",
            PERSPECTIVE_LANGUAGES="en, de",
            PROVIDER_ORDER="claude",
            MAX_TEXT_CHARS="2000",
            REQUEST_TIMEOUT="2.5",
            DRY_RUN="true",
            TX_CONFIRMATIONS="3",
        )
        settings = KeeperSettings.from_env(env)
        self.assertEqual(settings.chain_id, 8453)
        self.assertEqual(settings.perspective_languages, ("en", "de"))
        self.assertEqual(settings.provider_order, (ProviderId.CLAUDE,))
        self.assertEqual(settings.max_text_chars, 2000)
        self.assertEqual(settings.request_timeout, 2.5)
        self.assertTrue(settings.dry_run)
        self.assertEqual(settings.tx_confirmations, 3)

    def test_malformed_numbers_fall_back_to_defaults(self):
        env = dict(BASE_ENV, MAX_TEXT_CHARS="lots", REQUEST_TIMEOUT="-1", CHAIN_ID="0")
        with self.assertLogs("src.modkeeper.config", level="WARNING"):
            settings = KeeperSettings.from_env(env)
        self.assertEqual(settings.max_text_chars, 10_000)
        self.assertEqual(settings.request_timeout, 10.0)
        self.assertIsNone(settings.chain_id)

    def test_single_gateway_goes_first(self):
        settings = KeeperSettings.from_env(dict(BASE_ENV, IPFS_GATEWAY="https://my.gateway/ipfs/"))
        self.assertEqual(settings.ipfs_gateways[0], "https://my.gateway/ipfs/")
        self.assertEqual(settings.ipfs_gateways[1:], DEFAULT_IPFS_GATEWAYS)

    def test_gateway_list_replaces_defaults(self):
        settings = KeeperSettings.from_env(dict(BASE_ENV, IPFS_GATEWAYS="https://a/ipfs/,https://b/ipfs/"))
        self.assertEqual(settings.ipfs_gateways, ("https://a/ipfs/", "https://b/ipfs/"))

    def test_resolver_config_carries_limits(self):
        settings = KeeperSettings.from_env(
            dict(BASE_ENV, MAX_TEXT_CHARS="500", CONTENT_INDEX_URL="https://index.test", CONTENT_INDEX_KEY="k")
        )
        config = settings.resolver_config()
        self.assertEqual(config.max_chars, 500)
        self.assertEqual(config.content_index_url, "https://index.test")
        self.assertEqual(config.content_index_key, "k")

    def test_secrets_never_in_repr_or_summary(self):
        env = dict(BASE_ENV, PERSPECTIVE_API_KEY="persp-secret", ANTHROPIC_API_KEY="sk-ant-secret")
        settings = KeeperSettings.from_env(env)
        self.assertNotIn(BASE_ENV["BOT_PRIVATE_KEY"], repr(settings))
        self.assertNotIn("persp-secret", repr(settings))

        summary = settings.summary()
        self.assertEqual(summary["private_key"], "[REDACTED]")
        self.assertEqual(summary["perspective_api_key"], "[REDACTED]")
        self.assertEqual(summary["anthropic_api_key"], "[REDACTED]")
        self.assertEqual(summary["rpc_url"], BASE_ENV["RPC_URL"])


class TestProviderOrder(unittest.TestCase):
    def test_empty_uses_default(self):
        self.assertEqual(parse_provider_order(""), (ProviderId.PERSPECTIVE, ProviderId.CLAUDE))

    def test_unknown_and_duplicate_names_are_skipped(self):
        with self.assertLogs("src.modkeeper.config", level="WARNING"):
            order = parse_provider_order("Claude,openai,claude,perspective")
        self.assertEqual(order, (ProviderId.CLAUDE, ProviderId.PERSPECTIVE))


if __name__ == "__main__":
    unittest.main()
