import json
import os
import sys
import tempfile
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from classifier.config import ConfigError, Settings, load_classifier_config

DEFAULT_CONFIG = os.path.join(os.path.dirname(__file__), '..', 'config', 'default.json')


class TestLoadClassifierConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, content: str) -> str:
        path = os.path.join(self.tmp.name, "config.json")
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def test_default_config_loads(self):
        config = load_classifier_config(DEFAULT_CONFIG)

        self.assertTrue(config.taxonomies["asset_type"].active)
        self.assertEqual(config.taxonomies["asset_type"].stock.value, "Stock")
        self.assertEqual(config.taxonomies["stock_style"].stock.sal_endpoint, "stock/equityOverview")
        self.assertIsNone(config.mappings["regions"]["15"])
        # every named mapping reference resolves
        for taxonomy in config.taxonomies.values():
            for mapping in (taxonomy.mapping, taxonomy.stock.mapping if taxonomy.stock else None):
                if isinstance(mapping, str):
                    self.assertIn(mapping, config.mappings)
        embedding = config.embedded_taxonomies["stock_style_in_asset_type"]
        self.assertEqual((embedding.parent_taxonomy, embedding.child_taxonomy), ("asset_type", "stock_style"))

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_classifier_config(os.path.join(self.tmp.name, "missing.json"))

    def test_invalid_json(self):
        with self.assertRaises(ConfigError):
            load_classifier_config(self.write("{ not json"))

    def test_invalid_schema(self):
        document = {"embedded_taxonomies": {"broken": {"active": True, "parent_taxonomy": "asset_type"}}}
        with self.assertRaises(ConfigError):
            load_classifier_config(self.write(json.dumps(document)))

    def test_top_level_must_be_an_object(self):
        with self.assertRaises(ConfigError):
            load_classifier_config(self.write("[1, 2, 3]"))

    def test_unknown_sal_endpoint_is_rejected(self):
        document = {"taxonomies": {"x": {"stock": {"sal_endpoint": "stock/unknown", "source_path": "a"}}}}
        with self.assertRaises(ConfigError):
            load_classifier_config(self.write(json.dumps(document)))


class TestSettings(unittest.TestCase):

    def test_environment_overrides_defaults(self):
        os.environ["MORNINGSTAR_DOMAIN"] = "fr"
        try:
            self.assertEqual(Settings().MORNINGSTAR_DOMAIN, "fr")
        finally:
            del os.environ["MORNINGSTAR_DOMAIN"]

    def test_defaults(self):
        config = Settings(_env_file=None)
        self.assertEqual(config.MORNINGSTAR_VIEW_ID, "snapshot")
        self.assertGreater(config.REQUEST_TIMEOUT_SECONDS, 0)


if __name__ == '__main__':
    unittest.main()
