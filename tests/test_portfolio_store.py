import json
import os
import sys
import tempfile
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from classifier.models import Assignment
from providers.portfolio_store import PortfolioStore


def sample_document():
    return {
        "securities": [
            {"uuid": "sec-1", "name": "World Fund", "isin": "IE00B4L5Y983", "isRetired": "false"},
            {"uuid": "sec-2", "name": "Old Fund", "isin": "LU0000000001", "isRetired": "true",
             "note": "#PPC:[ignore=region] #PPC:[ISIN2=LU0274208692]"},
            {"uuid": "sec-3", "name": "Cash account"},
        ],
        "taxonomies": [],
    }


class TestPortfolioStore(unittest.TestCase):

    def setUp(self):
        self.store = PortfolioStore(sample_document())

    def test_get_securities_parses_notes_and_flags(self):
        securities = self.store.get_securities()

        self.assertEqual([s.uuid for s in securities], ["sec-1", "sec-2", "sec-3"])
        self.assertFalse(securities[0].is_retired)
        self.assertTrue(securities[1].is_retired)
        self.assertEqual(securities[1].isin_override, "LU0274208692")
        self.assertEqual(securities[1].lookup_id, "LU0274208692")
        self.assertTrue(securities[1].ignore.skips("region"))
        self.assertIsNone(securities[2].lookup_id)

    def test_category_nodes_are_created_once(self):
        node = self.store.get_or_create_category_node("Asset Type", ["Stock", "Large Growth"])
        again = self.store.get_or_create_category_node("Asset Type", ("Stock", "Large Growth"))

        self.assertIs(node, again)
        self.assertEqual(len(self.store.document["taxonomies"]), 1)
        root = self.store.get_taxonomy("Asset Type")["root"]
        self.assertEqual([c["name"] for c in root["children"]], ["Stock"])

    def test_write_and_clear_assignments(self):
        self.store.write_assignment("Asset Type", ["Stock", "Large Growth"], "sec-1", 5600)
        self.store.write_assignment("Asset Type", ["Bond"], "sec-1", 2000)
        self.store.write_assignment("Asset Type", ["Bond"], "sec-3", 10000)
        # rewriting the same node replaces the weight
        self.store.write_assignment("Asset Type", ["Bond"], "sec-1", 2500)

        bond = self.store.get_or_create_category_node("Asset Type", ["Bond"])
        self.assertEqual(bond["assignments"], [
            {"security": "sec-1", "weight": 2500},
            {"security": "sec-3", "weight": 10000},
        ])

        self.store.clear_assignments("Asset Type", "sec-1")

        growth = self.store.get_or_create_category_node("Asset Type", ["Stock", "Large Growth"])
        self.assertEqual(growth["assignments"], [])
        self.assertEqual(bond["assignments"], [{"security": "sec-3", "weight": 10000}])

    def test_update_security_assignments_replaces_previous_ones(self):
        self.store.write_assignment("Region", ["Other"], "sec-1", 10000)

        self.store.update_security_assignments("Region", "sec-1", [
            Assignment(path=("Europe", "Eurozone"), weight=7000),
            Assignment(path=("Asia",), weight=3000),
        ])

        self.assertEqual(self.store.get_or_create_category_node("Region", ["Other"])["assignments"], [])
        europe = self.store.get_or_create_category_node("Region", ["Europe", "Eurozone"])
        self.assertEqual(europe["assignments"], [{"security": "sec-1", "weight": 7000}])

    def test_unknown_security_is_not_written(self):
        with self.assertLogs('providers.portfolio_store', level='ERROR'):
            self.store.write_assignment("Region", ["Europe"], "missing", 10000)
        node = self.store.get_or_create_category_node("Region", ["Europe"])
        self.assertEqual(node["assignments"], [])

    def test_save_and_load_round_trip(self):
        self.store.write_assignment("Region", ["Europe", "Eurozone"], "sec-1", 4000)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "portfolio.json")
            self.store.save(path)
            with open(path, encoding='utf-8') as f:
                self.assertEqual(json.load(f), self.store.document)
            loaded = PortfolioStore.load(path)
        node = loaded.get_or_create_category_node("Region", ["Europe", "Eurozone"])
        self.assertEqual(node["assignments"], [{"security": "sec-1", "weight": 4000}])


if __name__ == '__main__':
    unittest.main()
