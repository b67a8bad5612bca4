"""Tests for the configuration handling and the construction of searches."""
import unittest

from search_coref.shared.errors import ConfigError
from search_coref.all_models.trainer import WeightTrainer
from search_coref.all_models.search import BoundedTrainingSearch, GreedyThresholdSearch
from search_coref.all_models.model_factory import apply_defaults, get_learning_rates, \
    validate_config, load_feature_extractor, create_scorer, create_trainer, create_search

import coref_fixtures


def train_config(**kwargs):
    config_dict = {"feature_names": ["head_match"], "iterations": 2,
                   "feature_extractor": "coref_fixtures:head_match"}
    config_dict.update(kwargs)
    return apply_defaults(config_dict)


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        config_dict = train_config(beam_width=4)
        self.assertEqual(config_dict["beam_width"], 4)
        self.assertEqual(config_dict["search_step"], 300)
        self.assertEqual(config_dict["averaging"], 'simple')
        self.assertEqual(config_dict["merge_threshold"], 0.5)

    def test_learning_rates(self):
        self.assertEqual(get_learning_rates(train_config()), [1.0, 1.0])
        self.assertEqual(get_learning_rates(train_config(learning_rate_start=1.0, iterations=4)),
                         [1.0, 0.75, 0.5, 0.25])
        self.assertEqual(get_learning_rates(train_config(learning_rates=[0.3, 0.2])), [0.3, 0.2])

    def test_valid_config(self):
        validate_config(train_config())
        validate_config(apply_defaults({"feature_names": ["overlap"],
                                        "search_method": "greedy"}), training=False)

    def test_invalid_values(self):
        invalid = [train_config(feature_names=[]),
                   train_config(feature_names=["a", "a"]),
                   train_config(search_method="exhaustive"),
                   train_config(beam_width=0),
                   train_config(search_step=0),
                   train_config(averaging="moving"),
                   train_config(iterations=0),
                   train_config(learning_rates=[1.0]),
                   train_config(learning_rates=[1.0, 0.0]),
                   train_config(search_method="greedy")]
        for config_dict in invalid:
            with self.assertRaises(ConfigError):
                validate_config(config_dict)

    def test_missing_iterations(self):
        config_dict = train_config()
        del config_dict["iterations"]
        with self.assertRaises(ConfigError):
            validate_config(config_dict)

    def test_load_feature_extractor(self):
        self.assertIs(load_feature_extractor("coref_fixtures:head_match"),
                      coref_fixtures.head_match)
        for path in ("coref_fixtures", "coref_fixtures:no_such_function",
                     "no_such_module_at_all:extract", ":head_match"):
            with self.assertRaises(ConfigError):
                load_feature_extractor(path)


class TestFactory(unittest.TestCase):

    def test_create_beam_search(self):
        config_dict = train_config(beam_width=3, search_step=10, learning_rate_start=1.0)
        scorer = create_scorer(config_dict)
        trainer = create_trainer(config_dict, scorer)
        search = create_search(config_dict, scorer, coref_fixtures.head_match, trainer=trainer)

        self.assertIsInstance(trainer, WeightTrainer)
        self.assertEqual(trainer.weight_size, 2)
        self.assertEqual(trainer.learning_rates, [1.0, 0.5])
        self.assertIsInstance(search, BoundedTrainingSearch)
        self.assertEqual(search.beam_width, 3)
        self.assertEqual(search.search_step, 10)
        self.assertIs(search.trainer, trainer)

    def test_create_greedy_search(self):
        records = []
        config_dict = train_config(search_method="greedy", merge_threshold=0.7)
        search = create_search(config_dict, create_scorer(config_dict),
                               coref_fixtures.head_match, record_sink=records.append)
        self.assertIsInstance(search, GreedyThresholdSearch)
        self.assertEqual(search.threshold, 0.7)


if __name__ == "__main__":
    unittest.main()
