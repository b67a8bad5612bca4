import logging
import importlib

from search_coref.shared.errors import ConfigError
from search_coref.all_models.scorer import LinearScorer
from search_coref.all_models.trainer import WeightTrainer, AVERAGING_SCHEMES
from search_coref.all_models.model_utils import create_descending_array
from search_coref.all_models.search import BoundedTrainingSearch, GreedyThresholdSearch

logger = logging.getLogger(__name__)

'''
All functions in this script require a configuration dictionary which contains the values
that configure the experiment.
The configuration dictionaries are stored as JSON files (e.g. configs/train_config.json)
and are loaded before the training/inference starts.
'''

SEARCH_METHODS = ('beam', 'greedy')

DEFAULTS = {
    "search_method": "beam",
    "beam_width": 1,
    "search_step": 300,
    "quality_bar": 0.5,
    "decode_threshold": 0.0,
    "merge_threshold": 0.5,
    "averaging": "simple",
    "normalize_weight": False,
}


def apply_defaults(config_dict):
    '''
    Returns a copy of the configuration dictionary, completed with the default values.
    :param config_dict: a configuration dictionary
    :return: a new configuration dictionary
    '''
    completed = dict(DEFAULTS)
    completed.update(config_dict)
    return completed


def get_learning_rates(config_dict):
    '''
    Returns the learning rate schedule - either the explicit "learning_rates" list or
    a descending schedule that starts at "learning_rate_start" (one rate per iteration).
    :param config_dict: a configuration dictionary
    :return: a list of learning rates
    '''
    if "learning_rates" in config_dict:
        return list(config_dict["learning_rates"])
    if "learning_rate_start" in config_dict:
        return create_descending_array(config_dict["learning_rate_start"],
                                       config_dict["iterations"])
    return [1.0] * config_dict["iterations"]


def validate_config(config_dict, training=True):
    '''
    Checks the configuration values before the experiment starts.
    Raises ConfigError on the first invalid value.
    :param config_dict: a configuration dictionary (with defaults applied)
    :param training: whether the configuration is used for training
    '''
    feature_names = config_dict.get("feature_names")
    if not feature_names:
        raise ConfigError('Config error, "feature_names" must list at least one feature')
    if len(set(feature_names)) != len(feature_names):
        raise ConfigError('Config error, "feature_names" contains duplicates')

    if config_dict["search_method"] not in SEARCH_METHODS:
        raise ConfigError('Config error, unknown search method {}'.format(
            config_dict["search_method"]))
    if int(config_dict["beam_width"]) < 1:
        raise ConfigError('Config error, "beam_width" must be at least 1')
    if int(config_dict["search_step"]) < 1:
        raise ConfigError('Config error, "search_step" must be at least 1')

    if not training:
        return

    if config_dict["search_method"] != 'beam':
        raise ConfigError('Config error, only the beam search can be trained')
    if config_dict["averaging"] not in AVERAGING_SCHEMES:
        raise ConfigError('Config error, unknown averaging scheme {}'.format(
            config_dict["averaging"]))
    iterations = config_dict.get("iterations")
    if iterations is None or int(iterations) < 1:
        raise ConfigError('Config error, "iterations" must be at least 1')

    learning_rates = get_learning_rates(config_dict)
    if len(learning_rates) < iterations:
        raise ConfigError('Config error, {} learning rates for {} iterations'.format(
            len(learning_rates), iterations))
    for learning_rate in learning_rates[:iterations]:
        if learning_rate <= 0:
            raise ConfigError('Config error, learning rates must be positive '
                              '(got {})'.format(learning_rate))


def load_feature_extractor(path):
    '''
    Resolves the feature extraction function from a "module:function" string.
    :param path: a string such as "my_features.extract:get_features"
    :return: a function (document, cluster_1, cluster_2) -> features dict
    '''
    module_name, sep, function_name = path.partition(':')
    if not sep or not module_name or not function_name:
        raise ConfigError('Config error, feature extractor must look like '
                          '"module:function" (got {})'.format(path))
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError('Config error, can not import {}: {}'.format(module_name, e))
    extractor = getattr(module, function_name, None)
    if not callable(extractor):
        raise ConfigError('Config error, {} is not a function of {}'.format(function_name,
                                                                          module_name))
    return extractor


def create_scorer(config_dict):
    return LinearScorer(config_dict["feature_names"])


def create_trainer(config_dict, scorer):
    '''
    Creates the weight trainer of a training run.
    :param config_dict: a configuration dictionary
    :param scorer: a LinearScorer object
    :return: a WeightTrainer object
    '''
    return WeightTrainer(scorer.weight_size, get_learning_rates(config_dict),
                         scheme=config_dict["averaging"],
                         normalize_weight=config_dict["normalize_weight"])


def create_search(config_dict, scorer, feature_extractor, trainer=None, record_sink=None):
    '''
    Given a configuration dictionary, containing the attribute "search_method" that determines
    which search to use, this function creates the search object.
    :param config_dict: a configuration dictionary
    :param scorer: a LinearScorer object
    :param feature_extractor: a function (document, cluster_1, cluster_2) -> features dict
    :param trainer: a WeightTrainer object (beam search training only)
    :param record_sink: a function (features, quality) (greedy search only)
    :return: a BoundedTrainingSearch or a GreedyThresholdSearch object
    '''
    if config_dict["search_method"] == 'beam':
        search = BoundedTrainingSearch(scorer, feature_extractor,
                                       beam_width=int(config_dict["beam_width"]),
                                       search_step=int(config_dict["search_step"]),
                                       quality_bar=config_dict["quality_bar"],
                                       decode_threshold=config_dict["decode_threshold"],
                                       trainer=trainer)
    elif config_dict["search_method"] == 'greedy':
        search = GreedyThresholdSearch(scorer, feature_extractor,
                                       threshold=config_dict["merge_threshold"],
                                       record_sink=record_sink)
    else:
        search = None

    assert (search is not None), "Config error, check the search_method field"

    return search
