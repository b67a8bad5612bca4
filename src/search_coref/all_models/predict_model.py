import os
import sys
import json
import random
import logging
import argparse
import numpy as np
import _pickle as cPickle

from search_coref.shared.errors import NumericAnomalyError, ConfigError
from search_coref.shared.eval_utils import evaluate_partitions, format_scores, \
    write_clusters_to_file, RecordWriter
from search_coref.all_models.partition import ClusterPartition
from search_coref.all_models.model_utils import load_check_point
from search_coref.all_models.model_factory import apply_defaults, validate_config, \
    load_feature_extractor, create_scorer, create_search


def test_model(test_set, model, config_dict, feature_extractor, out_dir):
    '''
    Runs the greedy merge search with a fixed regression model on every topic of the test set,
    writes the (features, quality) records of the scored candidates to records.txt and the
    predicted clusters to clusters.txt.
    :param test_set: a Corpus object
    :param model: numpy array of size F+1 (bias first)
    :param config_dict: a configuration dictionary (validated, with defaults)
    :param feature_extractor: a function (document, cluster_1, cluster_2) -> features dict
    :param out_dir: the directory to the output folder
    :return: a dictionary, key is a topic id and value is the final ClusterPartition
    '''
    scorer = create_scorer(config_dict)
    partitions = {}
    with open(os.path.join(out_dir, 'records.txt'), 'w') as records_file:
        record_writer = RecordWriter(records_file, scorer.feature_names)
        search = create_search(config_dict, scorer, feature_extractor, record_sink=record_writer)

        topics_num = len(test_set.topics)
        for topics_counter, topic_id in enumerate(sorted(test_set.topics.keys()), 1):
            document = test_set.topics[topic_id]
            logging.info('=========================================================================')
            logging.info('Topic {} ({}/{}):'.format(topic_id, topics_counter, topics_num))
            print('Topic {}:'.format(topic_id))

            partition = ClusterPartition.initialize(document)
            try:
                result = search.run_decoding(partition, model)
            except NumericAnomalyError as e:
                logging.error('Topic {} failed: {}'.format(topic_id, e))
                continue

            logging.info('{} merges, {} clusters left'.format(result.steps, len(result.partition)))
            partitions[topic_id] = result.partition

        logging.info('{} training records were written'.format(record_writer.records_count))

    with open(os.path.join(out_dir, 'clusters.txt'), 'w') as clusters_file:
        for topic_id in sorted(partitions.keys()):
            write_clusters_to_file(partitions[topic_id], clusters_file, topic_id)

    return partitions


def main():
    '''
    This script loads the test set and a fixed regression model, runs the greedy merge search,
    and reports the B-cubed and pairwise scores of the predicted clusters.
    '''
    parser = argparse.ArgumentParser(description='Testing the regression model with greedy search')

    parser.add_argument('--config_path', type=str,
                        help=' The path configuration json file')
    parser.add_argument('--out_dir', type=str,
                        help=' The directory to the output folder')

    args = parser.parse_args()

    if not os.path.exists(args.out_dir):
        os.makedirs(args.out_dir)

    logging.basicConfig(filename=os.path.join(args.out_dir, "test_log.txt"),
                        level=logging.INFO, filemode="w")

    # Loads a json configuration file (test_config.json)
    with open(args.config_path, 'r') as js_file:
        config_dict = apply_defaults(json.load(js_file))

    # Saves a json configuration file (test_config.json) in the experiment folder
    with open(os.path.join(args.out_dir, 'test_config.json'), "w") as js_file:
        json.dump(config_dict, js_file, indent=4, sort_keys=True)

    try:
        validate_config(config_dict, training=False)
        feature_extractor = load_feature_extractor(config_dict["feature_extractor"])
    except ConfigError as e:
        logging.error(str(e))
        print(e)
        sys.exit(1)

    random.seed(config_dict.get("random_seed", 0))
    np.random.seed(config_dict.get("random_seed", 0))

    model = load_check_point(config_dict["model_path"])

    logging.info('Loading test data...')
    with open(config_dict["test_path"], 'rb') as f:
        test_data = cPickle.load(f)
    logging.info('Test data have been loaded.')

    partitions = test_model(test_data, model, config_dict, feature_extractor, args.out_dir)

    scores = evaluate_partitions(partitions)
    print(format_scores(scores))
    logging.info(format_scores(scores))
    with open(os.path.join(args.out_dir, 'scores.json'), 'w') as f:
        json.dump(scores, f, indent=4, sort_keys=True)


if __name__ == '__main__':
    main()
