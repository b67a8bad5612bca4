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
    write_clusters_to_file
from search_coref.all_models.partition import ClusterPartition
from search_coref.all_models.trainer import weight_differences
from search_coref.all_models.model_utils import save_check_point, format_array
from search_coref.all_models.model_factory import apply_defaults, validate_config, \
    load_feature_extractor, create_scorer, create_trainer, create_search


def train_documents(search, topics, state, learning_rate, epoch):
    '''
    Runs the training search on every training topic, threading the trainer state from
    one topic to the next one. A topic whose search fails on a numeric anomaly is skipped
    and its weight updates are discarded.
    :param search: a BoundedTrainingSearch object
    :param topics: a dictionary, key is a topic id and value is a Document object
    :param state: the TrainerState at the beginning of the pass
    :param learning_rate: the iteration's learning rate
    :param epoch: current iteration number (for logging)
    :return: the TrainerState at the end of the pass, number of failed topics
    '''
    failed = 0
    topics_num = len(topics)
    for topics_counter, topic_id in enumerate(sorted(topics.keys()), 1):
        document = topics[topic_id]
        logging.info('=========================================================================')
        logging.info('epoch {} topic {}/{} - training on {}'.format(epoch, topics_counter,
                                                                   topics_num, topic_id))
        partition = ClusterPartition.initialize(document)
        logging.info('topic {} before search: {} clusters'.format(topic_id, len(partition)))
        try:
            result = search.run_training(partition, state, learning_rate)
        except NumericAnomalyError as e:
            failed += 1
            logging.error('Training on topic {} failed, its updates are skipped: {}'.format(
                topic_id, e))
            continue

        state = result.state
        logging.info('topic {} after search: {} clusters, {} violations, {} steps ({})'.format(
            topic_id, len(result.partition), result.violations, result.steps,
            result.status.value))

    return state, failed


def decode_documents(search, topics, weight, mode):
    '''
    Runs the decoding search with a fixed weight on every topic.
    :param search: a MergeSearch object
    :param topics: a dictionary, key is a topic id and value is a Document object
    :param weight: numpy array
    :param mode: a name for the log (validation/test)
    :return: a dictionary, key is a topic id and value is the final ClusterPartition
    '''
    partitions = {}
    for topic_id in sorted(topics.keys()):
        document = topics[topic_id]
        logging.info('Starting to do {} on {}'.format(mode, topic_id))
        try:
            result = search.run_decoding(ClusterPartition.initialize(document), weight)
        except NumericAnomalyError as e:
            logging.error('{} on topic {} failed: {}'.format(mode, topic_id, e))
            continue
        logging.info('{} detail after search: {} clusters, {} steps'.format(
            topic_id, len(result.partition), result.steps))
        partitions[topic_id] = result.partition

    return partitions


def train_model(train_set, test_set, config_dict, feature_extractor, out_dir):
    '''
    Runs the training procedure: each iteration trains the weight on all the training topics,
    averages the weights and then decodes the training topics (validation) and the test
    topics with the average weight and reports their scores.
    :param train_set: a Corpus object, representing the train set.
    :param test_set: a Corpus object, representing the test set (may be None).
    :param config_dict: a configuration dictionary (validated, with defaults)
    :param feature_extractor: a function (document, cluster_1, cluster_2) -> features dict
    :param out_dir: the directory to the output folder
    :return: the WeightTrainer object of the run
    '''
    scorer = create_scorer(config_dict)
    trainer = create_trainer(config_dict, scorer)
    search = create_search(config_dict, scorer, feature_extractor, trainer=trainer)

    logging.info('features : {}'.format(', '.join(scorer.feature_names)))
    logging.info('search model : beam-{}-{}'.format(config_dict["beam_width"],
                                                    config_dict["search_step"]))

    for i in range(config_dict["iterations"]):
        print('Iteration {}:'.format(i))
        learning_rate, state = trainer.begin_iteration(i)

        state, failed = train_documents(search, train_set.topics, state, learning_rate, i)
        if failed:
            print('{} training topics failed'.format(failed))

        average_weight = trainer.end_iteration(i, state)
        save_iteration(trainer, i, out_dir)

        print('Testing average weight on train set...')
        train_scores = evaluate_partitions(decode_documents(search, train_set.topics,
                                                            average_weight, 'validation'))
        test_scores = None
        test_partitions = {}
        if test_set is not None:
            print('Testing average weight on test set...')
            test_partitions = decode_documents(search, test_set.topics, average_weight, 'testing')
            test_scores = evaluate_partitions(test_partitions)

        save_epoch_scores(i, train_scores, test_scores, out_dir)
        with open(os.path.join(out_dir, 'test_clusters_iteration{}.txt'.format(i + 1)), 'w') as f:
            for topic_id in sorted(test_partitions.keys()):
                write_clusters_to_file(test_partitions[topic_id], f, topic_id)

    differences = weight_differences(trainer.average_weights)
    logging.info('average weight differences : {}'.format(format_array(differences)))
    save_check_point(trainer.average_weights[-1], os.path.join(out_dir, 'average_weight.npy'))
    save_summary(trainer, differences, out_dir)

    return trainer


def save_iteration(trainer, iteration, out_dir):
    '''
    Appends the weights of an iteration to weights.txt and its violations to violatedFile.
    '''
    with open(os.path.join(out_dir, 'weights.txt'), 'a') as f:
        f.write('iteration {}\n'.format(iteration + 1))
        f.write('weight vector : {}\n'.format(format_array(trainer.state.weight)))
        f.write('total weight vector : {}\n'.format(format_array(trainer.state.total_weight)))
        f.write('average weight vector : {}\n\n'.format(
            format_array(trainer.average_weights[-1])))

    with open(os.path.join(out_dir, 'violatedFile'), 'a') as f:
        f.write('{}\n'.format(trainer.iteration_violations[-1]))


def save_epoch_scores(iteration, train_scores, test_scores, out_dir):
    '''
    Write to a text file the scores of the train and test sets after each iteration.
    '''
    line = 'Iteration {} - Train: {}'.format(iteration + 1, format_scores(train_scores))
    if test_scores is not None:
        line += '  Test: {}'.format(format_scores(test_scores))
    print(line)
    logging.info(line)
    with open(os.path.join(out_dir, 'epochs_scores.txt'), 'a') as f:
        f.write(line + '\n')


def save_summary(trainer, differences, out_dir):
    '''
    Writes a summary of the training (violations, weights and their differences) as json.
    '''
    summary = {'iteration_violations': trainer.iteration_violations,
               'total_violations': trainer.state.violation_count,
               'learning_rates': trainer.learning_rates[:len(trainer.average_weights)],
               'average_weight': [float(value) for value in trainer.average_weights[-1]],
               'average_weight_differences': differences}
    with open(os.path.join(out_dir, 'summary.json'), 'w') as f:
        json.dump(summary, f, indent=4, sort_keys=True)


def main():
    '''
    This script loads the train and test sets and runs the training procedure that alternates
    between training the weight on the train topics and testing the averaged weight.
    Finally, it saves the averaged weight of the last iteration.
    '''
    parser = argparse.ArgumentParser(description='Training a merge scorer with beam search')

    parser.add_argument('--config_path', type=str,
                        help=' The path configuration json file')
    parser.add_argument('--out_dir', type=str,
                        help=' The directory to the output folder')

    args = parser.parse_args()

    if not os.path.exists(args.out_dir):
        os.makedirs(args.out_dir)

    logging.basicConfig(filename=os.path.join(args.out_dir, "train_log.txt"),
                        level=logging.DEBUG, filemode='w')

    # Load json config file
    with open(args.config_path, 'r') as js_file:
        config_dict = apply_defaults(json.load(js_file))

    with open(os.path.join(args.out_dir, 'train_config.json'), "w") as js_file:
        json.dump(config_dict, js_file, indent=4, sort_keys=True)

    try:
        validate_config(config_dict, training=True)
        feature_extractor = load_feature_extractor(config_dict["feature_extractor"])
    except ConfigError as e:
        logging.error(str(e))
        print(e)
        sys.exit(1)

    random.seed(config_dict.get("random_seed", 0))
    np.random.seed(config_dict.get("random_seed", 0))

    logging.info('Loading training and test data...')
    with open(config_dict["train_path"], 'rb') as f:
        training_data = cPickle.load(f)
    test_data = None
    if config_dict.get("test_path"):
        with open(config_dict["test_path"], 'rb') as f:
            test_data = cPickle.load(f)

    logging.info('Training and test data have been loaded.')

    train_model(training_data, test_data, config_dict, feature_extractor, args.out_dir)


if __name__ == '__main__':
    main()
