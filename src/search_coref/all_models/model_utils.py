import os
import logging
import numpy as np

from search_coref.shared.errors import DataInconsistencyError

logger = logging.getLogger(__name__)


def calc_q(document, cluster_1, cluster_2):
    '''
    Calculates the quality of merging two clusters, denotes by the proportion between
    the number of gold coreferential mention pairwise links (between the two clusters) and all the
    pairwise links.
    :param document: the Document object which holds the gold mapping
    :param cluster_1: first cluster
    :param cluster_2: second cluster
    :return: the quality of merge (a number between 0 to 1)
    '''
    if not document.has_gold():
        raise ValueError('Document {} has no gold annotation'.format(document.doc_id))

    true_pairs = 0
    total_pairs = len(cluster_1.mentions) * len(cluster_2.mentions)
    for mention_id_1 in cluster_1.mentions:
        gold_tag_1 = gold_tag_or_raise(document, mention_id_1)
        for mention_id_2 in cluster_2.mentions:
            if gold_tag_1 == gold_tag_or_raise(document, mention_id_2):
                true_pairs += 1

    return true_pairs / float(total_pairs)


def gold_tag_or_raise(document, mention_id):
    if mention_id not in document.gold_mentions:
        raise DataInconsistencyError(mention_id)
    return document.gold_mentions[mention_id].gold_tag


def key_with_max_val(scores):
    '''
    Returns the index of the maximal score and the score itself.
    Ties are broken by the lowest index (numpy's argmax returns the first occurrence), so
    when scores follow the candidate pairs order the lowest pair index wins.
    :param scores: a list of scores
    :return: best index, best score
    '''
    np_scores = np.asarray(scores, dtype=np.float64)
    best_ix = int(np.argmax(np_scores))
    return best_ix, float(np_scores[best_ix])


def rank_by_score(scores):
    '''
    Returns the indices of the scores ordered from the highest score to the lowest one,
    equal scores keep their original (lowest index first) order.
    :param scores: a list of scores
    :return: a list of indices
    '''
    np_scores = np.asarray(scores, dtype=np.float64)
    return [int(ix) for ix in np.argsort(-np_scores, kind='stable')]


def create_descending_array(start_numerical, dimension):
    '''
    Creates a descending learning rate schedule, for example start_numerical = 1.0 and
    dimension = 10 gives [1.0, 0.9, 0.8, 0.7, 0.6, 0.5, 0.4, 0.3, 0.2, 0.1]
    :param start_numerical: the first learning rate
    :param dimension: the number of learning rates
    :return: a list of learning rates, rounded to two decimal places
    '''
    gap = start_numerical / dimension
    learning_rates = []
    for i in range(dimension):
        learning_rates.append(round(start_numerical - i * gap, 2))

    return learning_rates


def normalize(weight):
    '''
    Returns the L2 normalized copy of a weight vector (the zero vector stays as is)
    :param weight: numpy array
    :return: a new numpy array
    '''
    weight = np.array(weight, dtype=np.float64)
    norm = np.linalg.norm(weight)
    if norm == 0.0:
        return weight
    return weight / norm


def format_array(weight):
    return ', '.join(str(value) for value in weight)


def build_record(feature_names, features, quality):
    '''
    Formats a (features, quality) training record as a single line: the features'
    values ordered by the feature names, followed by the quality of merge, comma separated.
    :param feature_names: the ordered feature names
    :param features: a dictionary, key is a feature name and value is its count
    :param quality: the quality of merge
    :return: a string (without a new line)
    '''
    values = [str(float(features.get(name, 0.0))) for name in feature_names]
    values.append(str(float(quality)))
    return ','.join(values)


def parse_record(line):
    '''
    Parses a line written by build_record
    :param line: a line of a records file
    :return: a list of feature values, the quality of merge
    '''
    values = [float(value) for value in line.strip().split(',')]
    return values[:-1], values[-1]


def save_check_point(weight, fname):
    '''
    Saves a weight vector to a .npy file
    :param weight: numpy array
    :param fname: the file name
    '''
    with open(fname, 'wb') as f:
        np.save(f, np.asarray(weight, dtype=np.float64))


def load_check_point(fname):
    '''
    Loads a weight vector saved by save_check_point.
    A text file with one value per line (or comma separated values) is also accepted.
    :param fname: the file name
    :return: numpy array
    '''
    if os.path.splitext(fname)[1] == '.npy':
        with open(fname, 'rb') as f:
            return np.load(f)
    with open(fname, 'r') as f:
        values = f.read().replace(',', ' ').split()
    return np.asarray([float(value) for value in values], dtype=np.float64)
