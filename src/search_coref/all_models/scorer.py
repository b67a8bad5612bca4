import math
import logging
import numpy as np

from search_coref.shared.errors import NumericAnomalyError

logger = logging.getLogger(__name__)


def check_features(features):
    '''
    Checks that every value of a feature vector is a finite number.
    :param features: a dictionary, key is a feature name and value is its count
    :return: the same dictionary
    '''
    for name, value in features.items():
        if not math.isfinite(value):
            raise NumericAnomalyError('Feature {} has a non finite value ({})'.format(name, value))
    return features


class LinearScorer(object):
    '''
    Reduces a named feature vector and a weight vector to a scalar score.
    The weight vector has one entry per feature name, preceded by the bias term.
    '''
    def __init__(self, feature_names):
        '''
        :param feature_names: the fixed, ordered list of feature names
        '''
        if len(feature_names) == 0:
            raise ValueError('A scorer needs at least one feature name')
        if len(set(feature_names)) != len(feature_names):
            raise ValueError('Duplicate feature names')
        self.feature_names = list(feature_names)

    @property
    def weight_size(self):
        return len(self.feature_names) + 1

    def zero_weight(self):
        return np.zeros(self.weight_size)

    def vectorize(self, features):
        '''
        Builds the dense vector [1.0, f(name_1), ..., f(name_F)] - the leading one multiplies
        the bias. Missing features contribute 0, unknown feature names are ignored.
        :param features: a dictionary, key is a feature name and value is its count
        :return: a numpy array of size F+1
        '''
        check_features(features)
        vec = np.zeros(self.weight_size)
        vec[0] = 1.0
        for i, name in enumerate(self.feature_names):
            vec[i + 1] = features.get(name, 0.0)
        return vec

    def score(self, weight, features):
        '''
        Computes weight[0] + sum_i weight[i+1] * features[name_i]
        :param weight: a numpy array of size F+1
        :param features: a dictionary, key is a feature name and value is its count
        :return: the score (float)
        '''
        return self.score_vector(weight, self.vectorize(features))

    def score_vector(self, weight, vec):
        '''
        Scores an already vectorized feature vector (see vectorize).
        '''
        weight = np.asarray(weight, dtype=np.float64)
        if weight.shape != (self.weight_size,):
            raise ValueError('Weight of size {} does not match {} features'.format(
                weight.shape, len(self.feature_names)))
        value = float(np.dot(weight, vec))
        if not math.isfinite(value):
            raise NumericAnomalyError('Non finite score {}'.format(value))
        return value
