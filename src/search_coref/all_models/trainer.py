import logging
import collections
import numpy as np

from search_coref.all_models.model_utils import normalize, format_array

logger = logging.getLogger(__name__)

SIMPLE_AVERAGING = 'simple'
RECURSIVE_AVERAGING = 'recursive'
AVERAGING_SCHEMES = (SIMPLE_AVERAGING, RECURSIVE_AVERAGING)


class TrainerState(collections.namedtuple('TrainerState',
                                          ['weight', 'total_weight', 'violation_count'])):
    '''
    The learned state threaded from one document's training search into the next one:
    the current weight, the accumulated weight snapshots and the number of violations.
    Updates never modify the arrays in place, they return a new TrainerState.
    '''
    __slots__ = ()

    @classmethod
    def zeros(cls, size):
        return cls(np.zeros(size), np.zeros(size), 0)


def perceptron_update(weight, oracle_vec, chosen_vec, learning_rate):
    '''
    The structured perceptron update:
    weight + learning_rate * (features of oracle best - features of chosen action)
    :return: a new numpy array
    '''
    return weight + learning_rate * (np.asarray(oracle_vec) - np.asarray(chosen_vec))


def simple_average(total_weight, violation_count):
    '''
    Averages the weight snapshots accumulated at each violation.
    With no violations nothing was accumulated, the (zero) total is returned as is.
    :param total_weight: the sum of the weight snapshots
    :param violation_count: the number of snapshots
    :return: a new numpy array
    '''
    total_weight = np.array(total_weight, dtype=np.float64)
    if violation_count == 0:
        return total_weight
    return total_weight / violation_count


def compute_delta(weight, previous_weight, learning_rate):
    '''
    Recovers the update direction of an iteration from
    w_t = (1 - eta_t) * w_{t-1} + eta_t * delta_t
    :return: delta_t (a new numpy array)
    '''
    return (np.asarray(weight) - (1.0 - learning_rate) * np.asarray(previous_weight)) / learning_rate


def recursive_average(weights, deltas, learning_rates, iteration, violation_count):
    '''
    Averages the weights of a run with a changing learning rate:

    avg_i = 1/(i+1) * sum_{k<=i} (1 - eta_k) * w_k  +  1/V * sum_{k<=i} eta_k * delta_k

    The average is rebuilt from the whole history, the history is left untouched.
    With V == 0 only the former term is used.
    :param weights: the weight history w_0 ... (w_0 is the initial weight)
    :param deltas: the per iteration update directions delta_0 ...
    :param learning_rates: the learning rate of every iteration
    :param iteration: the current iteration i (0 based)
    :param violation_count: the total number of violations so far (V)
    :return: a new numpy array
    '''
    former_part = np.zeros(len(weights[0]))
    later_part = np.zeros(len(weights[0]))
    for k in range(iteration + 1):
        former_part = former_part + (1.0 - learning_rates[k]) * np.asarray(weights[k])
        later_part = later_part + learning_rates[k] * np.asarray(deltas[k])

    average_weight = former_part / float(iteration + 1)
    if violation_count > 0:
        average_weight = average_weight + later_part / float(violation_count)

    return average_weight


def weight_differences(average_weights):
    '''
    Computes the L2 distance between every two successive average weights
    :param average_weights: a list of numpy arrays
    :return: a list of floats (one shorter than average_weights)
    '''
    differences = []
    for previous, current in zip(average_weights, average_weights[1:]):
        differences.append(float(np.linalg.norm(np.asarray(current) - np.asarray(previous))))
    return differences


class WeightTrainer(object):
    '''
    Owns the weights of a training run: the per iteration weight history, the update
    directions, the averaged weights and the violation statistics.
    The training search reports its violations to observe_violation, the run loop calls
    begin_iteration / end_iteration around every pass over the training topics.
    '''
    def __init__(self, weight_size, learning_rates, scheme=SIMPLE_AVERAGING,
                 normalize_weight=False):
        '''
        :param weight_size: the size of the weight vector (number of features + 1)
        :param learning_rates: the learning rate of every iteration
        :param scheme: 'simple' or 'recursive' averaging
        :param normalize_weight: whether to L2 normalize the averaged weights
        '''
        if scheme not in AVERAGING_SCHEMES:
            raise ValueError('Unknown averaging scheme {}'.format(scheme))
        self.weight_size = weight_size
        self.learning_rates = list(learning_rates)
        self.scheme = scheme
        self.normalize_weight = normalize_weight

        self.weights = [np.zeros(weight_size)]
        self.deltas = []
        self.average_weights = []
        self.iteration_violations = []
        self.state = TrainerState.zeros(weight_size)
        self._violations_at_start = 0

    def begin_iteration(self, iteration):
        '''
        Starts an iteration from the last recorded weight.
        :param iteration: iteration number (0 based)
        :return: the iteration's learning rate and the TrainerState to train with
        '''
        learning_rate = self.learning_rates[iteration]
        self.state = self.state._replace(weight=np.array(self.weights[iteration]))
        self._violations_at_start = self.state.violation_count
        logger.info('The {}th iteration.... with learning rate {}'.format(iteration, learning_rate))
        return learning_rate, self.state

    def observe_violation(self, state, oracle_vec, chosen_vec, learning_rate):
        '''
        Applies the perceptron update for a single violation.
        For the simple scheme the updated weight is accumulated, for the recursive scheme the
        weight before the update is.
        :param state: the current TrainerState
        :param oracle_vec: the features of the gold consistent best action
        :param chosen_vec: the features of the action the search chose
        :param learning_rate: the current learning rate
        :return: a new TrainerState
        '''
        weight = perceptron_update(state.weight, oracle_vec, chosen_vec, learning_rate)
        if self.scheme == SIMPLE_AVERAGING:
            total_weight = state.total_weight + weight
        else:
            total_weight = state.total_weight + state.weight

        return TrainerState(weight, total_weight, state.violation_count + 1)

    def end_iteration(self, iteration, state):
        '''
        Records the weight reached at the end of an iteration and computes the average weight.
        :param iteration: iteration number (0 based)
        :param state: the TrainerState returned by the last training search
        :return: the average weight (a new numpy array)
        '''
        self.state = state
        learning_rate = self.learning_rates[iteration]
        violations = state.violation_count - self._violations_at_start
        self.iteration_violations.append(violations)

        logger.info('weight vector : {}'.format(format_array(state.weight)))
        logger.info('total weight vector : {}'.format(format_array(state.total_weight)))
        logger.info('violations : {} total violation : {}'.format(violations,
                                                                  state.violation_count))

        if self.scheme == SIMPLE_AVERAGING:
            average_weight = simple_average(state.total_weight, state.violation_count)
        else:
            self.deltas.append(compute_delta(state.weight, self.weights[iteration],
                                             learning_rate))
            average_weight = recursive_average(self.weights, self.deltas, self.learning_rates,
                                               iteration, state.violation_count)

        if self.normalize_weight:
            average_weight = normalize(average_weight)

        logger.info('average weight vector : {}'.format(format_array(average_weight)))

        self.weights.append(np.array(state.weight))
        self.average_weights.append(average_weight)

        return average_weight
