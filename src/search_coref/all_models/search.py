import enum
import logging
import collections

from search_coref.all_models.model_utils import calc_q, key_with_max_val, rank_by_score

logger = logging.getLogger(__name__)


class SearchStatus(enum.Enum):
    START = 'start'
    SEARCHING = 'searching'
    CONVERGED = 'converged'
    STEP_LIMIT_REACHED = 'step_limit_reached'


# partition - the final ClusterPartition, state - the TrainerState after training
# (None when decoding), violations - violations found by this search, steps - committed merge rounds
SearchResult = collections.namedtuple('SearchResult',
                                      ['partition', 'state', 'violations', 'steps', 'status'])

Candidate = collections.namedtuple('Candidate', ['pair', 'features', 'vec', 'score'])

BeamState = collections.namedtuple('BeamState', ['partition', 'gold_consistent'])

Successor = collections.namedtuple('Successor', ['beam_state', 'candidate', 'gold_consistent'])


class MergeSearch(object):
    '''
    A search over the partitions of a document which, at every round, decides which two
    clusters (if any) to merge.
    Both run methods get a partition and return a new one, the given partition is not modified.
    '''
    def __init__(self, scorer, feature_extractor):
        '''
        :param scorer: a LinearScorer object
        :param feature_extractor: a function (document, cluster_1, cluster_2) -> features dict
        '''
        self.scorer = scorer
        self.feature_extractor = feature_extractor

    def run_training(self, partition, state, learning_rate):
        '''
        Searches while updating the weight.
        :param partition: the initial ClusterPartition
        :param state: a TrainerState object
        :param learning_rate: the current learning rate
        :return: a SearchResult object
        '''
        raise NotImplementedError

    def run_decoding(self, partition, weight):
        '''
        Searches with a fixed weight.
        :param partition: the initial ClusterPartition
        :param weight: numpy array of size F+1
        :return: a SearchResult object
        '''
        raise NotImplementedError

    def score_candidates(self, partition, weight):
        '''
        Scores every candidate cluster pair of a partition.
        :param partition: a ClusterPartition
        :param weight: numpy array of size F+1
        :return: a list of Candidate tuples, in the candidate pairs order
        '''
        candidates = []
        for pair in partition.candidate_pairs():
            features = partition.pair_features(pair[0], pair[1], self.feature_extractor)
            vec = self.scorer.vectorize(features)
            candidates.append(Candidate(pair, features, vec,
                                        self.scorer.score_vector(weight, vec)))
        return candidates


class BoundedTrainingSearch(MergeSearch):
    '''
    Beam search bounded by a number of merge rounds (search steps).
    In training, whenever the best scoring action of the beam is not the best scoring gold
    consistent action, the weight trainer applies a perceptron update and the search continues
    from the gold consistent action. Stopping is an action too, its features are all zeros.
    '''
    def __init__(self, scorer, feature_extractor, beam_width=1, search_step=300,
                 quality_bar=0.5, decode_threshold=0.0, trainer=None):
        '''
        :param scorer: a LinearScorer object
        :param feature_extractor: a function (document, cluster_1, cluster_2) -> features dict
        :param beam_width: number of partitions kept between rounds
        :param search_step: maximal number of merge rounds
        :param quality_bar: a merge is gold consistent when its quality is larger than this value
        :param decode_threshold: a merge is taken only when its score is larger than this value
        :param trainer: a WeightTrainer object (required for training)
        '''
        super(BoundedTrainingSearch, self).__init__(scorer, feature_extractor)
        if beam_width < 1:
            raise ValueError('Beam width must be at least 1')
        if search_step < 1:
            raise ValueError('Search step must be at least 1')
        self.beam_width = beam_width
        self.search_step = search_step
        self.quality_bar = quality_bar
        self.decode_threshold = decode_threshold
        self.trainer = trainer

    def run_training(self, partition, state, learning_rate):
        if self.trainer is None:
            raise ValueError('Training search requires a weight trainer')
        return self._search(partition, state, learning_rate, training=True)

    def run_decoding(self, partition, weight):
        return self._search(partition, weight, None, training=False)

    def _search(self, partition, state_or_weight, learning_rate, training):
        beam = [BeamState(partition.copy(), True)]
        state = state_or_weight if training else None
        weight = state_or_weight
        steps = 0
        violations = 0
        status = SearchStatus.SEARCHING

        while status == SearchStatus.SEARCHING:
            if training:
                weight = state.weight
            ranked = self._expand(beam, weight, training)
            if not ranked:
                logger.debug('No candidate cluster pairs left, stop merging!')
                status = SearchStatus.CONVERGED
                break

            taken = self._distinct([successor for successor in ranked
                                    if successor.candidate.score > self.decode_threshold])

            if training:
                chosen = taken[0] if taken else None
                oracle = None
                for successor in ranked:
                    if successor.gold_consistent:
                        oracle = successor
                        break

                if chosen is None and oracle is None:
                    status = SearchStatus.CONVERGED
                    break

                if chosen is not oracle:
                    oracle_vec = oracle.candidate.vec if oracle is not None else \
                        self.scorer.zero_weight()
                    chosen_vec = chosen.candidate.vec if chosen is not None else \
                        self.scorer.zero_weight()
                    state = self.trainer.observe_violation(state, oracle_vec, chosen_vec,
                                                           learning_rate)
                    violations += 1
                    logger.debug('Violation at step {}: chosen {} oracle {}'.format(
                        steps, self._describe(chosen), self._describe(oracle)))

                    if oracle is None:
                        status = SearchStatus.CONVERGED
                        break
                    taken = [oracle]
            elif not taken:
                logger.debug('Max score is not larger than {}, stopped merging!'.format(
                    self.decode_threshold))
                status = SearchStatus.CONVERGED
                break

            beam = [self._apply(successor) for successor in taken[:self.beam_width]]
            steps += 1
            if steps >= self.search_step:
                status = SearchStatus.STEP_LIMIT_REACHED

        return SearchResult(beam[0].partition, state, violations, steps, status)

    def _expand(self, beam, weight, training):
        '''
        Scores the candidates of every beam state and ranks them by score (ties keep the
        lower pair index of the earlier beam state first).
        :return: a list of Successor tuples
        '''
        successors = []
        for beam_state in beam:
            document = beam_state.partition.document
            for candidate in self.score_candidates(beam_state.partition, weight):
                gold_consistent = False
                if training and beam_state.gold_consistent:
                    gold_consistent = calc_q(document, *candidate.pair) > self.quality_bar
                successors.append(Successor(beam_state, candidate, gold_consistent))

        return [successors[ix] for ix in rank_by_score([successor.candidate.score
                                                        for successor in successors])]

    def _distinct(self, successors):
        '''
        Drops successors that lead to a partition reached by a higher ranked successor.
        '''
        if self.beam_width == 1:
            return successors[:1]
        distinct = []
        seen = set()
        for successor in successors:
            signature = successor.beam_state.partition.merged_signature(*successor.candidate.pair)
            if signature in seen:
                continue
            seen.add(signature)
            distinct.append(successor)
            if len(distinct) == self.beam_width:
                break
        return distinct

    def _apply(self, successor):
        partition = successor.beam_state.partition.copy()
        cluster_1, cluster_2 = successor.candidate.pair
        partition.merge_pair((partition.clusters[cluster_1.cluster_id],
                              partition.clusters[cluster_2.cluster_id]))
        logger.debug('merge clusters {} and {} with score {}'.format(
            cluster_1.cluster_id, cluster_2.cluster_id, successor.candidate.score))
        return BeamState(partition, successor.gold_consistent)

    @staticmethod
    def _describe(successor):
        if successor is None:
            return 'STOP'
        cluster_1, cluster_2 = successor.candidate.pair
        return '({}, {}) score {}'.format(cluster_1.cluster_id, cluster_2.cluster_id,
                                          successor.candidate.score)


class GreedyThresholdSearch(MergeSearch):
    '''
    A decoding only search with a fixed regression model: in each round it merges the cluster
    pair with the highest score, and stops when no merge scores more than the threshold
    (a score larger than 0.5 means that more than half of the mention pairs introduced by the
    merge are expected to be correct).
    For documents with gold annotation, the candidates scored in every round that ends with a
    merge are also reported to the record sink with their quality of merge, as training
    examples for the regression model. The records of a document reach the sink only after its
    search has finished.
    '''
    def __init__(self, scorer, feature_extractor, threshold=0.5, record_sink=None):
        '''
        :param scorer: a LinearScorer object
        :param feature_extractor: a function (document, cluster_1, cluster_2) -> features dict
        :param threshold: merging threshold
        :param record_sink: a function (features, quality) called for every recorded candidate
        '''
        super(GreedyThresholdSearch, self).__init__(scorer, feature_extractor)
        self.threshold = threshold
        self.record_sink = record_sink

    def run_training(self, partition, state, learning_rate):
        raise TypeError('GreedyThresholdSearch is a decoding only search')

    def run_decoding(self, partition, weight):
        partition = partition.copy()
        records = []
        steps = 0
        while True:
            candidates = self.score_candidates(partition, weight)
            if not candidates:
                logger.debug('No candidate cluster pairs left, stop merging!')
                break

            best_ix, best_score = key_with_max_val([candidate.score for candidate in candidates])
            if best_score <= self.threshold:
                logger.debug('Max score = {} is lower than threshold = {}, stopped merging!'.format(
                    best_score, self.threshold))
                break

            records.extend(self._collect_records(partition, candidates))

            cluster_1, cluster_2 = candidates[best_ix].pair
            logger.debug('another merge----{}---->{} with score {}'.format(
                cluster_2.cluster_id, cluster_1.cluster_id, best_score))
            partition.merge_pair(candidates[best_ix].pair)
            steps += 1

        if self.record_sink is not None:
            for features, quality in records:
                self.record_sink(features, quality)

        return SearchResult(partition, None, 0, steps, SearchStatus.CONVERGED)

    def _collect_records(self, partition, candidates):
        if self.record_sink is None or not partition.document.has_gold():
            return []
        return [(candidate.features, calc_q(partition.document, *candidate.pair))
                for candidate in candidates]
