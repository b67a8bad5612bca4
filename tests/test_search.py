"""Tests for the bounded (beam) training search and the greedy threshold search."""
import unittest
import numpy as np

from search_coref.shared.errors import NumericAnomalyError
from search_coref.all_models.scorer import LinearScorer
from search_coref.all_models.partition import ClusterPartition
from search_coref.all_models.trainer import WeightTrainer, TrainerState, RECURSIVE_AVERAGING
from search_coref.all_models.search import BoundedTrainingSearch, GreedyThresholdSearch, \
    SearchStatus

from coref_fixtures import head_match, obama_document, abcd_document, two_chains_document, \
    CountingOverlap, nan_features


class TestGreedyThresholdSearch(unittest.TestCase):

    def setUp(self):
        self.records = []
        self.search = GreedyThresholdSearch(LinearScorer(['overlap']), CountingOverlap(),
                                            threshold=0.5,
                                            record_sink=lambda features, quality:
                                            self.records.append((features['overlap'], quality)))

    def test_merges_best_pair_then_stops(self):
        partition = ClusterPartition.initialize(abcd_document())
        result = self.search.run_decoding(partition, np.array([0.0, 1.0]))

        self.assertEqual(result.steps, 1)
        self.assertEqual(result.status, SearchStatus.CONVERGED)
        self.assertEqual(len(result.partition), 3)
        self.assertEqual(sorted(result.partition.clusters[0].mentions.keys()), ['A', 'B'])
        self.assertEqual(len(partition), 4)

    def test_records_of_merging_rounds(self):
        self.search.run_decoding(ClusterPartition.initialize(abcd_document()),
                                 np.array([0.0, 1.0]))
        self.assertEqual(len(self.records), 6)
        self.assertEqual([overlap for overlap, _ in self.records],
                         [0.6, 0.2, 0.1, 0.3, 0.05, 0.4])
        self.assertEqual([quality for _, quality in self.records],
                         [1.0, 0.0, 0.0, 0.0, 0.0, 0.0])

    def test_no_records_when_nothing_is_merged(self):
        self.search.run_decoding(ClusterPartition.initialize(abcd_document()),
                                 np.array([0.5, 0.0]))
        self.assertEqual(self.records, [])

    def test_no_records_from_a_failed_search(self):
        def nan_after_merge(document, cluster_1, cluster_2):
            if len(cluster_1) > 1 or len(cluster_2) > 1:
                return {'overlap': float('nan')}
            return CountingOverlap()(document, cluster_1, cluster_2)

        search = GreedyThresholdSearch(LinearScorer(['overlap']), nan_after_merge,
                                       record_sink=lambda features, quality:
                                       self.records.append(quality))
        with self.assertRaises(NumericAnomalyError):
            search.run_decoding(ClusterPartition.initialize(abcd_document()),
                                np.array([0.0, 1.0]))
        self.assertEqual(self.records, [])

    def test_no_records_without_gold(self):
        result = self.search.run_decoding(
            ClusterPartition.initialize(abcd_document(with_gold=False)), np.array([0.0, 1.0]))
        self.assertEqual(result.steps, 1)
        self.assertEqual(self.records, [])

    def test_high_bias_merges_everything(self):
        partition = ClusterPartition.initialize(abcd_document())
        result = self.search.run_decoding(partition, np.array([1.0, 0.0]))
        self.assertEqual(result.steps, len(partition) - 1)
        self.assertEqual(len(result.partition), 1)

    def test_score_equal_to_threshold_does_not_merge(self):
        result = self.search.run_decoding(ClusterPartition.initialize(abcd_document()),
                                          np.array([0.5, 0.0]))
        self.assertEqual(result.steps, 0)
        self.assertEqual(len(result.partition), 4)

    def test_ties_merge_the_lowest_pair(self):
        search = GreedyThresholdSearch(LinearScorer(['head_match']), head_match, threshold=0.9)
        result = search.run_decoding(ClusterPartition.initialize(obama_document()),
                                     np.array([1.0, -0.4]))
        # (a1, b1) and (a2, b1) both score 1.0, the first one wins
        self.assertEqual(result.steps, 1)
        self.assertEqual(sorted(result.partition.clusters[0].mentions.keys()), ['a1', 'b1'])
        self.assertEqual(sorted(result.partition.clusters[1].mentions.keys()), ['a2'])

    def test_no_training(self):
        with self.assertRaises(TypeError):
            self.search.run_training(ClusterPartition.initialize(abcd_document()),
                                     TrainerState.zeros(2), 1.0)


class TestBoundedTrainingSearch(unittest.TestCase):

    def setUp(self):
        self.scorer = LinearScorer(['head_match'])
        self.trainer = WeightTrainer(self.scorer.weight_size, [1.0])
        self.search = BoundedTrainingSearch(self.scorer, head_match, beam_width=1,
                                            search_step=300, trainer=self.trainer)

    def test_training_from_zero_weight(self):
        partition = ClusterPartition.initialize(obama_document())
        result = self.search.run_training(partition, TrainerState.zeros(2), 1.0)

        self.assertEqual(result.violations, 2)
        self.assertEqual(result.state.violation_count, 2)
        np.testing.assert_array_almost_equal(result.state.weight, [0.0, 1.0])
        np.testing.assert_array_almost_equal(result.state.total_weight, [1.0, 2.0])
        self.assertEqual(result.status, SearchStatus.CONVERGED)
        self.assertEqual(len(result.partition), 2)
        self.assertEqual(sorted(result.partition.clusters[0].mentions.keys()), ['a1', 'a2'])
        self.assertEqual(len(partition), 3)

    def test_trained_weight_has_no_violations(self):
        state = TrainerState(np.array([0.0, 1.0]), np.zeros(2), 0)
        result = self.search.run_training(ClusterPartition.initialize(obama_document()),
                                          state, 1.0)
        self.assertEqual(result.violations, 0)
        self.assertIs(result.state, state)
        self.assertEqual(len(result.partition), 2)

    def test_recursive_scheme_accumulates_weight_before_update(self):
        trainer = WeightTrainer(2, [1.0], scheme=RECURSIVE_AVERAGING)
        search = BoundedTrainingSearch(self.scorer, head_match, trainer=trainer)
        result = search.run_training(ClusterPartition.initialize(obama_document()),
                                     TrainerState.zeros(2), 1.0)
        np.testing.assert_array_almost_equal(result.state.total_weight, [1.0, 1.0])

    def test_decoding(self):
        result = self.search.run_decoding(ClusterPartition.initialize(obama_document()),
                                          np.array([0.0, 1.0]))
        self.assertIsNone(result.state)
        self.assertEqual(result.steps, 1)
        self.assertEqual(result.status, SearchStatus.CONVERGED)
        self.assertEqual(len(result.partition), 2)

    def test_decoding_needs_no_gold(self):
        result = self.search.run_decoding(ClusterPartition.initialize(abcd_document(False)),
                                          np.array([1.0, 0.0]))
        self.assertEqual(len(result.partition), 1)
        self.assertEqual(result.steps, 3)

    def test_wider_beam_drops_duplicate_partitions(self):
        search = BoundedTrainingSearch(self.scorer, head_match, beam_width=2)
        result = search.run_decoding(ClusterPartition.initialize(obama_document()),
                                     np.array([1.0, 0.0]))
        self.assertEqual(result.steps, 2)
        self.assertEqual(len(result.partition), 1)
        self.assertEqual(result.status, SearchStatus.CONVERGED)

    def test_training_with_wider_beam(self):
        search = BoundedTrainingSearch(self.scorer, head_match, beam_width=2,
                                       trainer=self.trainer)
        result = search.run_training(ClusterPartition.initialize(two_chains_document()),
                                     TrainerState.zeros(2), 1.0)

        # STOP against (a1, a2), then a merge out of the non gold beam state against STOP
        self.assertEqual(result.violations, 2)
        self.assertEqual(result.steps, 2)
        np.testing.assert_array_almost_equal(result.state.weight, [0.0, 2.0 / 3.0])
        np.testing.assert_array_almost_equal(result.state.total_weight, [1.0, 5.0 / 3.0])
        self.assertEqual(result.status, SearchStatus.CONVERGED)
        self.assertEqual(result.partition.signature(),
                         frozenset([frozenset(['a1', 'a2']), frozenset(['b1', 'b2']),
                                    frozenset(['c1'])]))

    def test_step_limit(self):
        search = BoundedTrainingSearch(self.scorer, head_match, search_step=1)
        result = search.run_decoding(ClusterPartition.initialize(obama_document()),
                                     np.array([1.0, 0.0]))
        self.assertEqual(result.steps, 1)
        self.assertEqual(result.status, SearchStatus.STEP_LIMIT_REACHED)
        self.assertEqual(len(result.partition), 2)

    def test_nothing_to_merge(self):
        document = obama_document()
        partition = ClusterPartition.initialize(document)
        partition.merge(partition.clusters[0], partition.clusters[1])
        partition.merge(partition.clusters[0], partition.clusters[2])
        result = self.search.run_training(partition, TrainerState.zeros(2), 1.0)
        self.assertEqual(result.steps, 0)
        self.assertEqual(result.violations, 0)
        self.assertEqual(result.status, SearchStatus.CONVERGED)

    def test_nan_feature_fails_the_search(self):
        search = BoundedTrainingSearch(self.scorer, nan_features, trainer=self.trainer)
        with self.assertRaises(NumericAnomalyError):
            search.run_training(ClusterPartition.initialize(obama_document()),
                                TrainerState.zeros(2), 1.0)

    def test_training_needs_a_trainer(self):
        search = BoundedTrainingSearch(self.scorer, head_match)
        with self.assertRaises(ValueError):
            search.run_training(ClusterPartition.initialize(obama_document()),
                                TrainerState.zeros(2), 1.0)

    def test_invalid_bounds(self):
        with self.assertRaises(ValueError):
            BoundedTrainingSearch(self.scorer, head_match, beam_width=0)
        with self.assertRaises(ValueError):
            BoundedTrainingSearch(self.scorer, head_match, search_step=0)


if __name__ == "__main__":
    unittest.main()
