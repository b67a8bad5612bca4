import logging

from search_coref.shared.classes import Cluster
from search_coref.all_models.scorer import check_features
from search_coref.all_models.model_utils import gold_tag_or_raise
from search_coref.shared.errors import DataInconsistencyError

logger = logging.getLogger(__name__)


class ClusterPartition(object):
    '''
    The set of disjoint clusters of a single document at one point of a search.
    The partition is owned by the search that created it, the document itself is
    never modified.
    '''
    def __init__(self, document, clusters):
        '''
        :param document: the Document object the clusters cover
        :param clusters: a list of Cluster objects
        '''
        self.document = document
        self.clusters = {}
        for cluster in clusters:
            self.clusters[cluster.cluster_id] = cluster

    @classmethod
    def initialize(cls, document):
        '''
        Creates one cluster per initial mention group of the document.
        :param document: a Document object
        :return: a new ClusterPartition
        '''
        clusters = []
        for cluster_id in sorted(document.initial_clusters.keys()):
            mentions = [document.mentions[mention_id]
                        for mention_id in document.initial_clusters[cluster_id]]
            clusters.append(Cluster(cluster_id, mentions))

        return cls(document, clusters)

    def ordered_clusters(self):
        return [self.clusters[cluster_id] for cluster_id in sorted(self.clusters.keys())]

    def __len__(self):
        return len(self.clusters)

    def mentions_count(self):
        return sum(len(cluster) for cluster in self.clusters.values())

    def find_mention_cluster(self, mention_id):
        '''
        Given a mention ID, the function fetches its current cluster.
        :param mention_id: mention ID
        :return: the mention's current cluster
        '''
        for cluster in self.clusters.values():
            if mention_id in cluster.mentions:
                return cluster
        raise ValueError('Can not find mention cluster!')

    def candidate_pairs(self):
        '''
        Generates all the unordered cluster pairs (i < j, by ascending cluster id).
        Pairs whose representative mention is a pronoun are never candidates.
        When the document has a gold mapping, pairs that contain a mention which is
        missing from it are skipped.
        :return: a list of (Cluster, Cluster) tuples
        '''
        clusters = self.ordered_clusters()
        consistent = {}
        if self.document.has_gold():
            for cluster in clusters:
                consistent[cluster.cluster_id] = self._is_gold_consistent(cluster)

        pairs = []
        for i in range(len(clusters)):
            cluster_i = clusters[i]
            if cluster_i.is_pronominal():
                continue
            for j in range(i + 1, len(clusters)):
                cluster_j = clusters[j]
                if cluster_j.is_pronominal():
                    continue
                if consistent and not (consistent[cluster_i.cluster_id] and
                                       consistent[cluster_j.cluster_id]):
                    continue
                pairs.append((cluster_i, cluster_j))

        return pairs

    def _is_gold_consistent(self, cluster):
        for mention_id in cluster.mentions:
            try:
                gold_tag_or_raise(self.document, mention_id)
            except DataInconsistencyError as e:
                logger.warning('Skipping cluster pairs of cluster {}: {}'.format(
                    cluster.cluster_id, e))
                return False
        return True

    def pair_features(self, cluster_1, cluster_2, feature_extractor):
        '''
        Returns the features of a cluster pair, the extractor is called only when the pair
        has no cached features (caches are dropped after every merge).
        :param cluster_1: first cluster
        :param cluster_2: second cluster
        :param feature_extractor: a function (document, cluster_1, cluster_2) -> features dict
        :return: a dictionary, key is a feature name and value is its count
        '''
        features = cluster_1.feature_cache.get(cluster_2.cluster_id)
        if features is None:
            features = check_features(dict(feature_extractor(self.document, cluster_1,
                                                             cluster_2)))
            cluster_1.feature_cache[cluster_2.cluster_id] = features
        return features

    def merge(self, target, source):
        '''
        Merges source into target: target absorbs source's mentions, source is removed
        from the partition, and the features of every remaining cluster are regenerated.
        The cluster with the lower id survives.
        :param target: the surviving cluster
        :param source: the merged (removed) cluster
        '''
        if target.cluster_id == source.cluster_id:
            raise ValueError('Can not merge cluster {} with itself'.format(target.cluster_id))
        if self.clusters.get(target.cluster_id) is not target or \
                self.clusters.get(source.cluster_id) is not source:
            raise ValueError('Clusters {} and {} are not in the partition'.format(
                target.cluster_id, source.cluster_id))
        if target.cluster_id > source.cluster_id:
            raise ValueError('The lower cluster id must survive ({} > {})'.format(
                target.cluster_id, source.cluster_id))

        target.mentions.update(source.mentions)
        target.update_representative()
        del self.clusters[source.cluster_id]

        for cluster in self.clusters.values():
            cluster.regenerate_feature()

    def merge_pair(self, pair):
        '''
        Merges a candidate pair (as returned by candidate_pairs) in the right direction.
        :param pair: a tuple of two clusters of this partition
        :return: the surviving cluster
        '''
        cluster_1, cluster_2 = pair
        if cluster_1.cluster_id > cluster_2.cluster_id:
            cluster_1, cluster_2 = cluster_2, cluster_1
        self.merge(cluster_1, cluster_2)
        return cluster_1

    def copy(self):
        '''
        Returns an independent partition over the same document.
        '''
        return ClusterPartition(self.document,
                                [cluster.copy() for cluster in self.ordered_clusters()])

    def signature(self):
        '''
        Returns a hashable representation of the partition
        '''
        return frozenset(frozenset(cluster.mentions.keys()) for cluster in self.clusters.values())

    def merged_signature(self, cluster_1, cluster_2):
        '''
        Returns the signature the partition would have after merging two of its clusters
        '''
        merged = frozenset(cluster_1.mentions.keys()) | frozenset(cluster_2.mentions.keys())
        others = [frozenset(cluster.mentions.keys()) for cluster in self.clusters.values()
                  if cluster is not cluster_1 and cluster is not cluster_2]
        return frozenset(others + [merged])

    def predicted_chains(self):
        '''
        Returns a dictionary, key is a mention id and value is its cluster id
        '''
        chains = {}
        for cluster in self.clusters.values():
            for mention_id in cluster.mentions:
                chains[mention_id] = cluster.cluster_id
        return chains

    def __str__(self):
        return '\n'.join(str(cluster) for cluster in self.ordered_clusters())
