import logging

from search_coref.all_models.bcubed_scorer import bcubed, pairwise_counts, links_scores
from search_coref.all_models.model_utils import build_record

logger = logging.getLogger(__name__)


def partition_to_label_lists(partition):
    '''
    Converts a partition of a gold annotated document into two label lists (gold and predicted),
    one label per annotated mention.
    :param partition: a ClusterPartition object
    :return: gold labels list, predicted labels list
    '''
    document = partition.document
    if not document.has_gold():
        raise ValueError('Document {} has no gold annotation'.format(document.doc_id))

    gold_lst = []
    predicted_lst = []
    for mention_id, cluster_id in sorted(partition.predicted_chains().items(),
                                         key=lambda item: str(item[0])):
        gold_tag = document.get_gold_tag(mention_id)
        if gold_tag is None:
            continue
        gold_lst.append(gold_tag)
        predicted_lst.append(cluster_id)

    return gold_lst, predicted_lst


def evaluate_partitions(partitions):
    '''
    Calculates the B-cubed and the pairwise scores of final partitions. The clusters of
    different topics never share a label (each topic is scored in its own label space), and
    links are counted within each topic only.
    :param partitions: a dictionary, key is a topic id and value is a ClusterPartition
    :return: a dictionary with the recall, precision and F1 of both metrics
    '''
    gold_lst = []
    predicted_lst = []
    link_counts = [0, 0, 0]
    for topic_id, partition in partitions.items():
        if not partition.document.has_gold():
            logger.info('Topic {} has no gold annotation, not evaluated'.format(topic_id))
            continue
        topic_gold, topic_predicted = partition_to_label_lists(partition)
        gold_lst.extend((topic_id, label) for label in topic_gold)
        predicted_lst.extend((topic_id, label) for label in topic_predicted)
        for i, count in enumerate(pairwise_counts(topic_gold, topic_predicted)):
            link_counts[i] += count

    b3_r, b3_p, b3_f1 = bcubed(gold_lst, predicted_lst)
    pw_r, pw_p, pw_f1 = links_scores(*link_counts)

    return {'bcubed_recall': b3_r, 'bcubed_precision': b3_p, 'bcubed_f1': b3_f1,
            'pairwise_recall': pw_r, 'pairwise_precision': pw_p, 'pairwise_f1': pw_f1}


def format_scores(scores):
    return 'B-cubed R {:.3f} P {:.3f} F1 {:.3f}  Pairwise R {:.3f} P {:.3f} F1 {:.3f}'.format(
        scores['bcubed_recall'], scores['bcubed_precision'], scores['bcubed_f1'],
        scores['pairwise_recall'], scores['pairwise_precision'], scores['pairwise_f1'])


def write_clusters_to_file(partition, file_obj, topic):
    '''
    Write the clusters to a text file (used for analysis)
    :param partition: a ClusterPartition object
    :param file_obj: file to write the clusters
    :param topic - topic name
    '''
    file_obj.write('Topic - ' + str(topic) + '\n')
    for cluster in partition.ordered_clusters():
        file_obj.write('cluster #' + str(cluster.cluster_id) + '\n')
        mentions_list = []
        for mention in cluster.mentions.values():
            mentions_list.append('{}_{}'.format(mention.mention_str, mention.gold_tag))
        file_obj.write(str(mentions_list) + '\n\n')


class RecordWriter(object):
    '''
    A record sink that writes every (features, quality) record as a line of a text file.
    '''
    def __init__(self, file_obj, feature_names):
        self.file_obj = file_obj
        self.feature_names = feature_names
        self.records_count = 0

    def __call__(self, features, quality):
        self.file_obj.write(build_record(self.feature_names, features, quality) + '\n')
        self.records_count += 1
