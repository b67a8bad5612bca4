class Corpus(object):
    '''
    A class that represents a corpus split, containing one Document per topic
    (in a dictionary of Document objects).
    '''
    def __init__(self):
        self.topics = {}

    def add_topic(self, topic_id, document):
        '''
        Gets a topic id and a Document object and adds it to the topics dictionary
        :param topic_id: topic id
        :param document: Document object that combines all the topic's mentions
        '''
        if topic_id not in self.topics:
            self.topics[topic_id] = document


class Document(object):
    '''
    A class that represents the mentions of a topic, combined into a single document.
    It contains the mentions, their initial grouping (as produced by preprocessing, e.g.
    within-document coreference chains) and, for gold-supervised runs, the gold mapping.
    A Document is never modified by the search, every search builds its own ClusterPartition.
    '''
    def __init__(self, doc_id, mentions, initial_clusters=None, gold_mentions=None):
        '''
        A c'tor for a document object.
        :param doc_id: the document (topic) ID
        :param mentions: a list of Mention objects
        :param initial_clusters: a dictionary, key is a cluster id (integer) and value is a list
        of mention ids. Mentions that do not appear in any group become singleton clusters.
        When None, every mention starts as a singleton.
        :param gold_mentions: a dictionary, key is a mention id and value is the Mention object
        that carries the gold coreference chain. None when the document has no gold annotation.
        '''
        self.doc_id = doc_id
        self.mentions = {}
        for mention in mentions:
            if mention.mention_id in self.mentions:
                raise ValueError('Duplicate mention id {}'.format(mention.mention_id))
            self.mentions[mention.mention_id] = mention

        self.initial_clusters = self._complete_initial_clusters(initial_clusters)
        self.gold_mentions = gold_mentions

    @classmethod
    def with_gold(cls, doc_id, mentions, initial_clusters=None):
        '''
        Creates a gold-supervised document, the gold mapping consists of all its mentions.
        :param doc_id: the document (topic) ID
        :param mentions: a list of Mention objects with their gold_tag set
        :param initial_clusters: see the c'tor
        :return: a Document object
        '''
        gold_mentions = {mention.mention_id: mention for mention in mentions
                         if mention.gold_tag is not None}
        return cls(doc_id, mentions, initial_clusters, gold_mentions)

    def _complete_initial_clusters(self, initial_clusters):
        groups = {}
        seen = set()
        if initial_clusters is not None:
            for cluster_id in sorted(initial_clusters.keys()):
                mention_ids = list(initial_clusters[cluster_id])
                for mention_id in mention_ids:
                    if mention_id not in self.mentions:
                        raise ValueError('Unknown mention {} in initial cluster {}'.format(
                            mention_id, cluster_id))
                    if mention_id in seen:
                        raise ValueError('Mention {} appears in more than one initial '
                                         'cluster'.format(mention_id))
                    seen.add(mention_id)
                if mention_ids:
                    groups[int(cluster_id)] = mention_ids

        next_id = max(groups.keys()) + 1 if groups else 0
        for mention in sorted(self.mentions.values(), key=Mention.get_comparator_function()):
            if mention.mention_id not in seen:
                groups[next_id] = [mention.mention_id]
                next_id += 1

        return groups

    def has_gold(self):
        return self.gold_mentions is not None

    def get_gold_tag(self, mention_id):
        '''
        Returns the gold coreference chain of a mention
        :param mention_id: mention ID
        :return: the mention's gold tag, None if the mention is absent from the gold mapping
        '''
        if self.gold_mentions is None or mention_id not in self.gold_mentions:
            return None
        return self.gold_mentions[mention_id].gold_tag

    def __str__(self):
        return '{} ({} mentions, {} initial clusters)'.format(self.doc_id, len(self.mentions),
                                                             len(self.initial_clusters))


class Mention(object):
    '''
    A class which represents a mention in the corpus.
    Mentions are created by the preprocessing and are not modified afterwards.
    '''
    def __init__(self, mention_id, mention_str='', is_pronominal=False, gold_tag=None,
                 doc_id='', sent_id=0, start_offset=0, end_offset=0, mention_head=None):
        '''
        A c'tor for a mention object
        :param mention_id: unique mention ID
        :param mention_str: the string of the mention's span
        :param is_pronominal: whether the mention is a pronoun
        :param gold_tag: the mention's gold coreference chain (None for unannotated mentions)
        :param doc_id: the ID of the document the mention appears in
        :param sent_id: the sentence ID (its ordinal number in the document)
        :param start_offset: a start index of the mention's span
        :param end_offset: an end index of the mention's span
        :param mention_head: a string that represents the mention's head
        '''
        self.mention_id = mention_id
        self.mention_str = mention_str
        self.is_pronominal = is_pronominal
        self.gold_tag = gold_tag
        self.doc_id = doc_id
        self.sent_id = sent_id
        self.start_offset = start_offset
        self.end_offset = end_offset
        self.mention_head = mention_head if mention_head is not None else mention_str

    def __str__(self):
        return '{}_{}'.format(self.mention_str, self.gold_tag)

    def __repr__(self):
        return 'Mention({!r})'.format(self.mention_id)

    @classmethod
    def get_comparator_function(cls):
        return lambda mention: (mention.doc_id, int(mention.sent_id), int(mention.start_offset),
                                str(mention.mention_id))


class Cluster(object):
    '''
    A class represents a coreference cluster
    '''
    def __init__(self, cluster_id, mentions=None):
        self.cluster_id = cluster_id
        self.mentions = {}  # mention's dictionary, key is a mention id and value is a Mention object
        self.representative = None
        self.feature_cache = {}  # features against other clusters, key is the other cluster id
        if mentions is not None:
            for mention in mentions:
                self.mentions[mention.mention_id] = mention
        self.update_representative()

    def update_representative(self):
        '''
        Sets the representative mention - the first non-pronominal mention in document order,
        or the first mention when all the mentions are pronouns.
        '''
        ordered = sorted(self.mentions.values(), key=Mention.get_comparator_function())
        self.representative = None
        for mention in ordered:
            if not mention.is_pronominal:
                self.representative = mention
                break
        if self.representative is None and ordered:
            self.representative = ordered[0]

    def is_pronominal(self):
        return self.representative is not None and self.representative.is_pronominal

    def regenerate_feature(self):
        '''
        Invalidates the cached pair features, they are recomputed on the next request.
        '''
        self.feature_cache = {}

    def copy(self):
        '''
        Returns a new cluster with the same id and mentions (Mention objects are shared)
        and a copy of the feature cache.
        '''
        cluster = Cluster(self.cluster_id)
        cluster.mentions = dict(self.mentions)
        cluster.representative = self.representative
        cluster.feature_cache = dict(self.feature_cache)
        return cluster

    def __len__(self):
        return len(self.mentions)

    def __repr__(self):
        mentions_strings = []
        for mention in self.mentions.values():
            mentions_strings.append('{}_{}_{}'.format(mention.mention_str,
                                                      mention.gold_tag, mention.mention_id))
        return str(mentions_strings)

    def __str__(self):
        return 'cluster #{} {}'.format(self.cluster_id, self.get_mentions_str_list())

    def get_mentions_str_list(self):
        '''
        Returns a list contains the strings of all mentions in the cluster
        :return:
        '''
        mentions_strings = []
        for mention in self.mentions.values():
            mentions_strings.append(mention.mention_str)
        return mentions_strings
