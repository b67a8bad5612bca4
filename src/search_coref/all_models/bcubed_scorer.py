"""B-cubed and pairwise scores of a predicted clustering against the gold clustering."""

import itertools
import collections
import numpy


def fscore(p_val, r_val, beta=1.0):
    """Computes the F_{beta}-score of given precision and recall values."""
    if p_val + r_val == 0:
        return 0.0
    return (1.0 + beta**2) * (p_val * r_val / (beta**2 * p_val + r_val))


def _members(labels):
    members = collections.defaultdict(set)
    for i, label in enumerate(labels):
        members[label].add(i)
    return members


def bcubed(gold_lst, predicted_lst):
    """
    Takes gold, predicted (one label per mention, in the same order).
    Returns recall, precision, f1score
    """
    if len(gold_lst) != len(predicted_lst):
        raise ValueError('Gold and predicted lists differ in length')
    if not gold_lst:
        return 0.0, 0.0, 0.0

    gold_members = _members(gold_lst)
    pred_members = _members(predicted_lst)

    precisions = []
    recalls = []
    for gold_label, pred_label in zip(gold_lst, predicted_lst):
        overlap = len(gold_members[gold_label] & pred_members[pred_label])
        precisions.append(overlap / float(len(pred_members[pred_label])))
        recalls.append(overlap / float(len(gold_members[gold_label])))

    p = float(numpy.mean(precisions))
    r = float(numpy.mean(recalls))
    return r, p, fscore(p, r)


def pairwise_counts(gold_lst, predicted_lst):
    """
    Counts the coreferent mention pairs (links) of a single topic.
    Returns true links, gold links, predicted links
    """
    if len(gold_lst) != len(predicted_lst):
        raise ValueError('Gold and predicted lists differ in length')

    true_links = 0
    gold_links = 0
    pred_links = 0
    for i, j in itertools.combinations(range(len(gold_lst)), 2):
        is_gold = gold_lst[i] == gold_lst[j]
        is_pred = predicted_lst[i] == predicted_lst[j]
        gold_links += is_gold
        pred_links += is_pred
        true_links += is_gold and is_pred

    return true_links, gold_links, pred_links


def links_scores(true_links, gold_links, pred_links):
    """Returns recall, precision, f1score of link counts"""
    p = true_links / float(pred_links) if pred_links else 0.0
    r = true_links / float(gold_links) if gold_links else 0.0
    return r, p, fscore(p, r)


def pairwise(gold_lst, predicted_lst):
    """
    Scores the coreferent mention pairs (links).
    Returns recall, precision, f1score
    """
    return links_scores(*pairwise_counts(gold_lst, predicted_lst))
