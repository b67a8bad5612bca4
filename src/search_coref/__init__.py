'''
Search-based cross-document coreference resolution: a linear merge scorer,
beam / greedy merge search over cluster partitions and online perceptron
weight training with weight averaging.
'''

__version__ = '0.1.0'
