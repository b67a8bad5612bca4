class DataInconsistencyError(ValueError):
    '''
    Raised when a cluster pair references a mention that is missing from the
    document's gold mapping.
    '''
    def __init__(self, mention_id):
        super(DataInconsistencyError, self).__init__(
            'Mention {} is missing from the gold mapping'.format(mention_id))
        self.mention_id = mention_id


class NumericAnomalyError(ArithmeticError):
    '''
    Raised when a feature value or a score is NaN or infinite.
    Fatal to the current document's search only.
    '''
    pass


class ConfigError(ValueError):
    '''
    Raised at start-up for an invalid experiment configuration.
    '''
    pass
