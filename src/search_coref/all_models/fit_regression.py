import os
import logging
import argparse
import numpy as np
from sklearn.linear_model import LinearRegression

from search_coref.all_models.model_utils import parse_record, save_check_point


def load_records(records_path):
    '''
    Loads the (features, quality) records written by the greedy merge search.
    :param records_path: path to a records file
    :return: a features matrix (records x features) and a quality vector
    '''
    features = []
    qualities = []
    with open(records_path, 'r') as f:
        for line in f:
            if not line.strip():
                continue
            values, quality = parse_record(line)
            features.append(values)
            qualities.append(quality)

    return np.asarray(features, dtype=np.float64), np.asarray(qualities, dtype=np.float64)


def fit_model(features, qualities):
    '''
    Fits a linear regression from the merge features to the quality of merge.
    :param features: a features matrix (records x features)
    :param qualities: a quality vector
    :return: the model - numpy array of size F+1, the intercept first
    '''
    if len(qualities) == 0:
        raise ValueError('No training records')
    regressor = LinearRegression()
    regressor.fit(features, qualities)
    return np.concatenate([[regressor.intercept_], regressor.coef_])


def main():
    '''
    This script fits the regression model that the greedy merge search uses from the
    records that the search wrote, and saves it as a .npy file.
    '''
    parser = argparse.ArgumentParser(description='Fitting the merge quality regression model')

    parser.add_argument('--records_path', type=str, nargs='+',
                        help=' The records files written by the greedy search')
    parser.add_argument('--out_dir', type=str,
                        help=' The directory to the output folder')

    args = parser.parse_args()

    if not os.path.exists(args.out_dir):
        os.makedirs(args.out_dir)

    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    all_features = []
    all_qualities = []
    for records_path in args.records_path:
        logger.info('Loading records from {}'.format(records_path))
        features, qualities = load_records(records_path)
        if len(qualities):
            all_features.append(features)
            all_qualities.append(qualities)

    if not all_qualities:
        raise SystemExit('No training records were found')

    model = fit_model(np.vstack(all_features), np.concatenate(all_qualities))
    logger.info('Model : {}'.format(', '.join(str(value) for value in model)))
    save_check_point(model, os.path.join(args.out_dir, 'regression_model.npy'))
    logger.info('Done.')


if __name__ == '__main__':
    main()
