"""
Pytest configuration and shared fixtures

This file contains fixtures that are available to all test files.
"""

import pytest
import pandas as pd

from movie_recommender import config
from movie_recommender.context import PipelineContext
from movie_recommender.data_io import coerce_ratings

# Small trainer settings so unit tests stay fast
FAST_MF_CONFIG = {
    "rank": 8,
    "iterations": 10,
    "learning_rate": 0.05,
    "regularization": 0.1,
    "init_scale": 0.1,
}


# ---------------------------------------------------
# DataFrame fixtures
# ---------------------------------------------------

@pytest.fixture
def tiny_ratings_df():
    """
    Tiny rating table (3 users, 3 movies) for unit tests
    """
    return coerce_ratings(pd.DataFrame({
        'userId': [1, 1, 2, 2, 3],
        'movieId': [10, 20, 10, 30, 20],
        'Label': [5.0, 3.0, 4.0, 5.0, 2.0],
    }))


@pytest.fixture
def train_ratings_df():
    """
    Training table: 5 users x 6 movies, two passes over each pair.
    """
    users = [1, 2, 3, 4, 5]
    movies = [10, 20, 30, 40, 50, 60]
    rows = []
    for u in users:
        for m in movies:
            rows.append((u, m, float(1 + (u + m // 10) % 5)))
    df = pd.DataFrame(rows * 2, columns=['userId', 'movieId', 'Label'])
    return coerce_ratings(df)


@pytest.fixture
def holdout_ratings_df():
    """Held-out table over the same users and movies."""
    return coerce_ratings(pd.DataFrame({
        'userId': [1, 2, 3, 4, 5],
        'movieId': [20, 30, 40, 50, 60],
        'Label': [3.0, 2.0, 4.0, 1.0, 5.0],
    }))


@pytest.fixture
def context():
    return PipelineContext(seed=7)


@pytest.fixture
def fast_mf_config():
    return dict(FAST_MF_CONFIG)


@pytest.fixture
def trained_model(context, train_ratings_df):
    """
    Pre-fitted MatrixFactorizationModel for quick tests.

    Trained on train_ratings_df with small rank and few iterations.
    """
    from movie_recommender.train import build_train_model

    return build_train_model(context, train_ratings_df, FAST_MF_CONFIG)


# ---------------------------------------------------
# Utility fixture: data directory with the CSV files
# ---------------------------------------------------

@pytest.fixture
def data_dir(tmp_path, train_ratings_df, holdout_ratings_df):
    """
    Temporary Data directory holding the train/test CSV files.
    Automatically cleaned up after test.
    """
    out_dir = tmp_path / "Data"
    out_dir.mkdir()
    train_ratings_df.to_csv(out_dir / config.TRAIN_FILE_NAME, index=False)
    holdout_ratings_df.to_csv(out_dir / config.TEST_FILE_NAME, index=False)
    return out_dir
