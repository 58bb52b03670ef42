"""
Configuration file for the Movie Recommender

Contains all hyperparameters, paths, and constants used across the pipeline.
"""

from pathlib import Path

# ============================================================================
# PATHS
# ============================================================================

# Resolved against the working directory at run time
DATA_DIR = Path("Data")

# Data paths
TRAIN_FILE_NAME = "recommendation-ratings-train.csv"
TEST_FILE_NAME = "recommendation-ratings-test.csv"
TRAIN_DATA_PATH = DATA_DIR / TRAIN_FILE_NAME
TEST_DATA_PATH = DATA_DIR / TEST_FILE_NAME

# Model paths
MODEL_FILE_NAME = "MovieRecommenderModel.zip"
MODEL_PATH = DATA_DIR / MODEL_FILE_NAME

# ============================================================================
# COLUMNS
# ============================================================================

USER_COLUMN = "userId"
MOVIE_COLUMN = "movieId"
LABEL_COLUMN = "Label"
SCORE_COLUMN = "Score"

# Outputs of the value-to-key encoding step
USER_KEY_COLUMN = "userIdEncoded"
MOVIE_KEY_COLUMN = "movieIdEncoded"

# ============================================================================
# MODEL HYPERPARAMETERS
# ============================================================================

MF_CONFIG = {
    "rank": 100,  # Number of latent dimensions
    "iterations": 20,  # Passes over the training data
    "learning_rate": 0.05,  # SGD step size
    "regularization": 0.1,  # L2 penalty on the factors
    "init_scale": 0.1,  # Upper bound of the uniform factor initialization
}

# ============================================================================
# TRAINING CONFIGURATION
# ============================================================================

TRAINING_CONFIG = {
    "random_state": 42,  # Seed for factor initialization and row shuffling
}

# ============================================================================
# PREDICTION CONFIGURATION
# ============================================================================

PREDICTION_CONFIG = {
    "threshold": 3.5,  # Rounded score must be strictly greater to recommend
    "decimals": 1,
    "demo_user_id": 6,
    "demo_movie_id": 10,
}
