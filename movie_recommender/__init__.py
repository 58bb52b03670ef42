"""
Movie Recommender Package

This package contains the stages of the movie recommendation pipeline:
- Data loading (train/test rating CSV files)
- Value-to-key encoding of user and movie ids
- Model training (matrix factorization)
- Model evaluation (RMSE, R-squared)
- Single prediction against a fixed threshold
- Model serialization (save/load)
"""

__version__ = "1.0.0"
