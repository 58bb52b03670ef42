"""
Matrix Factorization Recommendation Model

Latent-factor model for rating prediction. Each user and each movie is
represented by a vector of ``rank`` latent factors; the predicted rating is
the dot product of the two vectors:

    r_ui = p_u^T * q_i

Where:
- p_u = column factors (indexed by encoded user)
- q_i = row factors (indexed by encoded movie)

Factors are learned with stochastic gradient descent over the observed
(user, movie, label) triples.
"""

import logging
import time
from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from . import config
from .data_io import RATING_SCHEMA
from .features import KeyMapping, MISSING_KEY, encode_ratings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatrixFactorizationOptions:
    """Column names and hyperparameters of the matrix factorization trainer."""
    matrix_column_index_column: str = config.USER_KEY_COLUMN
    matrix_row_index_column: str = config.MOVIE_KEY_COLUMN
    label_column: str = config.LABEL_COLUMN
    rank: int = config.MF_CONFIG["rank"]
    iterations: int = config.MF_CONFIG["iterations"]
    learning_rate: float = config.MF_CONFIG["learning_rate"]
    regularization: float = config.MF_CONFIG["regularization"]
    init_scale: float = config.MF_CONFIG["init_scale"]

    @classmethod
    def from_config(cls, mf_config: Optional[Dict] = None) -> "MatrixFactorizationOptions":
        """Build options from a dict like config.MF_CONFIG; unknown keys are ignored."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (mf_config or {}).items() if k in names})


class MatrixFactorizationTrainer:
    """
    SGD trainer for the latent-factor model.

    Runs exactly ``options.iterations`` passes over the training rows, in a
    freshly shuffled order each pass. No early stopping.
    """

    def __init__(self, options: MatrixFactorizationOptions = None):
        self.options = options or MatrixFactorizationOptions()
        if self.options.rank < 1:
            raise ValueError(f"rank must be positive, got {self.options.rank}")
        if self.options.iterations < 1:
            raise ValueError(f"iterations must be positive, got {self.options.iterations}")

    def initialize_factors(self, n_rows: int, n_columns: int,
                           rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
        """Draw uniform [0, init_scale) starting factors."""
        scale = self.options.init_scale
        column_factors = rng.uniform(0.0, scale, (n_columns, self.options.rank))
        row_factors = rng.uniform(0.0, scale, (n_rows, self.options.rank))
        return column_factors, row_factors

    def fit_epoch(self, column_factors, row_factors, column_indices, row_indices,
                  labels, rng: np.random.Generator) -> float:
        """Train one pass over the data; returns the pass's training RMSE."""
        lr = self.options.learning_rate
        reg = self.options.regularization

        n_samples = len(labels)
        epoch_loss = 0.0

        for idx in rng.permutation(n_samples):
            u = column_indices[idx]
            i = row_indices[idx]

            error = labels[idx] - np.dot(column_factors[u], row_factors[i])
            epoch_loss += error ** 2

            column_factor_old = column_factors[u].copy()

            factor_u_update = lr * (error * row_factors[i] - reg * column_factors[u])
            factor_i_update = lr * (error * column_factor_old - reg * row_factors[i])

            # Clip factor updates
            column_factors[u] += np.clip(factor_u_update, -5.0, 5.0)
            row_factors[i] += np.clip(factor_i_update, -5.0, 5.0)

        return float(np.sqrt(epoch_loss / n_samples))

    def fit(self, encoded_df: pd.DataFrame, n_columns: int, n_rows: int,
            rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray, Tuple[float, ...]]:
        """
        Learn column (user) and row (movie) factors.

        Args:
            encoded_df: Table with the two index columns and the label column
            n_columns: Number of distinct encoded users
            n_rows: Number of distinct encoded movies
            rng: Random generator for initialization and shuffling

        Returns:
            Tuple of (column_factors, row_factors, per-iteration training RMSE)

        Raises:
            ValueError: On empty input, out-of-range indices or non-finite labels
        """
        opts = self.options
        if len(encoded_df) == 0:
            raise ValueError("Cannot fit matrix factorization on an empty table")

        column_indices = encoded_df[opts.matrix_column_index_column].to_numpy(dtype=np.int64)
        row_indices = encoded_df[opts.matrix_row_index_column].to_numpy(dtype=np.int64)
        labels = encoded_df[opts.label_column].to_numpy(dtype=np.float64)

        if not np.isfinite(labels).all():
            raise ValueError(f"Column '{opts.label_column}' contains non-finite values")
        if (column_indices < 0).any() or (column_indices >= n_columns).any():
            raise ValueError(f"Column '{opts.matrix_column_index_column}' holds keys outside [0, {n_columns})")
        if (row_indices < 0).any() or (row_indices >= n_rows).any():
            raise ValueError(f"Column '{opts.matrix_row_index_column}' holds keys outside [0, {n_rows})")

        column_factors, row_factors = self.initialize_factors(n_rows, n_columns, rng)

        logger.info("Training setup: %d users, %d movies, %d ratings, rank %d, %d iterations",
                    n_columns, n_rows, len(labels), opts.rank, opts.iterations)

        history = []
        start_time = time.time()
        for iteration in range(opts.iterations):
            train_rmse = self.fit_epoch(column_factors, row_factors,
                                        column_indices, row_indices, labels, rng)
            if not np.isfinite(train_rmse):
                raise ValueError(f"Training diverged at iteration {iteration + 1}")
            history.append(train_rmse)
            logger.debug("Iteration %2d/%d: train RMSE %.4f", iteration + 1, opts.iterations, train_rmse)

        logger.info("Training completed in %.2f seconds (final train RMSE %.4f)",
                    time.time() - start_time, history[-1])

        return column_factors, row_factors, tuple(history)


@dataclass(frozen=True, eq=False)
class MatrixFactorizationModel:
    """
    Immutable fitted model: key mappings, learned factors and the fallback
    score used for ids never seen in training.
    """
    user_mapping: KeyMapping
    movie_mapping: KeyMapping
    user_factors: np.ndarray = field(repr=False)   # Shape: (n_users, rank)
    movie_factors: np.ndarray = field(repr=False)  # Shape: (n_movies, rank)
    fallback_score: float
    options: MatrixFactorizationOptions = MatrixFactorizationOptions()
    training_history: Tuple[float, ...] = ()

    def __post_init__(self):
        self._lock_arrays()

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._lock_arrays()

    def _lock_arrays(self):
        for name in ("user_factors", "movie_factors"):
            arr = np.array(getattr(self, name), dtype=np.float64)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def n_users(self) -> int:
        return len(self.user_mapping)

    @property
    def n_movies(self) -> int:
        return len(self.movie_mapping)

    def score_keys(self, user_keys: np.ndarray, movie_keys: np.ndarray) -> np.ndarray:
        """Dot-product scores for encoded pairs; pairs with a missing key get the fallback."""
        user_keys = np.asarray(user_keys, dtype=np.int64)
        movie_keys = np.asarray(movie_keys, dtype=np.int64)

        scores = np.full(len(user_keys), self.fallback_score, dtype=np.float64)
        known = (user_keys != MISSING_KEY) & (movie_keys != MISSING_KEY)
        if known.any():
            scores[known] = np.einsum(
                "ij,ij->i",
                self.user_factors[user_keys[known]],
                self.movie_factors[movie_keys[known]],
            )
        return scores

    def transform(self, ratings_df: pd.DataFrame) -> pd.DataFrame:
        """
        Score every row of a table.

        Args:
            ratings_df: DataFrame with userId and movieId columns (Label optional)

        Returns:
            Copy of the table with userIdEncoded, movieIdEncoded and Score columns
        """
        RATING_SCHEMA.validate(ratings_df, required=(config.USER_COLUMN, config.MOVIE_COLUMN))

        encoded = encode_ratings(ratings_df, self.user_mapping, self.movie_mapping)
        encoded[config.SCORE_COLUMN] = self.score_keys(
            encoded[config.USER_KEY_COLUMN].to_numpy(),
            encoded[config.MOVIE_KEY_COLUMN].to_numpy(),
        )
        return encoded

    def predict(self, user_id, movie_id) -> float:
        """Predict the rating of a single (user, movie) pair."""
        user_key = self.user_mapping.to_key(user_id)
        movie_key = self.movie_mapping.to_key(movie_id)
        return float(self.score_keys(np.array([user_key]), np.array([movie_key]))[0])

    def get_model_info(self) -> dict:
        """
        Get model metadata and statistics.

        Returns:
            Dict with algorithm, rank, iterations, user/movie counts
        """
        return {
            'algorithm': 'Matrix Factorization (SGD)',
            'rank': self.options.rank,
            'iterations': self.options.iterations,
            'total_users': self.n_users,
            'total_movies': self.n_movies,
            'matrix_size': f"{self.n_movies}×{self.n_users}",
            'final_train_rmse': self.training_history[-1] if self.training_history else None,
        }
