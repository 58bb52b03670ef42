"""
Model Training Module

Handles model training orchestration: value-to-key encoding of the ids
followed by matrix factorization against the Label column.
"""

import logging
from typing import Optional

import pandas as pd

from . import config
from .context import PipelineContext
from .data_io import RATING_SCHEMA
from .features import create_key_mappings, encode_ratings
from .model import (
    MatrixFactorizationModel,
    MatrixFactorizationOptions,
    MatrixFactorizationTrainer,
)

logger = logging.getLogger(__name__)


def build_train_model(context: PipelineContext,
                      train_df: pd.DataFrame,
                      mf_config: Optional[dict] = None) -> MatrixFactorizationModel:
    """
    Train the matrix factorization recommender.

    Steps:
    1. Build userId/movieId -> key mappings from the training table
    2. Append the encoded index columns
    3. Fit latent factors (rank/iterations from mf_config)
    4. Freeze mappings and factors into an immutable model

    Args:
        context: Pipeline context (seed)
        train_df: Training table with userId, movieId, Label
        mf_config: Trainer configuration (uses config.MF_CONFIG if None)

    Returns:
        Trained MatrixFactorizationModel

    Raises:
        SchemaError: If the table does not match the rating-row schema
        ValueError: If the table is empty or fitting fails

    Example:
        >>> model = build_train_model(PipelineContext(seed=0), train_df)
        >>> print(model.n_users, model.n_movies)
        610 9724
    """
    RATING_SCHEMA.validate(train_df)
    if len(train_df) == 0:
        raise ValueError("Training data is empty; cannot fit the model")

    options = MatrixFactorizationOptions.from_config(
        mf_config if mf_config is not None else config.MF_CONFIG
    )

    user_mapping, movie_mapping = create_key_mappings(train_df)
    encoded_df = encode_ratings(train_df, user_mapping, movie_mapping)

    print("=============== Training the model ===============")
    trainer = MatrixFactorizationTrainer(options)
    user_factors, movie_factors, history = trainer.fit(
        encoded_df,
        n_columns=len(user_mapping),
        n_rows=len(movie_mapping),
        rng=context.make_rng(),
    )

    return MatrixFactorizationModel(
        user_mapping=user_mapping,
        movie_mapping=movie_mapping,
        user_factors=user_factors,
        movie_factors=movie_factors,
        fallback_score=float(train_df[config.LABEL_COLUMN].mean()),
        options=options,
        training_history=history,
    )
