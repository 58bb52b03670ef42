"""
Single Prediction Module

Scores one hand-built (userId, movieId) row and applies the fixed
recommendation threshold.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from . import config
from .data_io import RATING_SCHEMA
from .model import MatrixFactorizationModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovieRating:
    """Prediction input row."""
    userId: int
    movieId: int
    Label: float = 0.0

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame({
            config.USER_COLUMN: [self.userId],
            config.MOVIE_COLUMN: [self.movieId],
            config.LABEL_COLUMN: [self.Label],
        })
        return df.astype({name: dtype for name, dtype in RATING_SCHEMA.columns})


@dataclass(frozen=True)
class MovieRatingPrediction:
    """Prediction output row."""
    Label: float
    Score: float


def is_recommended(score: float,
                   threshold: float = config.PREDICTION_CONFIG["threshold"],
                   decimals: int = config.PREDICTION_CONFIG["decimals"]) -> bool:
    """
    Apply the recommendation rule.

    The score is rounded to ``decimals`` places first; only a rounded score
    strictly greater than ``threshold`` counts as recommended.

    Example:
        >>> is_recommended(3.54), is_recommended(3.56)
        (False, True)
    """
    return round(score, decimals) > threshold


def predict_single(model: MatrixFactorizationModel, rating: MovieRating) -> MovieRatingPrediction:
    """
    Score one input row.

    Args:
        model: Trained model
        rating: Input row (Label is ignored)

    Returns:
        MovieRatingPrediction with the predicted Score
    """
    scored = model.transform(rating.to_frame())
    score = float(scored[config.SCORE_COLUMN].iloc[0])
    return MovieRatingPrediction(Label=rating.Label, Score=score)


def use_model_for_single_prediction(model: MatrixFactorizationModel,
                                    rating: Optional[MovieRating] = None) -> MovieRatingPrediction:
    """
    Predict for the demo row and print whether the movie is recommended.

    Args:
        model: Trained model
        rating: Input row (defaults to the configured demo user/movie)

    Returns:
        The prediction
    """
    if rating is None:
        rating = MovieRating(
            userId=config.PREDICTION_CONFIG["demo_user_id"],
            movieId=config.PREDICTION_CONFIG["demo_movie_id"],
        )

    print("=============== Making a prediction ===============")
    prediction = predict_single(model, rating)
    logger.debug("Score for user %s / movie %s: %.4f", rating.userId, rating.movieId, prediction.Score)

    if is_recommended(prediction.Score):
        print(f"Movie {rating.movieId} is recommended for user {rating.userId}")
    else:
        print(f"Movie {rating.movieId} is not recommended for user {rating.userId}")

    return prediction
