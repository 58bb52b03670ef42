"""
Model Evaluation Module

Regression metrics of the predicted Score against the held-out Label:
- RMSE (Root Mean Squared Error)
- R-squared
- MAE / MSE
"""

import logging
from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from . import config
from .model import MatrixFactorizationModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegressionMetrics:
    """Aggregate regression error of a scored table."""
    root_mean_squared_error: float
    r_squared: float
    mean_absolute_error: float
    mean_squared_error: float

    def to_dict(self) -> dict:
        return asdict(self)


def compute_regression_metrics(labels, scores) -> RegressionMetrics:
    """
    Compare predicted scores with true labels.

    Metric: How accurately the model predicts ratings
    Operationalization: RMSE = sqrt(mean((score - label)^2)), R^2 = 1 - SS_res / SS_tot

    Args:
        labels: True ratings
        scores: Predicted ratings (same length)

    Returns:
        RegressionMetrics (all NaN for zero rows)
    """
    labels = np.asarray(labels, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64)

    if len(labels) == 0:
        nan = float('nan')
        return RegressionMetrics(nan, nan, nan, nan)

    mse = mean_squared_error(labels, scores)
    # R^2 is undefined for a single sample
    r2 = r2_score(labels, scores) if len(labels) > 1 else float('nan')

    return RegressionMetrics(
        root_mean_squared_error=float(np.sqrt(mse)),
        r_squared=float(r2),
        mean_absolute_error=float(mean_absolute_error(labels, scores)),
        mean_squared_error=float(mse),
    )


def count_unknown_rows(predictions: pd.DataFrame) -> int:
    """Number of scored rows whose user or movie (or both) got the missing key."""
    unknown = ((predictions[config.USER_KEY_COLUMN] < 0)
               | (predictions[config.MOVIE_KEY_COLUMN] < 0))
    return int(unknown.sum())


def evaluate_model(test_df: pd.DataFrame, model: MatrixFactorizationModel) -> RegressionMetrics:
    """
    Score the test table and report regression metrics.

    Neither the model nor the test table is modified.

    Args:
        test_df: Test table with userId, movieId, Label
        model: Trained model

    Returns:
        RegressionMetrics

    Example:
        >>> metrics = evaluate_model(test_df, model)
        Root Mean Squared Error : 0.9941
        RSquared: 0.1027
    """
    print("=============== Evaluating the model ===============")
    predictions = model.transform(test_df)

    metrics = compute_regression_metrics(
        predictions[config.LABEL_COLUMN].to_numpy(),
        predictions[config.SCORE_COLUMN].to_numpy(),
    )

    unknown_rows = count_unknown_rows(predictions)
    if unknown_rows:
        logger.warning("%d test rows have a user or movie not seen during training; scored with the fallback",
                       unknown_rows)

    print(f"Root Mean Squared Error : {metrics.root_mean_squared_error}")
    print(f"RSquared: {metrics.r_squared}")

    return metrics
