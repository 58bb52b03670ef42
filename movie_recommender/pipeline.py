"""
Movie Recommender Pipeline Orchestrator

Main entry point for running the end-to-end pipeline:
1. Data loading
2. Model training
3. Model evaluation
4. Single prediction
5. Model serialization

Every stage runs once, in order. Errors are not caught: any failure ends the
run before the model artifact is written.
"""

import argparse
import logging
import time
from pathlib import Path
from typing import Dict, Optional

from . import config
from .context import PipelineContext
from .data_io import DataSchema, load_data
from .evaluate import evaluate_model
from .predict import MovieRating, use_model_for_single_prediction
from .serialize import get_model_size, save_model
from .train import build_train_model

logger = logging.getLogger(__name__)


def run_pipeline(data_dir: Optional[str] = None,
                 model_path: Optional[str] = None,
                 context: Optional[PipelineContext] = None,
                 mf_config: Optional[Dict] = None,
                 demo_rating: Optional[MovieRating] = None) -> Dict:
    """
    Run the complete pipeline from rating files to a saved model.

    Args:
        data_dir: Directory with the train/test CSV files (uses config.DATA_DIR if None)
        model_path: Path to save trained model (uses <data_dir>/MovieRecommenderModel.zip if None)
        context: Pipeline context (seeded from config.TRAINING_CONFIG if None)
        mf_config: Trainer configuration (uses config.MF_CONFIG if None)
        demo_rating: Row for the single prediction (configured demo row if None)

    Returns:
        Dict with pipeline results:
        - model_path: str
        - model_size_mb: float
        - training_time_sec: float
        - evaluation_metrics: Dict
        - prediction_score: float
        - model_info: Dict

    Example:
        >>> results = run_pipeline(data_dir="Data")
        >>> print(results['evaluation_metrics']['root_mean_squared_error'])
        0.9941
    """
    start_time = time.time()

    data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR
    if model_path is None:
        model_path = data_dir / config.MODEL_FILE_NAME
    if context is None:
        context = PipelineContext()

    logger.info("=" * 60)
    logger.info("STARTING MOVIE RECOMMENDER PIPELINE")
    logger.info("=" * 60)

    # Step 1: Load train/test tables
    logger.info(f"[1/5] Loading data from {data_dir}...")
    train_df, test_df = load_data(data_dir)
    logger.info(f"  Train: {len(train_df)}, Test: {len(test_df)}")

    # Step 2: Train model
    logger.info("[2/5] Training matrix factorization model...")
    train_start = time.time()
    model = build_train_model(context, train_df, mf_config)
    training_time_sec = time.time() - train_start

    # Step 3: Evaluate model
    logger.info("[3/5] Evaluating model on test set...")
    metrics = evaluate_model(test_df, model)

    # Step 4: Single prediction
    logger.info("[4/5] Making a single prediction...")
    prediction = use_model_for_single_prediction(model, demo_rating)

    # Step 5: Save model to disk
    logger.info(f"[5/5] Saving model to {model_path}...")
    print("=============== Saving the model to a file ===============")
    save_model(model, DataSchema.from_frame(train_df), model_path)
    model_size_mb = get_model_size(model_path)
    logger.info(f"  Model size: {model_size_mb:.2f} MB")

    logger.info("=" * 60)
    logger.info("PIPELINE COMPLETED SUCCESSFULLY")
    logger.info("=" * 60)
    logger.info(f"Total time: {time.time() - start_time:.2f} seconds")

    return {
        'model_path': str(model_path),
        'model_size_mb': model_size_mb,
        'training_time_sec': training_time_sec,
        'evaluation_metrics': metrics.to_dict(),
        'prediction_score': prediction.Score,
        'model_info': model.get_model_info(),
    }


def main(argv=None) -> None:
    """
    Run pipeline from command line.

    Usage:
        python -m movie_recommender.pipeline
        python -m movie_recommender.pipeline --data-dir=Data --pause
    """
    parser = argparse.ArgumentParser(description='Train, evaluate and save the movie recommender')
    parser.add_argument('--data-dir', type=str, default=None,
                        help=f'Directory with the rating files (default: {config.DATA_DIR})')
    parser.add_argument('--model-path', type=str, default=None,
                        help='Where to write the model archive (default: <data-dir>/MovieRecommenderModel.zip)')
    parser.add_argument('--pause', action='store_true',
                        help='Wait for Enter before exiting')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    run_pipeline(data_dir=args.data_dir, model_path=args.model_path)

    if args.pause:
        input("Press Enter to exit...")


if __name__ == "__main__":
    main()
