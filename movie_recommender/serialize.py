"""
Model Serialization Module

Handles saving and loading trained models to/from disk.

The artifact is a zip archive holding the pickled model and the schema of
the data it was trained on:
- model.pkl
- schema.json
"""

import json
import logging
import os
import pickle
import tempfile
import zipfile
from pathlib import Path
from typing import Tuple, Union

from .data_io import DataSchema
from .model import MatrixFactorizationModel

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MODEL_ENTRY = "model.pkl"
SCHEMA_ENTRY = "schema.json"


def save_model(model: MatrixFactorizationModel, schema: DataSchema, path: PathLike) -> None:
    """
    Save trained model and its training schema to a zip archive.

    Any existing file at ``path`` is replaced. The archive is first written to
    a temporary file in the same directory, so a failed save leaves the
    previous artifact in place.

    Args:
        model: Trained model
        schema: Schema of the training table
        path: File path to save model (.zip extension)

    Raises:
        OSError: If the target directory is missing or not writable

    Example:
        >>> save_model(model, DataSchema.from_frame(train_df), "Data/MovieRecommenderModel.zip")
    """
    output_path = Path(path)

    fd, tmp_name = tempfile.mkstemp(dir=output_path.parent, prefix=f".{output_path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'wb') as f:
            with zipfile.ZipFile(f, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
                archive.writestr(MODEL_ENTRY, pickle.dumps(model, protocol=pickle.HIGHEST_PROTOCOL))
                archive.writestr(SCHEMA_ENTRY, schema.to_json())
        os.replace(tmp_name, output_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    logger.info("Model saved to: %s", output_path)


def load_model(path: PathLike) -> Tuple[MatrixFactorizationModel, DataSchema]:
    """
    Load trained model and its training schema from a zip archive.

    Args:
        path: File path to saved model (.zip)

    Returns:
        Tuple of (model, schema)

    Raises:
        FileNotFoundError: If model file doesn't exist
        ValueError: If the archive does not hold a model

    Example:
        >>> model, schema = load_model("Data/MovieRecommenderModel.zip")
        >>> model.predict(6, 10)
        3.91
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Model file not found: {path}")

    with zipfile.ZipFile(path, 'r') as archive:
        model = pickle.loads(archive.read(MODEL_ENTRY))
        schema = DataSchema.from_dict(json.loads(archive.read(SCHEMA_ENTRY).decode("utf-8")))

    if not isinstance(model, MatrixFactorizationModel):
        raise ValueError(f"{path} does not contain a MatrixFactorizationModel")

    logger.info("Model loaded from: %s", path)
    return model, schema


def get_model_size(path: PathLike) -> float:
    """
    Get size of saved model file in megabytes.

    Args:
        path: Path to model file

    Returns:
        Model size in MB
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Model file not found: {path}")

    size_bytes = os.path.getsize(path)
    size_mb = size_bytes / (1024 ** 2)

    return size_mb


def verify_model_integrity(path: PathLike) -> bool:
    """
    Verify that a saved model can be loaded successfully.

    Args:
        path: Path to model file

    Returns:
        True if model loads successfully, False otherwise
    """
    try:
        load_model(path)
        return True
    except Exception as e:
        logger.warning("Model integrity check failed: %s", e)
        return False
