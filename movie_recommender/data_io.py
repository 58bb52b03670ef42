"""
Data I/O Module

Handles loading of the rating tables:
- Train/test CSV loading from the Data directory
- Rating-row schema description and validation
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import pandas as pd

from . import config

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Rating-row schema: column name -> pandas dtype
RATING_COLUMNS = {
    config.USER_COLUMN: "int64",
    config.MOVIE_COLUMN: "int64",
    config.LABEL_COLUMN: "float32",
}


class SchemaError(ValueError):
    """Raised when a table does not match the rating-row schema."""


@dataclass(frozen=True)
class DataSchema:
    """Ordered column name -> dtype description of a table."""
    columns: Tuple[Tuple[str, str], ...]

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "DataSchema":
        return cls(tuple((str(name), str(dtype)) for name, dtype in df.dtypes.items()))

    @classmethod
    def from_dict(cls, data: Dict) -> "DataSchema":
        return cls(tuple((col["name"], col["dtype"]) for col in data["columns"]))

    def to_dict(self) -> Dict:
        return {"columns": [{"name": name, "dtype": dtype} for name, dtype in self.columns]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.columns)

    def validate(self, df: pd.DataFrame, required=None) -> None:
        """
        Check that ``df`` carries the schema's columns with compatible types.

        Args:
            df: Table to check
            required: Column names to check (defaults to every schema column)

        Raises:
            SchemaError: If a column is missing or its kind differs
        """
        dtypes = dict(self.columns)
        for name in required if required is not None else self.names:
            if name not in df.columns:
                raise SchemaError(f"Missing column '{name}'")
            expected = pd.api.types.pandas_dtype(dtypes[name])
            actual = df[name].dtype
            if expected.kind in "iu" and not pd.api.types.is_integer_dtype(actual):
                raise SchemaError(f"Column '{name}' must be integer, got {actual}")
            if expected.kind == "f" and not pd.api.types.is_numeric_dtype(actual):
                raise SchemaError(f"Column '{name}' must be numeric, got {actual}")


RATING_SCHEMA = DataSchema(tuple(RATING_COLUMNS.items()))


def coerce_ratings(df: pd.DataFrame, source: str = "<frame>") -> pd.DataFrame:
    """
    Project a raw table onto the rating-row schema.

    Keeps only userId, movieId and Label (in that order) and casts them to the
    schema dtypes. Rows are neither dropped nor deduplicated.

    Args:
        df: Raw table, e.g. straight from read_csv
        source: Name used in error messages

    Returns:
        New DataFrame with the rating-row schema

    Raises:
        SchemaError: If a column is missing or holds non-numeric/missing values
    """
    missing = [name for name in RATING_COLUMNS if name not in df.columns]
    if missing:
        raise SchemaError(f"{source}: missing columns {missing}")

    out = pd.DataFrame(index=df.index)
    for name, dtype in RATING_COLUMNS.items():
        values = pd.to_numeric(df[name], errors="coerce")
        bad = values.isna()
        if bad.any():
            row = int(bad.to_numpy().nonzero()[0][0])
            raise SchemaError(
                f"{source}: invalid value {df[name].iloc[row]!r} in column '{name}' (row {row})"
            )
        if dtype.startswith("int") and len(values) and (values % 1 != 0).any():
            raise SchemaError(f"{source}: column '{name}' must hold integer ids")
        out[name] = values.astype(dtype)

    return out.reset_index(drop=True)


def load_ratings_from_csv(path: PathLike) -> pd.DataFrame:
    """
    Load a headered, comma-separated rating file.

    Args:
        path: Path to the CSV file

    Returns:
        DataFrame with columns: userId (int64), movieId (int64), Label (float32)

    Raises:
        FileNotFoundError: If the file does not exist
        SchemaError: If the file does not match the rating-row schema

    Example:
        >>> df = load_ratings_from_csv("Data/recommendation-ratings-train.csv")
        >>> print(df.columns.tolist())
        ['userId', 'movieId', 'Label']
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ratings file not found: {path}")

    # Header is read as a plain row so its width fixes the field count: a data
    # row wider than the header is a parse error, never an implicit index.
    try:
        rows = pd.read_csv(path, sep=",", header=None, index_col=False, dtype=str)
    except pd.errors.EmptyDataError as e:
        raise SchemaError(f"{path}: file has no header row") from e
    except pd.errors.ParserError as e:
        raise SchemaError(f"{path}: {e}") from e

    header = rows.iloc[0]
    if header.isna().any():
        raise SchemaError(f"{path}: header row has empty column names")
    raw = rows.iloc[1:].reset_index(drop=True)
    raw.columns = [str(name).strip() for name in header]

    df = coerce_ratings(raw, source=str(path))
    logger.debug("Loaded %d ratings from %s", len(df), path)
    return df


def load_data(data_dir: Optional[PathLike] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load the train and test splits from a data directory.

    Args:
        data_dir: Directory holding recommendation-ratings-train.csv and
            recommendation-ratings-test.csv (defaults to config.DATA_DIR)

    Returns:
        Tuple of (train_df, test_df)
    """
    data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR

    train_df = load_ratings_from_csv(data_dir / config.TRAIN_FILE_NAME)
    test_df = load_ratings_from_csv(data_dir / config.TEST_FILE_NAME)

    return train_df, test_df
