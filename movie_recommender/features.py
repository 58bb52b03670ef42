"""
Feature Engineering Module

Value-to-key encoding of the raw user and movie ids:
- Bidirectional id <-> index mappings built once from the training data
- Dense zero-based index columns for the matrix factorization trainer
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, Tuple

import numpy as np
import pandas as pd

from . import config

# Index assigned to values never seen while building a mapping
MISSING_KEY = -1


@dataclass(frozen=True)
class KeyMapping:
    """
    Immutable bidirectional mapping between raw values and dense indices.

    Indices are assigned in order of first appearance, starting at 0.

    Example:
        >>> mapping = KeyMapping.fit([10, 3, 10, 7])
        >>> mapping.to_key(3), mapping.to_value(2)
        (1, 7)
        >>> mapping.to_key(99)
        -1
    """
    values: Tuple[Hashable, ...]
    _keys: Dict[Hashable, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        keys = {value: idx for idx, value in enumerate(self.values)}
        if len(keys) != len(self.values):
            raise ValueError("KeyMapping values must be unique")
        object.__setattr__(self, "_keys", keys)

    @classmethod
    def fit(cls, observed: Iterable[Hashable]) -> "KeyMapping":
        """Build a mapping from observed values (duplicates allowed)."""
        return cls(tuple(pd.unique(pd.Series(list(observed))).tolist()))

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, value) -> bool:
        return value in self._keys

    def to_key(self, value) -> int:
        return self._keys.get(value, MISSING_KEY)

    def to_value(self, key: int):
        if key < 0 or key >= len(self.values):
            raise KeyError(f"Key {key} out of range for mapping of size {len(self.values)}")
        return self.values[key]

    def transform(self, values: Iterable[Hashable]) -> np.ndarray:
        """Map raw values to int64 keys; unseen values map to MISSING_KEY."""
        series = values if isinstance(values, pd.Series) else pd.Series(list(values))
        keys = series.map(self._keys)
        return keys.fillna(MISSING_KEY).astype(np.int64).to_numpy()


def create_key_mappings(ratings_df: pd.DataFrame) -> Tuple[KeyMapping, KeyMapping]:
    """
    Create the user and movie key mappings from a training table.

    Args:
        ratings_df: DataFrame with userId and movieId columns

    Returns:
        Tuple of (user_mapping, movie_mapping)
    """
    user_mapping = KeyMapping.fit(ratings_df[config.USER_COLUMN])
    movie_mapping = KeyMapping.fit(ratings_df[config.MOVIE_COLUMN])
    return user_mapping, movie_mapping


def encode_ratings(ratings_df: pd.DataFrame,
                   user_mapping: KeyMapping,
                   movie_mapping: KeyMapping) -> pd.DataFrame:
    """
    Append userIdEncoded and movieIdEncoded columns to a copy of the table.

    Args:
        ratings_df: DataFrame with userId and movieId columns
        user_mapping: Mapping built from the training user ids
        movie_mapping: Mapping built from the training movie ids

    Returns:
        New DataFrame with the two encoded columns added
    """
    encoded = ratings_df.copy()
    encoded[config.USER_KEY_COLUMN] = user_mapping.transform(ratings_df[config.USER_COLUMN])
    encoded[config.MOVIE_KEY_COLUMN] = movie_mapping.transform(ratings_df[config.MOVIE_COLUMN])
    return encoded
