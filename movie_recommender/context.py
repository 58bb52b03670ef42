"""
Pipeline Context

Explicitly constructed handle passed to the stages that need shared settings
(currently the trainer's random seed).
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from . import config


@dataclass(frozen=True)
class PipelineContext:
    """
    Shared settings for one pipeline run.

    Args:
        seed: Seed for factor initialization and row shuffling. None gives
            non-reproducible training.
    """
    seed: Optional[int] = config.TRAINING_CONFIG["random_state"]

    def make_rng(self) -> np.random.Generator:
        """Return a fresh generator so every fit starts from the same state."""
        return np.random.default_rng(self.seed)
