"""
data_models.py

Pydantic data models for densecluster.
Defines model lifecycle enums and the summaries reported for fitted models.
"""

from typing import Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class ModelState(str, Enum):
    """Model lifecycle states."""

    UNFITTED = "unfitted"
    FITTED = "fitted"


class PointRole(str, Enum):
    """Role of a point after density-based clustering."""

    CORE = "core"
    BORDER = "border"
    NOISE = "noise"


class ClusterAlgorithm(str, Enum):
    """Supported clustering algorithms."""

    DBSCAN = "dbscan"
    KMEANS = "kmeans"


# =============================================================================
# SUMMARY MODELS
# =============================================================================


class ModelSummary(BaseModel):
    """Description of a model's configuration and fit outcome."""

    algorithm: str = Field(..., description="Algorithm name (e.g. DBSCAN)")
    model_key: str = Field(..., description="Unique model identifier (UUID4)")
    state: ModelState = Field(..., description="Lifecycle state")
    n_samples: int = Field(..., ge=1, description="Number of records")
    n_features: int = Field(..., ge=1, description="Number of features")
    metric: str = Field(..., description="Separability metric name")
    scaled: bool = Field(default=False, description="Whether columns were normalized")
    parameters: Dict[str, float] = Field(default_factory=dict, description="Algorithm parameters")
    n_clusters: Optional[int] = Field(default=None, ge=0, description="Clusters found (fitted only)")
    n_noise: Optional[int] = Field(default=None, ge=0, description="Noise points (fitted only)")
    cluster_sizes: Dict[int, int] = Field(default_factory=dict, description="Members per cluster label")
    warnings: List[str] = Field(default_factory=list, description="Warnings raised by the model")
