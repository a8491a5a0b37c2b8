"""
Base Clustering Model Interface.

Defines the lifecycle shared by all clustering models: data validation and
normalization at construction, a serialized fit, read-only accessors,
verbose structured logging with a sticky warning record, and persistence.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Optional

import numpy as np

from densecluster.core.metrics import metric_name, resolve_metric
from densecluster.core.normalization import FeatureNormalization, fit_normalizer
from densecluster.schemas.data_models import ModelState, ModelSummary
from densecluster.utils.advanced_logging import get_logger
from densecluster.utils.error_handling import (
    DimensionMismatchError,
    InvalidDataError,
    ModelNotFittedError,
    NumericError,
)
from densecluster.utils.parallel import contains_nan, contains_nan_parallel


NOISE = -1


@dataclass(frozen=True)
class ClusteringConfig:
    """Immutable configuration for clustering models."""

    algorithm_name: str
    params: Dict[str, Any] = field(default_factory=dict)
    scale: bool = False
    normalizer: Any = FeatureNormalization.STANDARD_SCALE
    metric: Any = None  # None means Euclidean
    seed: Optional[Any] = None
    verbose: bool = False
    allow_parallelism: bool = True


class ClusteringResult:
    """Results from a clustering operation."""

    def __init__(
        self,
        cluster_labels: np.ndarray,
        n_clusters: int,
        outlier_count: int,
        quality_metrics: Dict[str, float],
        centroids: Optional[np.ndarray] = None,
        model: Optional["BaseClusteringModel"] = None,
    ):
        self.cluster_labels = cluster_labels
        self.n_clusters = n_clusters
        self.outlier_count = outlier_count
        self.quality_metrics = quality_metrics
        self.centroids = centroids
        self.model = model

    @property
    def labels(self) -> np.ndarray:
        """Alias for cluster_labels."""
        return self.cluster_labels

    @property
    def cluster_centroids(self) -> Optional[Dict[int, np.ndarray]]:
        """Return centroids as dict mapping cluster_id -> centroid_vector."""
        if self.centroids is None:
            return None
        return {i: self.centroids[i] for i in range(len(self.centroids))}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "n_clusters": self.n_clusters,
            "outlier_count": self.outlier_count,
            "quality_metrics": self.quality_metrics,
            "total_items": len(self.cluster_labels),
        }


class BaseClusteringModel(ABC):
    """
    Abstract base class for clustering models.

    Subclasses implement ``_fit()`` (returning the fitted attributes to
    publish) and ``predict()``. ``fit()`` holds the instance lock for the
    whole computation and publishes results only after ``_fit()`` returns,
    so a failed fit leaves the model UNFITTED.
    """

    name = "base"

    def __init__(self, data: Any, config: ClusteringConfig):
        """
        Validate and copy (or normalize) the data matrix.

        Args:
            data: M x N numeric matrix (array-like)
            config: Clustering configuration

        Raises:
            InvalidDataError: If the matrix is empty or not two-dimensional
            NumericError: If the matrix contains NaN
            InvalidArgumentError: If the metric or normalizer is unusable
        """
        self.config = config
        self._verbose = bool(config.verbose)
        self._warnings: List[str] = []
        self._fit_lock = threading.Lock()
        self._state = ModelState.UNFITTED
        self._labels: Optional[np.ndarray] = None
        self._key = uuid.uuid4()
        self._seed = config.seed
        self._metric = resolve_metric(config.metric)

        matrix = self._handle_data(data)

        self.info(
            "model_initializing",
            n_samples=matrix.shape[0],
            n_features=matrix.shape[1],
        )

        if getattr(self._metric, "is_kernel", False):
            self.warn(f"running {self.name} in kernel mode can be an expensive option")

        similarity = getattr(self._metric, "is_similarity", False)
        self.meta("model_key", value=str(self._key))
        self.meta(
            "similarity_metric" if similarity else "distance_metric",
            value=metric_name(self._metric),
        )
        self.meta("scale", value=config.scale)

        self._scaler = None
        if config.scale:
            self.info("normalizing_columns", normalizer=str(config.normalizer))
            self._data, self._scaler = fit_normalizer(config.normalizer, matrix)
        else:
            self._data = matrix

    def _handle_data(self, data: Any) -> np.ndarray:
        """Validate input and return a private float64 copy."""
        try:
            matrix = np.array(data, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidDataError(f"data is not a numeric matrix: {e}")

        if matrix.ndim != 2:
            raise InvalidDataError(
                f"data must be two-dimensional, got {matrix.ndim} dimension(s)",
                details={"shape": list(matrix.shape)},
            )
        if matrix.shape[0] == 0 or matrix.shape[1] == 0:
            raise InvalidDataError("empty data", details={"shape": list(matrix.shape)})

        if not self.config.allow_parallelism:
            self.info("nan_check", mode="serial")
            has_nan = contains_nan(matrix)
        else:
            self.info("nan_check", mode="parallel")
            has_nan = contains_nan_parallel(
                matrix,
                on_fallback=lambda e: self.warn(
                    "parallel NaN check failed, reverting to serial check"
                ),
            )

        if has_nan:
            error = "NaN in input data. Select a matrix imputation method for incomplete records"
            self.error(error)
            raise NumericError(error)

        return matrix

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_data(self) -> np.ndarray:
        """
        Copy of the (possibly normalized) data matrix, so that callers
        cannot alter the model's internal state.
        """
        return self._data.copy()

    def get_separability_metric(self) -> Any:
        """Metric used to assess vector distance or similarity."""
        return self._metric

    def get_seed(self) -> Optional[Any]:
        """Seed used for any random state."""
        return self._seed

    def has_warnings(self) -> bool:
        """Whether the model has generated any warnings."""
        return len(self._warnings) > 0

    def get_warnings(self) -> List[str]:
        return list(self._warnings)

    def get_key(self) -> uuid.UUID:
        """The model's unique UUID."""
        return self._key

    def get_verbose(self) -> bool:
        return self._verbose

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def is_fitted(self) -> bool:
        return self._state is ModelState.FITTED

    @property
    def n_samples(self) -> int:
        return self._data.shape[0]

    @property
    def n_features(self) -> int:
        return self._data.shape[1]

    def get_labels(self) -> np.ndarray:
        """
        Cluster label per record (-1 for noise).

        Raises:
            ModelNotFittedError: If ``fit()`` has not completed
        """
        self._check_fitted()
        return self._labels.copy()

    @property
    def n_clusters(self) -> int:
        self._check_fitted()
        return int(len(set(self._labels.tolist()) - {NOISE}))

    @property
    def n_noise(self) -> int:
        self._check_fitted()
        return int(np.sum(self._labels == NOISE))

    # -------------------------------------------------------------------------
    # Fit / predict
    # -------------------------------------------------------------------------

    def fit(self) -> "BaseClusteringModel":
        """
        Fit the model and return it for chaining.

        Serialized per instance. A fitted model is returned unchanged.
        """
        with self._fit_lock:
            if self._state is ModelState.FITTED:
                self.debug("fit_skipped", reason="already fitted")
                return self

            fitted = self._fit()
            for attr, value in fitted.items():
                setattr(self, attr, value)
            self._state = ModelState.FITTED

        return self

    @abstractmethod
    def _fit(self) -> Dict[str, Any]:
        """
        Compute the fit.

        Returns:
            Mapping of attribute name to value, published on success.
            Must include ``_labels``.
        """
        pass

    @abstractmethod
    def predict(self, record: Any) -> int:
        """Cluster label for an unseen record."""
        pass

    def predict_many(self, records: Any) -> np.ndarray:
        """Labels for each row of ``records``."""
        records = np.atleast_2d(np.asarray(records, dtype=np.float64))
        return np.array([self.predict(row) for row in records], dtype=np.int64)

    def _check_fitted(self) -> None:
        if self._state is not ModelState.FITTED:
            raise ModelNotFittedError(
                f"{self.name} model {self._key} is not fitted; call fit() first"
            )

    def _prepare_record(self, record: Any) -> np.ndarray:
        """Validate a record and map it into the model's feature space."""
        record = np.asarray(record, dtype=np.float64)
        if record.ndim != 1 or record.shape[0] != self.n_features:
            raise DimensionMismatchError(
                f"Record has shape {record.shape}, expected ({self.n_features},)"
            )
        if np.isnan(record).any():
            raise NumericError("NaN in record passed to predict")

        if self._scaler is not None:
            return self._scaler.transform(record.reshape(1, -1))[0]
        if self.config.scale:
            self.warn("custom normalizer cannot transform new records; predicting on raw values")
        return record

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def _summary_parameters(self) -> Dict[str, float]:
        return {}

    def model_summary(self) -> ModelSummary:
        """Configuration and, once fitted, the fit outcome."""
        outcome: Dict[str, Any] = {}
        if self.is_fitted:
            labels, counts = np.unique(self._labels[self._labels != NOISE], return_counts=True)
            outcome = {
                "n_clusters": self.n_clusters,
                "n_noise": self.n_noise,
                "cluster_sizes": {int(l): int(c) for l, c in zip(labels, counts)},
            }

        return ModelSummary(
            algorithm=self.name,
            model_key=str(self._key),
            state=self._state,
            n_samples=self.n_samples,
            n_features=self.n_features,
            metric=metric_name(self._metric),
            scaled=self.config.scale,
            parameters=self._summary_parameters(),
            warnings=self.get_warnings(),
            **outcome,
        )

    def quality_metrics(self) -> Dict[str, float]:
        """
        Silhouette score and Davies-Bouldin index over non-noise points.

        Empty when fewer than two clusters exist.
        """
        from sklearn.metrics import davies_bouldin_score, silhouette_score

        self._check_fitted()
        metrics = {}
        mask = self._labels != NOISE

        if np.sum(mask) > 2 and 1 < len(np.unique(self._labels[mask])) < np.sum(mask):
            vectors = self._data[mask]
            labels = self._labels[mask]
            metrics["silhouette_score"] = float(silhouette_score(vectors, labels))
            metrics["davies_bouldin_index"] = float(davies_bouldin_score(vectors, labels))

        return metrics

    # -------------------------------------------------------------------------
    # Logging hooks (emitted only when verbose; warnings always recorded)
    # -------------------------------------------------------------------------

    def _bound_logger(self):
        return get_logger(__name__, algorithm=self.name, model_key=str(self._key))

    def _log(self, level: str, event: str, **context: Any) -> None:
        if not self._verbose:
            return
        getattr(self._bound_logger(), level)(event, **context)

    def trace(self, event: str, **context: Any) -> None:
        self._log("debug", event, trace=True, **context)

    def debug(self, event: str, **context: Any) -> None:
        self._log("debug", event, **context)

    def info(self, event: str, **context: Any) -> None:
        self._log("info", event, **context)

    def warn(self, message: str, **context: Any) -> None:
        self._warnings.append(message)
        self._log("warning", message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._log("error", message, **context)

    def meta(self, event: str, **context: Any) -> None:
        """Log internal model state (not progress)."""
        self._log("info", event, meta=True, **context)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self, stream: BinaryIO) -> None:
        """Serialize the full model to a binary stream."""
        from densecluster.storage.model_storage import save_model

        save_model(self, stream)

    @classmethod
    def load(cls, stream: BinaryIO) -> "BaseClusteringModel":
        """Deserialize a model of this class from a binary stream."""
        from densecluster.storage.model_storage import load_model

        return load_model(stream, expected_type=cls)

    def __getstate__(self) -> Dict[str, Any]:
        state = self.__dict__.copy()
        del state["_fit_lock"]
        return state

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._fit_lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(key={self._key}, state={self._state.value}, "
            f"shape={self._data.shape})"
        )
