"""
model_storage.py

Binary persistence for clustering models.

Stream layout:
- 4-byte magic ``DCLM``
- 2-byte big-endian format version
- pickle payload of the full model object

The payload is serialized completely before anything is written, so a model
that cannot be serialized leaves the target stream untouched.
"""

import logging
import os
import pickle
import struct
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, Optional, Type, Union

from densecluster.utils.error_handling import PersistenceError

logger = logging.getLogger(__name__)

MAGIC = b"DCLM"
FORMAT_VERSION = 1
_HEADER = struct.Struct("!4sH")

_UNPICKLE_ERRORS = (
    pickle.UnpicklingError,
    EOFError,
    AttributeError,
    ImportError,
    IndexError,
    KeyError,
    TypeError,
    ValueError,
)


def dumps_model(model: Any) -> bytes:
    """
    Serialize a model to bytes (header + payload).

    Raises:
        PersistenceError: If the model cannot be pickled
    """
    try:
        payload = pickle.dumps(model, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise PersistenceError(
            f"Failed to serialize {type(model).__name__}: {e}",
            details={"model_type": type(model).__name__},
        ) from e
    return _HEADER.pack(MAGIC, FORMAT_VERSION) + payload


def _check_header(header: bytes) -> None:
    if len(header) < _HEADER.size:
        raise PersistenceError("Model stream is truncated", details={"size": len(header)})

    magic, version = _HEADER.unpack_from(header)
    if magic != MAGIC:
        raise PersistenceError("Not a densecluster model stream", details={"magic": repr(magic)})
    if version != FORMAT_VERSION:
        raise PersistenceError(
            f"Unsupported model format version {version}",
            details={"version": version, "supported": FORMAT_VERSION},
        )


def _check_type(model: Any, expected_type: Optional[Type]) -> Any:
    if expected_type is not None and not isinstance(model, expected_type):
        raise PersistenceError(
            f"Stream holds a {type(model).__name__}, expected {expected_type.__name__}",
            details={"found": type(model).__name__, "expected": expected_type.__name__},
        )
    return model


def loads_model(blob: bytes, expected_type: Optional[Type] = None) -> Any:
    """
    Deserialize a model from bytes produced by :func:`dumps_model`.

    Raises:
        PersistenceError: On a bad header, corrupt payload or type mismatch
    """
    _check_header(blob[:_HEADER.size])

    try:
        model = pickle.loads(blob[_HEADER.size:])
    except EOFError as e:
        raise PersistenceError("Model stream is truncated", details={"size": len(blob)}) from e
    except _UNPICKLE_ERRORS as e:
        raise PersistenceError(f"Corrupt model payload: {e}") from e

    return _check_type(model, expected_type)


def save_model(model: Any, stream: BinaryIO) -> None:
    """
    Write a model to a binary stream.

    Raises:
        PersistenceError: If serialization or the write fails
    """
    blob = dumps_model(model)
    try:
        stream.write(blob)
        stream.flush()
    except (OSError, ValueError) as e:
        # ValueError: write to a closed stream
        raise PersistenceError(f"Failed to write model: {e}") from e
    logger.debug(f"Saved {type(model).__name__} ({len(blob)} bytes)")


def load_model(stream: BinaryIO, expected_type: Optional[Type] = None) -> Any:
    """
    Read one model from a binary stream.

    Only the bytes of that model are consumed, leaving the stream positioned
    at whatever follows it.

    Args:
        stream: Readable binary stream positioned at the model header
        expected_type: Optional class the model must be an instance of

    Raises:
        PersistenceError: If reading or deserialization fails
    """
    try:
        header = stream.read(_HEADER.size)
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Failed to read model: {e}") from e

    if not isinstance(header, (bytes, bytearray)):
        raise PersistenceError("Model stream must be opened in binary mode")
    _check_header(bytes(header))

    try:
        model = pickle.load(stream)
    except EOFError as e:
        raise PersistenceError("Model stream is truncated") from e
    except OSError as e:
        raise PersistenceError(f"Failed to read model: {e}") from e
    except _UNPICKLE_ERRORS as e:
        raise PersistenceError(f"Corrupt model payload: {e}") from e

    return _check_type(model, expected_type)


def save_model_to_path(model: Any, path: Union[str, Path]) -> Path:
    """
    Save a model to a file, replacing it atomically.

    The model is written to a temporary file in the same directory and
    renamed over ``path`` only after the write succeeds.
    """
    path = Path(path)
    blob = dumps_model(model)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(blob)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise PersistenceError(f"Failed to save model to {path}: {e}") from e

    logger.info(f"Saved {type(model).__name__} to {path}")
    return path


def load_model_from_path(path: Union[str, Path], expected_type: Optional[Type] = None) -> Any:
    """Load a model saved with :func:`save_model_to_path`."""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            return load_model(f, expected_type=expected_type)
    except PersistenceError:
        raise
    except OSError as e:
        raise PersistenceError(f"Failed to load model from {path}: {e}") from e
