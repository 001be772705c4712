"""Load provider and market records from JSON or YAML files.

Accepted shapes:
    - a list of records
    - a mapping with a "providers" (or "market") key holding the list

Saved run results (the JSON written by --format json) load back into
their result models for comparison.

Column mapping from spreadsheets is out of scope; files must already use
the ProviderRecord / MarketRecord field names.
"""

import json
import logging
from pathlib import Path
from typing import List, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .optimizer.results import OptimizerRunResult
from .schemas import MarketRecord, ProviderRecord
from .targets.schemas import ProductivityTargetRunResult

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class DatasetError(Exception):
    """Raised when a data file cannot be parsed into records."""
    pass


def _read_file(path: Path):
    if not path.exists():
        raise DatasetError(f"File not found: {path}")
    try:
        with open(path, "r") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DatasetError(f"{path}: could not parse file: {e}") from e


def _load_records(path: Path, model: Type[T], key: str) -> List[T]:
    path = Path(path)
    data = _read_file(path)
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise DatasetError(f"{path}: expected a list of records or a '{key}' list")

    records = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise DatasetError(f"{path}: record {index} is not a mapping")
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            raise DatasetError(f"{path}: record {index} is invalid:\n{e}") from e

    logger.debug(f"Loaded {len(records)} {key} record(s) from {path}")
    return records


def load_providers(path: Path) -> List[ProviderRecord]:
    """Load provider records.

    Raises:
        DatasetError: If the file is missing, malformed or has invalid records
    """
    return _load_records(path, ProviderRecord, "providers")


def load_market(path: Path) -> List[MarketRecord]:
    """Load market benchmark records.

    Raises:
        DatasetError: If the file is missing, malformed or has invalid records
    """
    return _load_records(path, MarketRecord, "market")


def _load_result(path: Path, model: Type[T]) -> T:
    path = Path(path)
    data = _read_file(path)
    if not isinstance(data, dict):
        raise DatasetError(f"{path}: expected a saved run result mapping")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DatasetError(f"{path}: not a valid {model.__name__}:\n{e}") from e


def load_optimizer_result(path: Path) -> OptimizerRunResult:
    """Load a saved optimizer run (``prov-comp optimize --format json`` output).

    Raises:
        DatasetError: If the file is missing, malformed or not an optimizer result
    """
    return _load_result(path, OptimizerRunResult)


def load_target_result(path: Path) -> ProductivityTargetRunResult:
    """Load a saved productivity target run.

    Raises:
        DatasetError: If the file is missing, malformed or not a target result
    """
    return _load_result(path, ProductivityTargetRunResult)
