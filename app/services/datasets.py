# app/services/datasets.py
"""
Loaders for the reference datasets (ramps, obstacles, accessible roads).

Each dataset is a JSON array under settings.DATA_DIR. The files are read once
per process and validated with pydantic; a missing or malformed file is
logged and treated as an empty dataset so routing keeps working.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from app.core.config import settings
from app.core.logger import logger
from app.models.datasets import AccessibleRoad, Obstacle, Ramp

RAMPS_FILE = "ramps.json"
OBSTACLES_FILE = "obstacles.json"
ACCESSIBLE_ROADS_FILE = "accessible_roads.json"

M = TypeVar("M", bound=BaseModel)


def _load_list(path: Path, model: Type[M]) -> List[M]:
    if not path.exists():
        logger.warning("Dataset file not found: {}", path)
        return []

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        items = TypeAdapter(List[model]).validate_python(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Could not load dataset {}: {}", path, exc)
        return []

    logger.info("Loaded {} records from {}", len(items), path.name)
    return items


def _data_dir(data_dir: Optional[Path]) -> Path:
    return Path(data_dir) if data_dir is not None else settings.DATA_DIR


@lru_cache(maxsize=8)
def load_ramps(data_dir: Optional[Path] = None) -> List[Ramp]:
    return _load_list(_data_dir(data_dir) / RAMPS_FILE, Ramp)


@lru_cache(maxsize=8)
def load_obstacles(data_dir: Optional[Path] = None) -> List[Obstacle]:
    return _load_list(_data_dir(data_dir) / OBSTACLES_FILE, Obstacle)


@lru_cache(maxsize=8)
def load_accessible_roads(data_dir: Optional[Path] = None) -> List[AccessibleRoad]:
    return _load_list(_data_dir(data_dir) / ACCESSIBLE_ROADS_FILE, AccessibleRoad)


def clear_dataset_cache() -> None:
    load_ramps.cache_clear()
    load_obstacles.cache_clear()
    load_accessible_roads.cache_clear()
