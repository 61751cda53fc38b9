"""Run configuration: YAML file, validated with pydantic.

Example `consolidate.yaml`:

    max_clusters: 10
    num_files: 5
    projection: top_left
    strict_parse: false
    seed: 0
    max_workers: 1
    kmeans:
      max_iterations: 10
      convergence_tolerance: 1.0
      restarts: 3
    paths:
      input_dir: input
      image_dir: img
      out_root: solutions
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from boxcluster.clustering.errors import InvalidInputError
from boxcluster.clustering.kmeans import KMeansCriteria
from boxcluster.pipelines.consolidate import ConsolidateParams


class KMeansSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_iterations: int = Field(default=10, ge=1)
    convergence_tolerance: float = Field(default=1.0, ge=0.0)
    restarts: int = Field(default=3, ge=1)


class PathsSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input_dir: Path = Path("input")
    image_dir: Path | None = Path("img")
    out_root: Path = Path("solutions")


class ConsolidateConfig(BaseModel):
    """Top-level configuration for a consolidation batch."""

    model_config = ConfigDict(extra="forbid")

    max_clusters: int = Field(default=10, ge=1)
    num_files: int | None = Field(default=None, ge=0)
    projection: Literal["top_left", "center"] = "top_left"
    strict_parse: bool = False
    seed: int | None = 0
    max_workers: int = Field(default=1, ge=1)
    display: bool = False
    kmeans: KMeansSection = KMeansSection()
    paths: PathsSection = PathsSection()

    def to_params(self) -> ConsolidateParams:
        return ConsolidateParams(
            max_clusters=self.max_clusters,
            projection=self.projection,
            criteria=KMeansCriteria(
                max_iterations=self.kmeans.max_iterations,
                convergence_tolerance=self.kmeans.convergence_tolerance,
                restarts=self.kmeans.restarts,
            ),
            strict_parse=self.strict_parse,
            seed=self.seed,
        )


def _validate(data: dict[str, Any], source: str) -> ConsolidateConfig:
    try:
        return ConsolidateConfig.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid configuration in {source}:\n{e}") from e


def load_config(path: Path) -> ConsolidateConfig:
    """Load and validate a YAML configuration file.

    Raises:
        FileNotFoundError: If `path` does not exist.
        InvalidInputError: If the file does not match the schema.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidInputError(f"Expected a mapping at the top of {path}, got {type(data)!r}")
    return _validate(data, str(path))


def apply_overrides(config: ConsolidateConfig, **overrides: Any) -> ConsolidateConfig:
    """Return a re-validated copy of `config` with the non-None `overrides` applied.

    Keys `input_dir`, `image_dir` and `out_root` go to the `paths` section;
    `max_iterations`, `convergence_tolerance` and `restarts` to `kmeans`.
    """
    data = config.model_dump()
    for key, value in overrides.items():
        if value is None:
            continue
        if key in PathsSection.model_fields:
            data["paths"][key] = value
        elif key in KMeansSection.model_fields:
            data["kmeans"][key] = value
        else:
            data[key] = value
    return _validate(data, "overrides")
