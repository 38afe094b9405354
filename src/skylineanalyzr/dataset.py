"""In-process property dataset.

A Dataset is built once at startup, from a JSON file of property records
or from the seeded synthetic generator, and handed to whatever needs it
(API handlers, the CLI). There is no module-level instance.
"""

import json
import logging
import threading
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Optional

import pydantic

from .analysis.ranker import PropertyRanker
from .config import Settings, config
from .errors import ValidationError
from .models.property import PropertyRecord
from .sources.synthetic import generate_properties

logger = logging.getLogger(__name__)


def load_records(path: Path) -> list[PropertyRecord]:
    """Load records from a JSON file.

    Accepts either a bare list of records or ``{"properties": [...]}``.
    Invalid records are skipped with a warning.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    rows = data.get("properties", []) if isinstance(data, dict) else data

    records = []
    for i, row in enumerate(rows):
        try:
            records.append(PropertyRecord.model_validate(row))
        except pydantic.ValidationError as e:
            logger.warning(f"Skipping record {i} in {path}: {e.error_count()} validation errors")
    logger.info(f"Loaded {len(records)} properties from {path}")
    return records


class Dataset:
    """Thread-safe holder for the working set of property records.

    Example:
        dataset = Dataset.from_settings()
        tribeca = dataset.filter(submarket="Tribeca")
        dataset.expand(10)
    """

    def __init__(
        self,
        records: Optional[Iterable[PropertyRecord]] = None,
        path: Optional[Path] = None,
        synthetic_count: int = 0,
        seed: int = 42,
    ):
        """Initialize the dataset.

        Args:
            records: Initial records; takes precedence over path and synthetic
            path: JSON file to load (and reload) records from
            synthetic_count: Synthetic records to generate when there is no file
            seed: Seed for the synthetic generator
        """
        self.path = Path(path) if path else None
        self.synthetic_count = synthetic_count
        self.seed = seed
        self.expansion_count = 0
        self._lock = threading.Lock()
        self._initial = list(records) if records is not None else None
        self._records: list[PropertyRecord] = []
        self.reload()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Dataset":
        settings = settings or config
        return cls(
            path=settings.dataset_path,
            synthetic_count=settings.synthetic_count,
            seed=settings.synthetic_seed,
        )

    @property
    def records(self) -> list[PropertyRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, property_id: str) -> Optional[PropertyRecord]:
        with self._lock:
            return next((r for r in self._records if r.id == property_id), None)

    def filter(self, **criteria: Any) -> list[PropertyRecord]:
        """Filter records; keyword arguments as PropertyRanker.filter_by_criteria."""
        return PropertyRanker().filter_by_criteria(self.records, **criteria)

    def add(self, record: PropertyRecord | dict) -> PropertyRecord:
        """Add one record.

        Raises:
            ValidationError: If a mapping does not validate as a PropertyRecord
        """
        if not isinstance(record, PropertyRecord):
            try:
                record = PropertyRecord.model_validate(record)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid property record: {e}") from e
        with self._lock:
            self._records.append(record)
        return record

    def expand(self, count: int) -> list[PropertyRecord]:
        """Append ``count`` freshly generated synthetic records."""
        with self._lock:
            self.expansion_count += 1
            new = generate_properties(
                count,
                seed=self.seed + self.expansion_count,
                start_index=len(self._records),
            )
            self._records.extend(new)
        logger.info(f"Dataset expanded by {count} properties. Total: {len(self)}")
        return new

    def reset(self) -> None:
        """Drop every record."""
        with self._lock:
            self._records = []
            self.expansion_count = 0
        logger.info("Dataset reset")

    def reload(self) -> None:
        """Rebuild the working set from its file or the generator."""
        if self._initial is not None:
            records = list(self._initial)
        elif self.path and self.path.exists():
            records = load_records(self.path)
        else:
            if self.path:
                logger.warning(f"Dataset file {self.path} not found, using synthetic data")
            records = generate_properties(self.synthetic_count, seed=self.seed)
        with self._lock:
            self._records = records
            self.expansion_count = 0

    def stats(self) -> dict:
        """Counts by borough and category."""
        records = self.records
        return {
            "totalProperties": len(records),
            "expansionCount": self.expansion_count,
            "byBorough": dict(Counter(r.borough.value if r.borough else "Unknown" for r in records)),
            "byCategory": dict(
                Counter(r.property_category.value if r.property_category else "Unknown" for r in records)
            ),
        }
