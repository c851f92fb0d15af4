from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class IngestionConfig:
    """
    Configuration for importing a reviews CSV into the store.
    """

    raw_data_dir: Path = Path("review_engine/data/raw")
    reviews_filename: str = "reviews.csv"

    @property
    def reviews_path(self) -> Path:
        return self.raw_data_dir / self.reviews_filename


DEFAULT_INGESTION_CONFIG = IngestionConfig()
