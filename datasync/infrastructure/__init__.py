from .caching import CachingDataService
from .seed_loader import load_seed_records, seed_collection

__all__ = ["CachingDataService", "load_seed_records", "seed_collection"]
