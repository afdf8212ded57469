from .cleaner import apply_cleaning, apply_rate_fallbacks
from .loader import DataIngestionPipeline

__all__ = ["DataIngestionPipeline", "apply_cleaning", "apply_rate_fallbacks"]
