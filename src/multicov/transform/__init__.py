"""Source transformation: the caching transform and the import hook."""

from multicov.transform.cache import CachingTransform, TransformFunction
from multicov.transform.hook import InstrumentingFinder, InstrumentingLoader

__all__ = [
    "CachingTransform",
    "InstrumentingFinder",
    "InstrumentingLoader",
    "TransformFunction",
]
