from .definitions import Aggregation, FetchOptions, Variable
from .fetch import fetch, fetch_subset
from .write import write

__all__ = ["fetch", "fetch_subset", "write", "Aggregation", "FetchOptions", "Variable"]
