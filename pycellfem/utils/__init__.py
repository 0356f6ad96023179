from .bitset import BitSet
from .cachedarray import CachedArray
__all__=['BitSet','CachedArray']
