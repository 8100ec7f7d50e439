"""Domain Layer: cache keys, entries, errors and the cache interfaces.

Nothing here touches the file system or threads; infrastructure adapters
implement the interfaces defined in `newscache.domain.interfaces`.
"""
