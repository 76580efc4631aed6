import functools
from importlib.metadata import PackageNotFoundError, version

#: Used when the package is run from a source checkout that was never installed
FALLBACK_VERSION = "0.0.0+unknown"


@functools.lru_cache(maxsize=None)
def get_fitlog_version():
    try:
        return version("fitlog")
    except PackageNotFoundError:
        return FALLBACK_VERSION
