"""Utility functions for the API."""

from deps import HTTPException, Iterator, Path, contextlib, logging

from extension_checker import CacheError, CheckerError, ConfigError, ExtensionNotFoundError

logger = logging.getLogger(__name__)


def require_absolute(extension_path: str) -> None:
    if not Path(extension_path).is_absolute():
        raise HTTPException(400, "extensionPath must be absolute")


@contextlib.contextmanager
def checker_errors() -> Iterator[None]:
    """Map checker errors raised inside the block to HTTP errors."""
    try:
        yield
    except ConfigError as e:
        raise HTTPException(400, e.to_dict())
    except ExtensionNotFoundError as e:
        raise HTTPException(404, e.to_dict())
    except CacheError as e:
        logger.error("Cache operation failed: %s", e)
        raise HTTPException(500, e.to_dict())
    except CheckerError as e:
        raise HTTPException(422, e.to_dict())
