"""
Visual asset handles shared between bodies.

The physics never loads models or textures.  It only needs to know whether
the asset a body will be drawn with has resolved, because a body must not
enter the scene before it is presentable.  The presentation layer performs
the actual (asynchronous) load and reports back through ``mark_loaded`` or
``mark_failed``.

One handle exists per asset source.  Bodies cloned from the same template
share that handle, so a model is acquired once however many bodies use it.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class AssetStatus(Enum):
    PENDING = 'pending'
    LOADED = 'loaded'
    FAILED = 'failed'


class AssetHandle:
    """
    Load status of one visual asset.

    Attributes
    ----------
    source : str
        Path or URL of the asset, as given in the template.
    status : AssetStatus
        PENDING until the presentation layer reports an outcome.
    resource : object or None
        Whatever the presentation layer attached on success (a scene node,
        a mesh ...).  Opaque to the simulator.
    error : str or None
        Failure description when status is FAILED.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.status = AssetStatus.PENDING
        self.resource: Optional[Any] = None
        self.error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.status is AssetStatus.LOADED

    def mark_loaded(self, resource: Optional[Any] = None) -> None:
        self.status = AssetStatus.LOADED
        self.resource = resource
        self.error = None
        logger.info("Asset loaded: %s", self.source)

    def mark_failed(self, error: Any) -> None:
        self.status = AssetStatus.FAILED
        self.resource = None
        self.error = str(error)
        logger.warning("Asset failed to load: %s (%s)", self.source, self.error)

    def __repr__(self) -> str:
        return f"AssetHandle(source={self.source!r}, status={self.status.value})"


class AssetRegistry:
    """Hands out exactly one ``AssetHandle`` per source."""

    def __init__(self) -> None:
        self._handles: Dict[str, AssetHandle] = {}

    def acquire(self, source: str) -> AssetHandle:
        handle = self._handles.get(source)
        if handle is None:
            handle = AssetHandle(source)
            self._handles[source] = handle
            logger.debug("Asset requested: %s", source)
        return handle

    def get(self, source: str) -> Optional[AssetHandle]:
        return self._handles.get(source)

    def pending(self) -> list:
        return [h for h in self._handles.values() if h.status is AssetStatus.PENDING]

    def mark_all_loaded(self) -> None:
        """Resolve every pending asset; used when running without a renderer."""
        for handle in self.pending():
            handle.mark_loaded()

    def __iter__(self) -> Iterator[AssetHandle]:
        return iter(list(self._handles.values()))

    def __len__(self) -> int:
        return len(self._handles)
