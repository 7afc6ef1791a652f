"""Build-tool hook: runs the engine once per eligible module.

Thin adapter between a bundler's per-module transform callback and
:class:`TransformEngine`. Results are memoized by source digest so an
unchanged module is not re-parsed on every hot update.
"""

import hashlib
import logging
import os
import threading
from collections import OrderedDict
from typing import Dict, Iterable, Optional, Set, Tuple

from ..core.ast_parser import SUPPORTED_EXTENSIONS
from ..core.constants import EVENT_REGISTRATION_METHOD, FETCH_FUNCTION
from ..core.errors import ParseFailure
from ..core.models import TargetMode, TransformResult
from ..core.transform import TransformEngine

logger = logging.getLogger(__name__)

# Cheap pre-filter; files without these never produce a match
_MARKERS = (EVENT_REGISTRATION_METHOD, f"{FETCH_FUNCTION}(")

CacheKey = Tuple[str, str, bool, Optional[str]]


def _digest(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


class BuildHook:
    """Per-module transform entry point for a bundler plugin.

    Usage:
        hook = BuildHook(create_transformer(), target_mode="production")
        hook.build_start()
        result = hook.transform(code, "src/app.js")
        if result is not None:
            emit(result.code, result.map)
    """

    def __init__(
        self,
        engine: TransformEngine,
        target_mode: Optional[TargetMode] = None,
        source_map: bool = True,
        cache_size: int = 256,
        include_extensions: Optional[Iterable[str]] = None,
        exclude_dirs: Iterable[str] = ("node_modules",),
    ):
        self.engine = engine
        self.target_mode = TargetMode.parse(target_mode or engine.default_target_mode)
        self.source_map = source_map
        self.cache_size = cache_size
        self.include_extensions = frozenset(
            ext.lower() for ext in (include_extensions or SUPPORTED_EXTENSIONS)
        )
        self.exclude_dirs = frozenset(exclude_dirs)

        self._cache: "OrderedDict[CacheKey, TransformResult]" = OrderedDict()
        self._keys_by_file: Dict[str, Set[CacheKey]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_settings(cls, engine: TransformEngine, settings) -> "BuildHook":
        """Hook configured from the ``transform`` and ``build`` sections."""
        return cls(
            engine,
            target_mode=settings.transform.target_mode,
            source_map=settings.transform.source_map,
            cache_size=settings.build.cache_size,
            include_extensions=settings.build.include_extensions,
            exclude_dirs=settings.build.exclude_dirs,
        )

    # ── Lifecycle ────────────────────────────────────────────────────

    def build_start(self) -> None:
        with self._lock:
            self._cache.clear()
            self._keys_by_file.clear()
            self.hits = self.misses = 0
        logger.debug("Transform cache cleared at build start")

    def handle_hot_update(self, file_id: str) -> int:
        """Drop cached results for ``file_id``; returns how many were dropped."""
        with self._lock:
            keys = self._keys_by_file.pop(file_id, set())
            for key in keys:
                self._cache.pop(key, None)
        if keys:
            logger.info("Cleared %d cache entr%s for %s", len(keys), "y" if len(keys) == 1 else "ies", file_id)
        return len(keys)

    # ── Transform ────────────────────────────────────────────────────

    def should_transform(self, file_id: str, code: Optional[str] = None) -> bool:
        _, ext = os.path.splitext(file_id)
        if ext.lower() not in self.include_extensions:
            return False
        parts = set(file_id.replace("\\", "/").split("/"))
        if parts & self.exclude_dirs:
            return False
        if code is not None and not any(marker in code for marker in _MARKERS):
            return False
        return True

    def transform(self, code: str, file_id: str) -> Optional[TransformResult]:
        """Transform one module, or ``None`` to leave it to the bundler.

        Malformed modules are logged and skipped so the bundler reports
        the syntax error itself.
        """
        if not self.should_transform(file_id, code):
            return None

        key: CacheKey = (
            _digest(code),
            self.target_mode.value,
            self.source_map,
            file_id if self.source_map else None,
        )
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                self.hits += 1
                return cached
            self.misses += 1

        try:
            result = self.engine.transform(
                code,
                filename=file_id,
                target_mode=self.target_mode,
                want_source_map=self.source_map,
            )
        except ParseFailure as e:
            logger.warning("Transform failed for %s: %s", file_id, e.message)
            return None

        if self.cache_size > 0:
            with self._lock:
                self._cache[key] = result
                self._keys_by_file.setdefault(file_id, set()).add(key)
                while len(self._cache) > self.cache_size:
                    evicted, _ = self._cache.popitem(last=False)
                    for tracked in list(self._keys_by_file):
                        keys = self._keys_by_file[tracked]
                        keys.discard(evicted)
                        if not keys:
                            del self._keys_by_file[tracked]
        return result

    @property
    def cache_len(self) -> int:
        with self._lock:
            return len(self._cache)

    @property
    def tracked_files(self) -> Set[str]:
        """Module ids that still own at least one cache entry."""
        with self._lock:
            return set(self._keys_by_file)
