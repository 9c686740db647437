# params.py
"""Read detector parameter documents (JSON) into config dataclasses,
and hot-reload them while running."""
from __future__ import annotations

import dataclasses
import json
import logging
import re
import typing
from pathlib import Path
from typing import Any, Dict, Generic, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL.sub("_", key).lower()


def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """
    Build dataclass ``cls`` from a parsed document.

    Keys may be snake_case or OpenCV-style camelCase (``thresholdStep``);
    nested dataclass fields take nested objects; unknown keys are ignored
    with a warning.
    """
    hints = typing.get_type_hints(cls)
    known = {f.name: f for f in dataclasses.fields(cls)}
    kwargs: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = raw_key if raw_key in known else _snake(raw_key)
        if key not in known:
            logger.warning("[Params] Unknown key %r for %s", raw_key, cls.__name__)
            continue
        hint = hints.get(key)
        if dataclasses.is_dataclass(hint) and isinstance(value, dict):
            value = from_dict(hint, value)
        elif isinstance(value, list) and typing.get_origin(hint) is tuple:
            value = tuple(value)
        kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path, cls: Type[T]) -> T:
    """
    Load ``cls`` from a JSON file. A missing file yields the defaults;
    malformed JSON raises ``ValueError``.
    """
    p = Path(path).expanduser()
    try:
        with p.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
    except FileNotFoundError:
        logger.warning("[Params] %s not found – using %s defaults", p, cls.__name__)
        return cls()
    except json.JSONDecodeError as exc:
        raise ValueError(f"JSON error in {p}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{p} must hold a JSON object, got {type(data).__name__}")
    return from_dict(cls, data)


class RuntimeParamWatcher(Generic[T]):
    """Watch a JSON file and rebuild its config when it changes."""

    def __init__(self, path: str | Path, cls: Type[T]) -> None:
        self.path = Path(path).expanduser().resolve()
        self.cls = cls
        self._stamp: Tuple[float, int] = (0.0, -1)  # (mtime, size)
        self.config: T = cls()

        logger.info("[Runtime] Watching: %s", self.path)
        self._load(initial=True)

    # ------------------------------------------------------------------
    #   Internal helpers
    # ------------------------------------------------------------------
    def _load(self, *, initial: bool = False) -> bool:
        try:
            stat = self.path.stat()
            self.config = load_config(self.path, self.cls)
            self._stamp = (stat.st_mtime, stat.st_size)
            if not initial:
                logger.info("[Runtime] Reloaded parameters from %s", self.path)
            return True
        except FileNotFoundError:
            if initial:
                logger.info(
                    "[Runtime] %s not found – live-tuning disabled (create the file to enable).",
                    self.path,
                )
            else:
                logger.warning("[Runtime] %s was deleted – keeping old params.", self.path)
        except (ValueError, TypeError) as exc:
            logger.error("[Runtime] Bad parameters in %s: %s", self.path, exc)
        return False

    # ------------------------------------------------------------------
    #   Public API
    # ------------------------------------------------------------------
    def maybe_reload(self) -> Optional[T]:
        """
        If the watched file changed since the last call reload it and
        return the new config, else return **None**.
        """
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None

        mtime, fsize = self._stamp
        # Some filesystems only update timestamps in 1- or 2-second ticks,
        # so we treat any change >=1 s *or* size change as “modified”.
        if stat.st_size != fsize or stat.st_mtime - mtime >= 1.0:
            if self._load():
                return self.config
            self._stamp = (stat.st_mtime, stat.st_size)
        return None
