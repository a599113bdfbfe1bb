"""
Bootstrap payload sources.

The builder treats instance bootstrap scripts as opaque bytes. Reading them
is I/O, so it happens here, before a build starts.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from topology.ir.errors import BootstrapError
from topology.schemas import BuildConfig

logger = logging.getLogger(__name__)


class BootstrapSource(ABC):
    @abstractmethod
    def load(self, key: str) -> bytes:
        """Return the payload stored under key"""
        pass


class FileBootstrapSource(BootstrapSource):
    def __init__(self, base_dir: Union[str, Path] = "."):
        self.base_dir = Path(base_dir)

    def load(self, key: str) -> bytes:
        path = Path(key)
        if not path.is_absolute():
            path = self.base_dir / path
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise BootstrapError(f"cannot read bootstrap payload '{path}': {e}") from e
        logger.debug("loaded %d bootstrap bytes from %s", len(payload), path)
        return payload


class InlineBootstrapSource(BootstrapSource):
    def __init__(self, payloads: Dict[str, Union[str, bytes]]):
        self.payloads = payloads

    def load(self, key: str) -> bytes:
        if key not in self.payloads:
            raise BootstrapError(f"no inline bootstrap payload named '{key}'")
        payload = self.payloads[key]
        return payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)


def load_bootstrap_payload(config: BuildConfig, source: Optional[BootstrapSource] = None) -> bytes:
    """An inline script in the config wins over the configured path."""
    if config.bootstrap_script:
        return config.bootstrap_script.encode("utf-8")
    if not config.bootstrap_path:
        raise BootstrapError("config names neither bootstrapScript nor bootstrapPath")
    source = source or FileBootstrapSource()
    return source.load(config.bootstrap_path)
