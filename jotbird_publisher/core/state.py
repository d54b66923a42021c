"""Persistence of the publisher's local state."""

import json
import logging
import uuid
from pathlib import Path

from jotbird_publisher.core.models import LocalState

logger = logging.getLogger(__name__)


class StateStore:
    """Keeps LocalState in a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> LocalState:
        """Load state, creating the device fingerprint on first use.

        A newly created fingerprint is written straight away so every later
        load sees the same value.
        """
        data = {}
        if self.path.exists():
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"State file {self.path} does not hold an object")

        state = LocalState.from_dict(data)
        if not state.device_fingerprint:
            state.device_fingerprint = str(uuid.uuid4())
            logger.debug("Created device fingerprint %s", state.device_fingerprint)
            self.save(state)
        return state

    def save(self, state: LocalState) -> None:
        """Write state, replacing the previous file in one step."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(state.to_dict(), f, indent=2)
        tmp_path.replace(self.path)
