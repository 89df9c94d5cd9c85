"""
Warning collection shared by the builders and parsers.
"""

import logging
from typing import Iterable, List, Optional


class Diagnostics:
    """
    Ordered list of warning messages for one conversion call.

    Structural warnings (missing sections, fallback types, dangling
    references) are logged at WARNING level; semantic warnings (a diagram
    mode without a native DEXPI representation) at INFO level. A message
    already recorded is not repeated, so the validator and the parsers may
    report the same condition.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)
        self.messages: List[str] = []

    def structural(self, message: str) -> None:
        if message in self.messages:
            return
        self._logger.warning(message)
        self.messages.append(message)

    def semantic(self, message: str) -> None:
        if message in self.messages:
            return
        self._logger.info(message)
        self.messages.append(message)

    def extend(self, messages: Iterable[str]) -> None:
        for message in messages:
            if message not in self.messages:
                self.messages.append(message)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)
