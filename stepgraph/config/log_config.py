# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Logging levels for stepgraph.

Logging Levels (stepgraph convention):
- TRACE (5): Per-node input resolution and channel writes
- DEBUG (10): Frontier selection, retries, observer failures
- INFO (20): Run start and finish
- WARNING (30): Step bound reached with work left
- ERROR (40): Node failures
"""

import logging
from typing import Any

# Custom TRACE level for very verbose logging (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER = "stepgraph"


def configure_logging_levels(log_level: str = "INFO") -> None:
    """Set the level of every ``stepgraph.*`` logger.

    Args:
        log_level: TRACE, DEBUG, INFO, WARNING, ERROR or CRITICAL
            (unknown names fall back to INFO)
    """
    level_upper = log_level.upper()
    if level_upper == "TRACE":
        level = TRACE
    else:
        level = getattr(logging, level_upper, logging.INFO)
    logging.getLogger(ROOT_LOGGER).setLevel(level)


def trace(logger: logging.Logger, message: str, *args: Any) -> None:
    """Log at TRACE level (5)."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, message, *args)


__all__ = ["TRACE", "ROOT_LOGGER", "configure_logging_levels", "trace"]
