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

"""Shared pytest fixtures and configuration."""

import logging
import os

import pytest

from stepgraph.config.settings import ENV_PREFIX, EngineSettings, reset_settings
from stepgraph.framework.diagnostics import RecordingObserver


@pytest.fixture(autouse=True)
def isolate_environment_variables(monkeypatch):
    """Isolate tests from STEPGRAPH_* environment variables and cached settings."""
    for var in list(os.environ):
        if var.upper().startswith(ENV_PREFIX):
            monkeypatch.delenv(var, raising=False)
    stepgraph_logger = logging.getLogger("stepgraph")
    previous_level = stepgraph_logger.level
    reset_settings()
    yield
    reset_settings()
    stepgraph_logger.setLevel(previous_level)


@pytest.fixture
def settings():
    """Default engine settings, independent of the environment."""
    return EngineSettings()


@pytest.fixture
def recorder():
    """Observer recording every execution event."""
    return RecordingObserver()
