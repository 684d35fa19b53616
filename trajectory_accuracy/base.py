"""Common base classes shared by trajectory analysis components."""

from __future__ import annotations

import logging

from .config import AnalysisConfig


class PipelineComponent:
    """Provide shared configuration handling and logging for components."""

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        """Initialise the component with configuration and a dedicated logger."""

        self.config: AnalysisConfig = config if config is not None else AnalysisConfig()
        self.logger: logging.Logger = logging.getLogger(self.__class__.__name__)
