from __future__ import annotations

import logging

from ..providers.base import Platform
from ..providers.marker import MarkerFileOracle
from .context import ProcessMetadata, classify
from .types import Config, ExecutionContext, ScreenState

logger = logging.getLogger(__name__)


class StateResolver:
    """Derive the screen state from the best signal the context allows.

    Rules:
        1. Main process -> the platform's direct query.
        2. Restricted extension -> the marker-file oracle.
        3. Ultra-restricted (widget) extension -> UNKNOWN, nothing is queried.

    Failures never escape `current_state`; they resolve to UNKNOWN.
    """

    def __init__(
        self,
        metadata: ProcessMetadata,
        platform: Platform,
        oracle: MarkerFileOracle | None,
        config: Config | None = None,
    ):
        self._metadata = metadata
        self._platform = platform
        self._oracle = oracle
        self._config = config or Config()

    def context(self) -> ExecutionContext:
        return classify(
            self._metadata, widget_extension_points=self._config.widget_extension_points
        )

    def current_state(self) -> ScreenState:
        context = self.context()

        if context is ExecutionContext.ULTRA_RESTRICTED_EXTENSION:
            return ScreenState.UNKNOWN

        try:
            if context is ExecutionContext.RESTRICTED_EXTENSION:
                if self._oracle is None:
                    return ScreenState.UNKNOWN
                return self._oracle.resolve()

            return self._platform.direct_state()
        except Exception:
            logger.exception("Lock state query failed in %s context", context.value)
            return ScreenState.UNKNOWN
