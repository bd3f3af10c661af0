"""
Record routing.

Metric records go to the file backend only, audit records go to the file and
the console, and text records go to ``RouterConfig.default_backends``.
"""

from typing import Dict, List

from .interfaces import LogBackend, LogRecord, LogRouter, LogType
from .structs import RouterConfig

_TYPE_ROUTES: Dict[LogType, List[str]] = {
    LogType.METRIC: ['file'],
    LogType.AUDIT: ['file', 'console'],
}


class SimpleRouter(LogRouter):

    def __init__(self, backends: Dict[str, LogBackend], config: RouterConfig):
        self.backends = backends
        self.text_backends = config.get_default_backends()

    def get_backends(self, record: LogRecord) -> List[LogBackend]:
        names = _TYPE_ROUTES.get(record.log_type, self.text_backends)
        selected = []
        for name in names:
            backend = self.backends.get(name)
            if backend is not None and backend.should_handle(record):
                selected.append(backend)
        return selected


def create_router(backends: Dict[str, LogBackend], config: RouterConfig) -> LogRouter:
    return SimpleRouter(backends, config)
