"""Terminal front-end for redis-scan-viewer."""
