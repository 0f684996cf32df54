"""kmonitor - Kubernetes node and pod usage sampler."""

__version__ = "0.1.0"
