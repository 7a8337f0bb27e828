"""Package initialization for trace-topology-projector.

Projects observed cross-process calls into canonical topology and metrics
source records for a downstream aggregation engine.
"""

__all__ = []
