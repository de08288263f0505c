"""Infrastructure layer — observability for the beat timeline engine.

Modules:
    metrics     Prometheus metrics registry (detections, grid size, drag commits).
"""
