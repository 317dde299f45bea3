# tasks/__init__.py
from tasks.background import BackgroundWorker

__all__ = ["BackgroundWorker"]
