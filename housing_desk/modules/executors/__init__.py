"""
Executors Module - Specialist profiles, availability and stats.
"""
from housing_desk.modules.executors.models import Executor, ExecutorSpecialization, ExecutorStatus

__all__ = ["Executor", "ExecutorSpecialization", "ExecutorStatus"]
