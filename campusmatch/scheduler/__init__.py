"""Background dispatch of sweeps and periodic maintenance."""

from .service import MAINTENANCE_JOB_ID, SweepDispatcher

__all__ = [
    "SweepDispatcher",
    "MAINTENANCE_JOB_ID",
]
