from .enrollment_sweep import create_scheduler, run_enrollment_sweep

__all__ = ["create_scheduler", "run_enrollment_sweep"]
