from .step_10_fetch import FetchStep
from .step_20_verify import VerifyStep
from .step_30_install import InstallStep
from .step_40_smoke_test import SmokeTestStep

__all__ = [
    "FetchStep",
    "VerifyStep",
    "InstallStep",
    "SmokeTestStep",
]
