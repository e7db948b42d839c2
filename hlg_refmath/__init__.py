"""HLG (ITU-R BT.2390) 高精度参考数学实现"""

from hlg_refmath.colorspace import RefMathColorSpace, mat_mul3
from hlg_refmath.environment import (
    DISPLAY_PRESETS,
    DisplayEnvironment,
    black_level_lift,
    bright_gamma,
    extended_gamma,
)
from hlg_refmath.errors import HLGDomainError
from hlg_refmath.refmath import SRGB_TO_HLG_SCALER, RefMathConversion, RefMathHLG

__version__ = "1.0.0"

__all__ = [
    "DISPLAY_PRESETS",
    "DisplayEnvironment",
    "HLGDomainError",
    "RefMathColorSpace",
    "RefMathConversion",
    "RefMathHLG",
    "SRGB_TO_HLG_SCALER",
    "black_level_lift",
    "bright_gamma",
    "extended_gamma",
    "mat_mul3",
]
