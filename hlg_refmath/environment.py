"""
HLG 显示/观看环境参数 (ITU-R BT.2390 第6.2、6.3节)

由峰值亮度 Lw、黑电平 Lb、环境亮度 Lamb 推导黑电平提升 β 与系统伽马 γ。
β 与 γ 每次调用都重新计算，不做缓存。
"""

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from hlg_refmath.errors import HLGDomainError

# 参考点
REFERENCE_PEAK_LUMINANCE = 1000.0    # cd/m²
REFERENCE_AMBIENT_LUMINANCE = 5.0    # cd/m²
REFERENCE_GAMMA = 1.2

# 扩展模型峰值亮度调整系数
KAPPA = 1.111
# "best fit" 环境亮度模型系数
AMBIENT_COEFFICIENT = -0.076


def black_level_lift(gamma: float = REFERENCE_GAMMA, Lw: float = 1000.0, Lb: float = 0.05) -> float:
    """
    黑电平提升 β = sqrt(3 * (Lb/Lw)^(1/γ))

    默认值取自 VESA DisplayHDR 1.1 Performance Tier 1000。
    Lb = 0 时 β = 0。
    """
    if Lw <= 0:
        raise HLGDomainError(f"峰值亮度 Lw 必须为正: {Lw}")
    if Lb < 0:
        raise HLGDomainError(f"黑电平 Lb 不能为负: {Lb}")
    if gamma <= 0:
        raise HLGDomainError(f"系统伽马必须为正: {gamma}")

    return float(np.sqrt(3.0 * np.power(Lb / Lw, 1.0 / gamma)))


def extended_gamma(Lw: float = 1000.0) -> float:
    """扩展模型参考伽马 γ_ref = 1.2 * κ^(log2(Lw/1000))"""
    if Lw <= 0:
        raise HLGDomainError(f"峰值亮度 Lw 必须为正: {Lw}")

    return float(REFERENCE_GAMMA * np.power(KAPPA, np.log2(Lw / REFERENCE_PEAK_LUMINANCE)))


def bright_gamma(ref_gamma: float, Lamb: float) -> float:
    """
    按实际环境亮度调整系统伽马

    γ = γ_ref - (-0.076 * log10(Lamb/5))，Lamb = 5 cd/m² 时不变。
    """
    if Lamb <= 0:
        raise HLGDomainError(f"环境亮度 Lamb 必须为正: {Lamb}")

    adjustment = AMBIENT_COEFFICIENT * np.log10(Lamb / REFERENCE_AMBIENT_LUMINANCE)
    return float(ref_gamma - adjustment)


@dataclass(frozen=True)
class DisplayEnvironment:
    """显示器与观看环境参数"""
    peak_luminance: float = 1000.0      # Lw, cd/m²
    black_luminance: float = 0.05       # Lb, cd/m²
    ambient_luminance: Optional[float] = REFERENCE_AMBIENT_LUMINANCE  # Lamb, None表示参考环境
    reference_gamma: Optional[float] = None  # None时按 Lw 用扩展模型计算

    def system_gamma(self) -> float:
        """γ: 峰值亮度决定参考伽马，再按环境亮度调整"""
        if self.reference_gamma is not None:
            gamma = self.reference_gamma
        else:
            gamma = extended_gamma(self.peak_luminance)

        if self.ambient_luminance is not None:
            gamma = bright_gamma(gamma, self.ambient_luminance)

        return gamma

    def black_level_lift(self) -> float:
        """β: 使用当前环境的系统伽马"""
        return black_level_lift(self.system_gamma(), self.peak_luminance, self.black_luminance)

    def to_dict(self) -> Dict:
        return {
            "peak_luminance": self.peak_luminance,
            "black_luminance": self.black_luminance,
            "ambient_luminance": self.ambient_luminance,
            "reference_gamma": self.reference_gamma,
            "system_gamma": self.system_gamma(),
            "black_level_lift": self.black_level_lift(),
        }


# 预设显示环境 (VESA DisplayHDR 1.1 各性能等级的黑电平上限)
DISPLAY_PRESETS: Dict[str, DisplayEnvironment] = {
    "DisplayHDR-400": DisplayEnvironment(peak_luminance=400.0, black_luminance=0.4),
    "DisplayHDR-600": DisplayEnvironment(peak_luminance=600.0, black_luminance=0.1),
    "DisplayHDR-1000": DisplayEnvironment(peak_luminance=1000.0, black_luminance=0.05),
    "Reference-1000": DisplayEnvironment(peak_luminance=1000.0, black_luminance=0.0),
}
