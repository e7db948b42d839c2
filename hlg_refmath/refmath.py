"""
HLG 高精度参考数学实现 (RefMath)

ITU-R BT.2390 混合对数伽马 (HLG) 传递函数链:
- OETF / 逆OETF: 场景线性光 ↔ HLG非线性信号 (标量)
- OOTF: 只对亮度 Y 施加系统伽马 (整个RGB三元组)
- EOTF / 逆EOTF: HLG信号 ↔ 显示线性光，含黑电平提升
- sRGB/rec709 → rec2100-HLG 跨标准转换

标量函数只接受单个分量，三元组函数只接受3分量数组，两者不混用。
"""

from typing import Optional, Sequence

import numpy as np

from hlg_refmath.colorspace import RefMathColorSpace, as_triple
from hlg_refmath.environment import DisplayEnvironment
from hlg_refmath.errors import HLGDomainError


class RefMathHLG:
    """高精度HLG OETF/EOTF实现 (BT.2100 / BT.2390)"""

    # HLG常数 (使用64位精度)
    A = np.float64(0.17883277)
    B = 1.0 - 4.0 * A                   # 0.28466892
    C = 0.5 - A * np.log(4.0 * A)       # 0.55991073

    # 分段拼接点
    SCENE_BREAKPOINT = 1.0 / 12.0
    SIGNAL_BREAKPOINT = 0.5

    @classmethod
    def oetf(cls, E: float) -> float:
        """HLG OETF: 场景线性光 E ≥ 0 → 非线性信号 E'"""
        if not np.isfinite(E) or E < 0:
            raise HLGDomainError(f"HLG OETF 输入必须为非负有限值: {E}")

        if E <= cls.SCENE_BREAKPOINT:
            return float(np.sqrt(3.0 * E))
        return float(cls.A * np.log(12.0 * E - cls.B) + cls.C)

    @classmethod
    def inverse_oetf(cls, Edash: float) -> float:
        """HLG 逆OETF: 非线性信号 E' → 场景线性光 E"""
        if not np.isfinite(Edash) or Edash < 0:
            raise HLGDomainError(f"HLG 逆OETF 输入必须为非负有限值: {Edash}")

        if Edash <= cls.SIGNAL_BREAKPOINT:
            return float(Edash ** 2 / 3.0)
        return float((np.exp((Edash - cls.C) / cls.A) + cls.B) / 12.0)

    @classmethod
    def to_hlg(cls, rgb: Sequence[float]) -> np.ndarray:
        """场景线性RGB → HLG信号RGB (逐分量OETF)"""
        rgb = as_triple(rgb, "to_hlg")
        return np.array([cls.oetf(E) for E in rgb], dtype=np.float64)

    @classmethod
    def from_hlg(cls, rgb: Sequence[float]) -> np.ndarray:
        """HLG信号RGB → 场景线性RGB (逐分量逆OETF)"""
        rgb = as_triple(rgb, "from_hlg")
        return np.array([cls.inverse_oetf(Edash) for Edash in rgb], dtype=np.float64)

    @classmethod
    def apply_system_gamma(cls, rgb: Sequence[float], gamma: float) -> np.ndarray:
        """
        OOTF: 在XYZ空间只对亮度Y施加系统伽马

        RGB → XYZ, Y → Y^γ (X、Z不变), XYZ → RGB。
        Y ≤ 0 时按 0 处理，避免非整数次幂产生NaN。
        """
        if not np.isfinite(gamma) or gamma <= 0:
            raise HLGDomainError(f"系统伽马必须为正: {gamma}")

        X, Y, Z = RefMathColorSpace.bt2020_to_xyz(rgb)
        Y = np.power(max(Y, 0.0), gamma)

        return RefMathColorSpace.xyz_to_bt2020([X, Y, Z])

    @classmethod
    def eotf(cls, rgb: Sequence[float], beta: float, gamma: float) -> np.ndarray:
        """
        HLG EOTF: HLG信号RGB → 显示线性RGB

        先按系统伽马1.0计算线性光:
            E = 逆OETF(max(0, (1-β)E' + β))
        再对整个三元组施加系统伽马。输出不做 [0,1] 截断。
        """
        rgb = as_triple(rgb, "eotf")

        lifted = np.maximum(0.0, (1.0 - beta) * rgb + beta)
        scene = cls.from_hlg(lifted)

        # 系统伽马校正
        return cls.apply_system_gamma(scene, gamma)

    @classmethod
    def inverse_eotf(cls, rgb: Sequence[float], beta: float, gamma: float) -> np.ndarray:
        """
        HLG 逆EOTF: 显示线性RGB → HLG信号RGB

        EOTF 的逐步代数逆:
            1. 逆系统伽马 Y → Y^(1/γ)
            2. max(0, E) 后逐分量 OETF
            3. 逆黑电平提升 E' = (E'_lift - β) / (1 - β)
        """
        if not np.isfinite(beta) or beta >= 1.0:
            raise HLGDomainError(f"黑电平提升 β 必须小于1: {beta}")
        if not np.isfinite(gamma) or gamma <= 0:
            raise HLGDomainError(f"系统伽马必须为正: {gamma}")

        scene = cls.apply_system_gamma(rgb, 1.0 / gamma)
        lifted = cls.to_hlg(np.maximum(0.0, scene))

        return (lifted - beta) / (1.0 - beta)


# HLG媒体白 (75%信号) 对应的场景线性光
SRGB_TO_HLG_SCALER = RefMathHLG.inverse_oetf(0.75)


class RefMathConversion:
    """跨标准转换"""

    @classmethod
    def extended_srgb_to_rec2100_hlg(cls, srgb: Sequence[float]) -> np.ndarray:
        """
        扩展范围 sRGB/rec709 信号 → rec2100-HLG 信号

        1. 去除sRGB传递函数得到线性光 (可能超出 [0,1])
        2. BT.709 原色 → BT.2100 (=BT.2020) 原色
        3. 缩放到HLG输出信号范围 (sRGB白 → 75% HLG)
        4. β=0, γ=1.0 的逆EOTF，等价于逐分量OETF
        """
        linear = RefMathColorSpace.srgb_to_linear(srgb)

        # 转换到 rec2100 原色
        linear_2100 = RefMathColorSpace.xyz_to_bt2020(RefMathColorSpace.bt709_to_xyz(linear))

        scaled = linear_2100 * SRGB_TO_HLG_SCALER

        return RefMathHLG.inverse_eotf(scaled, 0.0, 1.0)

    @classmethod
    def rec2100_hlg_to_display_xyz(cls, signal: Sequence[float],
                                   environment: Optional[DisplayEnvironment] = None) -> np.ndarray:
        """
        HLG编码的 BT.2100 信号 → 显示器上的绝对 XYZ (cd/m²)

        β、γ 在每次调用时由显示环境重新推导。
        """
        if environment is None:
            environment = DisplayEnvironment()

        gamma = environment.system_gamma()
        beta = environment.black_level_lift()

        display = np.clip(RefMathHLG.eotf(signal, beta, gamma), 0.0, 1.0)

        return RefMathColorSpace.bt2020_to_xyz(display) * environment.peak_luminance
