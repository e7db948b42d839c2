"""
HLG RefMath 色彩空间转换

BT.709/sRGB 与 BT.2020/BT.2100 原色之间经由 CIE XYZ (D65) 的固定矩阵转换，
以及扩展范围 sRGB 传递函数。这些都是无状态的纯函数，作为 HLG 核心的外部协作者。
"""

from typing import Sequence

import numpy as np


def as_triple(values: Sequence[float], name: str = "input") -> np.ndarray:
    """将输入规整为形状 (3,) 的 float64 数组"""
    triple = np.asarray(values, dtype=np.float64)
    if triple.shape != (3,):
        raise ValueError(f"{name}: 需要3个分量的RGB/XYZ三元组, 实际形状 {triple.shape}")
    return triple


def mat_mul3(matrix: np.ndarray, vector: Sequence[float]) -> np.ndarray:
    """3×3 矩阵乘以3维向量"""
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise ValueError(f"mat_mul3: 需要3×3矩阵, 实际形状 {matrix.shape}")
    return matrix @ as_triple(vector, "mat_mul3")


class RefMathColorSpace:
    """高精度色彩空间转换 (D65)"""

    # 精确有理数形式的矩阵 (CSS Color 4)
    BT709_TO_XYZ = np.array([
        [506752 / 1228815, 87881 / 245763, 12673 / 70218],
        [87098 / 409605, 175762 / 245763, 12673 / 175545],
        [7918 / 409605, 87881 / 737289, 1001167 / 1053270]
    ], dtype=np.float64)

    XYZ_TO_BT709 = np.array([
        [12831 / 3959, -329 / 214, -1974 / 3959],
        [-851781 / 878810, 1648619 / 878810, 36519 / 878810],
        [705 / 12673, -2585 / 12673, 705 / 667]
    ], dtype=np.float64)

    BT2020_TO_XYZ = np.array([
        [0.6369580483012914, 0.14461690358620832, 0.1688809751641721],
        [0.2627002120112671, 0.6779980715188708, 0.05930171646986196],
        [0.000000000000000, 0.028072693049087428, 1.060985057710791]
    ], dtype=np.float64)

    XYZ_TO_BT2020 = np.array([
        [1.716651187971268, -0.355670783776392, -0.253366281373660],
        [-0.666684351832489, 1.616481236634939, 0.0157685458139111],
        [0.017639857445311, -0.042770613257809, 0.942103121235474]
    ], dtype=np.float64)

    # sRGB 分段传递函数常数 (IEC 61966-2-1)
    SRGB_LINEAR_THRESHOLD = 0.04045
    SRGB_ENCODED_THRESHOLD = 0.0031308

    @classmethod
    def srgb_to_linear(cls, srgb: Sequence[float]) -> np.ndarray:
        """
        sRGB/rec709 非线性信号 → 线性光

        扩展范围: 负值按符号对称处理，超过1.0的值沿幂函数段继续延伸。
        """
        srgb = as_triple(srgb, "srgb_to_linear")
        magnitude = np.abs(srgb)
        linear = np.where(
            magnitude <= cls.SRGB_LINEAR_THRESHOLD,
            srgb / 12.92,
            np.sign(srgb) * np.power((magnitude + 0.055) / 1.055, 2.4)
        )
        return linear

    @classmethod
    def linear_to_srgb(cls, linear: Sequence[float]) -> np.ndarray:
        """线性光 → sRGB/rec709 非线性信号 (扩展范围)"""
        linear = as_triple(linear, "linear_to_srgb")
        magnitude = np.abs(linear)
        srgb = np.where(
            magnitude > cls.SRGB_ENCODED_THRESHOLD,
            np.sign(linear) * (1.055 * np.power(magnitude, 1.0 / 2.4) - 0.055),
            12.92 * linear
        )
        return srgb

    @classmethod
    def bt709_to_xyz(cls, rgb: Sequence[float]) -> np.ndarray:
        return mat_mul3(cls.BT709_TO_XYZ, rgb)

    @classmethod
    def xyz_to_bt709(cls, xyz: Sequence[float]) -> np.ndarray:
        return mat_mul3(cls.XYZ_TO_BT709, xyz)

    @classmethod
    def bt2020_to_xyz(cls, rgb: Sequence[float]) -> np.ndarray:
        """BT.2020/BT.2100 线性RGB → XYZ"""
        return mat_mul3(cls.BT2020_TO_XYZ, rgb)

    @classmethod
    def xyz_to_bt2020(cls, xyz: Sequence[float]) -> np.ndarray:
        """XYZ → BT.2020/BT.2100 线性RGB"""
        return mat_mul3(cls.XYZ_TO_BT2020, xyz)

    @classmethod
    def bt709_to_bt2020(cls, rgb: Sequence[float]) -> np.ndarray:
        """BT.709 → BT.2020 线性RGB (经由XYZ)"""
        # BT.709 → XYZ → BT.2020
        return cls.xyz_to_bt2020(cls.bt709_to_xyz(rgb))
