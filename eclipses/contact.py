"""
接触判定

ある時刻の影の幾何から、どの領域（半影・本影・皆既）に入っているかを判定し、
次の接触までのおおよその時間（日）をあわせて返す。
"""
import math
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple

from shadow import GeometrySample, DiskSample

# 月の平均公転角速度(rad/day)
MOON_MEAN_ORBITAL_RATE = 2.0 * math.pi / 29.5


class EclipseType(Enum):
    """食の種類"""
    NO_ECLIPSE = "no_eclipse"
    PARTIAL = "partial"
    TOTAL = "total"
    ANNULAR = "annular"
    PENUMBRAL = "penumbral"

    def promote(self, candidate: Optional["EclipseType"]) -> "EclipseType":
        """遷移表にある場合だけ candidate に進む。皆既・金環からは戻らない"""
        if candidate in _TRANSITIONS[self]:
            return candidate
        return self


_TRANSITIONS = {
    EclipseType.NO_ECLIPSE: {EclipseType.PARTIAL, EclipseType.TOTAL, EclipseType.ANNULAR},
    EclipseType.PARTIAL: {EclipseType.TOTAL, EclipseType.ANNULAR},
    EclipseType.TOTAL: set(),
    EclipseType.ANNULAR: set(),
    EclipseType.PENUMBRAL: set(),
}


@dataclass(frozen=True)
class ContactSample:
    """
    接触判定の結果

    flags は内側の領域ほど後ろに並ぶ。
    月食: (半影, 皆既半影, 本影, 皆既)、日食: (欠け, 皆既/金環)
    """
    flags: Tuple[bool, ...]
    to_next_event: float = 0.0
    after_totality: float = 0.0
    eclipse_type: Optional[EclipseType] = None

    @property
    def inside_penumbra(self) -> bool:
        return self.flags[0]

    @property
    def total_penumbra(self) -> bool:
        return self.flags[1]

    @property
    def inside_umbra(self) -> bool:
        return self.flags[2]

    @property
    def total_umbra(self) -> bool:
        return self.flags[3]

    @property
    def inside_shadow(self) -> bool:
        return self.flags[0]

    @property
    def totality(self) -> bool:
        return self.flags[1]


def detect_lunar(sample: GeometrySample, rate: float = MOON_MEAN_ORBITAL_RATE) -> ContactSample:
    """
    月と地球の影の接触判定

    次の接触までの時間は、しきい値までの角距離を平均角速度で割ったものに
    0.25（半影の外からは0.125）を掛けて、接触を飛び越さないよう短めにとる。
    """
    dist = sample.dist
    to_next = after = 0.0

    def eta(threshold: float, k: float = 0.25) -> float:
        return k * abs(dist - threshold) / rate

    inside_umbra = dist <= sample.umbra_outer
    if not inside_umbra:
        to_next = eta(sample.umbra_outer)

    total_umbra = dist <= sample.umbra_inner
    if total_umbra:
        to_next = after = eta(sample.umbra_inner)
    elif inside_umbra:
        to_next = eta(sample.umbra_inner)
        after = eta(sample.umbra_outer)

    inside_penumbra = dist <= sample.penumbra_outer
    if inside_penumbra:
        if not inside_umbra:
            after = eta(sample.penumbra_outer)
    else:
        to_next = eta(sample.penumbra_outer, 0.125)
        after = 0.0

    total_penumbra = dist <= sample.penumbra_inner
    if total_penumbra:
        if not inside_umbra:
            after = eta(sample.penumbra_inner)
    elif inside_penumbra:
        # 皆既半影が本影より先に終わる食もあるので after はそのまま
        to_next = eta(sample.penumbra_inner)

    return ContactSample((inside_penumbra, total_penumbra, inside_umbra, total_umbra), to_next, after)


def detect_satellite_shadow(sample: GeometrySample) -> ContactSample:
    """衛星と惑星の影の接触判定。探索の刻みは固定なので時間の見積もりはしない"""
    def inside(threshold: float) -> bool:
        return sample.shadowed_side and sample.dist <= threshold

    return ContactSample((
        inside(sample.penumbra_outer),
        inside(sample.penumbra_inner),
        inside(sample.umbra_outer),
        inside(sample.umbra_inner),
    ))


def detect_solar(sample: DiskSample, rate: float = MOON_MEAN_ORBITAL_RATE) -> ContactSample:
    """
    月（衛星）と太陽の視円盤の接触判定

    皆既か金環かは月と太陽の視半径の大小で決める。
    """
    dist, m_r, s_r = sample.dist, sample.moon_radius, sample.sun_radius
    to_next = after = 0.0
    candidate = None

    inside = dist <= s_r + m_r
    if not inside:
        to_next = after = abs(dist - (s_r + sample.moon_angular_radius)) / rate

    totality = (dist + m_r <= s_r and m_r < s_r) or (dist + s_r <= m_r and m_r > s_r)
    if totality:
        candidate = EclipseType.TOTAL if sample.moon_angular_radius > s_r else EclipseType.ANNULAR
    elif inside:
        candidate = EclipseType.PARTIAL
        if m_r > s_r:
            to_next = abs(dist + (s_r - m_r)) / rate
        else:
            to_next = abs(dist - (s_r - m_r)) / rate
        after = abs(dist - (s_r + m_r)) / rate

    return ContactSample((inside, totality), to_next, after, candidate)
