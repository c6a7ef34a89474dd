"""
影の幾何

2天体の見かけの位置から、食の判定に使う「離角」と「しきい値」を作る純粋関数群。
角度はすべてラジアン。

- 月食: 地球の本影・半影を楕円として扱う（赤道方向 1.0131、極方向 1.015 倍の拡大）
- 衛星の食: 惑星の赤道面への1次元の射影
- 日食: 月の視円盤（楕円）と太陽の視円盤
"""
import math
from dataclasses import dataclass

from classes import Constants, GeometryError
from ephemeris import EphemElement

# 大気の厚みと不透明度による地球の影の拡大率（2007年の月食から決めた値）
EARTH_SHADOW_EQUATORIAL_FACTOR = 1.0131
EARTH_SHADOW_POLAR_FACTOR = 1.015


@dataclass(frozen=True)
class GeometrySample:
    """
    ある時刻の影の幾何

    dist がそれぞれの *_outer 以下なら影に入っている、*_inner 以下なら全体が影の中。
    衛星の食では dist は惑星の赤道面への射影距離(km)になる。
    """
    dist: float
    umbra_outer: float
    umbra_inner: float
    penumbra_outer: float
    penumbra_inner: float
    shadowed_side: bool = True


@dataclass(frozen=True)
class DiskSample:
    """日食のときの月（衛星）と太陽の視円盤"""
    dist: float
    moon_radius: float      # 位置角方向の実効半径
    sun_radius: float
    moon_angular_radius: float

    @property
    def outer(self) -> float:
        return self.sun_radius + self.moon_radius


def _check_radius(*radii: float) -> None:
    for r in radii:
        if not r > 0.0:
            raise GeometryError(f"angular radius must be positive, got {r}")


def angular_distance(ra1: float, dec1: float, ra2: float, dec2: float) -> float:
    """2点間の角距離（単位ベクトルの弦から求める）"""
    dx = math.cos(dec1) * math.cos(ra1) - math.cos(dec2) * math.cos(ra2)
    dy = math.cos(dec1) * math.sin(ra1) - math.cos(dec2) * math.sin(ra2)
    dz = math.sin(dec1) - math.sin(dec2)
    r2 = dx * dx + dy * dy + dz * dz
    return math.acos(max(-1.0, 1.0 - r2 / 2.0))


def position_angle(ra1: float, dec1: float, ra2: float, dec2: float) -> float:
    """点1から見た点2の位置角。2点が一致するときは0"""
    dl = ra2 - ra1
    y = math.sin(dl) * math.cos(dec2)
    x = math.sin(dec2) * math.cos(dec1) - math.cos(dec2) * math.sin(dec1) * math.cos(dl)
    if x == 0.0 and y == 0.0:
        return 0.0
    return -math.atan2(y, x)


def elliptical_radius(pa: float, a: float, b: float) -> float:
    """半径 a(赤道方向), b(極方向) の楕円の、方向 pa での半径"""
    _check_radius(a, b)
    return 1.0 / math.hypot(math.sin(pa) / a, math.cos(pa) / b)


def earth_shadow(moon: EphemElement, sun: EphemElement, equatorial_radius: float,
                 polar_radius: float) -> GeometrySample:
    """
    月と地球の影の幾何

    Args:
        moon: 地心から見た月
        sun: 地心から見た太陽
        equatorial_radius: 影を落とす天体の赤道半径(km)
        polar_radius: 同じく極半径(km)

    Returns:
        GeometrySample
    """
    _check_radius(moon.angular_radius, sun.angular_radius)

    # 反太陽点を月の距離に置く
    shadow_ra = sun.right_ascension + math.pi
    shadow_dec = -sun.declination
    d = moon.distance

    cone_length = equatorial_radius / (Constants.AU * math.tan(sun.angular_radius))
    ang_max = math.atan2(equatorial_radius / Constants.AU, d) * (EARTH_SHADOW_EQUATORIAL_FACTOR - d / cone_length)
    ang_min = math.atan2(polar_radius / Constants.AU, d) * (EARTH_SHADOW_POLAR_FACTOR - d / cone_length)
    penumbra = 2.0 * sun.angular_radius

    dist = angular_distance(moon.right_ascension, moon.declination, shadow_ra, shadow_dec)
    pa = 3.0 * Constants.PI_OVER_TWO - position_angle(moon.right_ascension, moon.declination, shadow_ra, shadow_dec)

    umbra = elliptical_radius(pa, ang_max, ang_min)
    pen = elliptical_radius(pa, ang_max + penumbra, ang_min + penumbra)
    mr = moon.angular_radius
    return GeometrySample(dist, umbra + mr, umbra - mr, pen + mr, pen - mr)


def satellite_shadow(satellite: EphemElement, sun: EphemElement, planet_radius: float,
                     satellite_radius: float) -> GeometrySample:
    """
    惑星の影と衛星

    惑星中心から見た衛星の位置を、太陽方向に垂直な面へ射影した距離(km)から
    惑星半径を引いた量 f を、衛星の半径と比べる。
    半影は太陽と衛星の視半径の比で f をずらして判定する。
    """
    _check_radius(satellite.angular_radius, sun.angular_radius)

    f = satellite.distance * Constants.AU * math.sin(satellite.elongation) - planet_radius
    shift = satellite_radius * (sun.angular_radius / satellite.angular_radius)
    return GeometrySample(
        dist=f,
        umbra_outer=satellite_radius,
        umbra_inner=-satellite_radius,
        penumbra_outer=satellite_radius + shift,
        penumbra_inner=-satellite_radius + shift,
        # 太陽と同じ側にいる衛星は影に入らない
        shadowed_side=satellite.elongation > Constants.PI_OVER_TWO,
    )


def solar_disks(moon: EphemElement, sun: EphemElement) -> DiskSample:
    """観測地から見た月と太陽の視円盤"""
    _check_radius(moon.angular_radius, sun.angular_radius)

    dist = angular_distance(moon.right_ascension, moon.declination, sun.right_ascension, sun.declination)
    pa = 3.0 * Constants.PI_OVER_TWO \
        - position_angle(sun.right_ascension, sun.declination, moon.right_ascension, moon.declination) \
        - moon.position_angle_of_axis
    m_r = elliptical_radius(pa, moon.angular_radius, moon.angular_radius)
    return DiskSample(dist, m_r, sun.angular_radius, moon.angular_radius)
